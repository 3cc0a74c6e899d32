"""Listing Helpers: visibility filter and payload builders shared by thread listings.

Invariants:
    - visible_clause() hides a thread only while hidden_until is still in the future
    - Payloads attach profile {id, username, avatar_url} (or None) and _count.comments
    - Batch lookups: one query per attachment, never one per row
    - Thread payloads carry an absolute url built from the configured public base URL
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.config import get_settings
from loophub.core.url_helpers import get_base_url, get_full_url, thread_path
from loophub.models.comment import Comment
from loophub.models.forum import Forum
from loophub.models.profile import Profile
from loophub.models.thread import Thread


def visible_clause(now: datetime | None = None):
    now = now or datetime.now(timezone.utc)
    return or_(
        Thread.is_hidden.is_(False),
        Thread.hidden_until < now,
    )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def public_url(path: str) -> str:
    settings = get_settings()
    return get_full_url(path, get_base_url(settings.base_url, settings.vercel_url))


async def profiles_by_id(
    db: AsyncSession, user_ids,
) -> dict[uuid.UUID, Profile]:
    ids = {i for i in user_ids if i is not None}
    if not ids:
        return {}
    result = await db.execute(select(Profile).where(Profile.id.in_(ids)))
    return {p.id: p for p in result.scalars().all()}


async def comment_counts(
    db: AsyncSession, thread_ids,
) -> dict[uuid.UUID, int]:
    ids = list(thread_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(Comment.thread_id, func.count())
        .where(Comment.thread_id.in_(ids))
        .group_by(Comment.thread_id)
    )
    return {thread_id: count for thread_id, count in result.all()}


async def forums_by_id(db: AsyncSession, forum_ids) -> dict[uuid.UUID, Forum]:
    ids = set(forum_ids)
    if not ids:
        return {}
    result = await db.execute(select(Forum).where(Forum.id.in_(ids)))
    return {f.id: f for f in result.scalars().all()}


def profile_brief(profile: Profile | None) -> dict | None:
    if profile is None:
        return None
    return {
        "id": str(profile.id),
        "username": profile.username,
        "avatar_url": profile.avatar_url,
    }


def forum_dict(forum: Forum) -> dict:
    return {
        "id": str(forum.id),
        "name": forum.name,
        "slug": forum.slug,
        "description": forum.description,
        "icon": forum.icon,
        "color": forum.color,
        "created_at": _iso(forum.created_at),
    }


def thread_dict(thread: Thread) -> dict:
    return {
        "id": str(thread.id),
        "forum_id": str(thread.forum_id),
        "user_id": str(thread.user_id) if thread.user_id else None,
        "title": thread.title,
        "content": thread.content,
        "upvote_count": thread.upvote_count,
        "downvote_count": thread.downvote_count,
        "score": thread.score,
        "view_count": thread.view_count,
        "is_pinned": thread.is_pinned,
        "is_hidden": thread.is_hidden,
        "is_resource": thread.is_resource,
        "is_locked": thread.is_locked,
        "created_at": _iso(thread.created_at),
        "updated_at": _iso(thread.updated_at),
    }


def comment_dict(comment: Comment) -> dict:
    return {
        "id": str(comment.id),
        "thread_id": str(comment.thread_id),
        "user_id": str(comment.user_id) if comment.user_id else None,
        "parent_id": str(comment.parent_id) if comment.parent_id else None,
        "content": comment.content,
        "upvote_count": comment.upvote_count,
        "downvote_count": comment.downvote_count,
        "score": comment.score,
        "created_at": _iso(comment.created_at),
        "updated_at": _iso(comment.updated_at),
    }


async def thread_payloads(
    db: AsyncSession, threads: list[Thread], include_forum: bool = False,
) -> list[dict]:
    """Serialize threads with author profile, comment count and (optionally) forum."""
    profiles = await profiles_by_id(db, (t.user_id for t in threads))
    counts = await comment_counts(db, (t.id for t in threads))
    forums = await forums_by_id(db, (t.forum_id for t in threads)) if include_forum else {}
    payloads = []
    for thread in threads:
        payload = thread_dict(thread)
        payload["profile"] = profile_brief(profiles.get(thread.user_id))
        payload["_count"] = {"comments": counts.get(thread.id, 0)}
        payload["url"] = public_url(thread_path(str(thread.id)))
        if include_forum:
            forum = forums.get(thread.forum_id)
            payload["forum"] = (
                {"id": str(forum.id), "name": forum.name, "slug": forum.slug}
                if forum else None
            )
        payloads.append(payload)
    return payloads


async def comment_payloads(db: AsyncSession, comments: list[Comment]) -> list[dict]:
    profiles = await profiles_by_id(db, (c.user_id for c in comments))
    payloads = []
    for comment in comments:
        payload = comment_dict(comment)
        payload["profile"] = profile_brief(profiles.get(comment.user_id))
        payloads.append(payload)
    return payloads
