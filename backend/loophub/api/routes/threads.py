"""Threads: detail, edit, delete, pinning, locking and view counting.

Invariants:
    - Only the author edits a thread; the author or a forum moderator deletes or pins it
    - Only admins and forum moderators with can_lock_threads lock or unlock
    - A forum holds at most settings.max_pinned_threads pinned threads
    - Every write drops the thread's cached detail and the cached listings
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.config import get_settings
from loophub.core.cache import CacheKeys, CacheTTL
from loophub.core.domain_types import ModerationAction
from loophub.core.errors import BusinessRuleError, PermissionDeniedError
from loophub.core.moderation import ModeratorPermission
from loophub.core.validation import sanitize_html
from loophub.infrastructure.auth import require_profile
from loophub.infrastructure.cache import cache, invalidate_thread
from loophub.infrastructure.database import get_db
from loophub.models.forum import Forum
from loophub.models.profile import Profile
from loophub.models.thread import Thread
from loophub.schemas.forum import ThreadUpdate
from loophub.schemas.moderation import LockRequest
from loophub.services import content, forum_moderation
from loophub.services.listings import forum_dict, thread_dict, thread_payloads

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/threads", tags=["threads"])


@router.get("/{thread_id}")
async def get_thread(thread_id: UUID, db: AsyncSession = Depends(get_db)):
    key = CacheKeys.thread(str(thread_id))
    cached = cache.get(key)
    if cached is not None:
        return cached

    thread = await content.get_thread_or_404(db, thread_id)
    payload = (await thread_payloads(db, [thread]))[0]
    forum = await db.get(Forum, thread.forum_id)
    payload["forum"] = forum_dict(forum) if forum else None
    cache.set(key, payload, CacheTTL.THREADS)
    return payload


@router.put("/{thread_id}")
async def update_thread(
    thread_id: UUID,
    body: ThreadUpdate,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    thread = await content.get_thread_or_404(db, thread_id)
    if thread.user_id != profile.id:
        raise PermissionDeniedError("You can only edit your own threads")
    if body.title is not None:
        thread.title = sanitize_html(body.title)
    if body.content is not None:
        thread.content = sanitize_html(body.content)
    await db.commit()
    invalidate_thread(thread.id)
    return thread_dict(thread)


@router.delete("/{thread_id}")
async def delete_thread(
    thread_id: UUID,
    reason: str | None = Query(None, max_length=500),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    thread = await content.get_thread_or_404(db, thread_id)
    await content.delete_thread(db, thread, profile, reason=reason)
    invalidate_thread(thread_id)
    return {"success": True}


async def _require_pin_rights(db: AsyncSession, thread: Thread, profile: Profile) -> None:
    if thread.user_id == profile.id:
        return
    await forum_moderation.require_forum_permission(
        db, thread.forum_id, profile, ModeratorPermission.PIN_THREADS,
        "Only the author or a moderator can pin this thread",
    )


def _log_pin(db: AsyncSession, thread: Thread, profile: Profile, pinned: bool) -> None:
    if thread.user_id != profile.id:
        forum_moderation.record_action(
            db, profile.id, thread.forum_id,
            ModerationAction.PIN_THREAD if pinned else ModerationAction.UNPIN_THREAD,
            "thread", thread.id,
        )


@router.post("/{thread_id}/pin")
async def pin_thread(
    thread_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    thread = await content.get_thread_or_404(db, thread_id)
    await _require_pin_rights(db, thread, profile)
    if not thread.is_pinned:
        limit = get_settings().max_pinned_threads
        pinned = await db.scalar(
            select(func.count()).select_from(Thread)
            .where(Thread.forum_id == thread.forum_id, Thread.is_pinned.is_(True))
        )
        if (pinned or 0) >= limit:
            raise BusinessRuleError(
                f"A forum can have at most {limit} pinned threads", "PIN_LIMIT_REACHED",
            )
        thread.is_pinned = True
        _log_pin(db, thread, profile, True)
        await db.commit()
        invalidate_thread(thread.id)
    return {"success": True, "is_pinned": True}


@router.delete("/{thread_id}/pin")
async def unpin_thread(
    thread_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    thread = await content.get_thread_or_404(db, thread_id)
    await _require_pin_rights(db, thread, profile)
    if thread.is_pinned:
        thread.is_pinned = False
        _log_pin(db, thread, profile, False)
        await db.commit()
        invalidate_thread(thread.id)
    return {"success": True, "is_pinned": False}


@router.post("/{thread_id}/lock")
async def lock_thread(
    thread_id: UUID,
    body: LockRequest | None = None,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    thread = await content.get_thread_or_404(db, thread_id)
    await forum_moderation.set_thread_lock(
        db, thread, profile, True, reason=body.reason if body else None,
    )
    invalidate_thread(thread.id)
    return {"success": True, "is_locked": True}


@router.delete("/{thread_id}/lock")
async def unlock_thread(
    thread_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    thread = await content.get_thread_or_404(db, thread_id)
    await forum_moderation.set_thread_lock(db, thread, profile, False)
    invalidate_thread(thread.id)
    return {"success": True, "is_locked": False}


@router.post("/{thread_id}/view")
async def record_view(thread_id: UUID, db: AsyncSession = Depends(get_db)):
    await content.get_thread_or_404(db, thread_id)
    await db.execute(
        update(Thread)
        .where(Thread.id == thread_id)
        .values(view_count=Thread.view_count + 1, updated_at=Thread.updated_at)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    view_count = await db.scalar(select(Thread.view_count).where(Thread.id == thread_id))
    cache.delete(CacheKeys.thread(str(thread_id)))
    return {"success": True, "view_count": view_count}
