"""Forums: category listing, admin management, per-forum thread pages and moderators.

Invariants:
    - GET /forums and /forums/stats are served from the TTL cache; every forum or thread write invalidates them
    - Thread pages list pinned threads first, then by the requested sort, hiding shadow-hidden threads
    - Creating a thread is authenticated and rate limited ("threads")
    - Moderator appointments are admin-only; the moderation log is for admins and that forum's moderators

Design Decisions:
    - Only pages of the default size are cached, so cache keys stay page/sort shaped
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.cache import CacheKeys, CacheTTL
from loophub.core.domain_types import ThreadSort
from loophub.core.errors import ConflictError, ResourceNotFoundError
from loophub.core.pagination import PageParams, build_pagination
from loophub.infrastructure.auth import (
    AuthUser, get_current_user, require_admin, require_profile,
)
from loophub.infrastructure.cache import cache, invalidate_forum
from loophub.infrastructure.database import get_db
from loophub.infrastructure.rate_limit import rate_limited
from loophub.models.forum import Forum
from loophub.models.profile import Profile
from loophub.models.thread import Thread
from loophub.schemas.forum import ForumCreate, ThreadCreate
from loophub.schemas.moderation import ModeratorAdd
from loophub.services import content, forum_moderation
from loophub.services.listings import (
    forum_dict, thread_dict, thread_payloads, visible_clause,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/forums", tags=["forums"])

DEFAULT_PAGE_SIZE = 20

_SORT_ORDER = {
    ThreadSort.NEW: (Thread.created_at.desc(),),
    ThreadSort.TOP: (Thread.score.desc(), Thread.created_at.desc()),
    ThreadSort.ACTIVE: (Thread.updated_at.desc(), Thread.created_at.desc()),
}


async def get_forum_by_slug(db: AsyncSession, slug: str) -> Forum:
    forum = await db.scalar(select(Forum).where(Forum.slug == slug))
    if forum is None:
        raise ResourceNotFoundError("Forum", slug)
    return forum


async def _thread_counts(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(
        select(Thread.forum_id, func.count()).group_by(Thread.forum_id)
    )
    return {str(forum_id): count for forum_id, count in result.all()}


@router.get("")
async def list_forums(db: AsyncSession = Depends(get_db)):
    key = CacheKeys.forums()
    cached = cache.get(key)
    if cached is not None:
        return cached

    result = await db.execute(select(Forum).order_by(Forum.created_at.desc()))
    counts = await _thread_counts(db)
    forums = []
    for forum in result.scalars().all():
        payload = forum_dict(forum)
        payload["thread_count"] = counts.get(str(forum.id), 0)
        payload["_count"] = {"threads": payload["thread_count"]}
        forums.append(payload)
    cache.set(key, forums, CacheTTL.FORUMS)
    return forums


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_forum(
    body: ForumCreate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if await db.scalar(select(Forum.id).where(Forum.slug == body.slug)):
        raise ConflictError(f"A forum with slug '{body.slug}' already exists")
    forum = Forum(**body.model_dump())
    db.add(forum)
    await db.commit()
    invalidate_forum()
    logger.info(f"Forum created: {forum.slug}", extra={"user_id": admin.id})
    return forum_dict(forum)


@router.get("/stats")
async def forum_stats(db: AsyncSession = Depends(get_db)):
    key = CacheKeys.forum_stats()
    cached = cache.get(key)
    if cached is not None:
        return cached
    stats = {"counts": await _thread_counts(db)}
    cache.set(key, stats, CacheTTL.FORUMS)
    return stats


@router.delete("/{forum_id}")
async def delete_forum(
    forum_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    forum = await db.get(Forum, forum_id)
    if forum is None:
        raise ResourceNotFoundError("Forum", str(forum_id))
    slug = forum.slug
    await db.delete(forum)
    await db.commit()
    invalidate_forum(slug)
    logger.info(f"Forum deleted: {slug}", extra={"user_id": admin.id})
    return {"success": True}


@router.get("/{slug}/threads")
async def list_forum_threads(
    slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    sort: ThreadSort = Query(ThreadSort.NEW),
    db: AsyncSession = Depends(get_db),
):
    params = PageParams(page, limit)
    cacheable = params.limit == DEFAULT_PAGE_SIZE
    key = CacheKeys.forum_threads(slug, params.page, sort.value)
    if cacheable:
        cached = cache.get(key)
        if cached is not None:
            return cached

    forum = await get_forum_by_slug(db, slug)
    where = (Thread.forum_id == forum.id, visible_clause())
    total = await db.scalar(select(func.count()).select_from(Thread).where(*where))
    result = await db.execute(
        select(Thread)
        .where(*where)
        .order_by(Thread.is_pinned.desc(), *_SORT_ORDER[sort])
        .offset(params.offset)
        .limit(params.limit)
    )
    threads = list(result.scalars().all())

    page_data = {
        "forum": forum_dict(forum),
        "threads": await thread_payloads(db, threads),
        "pagination": build_pagination(params.page, params.limit, total or 0),
    }
    if cacheable:
        cache.set(key, page_data, CacheTTL.THREADS)
    return page_data


@router.post(
    "/{slug}/threads",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited("threads"))],
)
async def create_forum_thread(
    slug: str,
    body: ThreadCreate,
    author: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    forum = await get_forum_by_slug(db, slug)
    thread = await content.create_thread(db, forum, author, body.title, body.content)
    invalidate_forum(forum.slug)
    return thread_dict(thread)


# ─── Moderation ─────────────────────────────────────────────────

@router.get("/{slug}/moderators")
async def list_forum_moderators(slug: str, db: AsyncSession = Depends(get_db)):
    forum = await get_forum_by_slug(db, slug)
    return {"moderators": await forum_moderation.list_moderators(db, forum)}


@router.post("/{slug}/moderators", status_code=status.HTTP_201_CREATED)
async def add_forum_moderator(
    slug: str,
    body: ModeratorAdd,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    forum = await get_forum_by_slug(db, slug)
    appointment = await forum_moderation.add_moderator(
        db, forum, profile, body.user_id, body.permissions,
    )
    return {
        "success": True,
        "user_id": str(appointment.user_id),
        "permissions": appointment.permissions,
    }


@router.delete("/{slug}/moderators/{user_id}")
async def remove_forum_moderator(
    slug: str,
    user_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    forum = await get_forum_by_slug(db, slug)
    await forum_moderation.remove_moderator(db, forum, profile, user_id)
    return {"success": True}


@router.get("/{slug}/moderation")
async def moderation_status(
    slug: str,
    user: AuthUser | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    forum = await get_forum_by_slug(db, slug)
    profile = await db.get(Profile, user.id) if user else None
    return await forum_moderation.moderator_status(db, forum.id, profile)


@router.get("/{slug}/moderation-log")
async def moderation_log(
    slug: str,
    limit: int = Query(50, ge=1, le=200),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    forum = await get_forum_by_slug(db, slug)
    return {"entries": await forum_moderation.moderation_log(db, forum, profile, limit)}
