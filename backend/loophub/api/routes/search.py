"""Search: case-insensitive substring search over threads and forums.

Invariants:
    - Queries shorter than 2 characters return an empty result, not an error
    - Threads match title or content, newest first, paginated, hidden threads excluded
    - Forums match name or description, at most 10, newest first
    - Results of default-size pages are cached for CacheTTL.SEARCH seconds
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.cache import CacheKeys, CacheTTL
from loophub.core.pagination import PageParams, build_pagination
from loophub.infrastructure.cache import cache
from loophub.infrastructure.database import get_db
from loophub.infrastructure.rate_limit import rate_limited
from loophub.models.forum import Forum
from loophub.models.thread import Thread
from loophub.services.listings import forum_dict, thread_payloads, visible_clause

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/search", tags=["search"])

MIN_QUERY_LENGTH = 2
MAX_FORUM_RESULTS = 10
DEFAULT_PAGE_SIZE = 20


def _pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def _search_threads(db: AsyncSession, pattern: str, params: PageParams):
    where = (
        or_(
            Thread.title.ilike(pattern, escape="\\"),
            Thread.content.ilike(pattern, escape="\\"),
        ),
        visible_clause(),
    )
    total = await db.scalar(select(func.count()).select_from(Thread).where(*where))
    result = await db.execute(
        select(Thread)
        .where(*where)
        .order_by(Thread.created_at.desc())
        .offset(params.offset)
        .limit(params.limit)
    )
    threads = await thread_payloads(db, list(result.scalars().all()), include_forum=True)
    return threads, total or 0


async def _search_forums(db: AsyncSession, pattern: str) -> list[dict]:
    result = await db.execute(
        select(Forum)
        .where(or_(
            Forum.name.ilike(pattern, escape="\\"),
            Forum.description.ilike(pattern, escape="\\"),
        ))
        .order_by(Forum.created_at.desc())
        .limit(MAX_FORUM_RESULTS)
    )
    forums = list(result.scalars().all())
    counts = {}
    if forums:
        rows = await db.execute(
            select(Thread.forum_id, func.count())
            .where(Thread.forum_id.in_([f.id for f in forums]))
            .group_by(Thread.forum_id)
        )
        counts = dict(rows.all())
    payloads = []
    for forum in forums:
        payload = forum_dict(forum)
        payload["_count"] = {"threads": counts.get(forum.id, 0)}
        payloads.append(payload)
    return payloads


@router.get("", dependencies=[Depends(rate_limited("search"))])
async def search(
    q: str = Query(""),
    search_type: Literal["all", "threads", "forums"] = Query("all", alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    db: AsyncSession = Depends(get_db),
):
    params = PageParams(page, limit)
    query = q.strip()
    if len(query) < MIN_QUERY_LENGTH:
        return {
            "threads": [],
            "forums": [],
            "pagination": build_pagination(1, params.limit, 0),
        }

    cacheable = params.limit == DEFAULT_PAGE_SIZE
    key = CacheKeys.search(query.lower(), search_type, params.page)
    if cacheable:
        cached = cache.get(key)
        if cached is not None:
            return cached

    pattern = _pattern(query)
    threads, total = [], 0
    if search_type in ("all", "threads"):
        threads, total = await _search_threads(db, pattern, params)
    forums = await _search_forums(db, pattern) if search_type in ("all", "forums") else []

    results = {
        "threads": threads,
        "forums": forums,
        "pagination": build_pagination(params.page, params.limit, total),
    }
    if cacheable:
        cache.set(key, results, CacheTTL.SEARCH)
    logger.debug(f"Search '{query}' ({search_type}) -> {total} threads, {len(forums)} forums")
    return results
