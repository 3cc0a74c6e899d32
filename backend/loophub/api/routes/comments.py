"""Comments: thread comment pages, creation, editing and deletion.

Invariants:
    - Comment pages are oldest first with the author profile attached
    - Creating is authenticated and rate limited ("comments"); karma and notifications run in the service
    - Owners edit and delete their own comments
    - The moderation route needs can_delete_comments on the thread's forum and penalizes the author
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.cache import CacheKeys, CacheTTL
from loophub.core.errors import PermissionDeniedError
from loophub.core.pagination import PageParams, build_pagination
from loophub.core.validation import sanitize_html
from loophub.infrastructure.auth import require_profile
from loophub.infrastructure.cache import cache, invalidate_thread
from loophub.infrastructure.database import get_db
from loophub.infrastructure.rate_limit import rate_limited
from loophub.models.comment import Comment
from loophub.models.profile import Profile
from loophub.schemas.forum import CommentCreate, CommentUpdate
from loophub.services import content
from loophub.services.listings import comment_dict, comment_payloads

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["comments"])

DEFAULT_PAGE_SIZE = 50


@router.get("/threads/{thread_id}/comments")
async def list_comments(
    thread_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    db: AsyncSession = Depends(get_db),
):
    params = PageParams(page, limit)
    cacheable = params.limit == DEFAULT_PAGE_SIZE
    key = CacheKeys.thread_comments(str(thread_id), params.page)
    if cacheable:
        cached = cache.get(key)
        if cached is not None:
            return cached

    await content.get_thread_or_404(db, thread_id)
    total = await db.scalar(
        select(func.count()).select_from(Comment).where(Comment.thread_id == thread_id)
    )
    result = await db.execute(
        select(Comment)
        .where(Comment.thread_id == thread_id)
        .order_by(Comment.created_at.asc())
        .offset(params.offset)
        .limit(params.limit)
    )
    page_data = {
        "comments": await comment_payloads(db, list(result.scalars().all())),
        "pagination": build_pagination(params.page, params.limit, total or 0),
    }
    if cacheable:
        cache.set(key, page_data, CacheTTL.COMMENTS)
    return page_data


@router.post(
    "/threads/{thread_id}/comments",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited("comments"))],
)
async def create_comment(
    thread_id: UUID,
    body: CommentCreate,
    author: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    thread = await content.get_thread_or_404(db, thread_id)
    comment = await content.create_comment(
        db, thread, author, body.content, parent_id=body.parent_id,
    )
    invalidate_thread(thread_id)
    return comment_dict(comment)


@router.put("/comments/{comment_id}")
async def update_comment(
    comment_id: UUID,
    body: CommentUpdate,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    comment = await content.get_comment_or_404(db, comment_id)
    if comment.user_id != profile.id:
        raise PermissionDeniedError("You can only edit your own comments")
    comment.content = sanitize_html(body.content)
    await db.commit()
    invalidate_thread(comment.thread_id)
    return comment_dict(comment)


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    comment = await content.get_comment_or_404(db, comment_id)
    thread_id = comment.thread_id
    await content.delete_comment(db, comment, profile)
    invalidate_thread(thread_id)
    return {"success": True}


@router.delete("/moderation/comments/{comment_id}")
async def moderate_delete_comment(
    comment_id: UUID,
    reason: str | None = Query(None, max_length=500),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    comment = await content.get_comment_or_404(db, comment_id)
    thread_id = comment.thread_id
    await content.delete_comment(db, comment, profile, as_moderator=True, reason=reason)
    invalidate_thread(thread_id)
    return {"success": True}
