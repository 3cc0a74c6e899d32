"""Votes: cast, remove and inspect up/down votes on threads and comments."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.infrastructure.auth import require_profile
from loophub.infrastructure.cache import invalidate_thread
from loophub.infrastructure.database import get_db
from loophub.infrastructure.rate_limit import rate_limited
from loophub.models.comment import Comment
from loophub.models.profile import Profile
from loophub.schemas.engagement import VoteRequest
from loophub.services import votes
from loophub.services.votes import VoteTarget

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/votes", tags=["votes"])


async def _drop_cached(db: AsyncSession, target: VoteTarget) -> None:
    if target.thread_id is not None:
        invalidate_thread(target.thread_id)
        return
    comment = await db.get(Comment, target.comment_id)
    if comment is not None:
        invalidate_thread(comment.thread_id)


@router.post("", dependencies=[Depends(rate_limited("votes"))])
async def cast_vote(
    body: VoteRequest,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    target = VoteTarget.from_ids(body.thread_id, body.comment_id)
    result = await votes.cast_vote(db, profile.id, target, body.vote_type)
    await _drop_cached(db, target)
    return result


@router.delete("")
async def remove_vote(
    thread_id: UUID | None = Query(None, alias="threadId"),
    comment_id: UUID | None = Query(None, alias="commentId"),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    target = VoteTarget.from_ids(thread_id, comment_id)
    result = await votes.remove_vote(db, profile.id, target)
    await _drop_cached(db, target)
    return result


@router.get("")
async def get_vote_status(
    thread_id: UUID | None = Query(None, alias="threadId"),
    comment_id: UUID | None = Query(None, alias="commentId"),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    target = VoteTarget.from_ids(thread_id, comment_id)
    return await votes.vote_status(db, profile.id, target)
