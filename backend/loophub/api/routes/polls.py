"""Polls: create a poll on a thread, vote, read results, close and delete."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.errors import ResourceNotFoundError
from loophub.infrastructure.auth import AuthUser, get_current_user, require_profile
from loophub.infrastructure.database import get_db
from loophub.models.poll import Poll
from loophub.models.profile import Profile
from loophub.schemas.poll import PollCreate, PollVoteRequest
from loophub.services import polls

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/polls", tags=["polls"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_poll(
    body: PollCreate,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    poll = await polls.create_poll(
        db, profile, body.thread_id, body.question, body.options,
        closes_at=body.ends_at,
        multiple=body.is_multiple_choice,
        max_choices=body.max_choices,
        min_level_to_vote=body.min_level_to_vote,
        show_results_before_vote=body.show_results_before_vote,
    )
    return await polls.poll_details(db, poll, profile.id)


@router.get("/by-thread/{thread_id}")
async def get_thread_poll(
    thread_id: UUID,
    user: AuthUser | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    poll = await db.scalar(select(Poll).where(Poll.thread_id == thread_id))
    if poll is None:
        raise ResourceNotFoundError("Poll for thread", str(thread_id))
    return await polls.poll_details(db, poll, user.id if user else None)


@router.get("/{poll_id}")
async def get_poll(
    poll_id: UUID,
    user: AuthUser | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    poll = await polls.get_poll_or_404(db, poll_id)
    return await polls.poll_details(db, poll, user.id if user else None)


@router.post("/{poll_id}/vote")
async def vote_in_poll(
    poll_id: UUID,
    body: PollVoteRequest,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    poll = await polls.get_poll_or_404(db, poll_id)
    await polls.cast_ballot(db, poll, profile, body.option_ids)
    details = await polls.poll_details(db, poll, profile.id)
    return {"success": True, **details}


@router.post("/{poll_id}/close")
async def close_poll(
    poll_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    poll = await polls.get_poll_or_404(db, poll_id)
    await polls.close_poll(db, poll, profile)
    details = await polls.poll_details(db, poll, profile.id)
    return {"success": True, **details}


@router.delete("/{poll_id}")
async def delete_poll(
    poll_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    poll = await polls.get_poll_or_404(db, poll_id)
    await polls.delete_poll(db, poll, profile)
    return {"success": True}
