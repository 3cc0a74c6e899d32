"""Vote Service: up/down votes on threads and comments with denormalized counters.

Invariants:
    - One vote per (user, target); repeating the same vote is rejected
    - Switching direction moves one count from one column to the other
    - score = upvote_count - downvote_count after every change
    - Gaining an upvote pays the author +1, losing one takes 1 back; self-votes pay nothing
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.domain_types import VoteType
from loophub.core.errors import BusinessRuleError, ResourceNotFoundError
from loophub.core.karma import KARMA_VALUES, KarmaSource
from loophub.models.comment import Comment
from loophub.models.thread import Thread
from loophub.models.vote import Vote
from loophub.services import karma as karma_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteTarget:
    thread_id: uuid.UUID | None = None
    comment_id: uuid.UUID | None = None

    @classmethod
    def from_ids(
        cls, thread_id: uuid.UUID | None, comment_id: uuid.UUID | None,
    ) -> "VoteTarget":
        if (thread_id is None) == (comment_id is None):
            raise BusinessRuleError(
                "Either threadId or commentId must be provided, but not both",
                "INVALID_VOTE_TARGET",
            )
        return cls(thread_id, comment_id)

    @property
    def model(self):
        return Thread if self.thread_id is not None else Comment

    @property
    def target_id(self) -> uuid.UUID:
        return self.thread_id if self.thread_id is not None else self.comment_id

    def vote_clause(self):
        if self.thread_id is not None:
            return Vote.thread_id == self.thread_id
        return Vote.comment_id == self.comment_id


async def _load_target(db: AsyncSession, target: VoteTarget) -> Thread | Comment:
    content = await db.get(target.model, target.target_id)
    if content is None:
        raise ResourceNotFoundError(target.model.__name__, str(target.target_id))
    return content


async def _find_vote(
    db: AsyncSession, user_id: uuid.UUID, target: VoteTarget,
) -> Vote | None:
    return await db.scalar(
        select(Vote).where(Vote.user_id == user_id, target.vote_clause())
    )


def _apply_delta(content: Thread | Comment, vote_type: int, delta: int) -> None:
    if vote_type == VoteType.UPVOTE:
        content.upvote_count = max(0, content.upvote_count + delta)
    else:
        content.downvote_count = max(0, content.downvote_count + delta)
    content.score = content.upvote_count - content.downvote_count


async def _settle_upvote_karma(
    db: AsyncSession, content: Thread | Comment, voter_id: uuid.UUID,
    target: VoteTarget, gained: bool,
) -> None:
    if content.user_id is None or content.user_id == voter_id:
        return
    amount = KARMA_VALUES["RECEIVE_LIKE"]
    await karma_service.award_karma(
        db, content.user_id, amount if gained else -amount,
        "Upvote received" if gained else "Upvote removed",
        KarmaSource.LIKE, target.target_id,
    )


def vote_counts(content: Thread | Comment) -> dict:
    return {
        "upvotes": content.upvote_count,
        "downvotes": content.downvote_count,
        "score": content.score,
    }


async def cast_vote(
    db: AsyncSession, user_id: uuid.UUID, target: VoteTarget, vote_type: int,
) -> dict:
    content = await _load_target(db, target)
    existing = await _find_vote(db, user_id, target)

    if existing is not None:
        if existing.vote_type == vote_type:
            raise BusinessRuleError("You already voted this way", "DUPLICATE_VOTE")
        _apply_delta(content, existing.vote_type, -1)
        _apply_delta(content, vote_type, +1)
        if existing.vote_type == VoteType.UPVOTE:
            await _settle_upvote_karma(db, content, user_id, target, gained=False)
        existing.vote_type = vote_type
        vote = existing
    else:
        vote = Vote(
            user_id=user_id,
            thread_id=target.thread_id,
            comment_id=target.comment_id,
            vote_type=vote_type,
        )
        db.add(vote)
        _apply_delta(content, vote_type, +1)

    if vote_type == VoteType.UPVOTE:
        await _settle_upvote_karma(db, content, user_id, target, gained=True)

    await db.commit()
    return {
        "success": True,
        "vote": {
            "id": str(vote.id),
            "vote_type": vote.vote_type,
            "thread_id": str(vote.thread_id) if vote.thread_id else None,
            "comment_id": str(vote.comment_id) if vote.comment_id else None,
        },
        **vote_counts(content),
    }


async def remove_vote(
    db: AsyncSession, user_id: uuid.UUID, target: VoteTarget,
) -> dict:
    content = await _load_target(db, target)
    existing = await _find_vote(db, user_id, target)
    if existing is not None:
        _apply_delta(content, existing.vote_type, -1)
        if existing.vote_type == VoteType.UPVOTE:
            await _settle_upvote_karma(db, content, user_id, target, gained=False)
        await db.delete(existing)
        await db.commit()
    return {"success": True, **vote_counts(content)}


async def vote_status(
    db: AsyncSession, user_id: uuid.UUID, target: VoteTarget,
) -> dict:
    content = await _load_target(db, target)
    existing = await _find_vote(db, user_id, target)
    return {
        "userVote": existing.vote_type if existing else None,
        **vote_counts(content),
    }
