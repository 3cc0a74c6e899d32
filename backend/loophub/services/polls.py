"""Poll Service: creating polls on threads, casting ballots and rendering results.

Invariants:
    - Creating requires the create_polls permission or admin, an existing thread, and no other poll on it
    - Ballots need an open poll, voter level >= min_level_to_vote and options of this poll
    - Results are always ordered by option_order
    - Only the creator or an admin closes or deletes a poll; a poll closes once
    - Deleting a poll removes its ballots and options with it
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.errors import (
    BusinessRuleError, ConflictError, PermissionDeniedError, ResourceNotFoundError,
)
from loophub.core.domain_types import ModerationAction, PollType
from loophub.core.levels import Permission, get_user_level, has_permission
from loophub.core.polls import (
    check_question, check_vote, clean_options, is_poll_closed, tally_results,
)
from loophub.models.poll import Poll, PollOption, PollVote
from loophub.models.profile import Profile
from loophub.models.thread import Thread
from loophub.services import forum_moderation

logger = logging.getLogger(__name__)


async def get_poll_or_404(db: AsyncSession, poll_id: uuid.UUID) -> Poll:
    poll = await db.get(Poll, poll_id)
    if poll is None:
        raise ResourceNotFoundError("Poll", str(poll_id))
    return poll


async def create_poll(
    db: AsyncSession,
    creator: Profile,
    thread_id: uuid.UUID,
    question: str,
    options: list[str],
    closes_at: datetime | None = None,
    multiple: bool = False,
    max_choices: int = 1,
    min_level_to_vote: int = 0,
    show_results_before_vote: bool = True,
) -> Poll:
    if not creator.is_admin and not has_permission(creator.reputation, Permission.CREATE_POLLS):
        raise PermissionDeniedError(
            "You must be level 3 or higher to create polls",
            permission=Permission.CREATE_POLLS.value,
        )
    error = check_question(question)
    if error:
        raise BusinessRuleError(error, "INVALID_POLL")
    cleaned, error = clean_options(options)
    if error:
        raise BusinessRuleError(error, "INVALID_POLL")

    if await db.get(Thread, thread_id) is None:
        raise ResourceNotFoundError("Thread", str(thread_id))
    if await db.scalar(select(Poll.id).where(Poll.thread_id == thread_id)):
        raise ConflictError("This thread already has a poll")

    poll = Poll(
        thread_id=thread_id,
        question=question.strip(),
        poll_type=PollType.MULTIPLE.value if multiple else PollType.SINGLE.value,
        max_choices=min(max_choices, len(cleaned)) if multiple else 1,
        min_level_to_vote=min_level_to_vote,
        closes_at=closes_at,
        show_results_before_vote=show_results_before_vote,
        created_by=creator.id,
        options=[
            PollOption(option_text=text, option_order=i)
            for i, text in enumerate(cleaned)
        ],
    )
    db.add(poll)
    await db.commit()
    logger.info("Poll created", extra={"user_id": creator.id, "thread_id": thread_id})
    return poll


async def user_votes(
    db: AsyncSession, poll_id: uuid.UUID, user_id: uuid.UUID,
) -> list[uuid.UUID]:
    result = await db.execute(
        select(PollVote.option_id)
        .where(PollVote.poll_id == poll_id, PollVote.user_id == user_id)
    )
    return list(result.scalars().all())


async def cast_ballot(
    db: AsyncSession, poll: Poll, voter: Profile, option_ids: list[uuid.UUID],
) -> None:
    if is_poll_closed(poll.is_closed, poll.closes_at):
        raise BusinessRuleError("This poll is closed", "POLL_CLOSED")
    if get_user_level(voter.reputation) < poll.min_level_to_vote:
        raise PermissionDeniedError(
            f"You must be level {poll.min_level_to_vote} or higher to vote",
        )

    valid_ids = {option.id for option in poll.options}
    chosen = list(dict.fromkeys(option_ids))
    if any(option_id not in valid_ids for option_id in chosen):
        raise BusinessRuleError("Option does not belong to this poll", "INVALID_OPTION")

    existing = await user_votes(db, poll.id, voter.id)
    if any(option_id in existing for option_id in chosen):
        raise BusinessRuleError("You already voted for this option", "DUPLICATE_POLL_VOTE")
    error = check_vote(poll.poll_type, poll.max_choices, len(existing), len(chosen))
    if error:
        raise BusinessRuleError(error, "INVALID_POLL_VOTE")

    for option_id in chosen:
        db.add(PollVote(poll_id=poll.id, option_id=option_id, user_id=voter.id))
    await db.commit()


async def poll_details(
    db: AsyncSession, poll: Poll, viewer_id: uuid.UUID | None = None,
) -> dict:
    result = await db.execute(
        select(PollVote.option_id).where(PollVote.poll_id == poll.id)
    )
    results = tally_results(
        [(o.id, o.option_text, o.option_order) for o in poll.options],
        result.scalars().all(),
    )
    total_voters = await db.scalar(
        select(func.count(func.distinct(PollVote.user_id)))
        .where(PollVote.poll_id == poll.id)
    )
    mine = await user_votes(db, poll.id, viewer_id) if viewer_id else []
    closed = is_poll_closed(poll.is_closed, poll.closes_at)
    hide_results = not poll.show_results_before_vote and not mine and not closed
    options = [r.to_dict() for r in results]
    if hide_results:
        for option in options:
            option["vote_count"] = None
            option["percentage"] = None
    return {
        "poll": {
            "id": str(poll.id),
            "threadId": str(poll.thread_id),
            "question": poll.question,
            "pollType": poll.poll_type,
            "allowMultiple": poll.poll_type == PollType.MULTIPLE.value,
            "maxChoices": poll.max_choices,
            "minLevelToVote": poll.min_level_to_vote,
            "isClosed": closed,
            "closesAt": poll.closes_at.isoformat() if poll.closes_at else None,
            "closedAt": poll.closed_at.isoformat() if poll.closed_at else None,
            "showResultsBeforeVote": poll.show_results_before_vote,
            "createdAt": poll.created_at.isoformat(),
        },
        "options": options,
        "resultsHidden": hide_results,
        "userVotes": [str(option_id) for option_id in mine],
        "totalVoters": total_voters or 0,
        "hasVoted": len(mine) > 0,
    }


# ─── Lifecycle ──────────────────────────────────────────────────

def _require_owner_or_admin(poll: Poll, actor: Profile, verb: str) -> None:
    if poll.created_by != actor.id and not actor.is_admin:
        raise PermissionDeniedError(f"Only the poll creator or an admin can {verb} this poll")


async def _log_admin_action(
    db: AsyncSession, poll: Poll, actor: Profile, action: ModerationAction,
) -> None:
    if poll.created_by == actor.id:
        return
    thread = await db.get(Thread, poll.thread_id)
    if thread is not None:
        forum_moderation.record_action(
            db, actor.id, thread.forum_id, action, "poll", poll.id,
        )


async def close_poll(db: AsyncSession, poll: Poll, actor: Profile) -> Poll:
    _require_owner_or_admin(poll, actor, "close")
    if poll.is_closed:
        raise BusinessRuleError("This poll is already closed", "POLL_CLOSED")
    poll.is_closed = True
    poll.closed_at = datetime.now(timezone.utc)
    await _log_admin_action(db, poll, actor, ModerationAction.CLOSE_POLL)
    await db.commit()
    logger.info(f"Poll closed: {poll.id}", extra={"user_id": actor.id, "thread_id": poll.thread_id})
    return poll


async def delete_poll(db: AsyncSession, poll: Poll, actor: Profile) -> None:
    _require_owner_or_admin(poll, actor, "delete")
    thread_id = poll.thread_id
    await _log_admin_action(db, poll, actor, ModerationAction.DELETE_POLL)
    await db.execute(delete(PollVote).where(PollVote.poll_id == poll.id))
    await db.delete(poll)
    await db.commit()
    logger.info(f"Poll deleted: {poll.id}", extra={"user_id": actor.id, "thread_id": thread_id})
