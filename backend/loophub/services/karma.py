"""Karma Service: awards, penalties, milestones and the reputation audit.

Invariants:
    - Every reputation change goes through award_karma: profile update + karma_history row together
    - award_karma flushes but never commits; the calling operation owns the transaction
    - A milestone is paid at most once per user (user_milestones row written before the award)
    - audit_and_fix_karma applies exactly the difference between expected and stored karma

Design Decisions:
    - Reputation incremented with an UPDATE ... SET reputation = reputation + :amount so
      concurrent awards do not overwrite each other
    - Expected karma counts upvotes received from other users on threads and comments,
      plus moderation penalties, so an audit never reverses a penalty
"""

import logging
import uuid

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.domain_types import VoteType
from loophub.core.karma import (
    KARMA_VALUES, KarmaSource, MILESTONES, ContentCounts,
    build_audit_result, calculate_expected_karma, detect_milestones,
    format_adjustment_reason, milestone_description,
)
from loophub.models.comment import Comment
from loophub.models.karma_history import KarmaHistory
from loophub.models.profile import Profile
from loophub.models.superlike import Superlike
from loophub.models.thread import Thread
from loophub.models.user_milestone import UserMilestone
from loophub.models.vote import Vote

logger = logging.getLogger(__name__)


async def award_karma(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount: int,
    reason: str,
    source_type: KarmaSource | str,
    source_id: uuid.UUID | None = None,
) -> bool:
    """Add amount (may be negative) to the user's reputation. False if the user is unknown."""
    result = await db.execute(
        update(Profile)
        .where(Profile.id == user_id)
        .values(reputation=Profile.reputation + amount)
    )
    if result.rowcount == 0:
        logger.warning(
            f"Karma award skipped, unknown user: {reason}",
            extra={"user_id": user_id, "karma_amount": amount},
        )
        return False

    db.add(KarmaHistory(
        user_id=user_id,
        amount=amount,
        reason=reason,
        source_type=KarmaSource(source_type).value,
        source_id=source_id,
    ))
    await db.flush()
    logger.info(
        f"Karma {amount:+d}: {reason}",
        extra={"user_id": user_id, "karma_amount": amount},
    )
    return True


async def award_milestone(
    db: AsyncSession, user_id: uuid.UUID, milestone: str,
) -> bool:
    return await award_karma(
        db, user_id, KARMA_VALUES[milestone],
        f"Milestone: {milestone_description(milestone)}",
        KarmaSource.MANUAL,
    )


async def penalize_karma(
    db: AsyncSession,
    user_id: uuid.UUID,
    penalty: str,
    reason: str,
    source_id: uuid.UUID | None = None,
) -> bool:
    """Apply a named penalty (CONTENT_DELETED, THREAD_DELETED, VALID_REPORT...)."""
    amount = KARMA_VALUES[penalty]
    if amount >= 0:
        raise ValueError(f"{penalty} is not a penalty")
    return await award_karma(
        db, user_id, amount, f"Penalty: {reason}",
        KarmaSource.MODERATION, source_id,
    )


async def manual_adjustment(
    db: AsyncSession, user_id: uuid.UUID, amount: int, reason: str,
) -> bool:
    return await award_karma(
        db, user_id, amount, f"Manual adjustment: {reason}", KarmaSource.MANUAL,
    )


async def _awarded_milestones(db: AsyncSession, user_id: uuid.UUID) -> set[str]:
    result = await db.execute(
        select(UserMilestone.milestone).where(UserMilestone.user_id == user_id)
    )
    return set(result.scalars().all())


async def _upvotes_received(db: AsyncSession, user_id: uuid.UUID, target) -> int:
    """Upvotes on the user's threads or comments, excluding their own votes."""
    target_fk = Vote.thread_id if target is Thread else Vote.comment_id
    count = await db.scalar(
        select(func.count())
        .select_from(Vote)
        .join(target, target.id == target_fk)
        .where(
            target.user_id == user_id,
            Vote.user_id != user_id,
            Vote.vote_type == VoteType.UPVOTE,
        )
    )
    return count or 0


async def gather_content_counts(
    db: AsyncSession, user_id: uuid.UUID,
) -> ContentCounts:
    """Count everything that should have produced karma for this user."""
    threads = await db.scalar(
        select(func.count()).select_from(Thread).where(Thread.user_id == user_id)
    )
    comments = await db.scalar(
        select(func.count()).select_from(Comment).where(Comment.user_id == user_id)
    )
    resources = await db.scalar(
        select(func.count()).select_from(Thread)
        .where(Thread.user_id == user_id, Thread.is_resource.is_(True))
    )
    superlikes = await db.scalar(
        select(func.count()).select_from(Superlike)
        .where(Superlike.author_id == user_id)
    )
    penalties = await db.scalar(
        select(func.coalesce(func.sum(KarmaHistory.amount), 0))
        .where(
            KarmaHistory.user_id == user_id,
            KarmaHistory.source_type == KarmaSource.MODERATION.value,
        )
    )
    awarded = await _awarded_milestones(db, user_id)
    milestone_karma = sum(KARMA_VALUES[m] for m in awarded if m in MILESTONES)
    return ContentCounts(
        threads=threads or 0,
        comments=comments or 0,
        thread_upvotes=await _upvotes_received(db, user_id, Thread),
        comment_upvotes=await _upvotes_received(db, user_id, Comment),
        resources=resources or 0,
        superlikes_received=superlikes or 0,
        milestone_karma=milestone_karma,
        penalties=int(penalties or 0),
    )


async def check_milestones(db: AsyncSession, user_id: uuid.UUID) -> list[str]:
    """Award every newly reached milestone once. Returns the milestones awarded now."""
    counts = await gather_content_counts(db, user_id)
    awarded = await _awarded_milestones(db, user_id)
    reached = detect_milestones(
        counts.threads, counts.comments, counts.likes_received, awarded,
    )
    for milestone in reached:
        db.add(UserMilestone(user_id=user_id, milestone=milestone))
        await db.flush()
        await award_milestone(db, user_id, milestone)
    return reached


async def calculate_total_karma(db: AsyncSession, user_id: uuid.UUID) -> int:
    return calculate_expected_karma(await gather_content_counts(db, user_id))


async def audit_and_fix_karma(db: AsyncSession, user_id: uuid.UUID) -> dict | None:
    """Compare stored and expected karma, correcting the difference. None if unknown user."""
    profile = await db.get(Profile, user_id)
    if profile is None:
        return None
    current = profile.reputation
    calculated = await calculate_total_karma(db, user_id)
    if calculated == current:
        return build_audit_result(current, calculated, fixed=False)

    difference = calculated - current
    fixed = await manual_adjustment(
        db, user_id, difference, format_adjustment_reason(difference),
    )
    await db.commit()
    logger.info(
        f"Karma audit corrected {current} -> {calculated}",
        extra={"user_id": user_id, "karma_amount": difference},
    )
    return build_audit_result(current, calculated, fixed=fixed)


async def get_karma_history(
    db: AsyncSession, user_id: uuid.UUID, limit: int = 50,
) -> list[KarmaHistory]:
    result = await db.execute(
        select(KarmaHistory)
        .where(KarmaHistory.user_id == user_id)
        .order_by(KarmaHistory.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
