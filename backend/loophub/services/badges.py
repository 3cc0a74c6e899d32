"""Badge Service: evaluates badge criteria and awards badges the user does not hold yet.

Invariants:
    - Only active badges are awarded
    - criteria_type selects the compared metric: threads, comments, karma, followers
    - Each new badge notifies its earner (subject to notification settings)
"""

import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.domain_types import BadgeCriteria, NotificationType
from loophub.models.badge import Badge, UserBadge
from loophub.models.comment import Comment
from loophub.models.profile import Profile
from loophub.models.thread import Thread
from loophub.models.user_follow import UserFollow
from loophub.services import notifications

logger = logging.getLogger(__name__)


async def user_metrics(db: AsyncSession, profile: Profile) -> dict[str, int]:
    threads = await db.scalar(
        select(func.count()).select_from(Thread).where(Thread.user_id == profile.id)
    )
    comments = await db.scalar(
        select(func.count()).select_from(Comment).where(Comment.user_id == profile.id)
    )
    followers = await db.scalar(
        select(func.count()).select_from(UserFollow)
        .where(UserFollow.following_id == profile.id)
    )
    return {
        BadgeCriteria.THREADS.value: threads or 0,
        BadgeCriteria.COMMENTS.value: comments or 0,
        BadgeCriteria.KARMA.value: profile.reputation,
        BadgeCriteria.FOLLOWERS.value: followers or 0,
    }


async def check_and_award_badges(db: AsyncSession, profile: Profile) -> list[Badge]:
    metrics = await user_metrics(db, profile)
    held = set(
        (await db.execute(
            select(UserBadge.badge_id).where(UserBadge.user_id == profile.id)
        )).scalars().all()
    )
    candidates = (await db.execute(
        select(Badge).where(Badge.is_active.is_(True))
    )).scalars().all()

    earned = []
    for badge in candidates:
        if badge.id in held:
            continue
        if metrics.get(badge.criteria_type, 0) < badge.criteria_value:
            continue
        db.add(UserBadge(user_id=profile.id, badge_id=badge.id))
        await notifications.notify(
            db, profile.id, NotificationType.BADGE,
            f"You earned the \"{badge.name}\" badge!",
        )
        earned.append(badge)
    if earned:
        await db.commit()
        logger.info(
            f"Awarded {len(earned)} badge(s)", extra={"user_id": profile.id},
        )
    return earned


async def list_user_badges(db: AsyncSession, user_id: uuid.UUID) -> list[UserBadge]:
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.earned_at.desc())
    )
    return list(result.scalars().all())


def badge_to_dict(badge: Badge) -> dict:
    return {
        "id": str(badge.id),
        "name": badge.name,
        "slug": badge.slug,
        "description": badge.description,
        "icon": badge.icon,
        "color": badge.color,
        "category": badge.category,
        "criteria_type": badge.criteria_type,
        "criteria_value": badge.criteria_value,
    }
