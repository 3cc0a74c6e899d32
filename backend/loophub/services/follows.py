"""Follow Service: user-to-user follows, follower listings and the following feed.

Invariants:
    - A user never follows themselves (BusinessRuleError)
    - Following twice is a no-op; only a new follow notifies the followed user
    - isFollowing in listings is relative to the viewer, False for anonymous callers
"""

import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.domain_types import NotificationType
from loophub.core.errors import BusinessRuleError, ResourceNotFoundError
from loophub.core.levels import get_user_level
from loophub.models.profile import Profile
from loophub.models.thread import Thread
from loophub.models.user_follow import UserFollow
from loophub.services import notifications
from loophub.services.listings import thread_payloads, visible_clause

logger = logging.getLogger(__name__)


async def follower_count(db: AsyncSession, user_id: uuid.UUID) -> int:
    count = await db.scalar(
        select(func.count()).select_from(UserFollow)
        .where(UserFollow.following_id == user_id)
    )
    return count or 0


async def following_count(db: AsyncSession, user_id: uuid.UUID) -> int:
    count = await db.scalar(
        select(func.count()).select_from(UserFollow)
        .where(UserFollow.follower_id == user_id)
    )
    return count or 0


async def is_following(
    db: AsyncSession, follower_id: uuid.UUID, following_id: uuid.UUID,
) -> bool:
    found = await db.scalar(
        select(UserFollow.id).where(
            UserFollow.follower_id == follower_id,
            UserFollow.following_id == following_id,
        )
    )
    return found is not None


async def follow(db: AsyncSession, follower: Profile, following_id: uuid.UUID) -> dict:
    if follower.id == following_id:
        raise BusinessRuleError("Cannot follow yourself", "FOLLOW_SELF")
    if await db.get(Profile, following_id) is None:
        raise ResourceNotFoundError("User", str(following_id))

    if not await is_following(db, follower.id, following_id):
        db.add(UserFollow(follower_id=follower.id, following_id=following_id))
        await db.flush()
        await notifications.notify(
            db, following_id, NotificationType.FOLLOW,
            f"{follower.username or 'Someone'} started following you",
            from_user_id=follower.id,
        )
        await db.commit()
        logger.info("New follow", extra={"user_id": follower.id})
    return {"isFollowing": True, "followerCount": await follower_count(db, following_id)}


async def unfollow(db: AsyncSession, follower_id: uuid.UUID, following_id: uuid.UUID) -> dict:
    existing = await db.scalar(
        select(UserFollow).where(
            UserFollow.follower_id == follower_id,
            UserFollow.following_id == following_id,
        )
    )
    if existing is not None:
        await db.delete(existing)
        await db.commit()
    return {"isFollowing": False, "followerCount": await follower_count(db, following_id)}


async def _viewer_following_ids(
    db: AsyncSession, viewer_id: uuid.UUID | None,
) -> set[uuid.UUID]:
    if viewer_id is None:
        return set()
    result = await db.execute(
        select(UserFollow.following_id).where(UserFollow.follower_id == viewer_id)
    )
    return set(result.scalars().all())


async def list_connections(
    db: AsyncSession,
    user_id: uuid.UUID,
    direction: str,
    limit: int,
    offset: int,
    viewer_id: uuid.UUID | None = None,
) -> tuple[list[dict], int]:
    """direction="followers" lists who follows user_id, "following" whom they follow."""
    if direction == "followers":
        match, other = UserFollow.following_id, UserFollow.follower_id
    else:
        match, other = UserFollow.follower_id, UserFollow.following_id

    total = await db.scalar(
        select(func.count()).select_from(UserFollow).where(match == user_id)
    )
    result = await db.execute(
        select(Profile, UserFollow.created_at)
        .join(Profile, Profile.id == other)
        .where(match == user_id)
        .order_by(UserFollow.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    viewer_follows = await _viewer_following_ids(db, viewer_id)
    people = [
        {
            "id": str(profile.id),
            "username": profile.username,
            "avatar_url": profile.avatar_url,
            "bio": profile.bio,
            "reputation": profile.reputation,
            "level": get_user_level(profile.reputation),
            "followedAt": followed_at.isoformat(),
            "isFollowing": profile.id in viewer_follows,
        }
        for profile, followed_at in result.all()
    ]
    return people, total or 0


async def following_feed(
    db: AsyncSession, viewer_id: uuid.UUID, limit: int, offset: int,
) -> tuple[list[dict], int]:
    followed = await _viewer_following_ids(db, viewer_id)
    if not followed:
        return [], 0
    where = (Thread.user_id.in_(followed), visible_clause())
    total = await db.scalar(select(func.count()).select_from(Thread).where(*where))
    result = await db.execute(
        select(Thread)
        .where(*where)
        .order_by(Thread.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    threads = await thread_payloads(db, list(result.scalars().all()), include_forum=True)
    return threads, total or 0
