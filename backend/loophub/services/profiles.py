"""Profile Service: public profile views, profile edits and username lifecycle.

Invariants:
    - A username is set once through set_username; later changes go through change_username
    - Changes respect settings.username_change_cooldown_days since username_changed_at
    - Taken usernames raise ConflictError, both on the pre-check and on a racing unique violation
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.config import get_settings
from loophub.core.errors import (
    BusinessRuleError, ConflictError, ResourceNotFoundError, ValidationFailedError,
)
from loophub.core.levels import (
    get_level_info, karma_to_next_level, progress_to_next_level,
)
from loophub.core.polls import ensure_utc
from loophub.core.validation import check_username_format
from loophub.models.profile import Profile
from loophub.services import follows

logger = logging.getLogger(__name__)


def check_format(username: str | None) -> str:
    error = check_username_format(username)
    if error:
        raise ValidationFailedError(error, field="username")
    return username.strip()


async def is_available(
    db: AsyncSession, username: str, exclude_id: uuid.UUID | None = None,
) -> bool:
    query = select(Profile.id).where(Profile.username == username)
    if exclude_id is not None:
        query = query.where(Profile.id != exclude_id)
    return await db.scalar(query) is None


async def _save_username(db: AsyncSession, profile: Profile) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Username taken on commit", extra={"user_id": profile.id})
        raise ConflictError("Username is already taken")


async def set_username(db: AsyncSession, profile: Profile, username: str | None) -> None:
    username = check_format(username)
    if profile.username:
        raise BusinessRuleError("Username already set", "USERNAME_ALREADY_SET")
    if not await is_available(db, username, exclude_id=profile.id):
        raise ConflictError("Username is already taken")
    profile.username = username
    await _save_username(db, profile)


def next_change_at(profile: Profile) -> datetime | None:
    if profile.username_changed_at is None:
        return None
    cooldown = timedelta(days=get_settings().username_change_cooldown_days)
    return ensure_utc(profile.username_changed_at) + cooldown


async def change_username(
    db: AsyncSession, profile: Profile, username: str | None,
) -> dict:
    username = check_format(username)
    previous = profile.username
    if previous == username:
        raise BusinessRuleError("New username is the same as the current one", "USERNAME_UNCHANGED")

    now = datetime.now(timezone.utc)
    allowed_at = next_change_at(profile)
    if allowed_at is not None and allowed_at > now:
        days_left = (allowed_at - now).days + 1
        raise BusinessRuleError(
            f"You can change your username again in {days_left} days",
            "USERNAME_COOLDOWN",
        )
    if not await is_available(db, username, exclude_id=profile.id):
        raise ConflictError("Username is already taken")

    profile.username = username
    profile.username_changed_at = now
    await _save_username(db, profile)
    logger.info(f"Username changed from {previous}", extra={"user_id": profile.id})
    return {
        "success": True,
        "message": "Username updated",
        "can_change": False,
        "previous_username": previous,
        "new_username": username,
    }


def profile_dict(profile: Profile) -> dict:
    return {
        "id": str(profile.id),
        "username": profile.username,
        "bio": profile.bio,
        "website": profile.website,
        "location": profile.location,
        "avatar_url": profile.avatar_url,
        "reputation": profile.reputation,
        "is_admin": profile.is_admin,
        "username_changed_at": (
            profile.username_changed_at.isoformat() if profile.username_changed_at else None
        ),
        "created_at": profile.created_at.isoformat(),
    }


async def public_profile(db: AsyncSession, user_id: uuid.UUID) -> dict:
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise ResourceNotFoundError("Profile", str(user_id))
    info = get_level_info(profile.reputation)
    payload = profile_dict(profile)
    payload.pop("is_admin")
    payload.pop("username_changed_at")
    payload["level"] = {
        "level": info.level,
        "name": info.name,
        "progress": round(progress_to_next_level(profile.reputation), 2),
        "karma_to_next_level": karma_to_next_level(profile.reputation),
    }
    payload["follower_count"] = await follows.follower_count(db, profile.id)
    payload["following_count"] = await follows.following_count(db, profile.id)
    return payload


async def update_profile(db: AsyncSession, profile: Profile, updates: dict) -> Profile:
    for field in ("bio", "website", "location", "avatar_url"):
        if field in updates:
            value = updates[field]
            if isinstance(value, str):
                value = value.strip() or None
            setattr(profile, field, value)
    await db.commit()
    return profile
