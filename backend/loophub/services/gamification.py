"""Gamification Service: level-gated actions on threads (superlike, hide, mark as resource).

Invariants:
    - Permission is checked against the caller's stored reputation before any write
    - Unknown caller -> ResourceNotFoundError; missing level -> PermissionDeniedError;
      other rule violations -> BusinessRuleError (or ConflictError for repeats)
    - Superlike: one per (thread, user), never on own or authorless threads, +2 to the author
    - Hide: sets hidden_until = now + hide_duration_hours
    - Mark as resource: flips is_resource once and pays the author +10 once

Design Decisions:
    - Each action commits its own transaction (write + karma + notification together)
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.config import get_settings
from loophub.core.domain_types import NotificationType
from loophub.core.errors import (
    BusinessRuleError, ConflictError, ErrorContext,
    PermissionDeniedError, ResourceNotFoundError,
)
from loophub.core.karma import KARMA_VALUES, KarmaSource
from loophub.core.levels import (
    Permission, build_user_permissions, has_permission, minimum_level_for,
)
from loophub.models.profile import Profile
from loophub.models.superlike import Superlike
from loophub.models.thread import Thread
from loophub.services import karma as karma_service
from loophub.services import notifications

logger = logging.getLogger(__name__)


async def _load_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise ResourceNotFoundError("User", str(user_id))
    return profile


def _require_permission(profile: Profile, permission: Permission) -> None:
    if has_permission(profile.reputation, permission):
        return
    level = minimum_level_for(permission)
    logger.info(
        f"Denied {permission.value}: level below {level}",
        extra={"user_id": profile.id, "permission": permission.value},
    )
    raise PermissionDeniedError(
        f"You need level {level} or higher to use {permission.value}",
        permission=permission.value,
        context=ErrorContext(user_id=str(profile.id)),
    )


async def _load_thread(db: AsyncSession, thread_id: uuid.UUID) -> Thread:
    thread = await db.get(Thread, thread_id)
    if thread is None:
        raise ResourceNotFoundError("Thread", str(thread_id))
    return thread


async def get_user_permissions(db: AsyncSession, user_id: uuid.UUID) -> dict:
    profile = await _load_profile(db, user_id)
    return build_user_permissions(profile.reputation)


async def apply_superlike(
    db: AsyncSession, thread_id: uuid.UUID, user_id: uuid.UUID,
) -> dict:
    profile = await _load_profile(db, user_id)
    _require_permission(profile, Permission.SUPERLIKE)
    thread = await _load_thread(db, thread_id)

    if thread.user_id is None:
        raise BusinessRuleError("This thread has no author to reward", "SUPERLIKE_NO_AUTHOR")
    if thread.user_id == user_id:
        raise BusinessRuleError("You cannot superlike your own thread", "SUPERLIKE_OWN_THREAD")

    existing = await db.scalar(
        select(Superlike.id)
        .where(Superlike.thread_id == thread_id, Superlike.user_id == user_id)
    )
    if existing is not None:
        raise ConflictError("You already superliked this thread")

    db.add(Superlike(thread_id=thread_id, user_id=user_id, author_id=thread.user_id))
    await db.flush()
    amount = KARMA_VALUES["RECEIVE_SUPERLIKE"]
    await karma_service.award_karma(
        db, thread.user_id, amount, "Superlike received",
        KarmaSource.SUPERLIKE, thread_id,
    )
    await notifications.notify(
        db, thread.user_id, NotificationType.SUPERLIKE,
        f"{profile.username or 'Someone'} superliked your thread \"{thread.title}\"",
        from_user_id=user_id, thread_id=thread_id,
    )
    await db.commit()
    return {"karma_awarded": amount}


async def hide_post(
    db: AsyncSession, thread_id: uuid.UUID, user_id: uuid.UUID,
) -> dict:
    profile = await _load_profile(db, user_id)
    _require_permission(profile, Permission.SHADOW_HIDE)
    thread = await _load_thread(db, thread_id)

    now = datetime.now(timezone.utc)
    hidden_until = now + timedelta(hours=get_settings().hide_duration_hours)
    thread.is_hidden = True
    thread.hidden_at = now
    thread.hidden_until = hidden_until
    thread.hidden_by = user_id
    await db.commit()
    logger.info(
        "Thread hidden", extra={"user_id": user_id, "thread_id": thread_id},
    )
    return {"hidden_until": hidden_until.isoformat()}


async def mark_as_resource(
    db: AsyncSession, thread_id: uuid.UUID, user_id: uuid.UUID,
) -> dict:
    profile = await _load_profile(db, user_id)
    _require_permission(profile, Permission.CREATE_SPECIAL_THREADS)
    thread = await _load_thread(db, thread_id)

    if thread.is_resource:
        raise ConflictError("Thread is already marked as a resource")

    thread.is_resource = True
    await db.flush()
    if thread.user_id is not None:
        await karma_service.award_karma(
            db, thread.user_id, KARMA_VALUES["THREAD_MARKED_RESOURCE"],
            "Thread marked as resource", KarmaSource.THREAD, thread_id,
        )
    await db.commit()
    return {"marked": True}
