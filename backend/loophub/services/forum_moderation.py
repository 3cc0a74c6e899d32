"""Forum Moderation Service: per-forum moderators, permission checks, thread locks and the log.

Invariants:
    - Admins hold every moderator flag on every forum
    - A forum moderator holds exactly the flags stored on their appointment
    - Only admins appoint or remove moderators
    - Every action taken on someone else's content is written to moderation_log
      in the same transaction as the action itself
    - Locking is idempotent; only admins and moderators with can_lock_threads lock
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.domain_types import ModerationAction
from loophub.core.errors import (
    BusinessRuleError, ConflictError, PermissionDeniedError, ResourceNotFoundError,
)
from loophub.core.moderation import (
    ModeratorPermission, all_permissions, has_flag, merge_permissions,
)
from loophub.models.forum import Forum
from loophub.models.forum_moderator import ForumModerator, ModerationLog
from loophub.models.profile import Profile
from loophub.models.thread import Thread

logger = logging.getLogger(__name__)


# ─── Permissions ────────────────────────────────────────────────

async def get_appointment(
    db: AsyncSession, forum_id: uuid.UUID, user_id: uuid.UUID,
) -> ForumModerator | None:
    return await db.scalar(
        select(ForumModerator).where(
            ForumModerator.forum_id == forum_id,
            ForumModerator.user_id == user_id,
        )
    )


async def moderator_status(
    db: AsyncSession, forum_id: uuid.UUID, profile: Profile | None,
) -> dict:
    if profile is None:
        return {"isModerator": False, "isAdmin": False, "permissions": {}}
    if profile.is_admin:
        return {"isModerator": True, "isAdmin": True, "permissions": all_permissions()}
    appointment = await get_appointment(db, forum_id, profile.id)
    if appointment is None:
        return {"isModerator": False, "isAdmin": False, "permissions": {}}
    return {
        "isModerator": True,
        "isAdmin": False,
        "permissions": dict(appointment.permissions or {}),
    }


async def can(
    db: AsyncSession, forum_id: uuid.UUID, profile: Profile, flag: ModeratorPermission,
) -> bool:
    status = await moderator_status(db, forum_id, profile)
    return has_flag(status["permissions"], flag)


async def require_forum_permission(
    db: AsyncSession, forum_id: uuid.UUID, profile: Profile,
    flag: ModeratorPermission, message: str,
) -> None:
    if not await can(db, forum_id, profile, flag):
        raise PermissionDeniedError(message, permission=flag.value)


def record_action(
    db: AsyncSession,
    moderator_id: uuid.UUID,
    forum_id: uuid.UUID,
    action: ModerationAction,
    target_type: str,
    target_id: uuid.UUID,
    reason: str | None = None,
) -> ModerationLog:
    """Stage a log row; the caller's commit persists it with the action."""
    entry = ModerationLog(
        moderator_id=moderator_id,
        forum_id=forum_id,
        action_type=action.value,
        target_type=target_type,
        target_id=target_id,
        reason=reason,
    )
    db.add(entry)
    logger.info(
        f"Moderation: {action.value} {target_type} {target_id}",
        extra={
            "user_id": moderator_id, "forum_id": forum_id,
            "moderation_action": action.value,
        },
    )
    return entry


# ─── Thread locks ───────────────────────────────────────────────

async def set_thread_lock(
    db: AsyncSession, thread: Thread, profile: Profile, locked: bool,
    reason: str | None = None,
) -> Thread:
    await require_forum_permission(
        db, thread.forum_id, profile, ModeratorPermission.LOCK_THREADS,
        "Only moderators can lock threads in this forum",
    )
    if thread.is_locked == locked:
        return thread

    thread.is_locked = locked
    thread.locked_at = datetime.now(timezone.utc) if locked else None
    thread.locked_by = profile.id if locked else None
    record_action(
        db, profile.id, thread.forum_id,
        ModerationAction.LOCK_THREAD if locked else ModerationAction.UNLOCK_THREAD,
        "thread", thread.id, reason,
    )
    await db.commit()
    return thread


# ─── Appointments ───────────────────────────────────────────────

def _require_admin(profile: Profile, message: str) -> None:
    if not profile.is_admin:
        raise PermissionDeniedError(message)


async def add_moderator(
    db: AsyncSession, forum: Forum, admin: Profile,
    user_id: uuid.UUID, permissions: dict[str, bool] | None = None,
) -> ForumModerator:
    _require_admin(admin, "Only admins can add moderators")
    merged, error = merge_permissions(permissions)
    if error:
        raise BusinessRuleError(error, "INVALID_PERMISSION")
    if await db.get(Profile, user_id) is None:
        raise ResourceNotFoundError("Profile", str(user_id))
    if await get_appointment(db, forum.id, user_id) is not None:
        raise ConflictError("This user is already a moderator of this forum")

    appointment = ForumModerator(
        forum_id=forum.id, user_id=user_id, appointed_by=admin.id, permissions=merged,
    )
    db.add(appointment)
    await db.commit()
    logger.info(
        f"Moderator {user_id} added to {forum.slug}",
        extra={"user_id": admin.id, "forum_id": forum.id},
    )
    return appointment


async def remove_moderator(
    db: AsyncSession, forum: Forum, admin: Profile, user_id: uuid.UUID,
) -> None:
    _require_admin(admin, "Only admins can remove moderators")
    appointment = await get_appointment(db, forum.id, user_id)
    if appointment is None:
        raise ResourceNotFoundError("Moderator", str(user_id))
    await db.delete(appointment)
    await db.commit()
    logger.info(
        f"Moderator {user_id} removed from {forum.slug}",
        extra={"user_id": admin.id, "forum_id": forum.id},
    )


async def list_moderators(db: AsyncSession, forum: Forum) -> list[dict]:
    result = await db.execute(
        select(ForumModerator, Profile)
        .join(Profile, Profile.id == ForumModerator.user_id)
        .where(ForumModerator.forum_id == forum.id)
        .order_by(ForumModerator.created_at.asc())
    )
    return [
        {
            "id": str(appointment.id),
            "user_id": str(profile.id),
            "username": profile.username,
            "avatar_url": profile.avatar_url,
            "permissions": dict(appointment.permissions or {}),
            "created_at": appointment.created_at.isoformat(),
        }
        for appointment, profile in result.all()
    ]


# ─── Log ────────────────────────────────────────────────────────

async def moderation_log(
    db: AsyncSession, forum: Forum, profile: Profile, limit: int = 50,
) -> list[dict]:
    """Newest first; visible to admins and this forum's moderators."""
    if not profile.is_admin and await get_appointment(db, forum.id, profile.id) is None:
        raise PermissionDeniedError("Only moderators can read the moderation log")
    result = await db.execute(
        select(ModerationLog, Profile.username)
        .outerjoin(Profile, Profile.id == ModerationLog.moderator_id)
        .where(ModerationLog.forum_id == forum.id)
        .order_by(ModerationLog.created_at.desc())
        .limit(limit)
    )
    return [
        {
            "id": str(entry.id),
            "action_type": entry.action_type,
            "target_type": entry.target_type,
            "target_id": str(entry.target_id),
            "reason": entry.reason,
            "created_at": entry.created_at.isoformat(),
            "moderator_username": username or "Unknown",
        }
        for entry, username in result.all()
    ]
