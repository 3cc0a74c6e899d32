"""Notification Service: preference-aware creation and settings management.

Invariants:
    - A notification is written only if the recipient's settings enable its type
    - Users are never notified about their own actions
    - Missing settings row behaves as all types enabled (row created on first read/write)
    - notify() flushes; the caller commits along with the action that triggered it
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.domain_types import NotificationType
from loophub.models.notification import Notification, NotificationSettings

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = (
    "comment", "reply", "follow", "superlike", "badge", "subscription", "email_digest",
)


async def get_or_create_settings(
    db: AsyncSession, user_id: uuid.UUID,
) -> NotificationSettings:
    settings = await db.get(NotificationSettings, user_id)
    if settings is None:
        settings = NotificationSettings(
            user_id=user_id,
            comment=True, reply=True, follow=True, superlike=True,
            badge=True, subscription=True, email_digest=False,
        )
        db.add(settings)
        await db.flush()
    return settings


async def update_settings(
    db: AsyncSession, user_id: uuid.UUID, updates: dict,
) -> NotificationSettings:
    settings = await get_or_create_settings(db, user_id)
    for field, value in updates.items():
        if field in SETTINGS_FIELDS and value is not None:
            setattr(settings, field, value)
    await db.commit()
    return settings


def settings_to_dict(settings: NotificationSettings) -> dict:
    return {field: getattr(settings, field) for field in SETTINGS_FIELDS}


async def is_enabled(
    db: AsyncSession, user_id: uuid.UUID, notification_type: NotificationType,
) -> bool:
    settings = await db.get(NotificationSettings, user_id)
    if settings is None:
        return True
    return bool(getattr(settings, notification_type.value))


async def notify(
    db: AsyncSession,
    user_id: uuid.UUID,
    notification_type: NotificationType,
    content: str,
    from_user_id: uuid.UUID | None = None,
    thread_id: uuid.UUID | None = None,
    comment_id: uuid.UUID | None = None,
) -> Notification | None:
    """Queue a notification for user_id unless muted or self-inflicted."""
    if from_user_id is not None and from_user_id == user_id:
        return None
    if not await is_enabled(db, user_id, notification_type):
        logger.debug(
            f"Notification {notification_type.value} muted by recipient",
            extra={"user_id": user_id},
        )
        return None
    notification = Notification(
        user_id=user_id,
        type=notification_type.value,
        content=content,
        from_user_id=from_user_id,
        thread_id=thread_id,
        comment_id=comment_id,
        read=False,
    )
    db.add(notification)
    await db.flush()
    return notification


async def list_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    limit: int = 20,
    offset: int = 0,
    unread_only: bool = False,
) -> list[Notification]:
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
    query = query.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())
