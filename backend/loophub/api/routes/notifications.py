"""Notifications: the caller's inbox, read state and per-type delivery settings.

Invariants:
    - Callers only see and modify their own notifications (403 otherwise)
    - total is the size of the returned page; unreadCount covers the whole inbox
    - Each notification carries an absolute url to its thread, else to the sender's profile
    - /settings routes are declared before /{notification_id}
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.errors import PermissionDeniedError, ResourceNotFoundError
from loophub.core.url_helpers import notification_path
from loophub.infrastructure.auth import require_profile
from loophub.infrastructure.database import get_db
from loophub.infrastructure.rate_limit import rate_limited
from loophub.models.notification import Notification
from loophub.models.profile import Profile
from loophub.schemas.profile import (
    NotificationOut, NotificationPatch, NotificationSettingsUpdate,
)
from loophub.services import notifications
from loophub.services.listings import public_url

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


async def _unread_count(db: AsyncSession, user_id: UUID) -> int:
    count = await db.scalar(
        select(func.count()).select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
    )
    return count or 0


def _notification_payload(notification: Notification) -> dict:
    payload = NotificationOut.model_validate(notification).model_dump(mode="json")
    path = notification_path(payload["thread_id"], payload["from_user_id"])
    payload["url"] = public_url(path) if path else None
    return payload


@router.get("", dependencies=[Depends(rate_limited("notifications"))])
async def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread: bool = Query(False),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    items = await notifications.list_notifications(
        db, profile.id, limit=limit, offset=offset, unread_only=unread,
    )
    return {
        "notifications": [_notification_payload(n) for n in items],
        "unreadCount": await _unread_count(db, profile.id),
        "total": len(items),
    }


@router.post("/read-all")
async def mark_all_read(
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == profile.id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return {"success": True, "count": result.rowcount or 0}


@router.get("/settings")
async def get_settings_route(
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    settings = await notifications.get_or_create_settings(db, profile.id)
    await db.commit()
    return {"settings": notifications.settings_to_dict(settings)}


@router.put("/settings")
async def update_settings_route(
    body: NotificationSettingsUpdate,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    settings = await notifications.update_settings(
        db, profile.id, body.model_dump(exclude_none=True),
    )
    return {"settings": notifications.settings_to_dict(settings)}


@router.patch("/{notification_id}")
async def update_notification(
    notification_id: UUID,
    body: NotificationPatch,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    notification = await db.get(Notification, notification_id)
    if notification is None:
        raise ResourceNotFoundError("Notification", str(notification_id))
    if notification.user_id != profile.id:
        raise PermissionDeniedError("You can only update your own notifications")
    notification.read = body.read
    await db.commit()
    return _notification_payload(notification)
