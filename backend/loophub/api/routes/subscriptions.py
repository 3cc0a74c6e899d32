"""Thread Subscriptions: opt in to notifications for new comments on a thread."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.infrastructure.auth import require_profile
from loophub.infrastructure.database import get_db
from loophub.models.profile import Profile
from loophub.models.thread_subscription import ThreadSubscription
from loophub.schemas.engagement import ThreadToggle
from loophub.services import saved_threads

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/subscriptions", tags=["subscriptions"])


@router.post("")
async def toggle_subscription(
    body: ThreadToggle,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    subscribed, subscription_id = await saved_threads.toggle_link(
        db, ThreadSubscription, profile.id, body.thread_id,
    )
    logger.debug(
        f"Subscription {'added' if subscribed else 'removed'}",
        extra={"user_id": profile.id, "thread_id": body.thread_id},
    )
    if not subscribed:
        return {"subscribed": False}
    return {"subscribed": True, "id": str(subscription_id)}


@router.get("")
async def get_subscriptions(
    thread_id: UUID | None = Query(None, alias="threadId"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    if thread_id is not None:
        link = await saved_threads.find_link(db, ThreadSubscription, profile.id, thread_id)
        return {"subscribed": link is not None}
    subscriptions, has_more = await saved_threads.list_links(
        db, ThreadSubscription, profile.id, limit, offset,
    )
    return {"subscriptions": subscriptions, "hasMore": has_more}
