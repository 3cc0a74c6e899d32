"""Gamification: level permissions, level-gated thread actions and karma records.

Invariants:
    - Successful responses use the {"success", "data", "error"} envelope
    - Failures are LoopHubErrors rendered by the global handlers (403 below the required level)
    - Karma audits are admin-only; karma history is always the caller's own
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.errors import ResourceNotFoundError
from loophub.infrastructure.auth import require_admin, require_profile
from loophub.infrastructure.cache import invalidate_thread
from loophub.infrastructure.database import get_db
from loophub.models.profile import Profile
from loophub.services import gamification
from loophub.services import karma as karma_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["gamification"])


def _envelope(data) -> dict:
    return {"success": True, "data": data, "error": None}


@router.get("/me/permissions")
async def my_permissions(
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    return _envelope(await gamification.get_user_permissions(db, profile.id))


@router.post("/posts/{thread_id}/superlike")
async def superlike_thread(
    thread_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    return _envelope(await gamification.apply_superlike(db, thread_id, profile.id))


@router.post("/posts/{thread_id}/hide")
async def hide_thread(
    thread_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    result = await gamification.hide_post(db, thread_id, profile.id)
    invalidate_thread(thread_id)
    return _envelope(result)


@router.post("/posts/{thread_id}/mark-resource")
async def mark_thread_as_resource(
    thread_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    result = await gamification.mark_as_resource(db, thread_id, profile.id)
    invalidate_thread(thread_id)
    return _envelope(result)


@router.get("/karma/audit/{user_id}")
async def audit_karma(
    user_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await karma_service.audit_and_fix_karma(db, user_id)
    if result is None:
        raise ResourceNotFoundError("User", str(user_id))
    logger.info(
        f"Karma audit run on {user_id}",
        extra={"user_id": admin.id, "karma_amount": result["difference"]},
    )
    return _envelope(result)


@router.get("/karma/history")
async def karma_history(
    limit: int = Query(50, ge=1, le=200),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    entries = await karma_service.get_karma_history(db, profile.id, limit=limit)
    return _envelope([
        {
            "id": str(e.id),
            "amount": e.amount,
            "reason": e.reason,
            "source_type": e.source_type,
            "source_id": str(e.source_id) if e.source_id else None,
            "created_at": e.created_at.isoformat(),
        }
        for e in entries
    ])
