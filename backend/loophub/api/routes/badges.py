"""Badges: the active catalogue, a user's earned badges, and on-demand awarding."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.infrastructure.auth import require_profile
from loophub.infrastructure.database import get_db
from loophub.models.badge import Badge
from loophub.models.profile import Profile
from loophub.services import badges

router = APIRouter(prefix="/api/v1/badges", tags=["badges"])


@router.get("")
async def list_badges(
    user_id: UUID | None = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_db),
):
    if user_id is not None:
        earned = await badges.list_user_badges(db, user_id)
        return {
            "badges": [
                {**badges.badge_to_dict(ub.badge), "earned_at": ub.earned_at.isoformat()}
                for ub in earned
            ],
        }
    result = await db.execute(
        select(Badge)
        .where(Badge.is_active.is_(True))
        .order_by(Badge.category, Badge.criteria_value)
    )
    return {"badges": [badges.badge_to_dict(b) for b in result.scalars().all()]}


@router.post("/check")
async def check_badges(
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    awarded = await badges.check_and_award_badges(db, profile)
    return {
        "success": True,
        "awarded": [badges.badge_to_dict(b) for b in awarded],
    }
