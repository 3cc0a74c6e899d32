"""Usernames: availability check, first-time onboarding and rate-limited changes.

Invariants:
    - Format errors are 400 VALIDATION_ERROR with the first failing rule as message
    - Taken usernames are 409 on set and change; check reports them as unavailable
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.infrastructure.auth import require_profile
from loophub.infrastructure.database import get_db
from loophub.infrastructure.rate_limit import rate_limited
from loophub.models.profile import Profile
from loophub.schemas.profile import UsernameRequest
from loophub.services import profiles

router = APIRouter(prefix="/api/v1/username", tags=["username"])


@router.post("/check", dependencies=[Depends(rate_limited("auth"))])
async def check_username(body: UsernameRequest, db: AsyncSession = Depends(get_db)):
    username = profiles.check_format(body.username)
    available = await profiles.is_available(db, username)
    return {
        "available": available,
        "error": None if available else "Username is already taken",
    }


@router.post("/set")
async def set_username(
    body: UsernameRequest,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    await profiles.set_username(db, profile, body.username)
    return {"success": True}


@router.post("/change")
async def change_username(
    body: UsernameRequest,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    return await profiles.change_username(db, profile, body.username)
