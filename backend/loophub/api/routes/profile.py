"""Profiles: the caller's own profile and public profile pages."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.levels import build_user_permissions
from loophub.infrastructure.auth import require_profile
from loophub.infrastructure.database import get_db
from loophub.models.profile import Profile
from loophub.schemas.profile import ProfileUpdate
from loophub.services import profiles

router = APIRouter(prefix="/api/v1/profile", tags=["profile"])


@router.get("")
async def get_my_profile(profile: Profile = Depends(require_profile)):
    payload = profiles.profile_dict(profile)
    payload["email"] = profile.email
    payload["permissions"] = build_user_permissions(profile.reputation)
    return payload


@router.put("")
async def update_my_profile(
    body: ProfileUpdate,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    updated = await profiles.update_profile(db, profile, body.model_dump(exclude_unset=True))
    return profiles.profile_dict(updated)


@router.get("/{user_id}")
async def get_public_profile(user_id: UUID, db: AsyncSession = Depends(get_db)):
    return await profiles.public_profile(db, user_id)
