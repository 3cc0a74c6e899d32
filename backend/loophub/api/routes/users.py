"""Users: follow graph endpoints and username search for mentions.

Invariants:
    - Follow and unfollow both answer {isFollowing, followerCount}
    - Search matches a username prefix, case-insensitive, at most 10 results
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.levels import get_user_level
from loophub.core.validation import USERNAME_MAX_LENGTH
from loophub.infrastructure.auth import AuthUser, get_current_user, require_profile
from loophub.infrastructure.database import get_db
from loophub.infrastructure.rate_limit import rate_limited
from loophub.models.profile import Profile
from loophub.services import follows

router = APIRouter(prefix="/api/v1/users", tags=["users"])

MAX_SEARCH_RESULTS = 10


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@router.get("/search", dependencies=[Depends(rate_limited("user_search"))])
async def search_users(
    q: str = Query("", max_length=USERNAME_MAX_LENGTH),
    limit: int = Query(5, ge=1, le=MAX_SEARCH_RESULTS),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    query = q.strip()
    if not query:
        return []
    result = await db.execute(
        select(Profile)
        .where(
            Profile.username.is_not(None),
            Profile.username.ilike(f"{_escape_like(query)}%", escape="\\"),
        )
        .order_by(Profile.reputation.desc(), Profile.username.asc())
        .limit(limit)
    )
    return [
        {
            "id": str(p.id),
            "username": p.username,
            "avatar_url": p.avatar_url,
            "level": get_user_level(p.reputation),
        }
        for p in result.scalars().all()
    ]


@router.post("/{user_id}/follow")
async def follow_user(
    user_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    return await follows.follow(db, profile, user_id)


@router.delete("/{user_id}/follow")
async def unfollow_user(
    user_id: UUID,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    return await follows.unfollow(db, profile.id, user_id)


async def _connections(
    db: AsyncSession, user_id: UUID, direction: str, page: int, limit: int,
    viewer: AuthUser | None,
) -> dict:
    offset = (page - 1) * limit
    people, total = await follows.list_connections(
        db, user_id, direction, limit, offset, viewer.id if viewer else None,
    )
    return {
        direction: people,
        "total": total,
        "page": page,
        "limit": limit,
        "hasMore": total > offset + limit,
    }


@router.get("/{user_id}/followers")
async def list_followers(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    viewer: AuthUser | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _connections(db, user_id, "followers", page, limit, viewer)


@router.get("/{user_id}/following")
async def list_following(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    viewer: AuthUser | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _connections(db, user_id, "following", page, limit, viewer)
