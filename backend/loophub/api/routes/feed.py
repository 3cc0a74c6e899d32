"""Following Feed: newest threads written by the users the caller follows."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.infrastructure.auth import require_profile
from loophub.infrastructure.database import get_db
from loophub.models.profile import Profile
from loophub.services import follows

router = APIRouter(prefix="/api/v1/feed", tags=["feed"])


@router.get("/following")
async def following_feed(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    offset = (page - 1) * limit
    threads, total = await follows.following_feed(db, profile.id, limit, offset)
    return {
        "threads": threads,
        "total": total,
        "page": page,
        "limit": limit,
        "hasMore": total > offset + limit,
    }
