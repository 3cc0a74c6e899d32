"""Bookmarks: toggle, check and list a user's saved threads."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.infrastructure.auth import require_profile
from loophub.infrastructure.database import get_db
from loophub.models.bookmark import Bookmark
from loophub.models.profile import Profile
from loophub.schemas.engagement import ThreadToggle
from loophub.services import saved_threads

router = APIRouter(prefix="/api/v1/bookmarks", tags=["bookmarks"])


@router.post("")
async def toggle_bookmark(
    body: ThreadToggle,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    bookmarked, bookmark_id = await saved_threads.toggle_link(
        db, Bookmark, profile.id, body.thread_id,
    )
    if not bookmarked:
        return {"bookmarked": False}
    return {"bookmarked": True, "id": str(bookmark_id)}


@router.get("")
async def get_bookmarks(
    thread_id: UUID | None = Query(None, alias="threadId"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    """With threadId: is it bookmarked? Without: the caller's bookmarks."""
    if thread_id is not None:
        link = await saved_threads.find_link(db, Bookmark, profile.id, thread_id)
        return {"bookmarked": link is not None}
    bookmarks, has_more = await saved_threads.list_links(
        db, Bookmark, profile.id, limit, offset,
    )
    return {"bookmarks": bookmarks, "hasMore": has_more}
