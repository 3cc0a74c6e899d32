"""Reactions: toggle emoji reactions and read per-content summaries and reactors."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.infrastructure.auth import AuthUser, get_current_user, require_profile
from loophub.infrastructure.database import get_db
from loophub.models.profile import Profile
from loophub.schemas.engagement import ReactionToggle
from loophub.services import reactions

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/reactions", tags=["reactions"])


@router.post("")
async def toggle_reaction(
    body: ReactionToggle,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    content_id = reactions.parse_request(
        body.content_type, body.content_id, body.reaction_type,
    )
    action = await reactions.toggle_reaction(
        db, profile.id, body.content_type, content_id, body.reaction_type,
    )
    summaries = await reactions.summaries(db, body.content_type, content_id, profile.id)
    return {
        "success": True,
        "action": action,
        "reactions": [s.to_dict() for s in summaries],
    }


@router.get("")
async def get_reactions(
    content_type: str | None = Query(None, alias="contentType"),
    content_id: str | None = Query(None, alias="contentId"),
    user: AuthUser | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    parsed_id = reactions.parse_request(content_type, content_id, require_reaction=False)
    summaries = await reactions.summaries(
        db, content_type, parsed_id, user.id if user else None,
    )
    return {"success": True, "reactions": [s.to_dict() for s in summaries]}


@router.get("/users")
async def get_reactors(
    content_type: str | None = Query(None, alias="contentType"),
    content_id: str | None = Query(None, alias="contentId"),
    reaction_type: str | None = Query(None, alias="reactionType"),
    limit: int = Query(reactions.MAX_REACTORS, ge=1, le=50),
    user: AuthUser | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    parsed_id = reactions.parse_request(content_type, content_id, reaction_type)
    people, total = await reactions.reactors(
        db, content_type, parsed_id, reaction_type,
        viewer_id=user.id if user else None, limit=limit,
    )
    return {
        "success": True,
        "reactors": [p.to_dict() for p in people],
        "totalCount": total,
    }
