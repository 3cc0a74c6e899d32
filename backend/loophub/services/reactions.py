"""Reaction Service: emoji reaction toggling and per-content summaries.

Invariants:
    - One row per (user, content, reaction type); toggling a held reaction removes it
    - Reactions only attach to existing threads or comments
    - Reactor lists are newest first with the viewer moved to the front
"""

import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.errors import ResourceNotFoundError, ValidationFailedError
from loophub.core.reactions import (
    ReactionSummary, ReactorInfo, summarize_reactions, validate_reaction_request,
)
from loophub.models.comment import Comment
from loophub.models.profile import Profile
from loophub.models.reaction import Reaction
from loophub.models.thread import Thread

logger = logging.getLogger(__name__)

MAX_REACTORS = 10

_CONTENT_MODELS = {"thread": Thread, "comment": Comment}


def parse_request(
    content_type: str | None, content_id: str | None, reaction_type: str | None = None,
    require_reaction: bool = True,
) -> uuid.UUID:
    """Validate a reaction request and return the parsed content id."""
    error = validate_reaction_request(
        content_type, content_id, reaction_type if require_reaction else "thumbs_up",
    )
    if error:
        raise ValidationFailedError(error)
    try:
        return uuid.UUID(content_id)
    except ValueError:
        raise ValidationFailedError("Invalid content ID", field="contentId")


async def summaries(
    db: AsyncSession, content_type: str, content_id: uuid.UUID,
    viewer_id: uuid.UUID | None = None,
) -> list[ReactionSummary]:
    result = await db.execute(
        select(Reaction.reaction_type, Reaction.user_id).where(
            Reaction.content_type == content_type,
            Reaction.content_id == content_id,
        )
    )
    return summarize_reactions(result.all(), str(viewer_id) if viewer_id else None)


async def toggle_reaction(
    db: AsyncSession, user_id: uuid.UUID, content_type: str,
    content_id: uuid.UUID, reaction_type: str,
) -> str:
    if await db.get(_CONTENT_MODELS[content_type], content_id) is None:
        raise ResourceNotFoundError(content_type.capitalize(), str(content_id))

    existing = await db.scalar(
        select(Reaction).where(
            Reaction.user_id == user_id,
            Reaction.content_type == content_type,
            Reaction.content_id == content_id,
            Reaction.reaction_type == reaction_type,
        )
    )
    if existing is not None:
        await db.delete(existing)
        action = "removed"
    else:
        db.add(Reaction(
            user_id=user_id, content_type=content_type,
            content_id=content_id, reaction_type=reaction_type,
        ))
        action = "added"
    await db.commit()
    return action


async def reactors(
    db: AsyncSession, content_type: str, content_id: uuid.UUID, reaction_type: str,
    viewer_id: uuid.UUID | None = None, limit: int = MAX_REACTORS,
) -> tuple[list[ReactorInfo], int]:
    where = (
        Reaction.content_type == content_type,
        Reaction.content_id == content_id,
        Reaction.reaction_type == reaction_type,
    )
    total = await db.scalar(select(func.count()).select_from(Reaction).where(*where))
    result = await db.execute(
        select(Reaction, Profile)
        .outerjoin(Profile, Profile.id == Reaction.user_id)
        .where(*where)
        .order_by(Reaction.created_at.desc())
        .limit(limit)
    )
    people = [
        ReactorInfo(
            user_id=str(reaction.user_id),
            username=(profile.username if profile and profile.username else "Unknown"),
            avatar_url=profile.avatar_url if profile else None,
            reacted_at=reaction.created_at.isoformat(),
        )
        for reaction, profile in result.all()
    ]
    if viewer_id is not None:
        mine = [p for p in people if p.user_id == str(viewer_id)]
        people = mine + [p for p in people if p.user_id != str(viewer_id)]
    return people, total or 0
