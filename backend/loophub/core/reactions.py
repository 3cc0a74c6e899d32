"""Reactions: emoji reaction types, request validation and JSON (de)serialization.

Invariants:
    - REACTION_TYPES order is the canonical display order of summaries
    - Wire format is camelCase (hasReacted, userId, avatarUrl, reactedAt)
    - summarize_reactions omits types with zero reactions
"""

import json
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from loophub.core.domain_types import ContentType


REACTION_TYPES: tuple[str, ...] = (
    "thumbs_up", "heart", "laugh", "fire", "lightbulb", "party",
)

REACTION_EMOJIS: dict[str, str] = {
    "thumbs_up": "\U0001F44D",
    "heart": "❤️",
    "laugh": "\U0001F602",
    "fire": "\U0001F525",
    "lightbulb": "\U0001F4A1",
    "party": "\U0001F389",
}

REACTION_NAMES: dict[str, str] = {
    "thumbs_up": "Me gusta",
    "heart": "Me encanta",
    "laugh": "Divertido",
    "fire": "Fuego",
    "lightbulb": "Idea",
    "party": "Celebrar",
}

CONTENT_TYPES: tuple[str, ...] = tuple(c.value for c in ContentType)


def is_valid_reaction_type(value: str | None) -> bool:
    return value in REACTION_TYPES


def is_valid_content_type(value: str | None) -> bool:
    return value in CONTENT_TYPES


def validate_reaction_request(
    content_type: str | None, content_id: str | None, reaction_type: str | None,
) -> str | None:
    """First problem with a toggle request, or None if it is well-formed."""
    if not content_type or not is_valid_content_type(content_type):
        return "Invalid content type"
    if not content_id:
        return "Content ID is required"
    if not reaction_type or not is_valid_reaction_type(reaction_type):
        return "Invalid reaction type"
    return None


@dataclass
class ReactionSummary:
    type: str
    count: int
    has_reacted: bool

    def to_dict(self) -> dict:
        return {"type": self.type, "count": self.count, "hasReacted": self.has_reacted}

    def serialize(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def deserialize(cls, raw: str) -> "ReactionSummary":
        parsed = json.loads(raw)
        return cls(
            type=parsed["type"],
            count=int(parsed["count"]),
            has_reacted=bool(parsed.get("hasReacted")),
        )


@dataclass
class ReactorInfo:
    user_id: str
    username: str
    avatar_url: str | None
    reacted_at: str

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "username": self.username,
            "avatarUrl": self.avatar_url,
            "reactedAt": self.reacted_at,
        }

    def serialize(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def deserialize(cls, raw: str) -> "ReactorInfo":
        parsed = json.loads(raw)
        return cls(
            user_id=str(parsed["userId"]),
            username=str(parsed["username"]),
            avatar_url=parsed.get("avatarUrl"),
            reacted_at=str(parsed["reactedAt"]),
        )


def summarize_reactions(
    rows: Iterable[tuple[str, str]], user_id: str | None = None,
) -> list[ReactionSummary]:
    """Aggregate (reaction_type, user_id) pairs into per-type summaries."""
    counts: Counter[str] = Counter()
    mine: set[str] = set()
    for reaction_type, reactor_id in rows:
        counts[reaction_type] += 1
        if user_id is not None and str(reactor_id) == str(user_id):
            mine.add(reaction_type)
    return [
        ReactionSummary(t, counts[t], t in mine)
        for t in REACTION_TYPES
        if counts[t] > 0
    ]
