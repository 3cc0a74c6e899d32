"""Engagement Schemas: votes, reactions, bookmarks and subscriptions.

Invariants:
    - A vote names exactly one target (threadId xor commentId) and voteType is 1 or -1
    - Wire names are camelCase; Python attributes are snake_case
"""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    thread_id: UUID | None = Field(None, alias="threadId")
    comment_id: UUID | None = Field(None, alias="commentId")
    vote_type: Literal[1, -1] = Field(alias="voteType")

    @model_validator(mode="after")
    def check_single_target(self):
        if (self.thread_id is None) == (self.comment_id is None):
            raise ValueError("Exactly one of threadId or commentId is required")
        return self


class ReactionToggle(BaseModel):
    """Shape only; reaction/content type values are checked by core.reactions."""
    model_config = ConfigDict(populate_by_name=True)

    content_type: str | None = Field(None, alias="contentType")
    content_id: str | None = Field(None, alias="contentId")
    reaction_type: str | None = Field(None, alias="reactionType")


class ThreadToggle(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    thread_id: UUID = Field(alias="threadId")
