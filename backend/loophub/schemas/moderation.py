"""Moderation Schemas: thread locks and forum moderator appointments."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LockRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class ModeratorAdd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: UUID = Field(alias="userId")
    permissions: dict[str, bool] | None = None
