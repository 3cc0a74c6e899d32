"""Community Schemas: creation, updates, membership, rules and invites."""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CommunityCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: str | None = Field(None, max_length=1000)
    rules: str | None = Field(None, max_length=5000)
    visibility: Literal["public", "private", "invite_only"] = "public"
    require_approval: bool = False
    member_limit: int | None = Field(None, ge=2)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("name must be at least 3 characters")
        return v


class CommunityUpdate(BaseModel):
    """Partial update; only the fields present in the body are applied."""
    name: str | None = Field(None, max_length=100)
    description: str | None = Field(None, max_length=1000)
    rules: str | None = Field(None, max_length=5000)
    visibility: Literal["public", "private", "invite_only"] | None = None
    require_approval: bool | None = None
    member_limit: int | None = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Community name must be between 3 and 100 characters")
        return v


class JoinRequestBody(BaseModel):
    message: str | None = Field(None, max_length=500)


class JoinRequestReview(BaseModel):
    action: Literal["approve", "reject"]


class MemberRoleUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: UUID = Field(alias="userId")
    role: Literal["moderator", "member"]


# ─── Rules & Invites ────────────────────────────────────────────

class RuleCreate(BaseModel):
    title: str = Field(max_length=100)
    description: str | None = Field(None, max_length=1000)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v


class RuleItem(BaseModel):
    id: UUID
    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)


class RulesReorder(BaseModel):
    rules: list[RuleItem]


class InviteCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_uses: int | None = Field(None, ge=1, alias="maxUses")
    expires_in: int | None = Field(None, ge=1, le=24 * 365, alias="expiresIn")
