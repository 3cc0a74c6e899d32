"""Forum, Thread and Comment Schemas: field-level validation for content creation.

Invariants:
    - Titles 1-200 chars, content 1-10000 chars, forum names 1-100 chars, all stripped
    - Forum slugs are lowercase alphanumeric with hyphens
    - ThreadUpdate needs at least one field
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from loophub.core.validation import (
    MAX_CONTENT_LENGTH, MAX_FORUM_NAME_LENGTH, MAX_TITLE_LENGTH,
)


def _strip_required(v: str, field: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{field} cannot be empty or whitespace")
    return v


class ForumCreate(BaseModel):
    name: str = Field(min_length=1, max_length=MAX_FORUM_NAME_LENGTH)
    slug: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    description: str | None = Field(None, max_length=1000)
    icon: str | None = Field(None, max_length=50)
    color: str | None = Field(None, max_length=20)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_required(v, "name")


class ThreadCreate(BaseModel):
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    content: str = Field(min_length=1, max_length=MAX_CONTENT_LENGTH)

    @field_validator("title", "content")
    @classmethod
    def strip_text(cls, v: str, info) -> str:
        return _strip_required(v, info.field_name)


class ThreadUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=MAX_TITLE_LENGTH)
    content: str | None = Field(None, min_length=1, max_length=MAX_CONTENT_LENGTH)

    @field_validator("title", "content")
    @classmethod
    def strip_text(cls, v: str | None, info) -> str | None:
        if v is None:
            return v
        return _strip_required(v, info.field_name)

    @model_validator(mode="after")
    def check_not_empty(self):
        if self.title is None and self.content is None:
            raise ValueError("title or content is required")
        return self


class CommentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(min_length=1, max_length=MAX_CONTENT_LENGTH)
    parent_id: UUID | None = Field(None, alias="parentId")

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        return _strip_required(v, "content")


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=MAX_CONTENT_LENGTH)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        return _strip_required(v, "content")
