"""Profile, Username and Notification Schemas.

Invariants:
    - bio <= 500 chars, location <= 100 chars, website is an http(s) URL or empty
    - Username format is checked by core.validation.check_username_format in the route
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from loophub.core.validation import (
    MAX_BIO_LENGTH, MAX_LOCATION_LENGTH, validate_url,
)


class ProfileUpdate(BaseModel):
    bio: str | None = Field(None, max_length=MAX_BIO_LENGTH)
    website: str | None = Field(None, max_length=500)
    location: str | None = Field(None, max_length=MAX_LOCATION_LENGTH)
    avatar_url: str | None = Field(None, max_length=1000)

    @field_validator("website")
    @classmethod
    def check_website(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if v and not validate_url(v):
            raise ValueError("website must be a valid http(s) URL")
        return v


class UsernameRequest(BaseModel):
    username: str = Field(max_length=100)


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    content: str
    from_user_id: UUID | None = None
    thread_id: UUID | None = None
    comment_id: UUID | None = None
    read: bool
    created_at: datetime
    url: str | None = None


class NotificationPatch(BaseModel):
    read: bool = True


class NotificationSettingsUpdate(BaseModel):
    comment: bool | None = None
    reply: bool | None = None
    follow: bool | None = None
    superlike: bool | None = None
    badge: bool | None = None
    subscription: bool | None = None
    email_digest: bool | None = None
