"""Vote ORM: one up/down vote per user per thread or comment.

Invariants:
    - Exactly one of thread_id / comment_id is set (CHECK constraint)
    - vote_type is +1 or -1
    - Unique per (user, thread) and per (user, comment)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    SmallInteger, DateTime, ForeignKey, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from loophub.db.base import Base


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("user_id", "thread_id", name="uq_votes_user_thread"),
        UniqueConstraint("user_id", "comment_id", name="uq_votes_user_comment"),
        CheckConstraint(
            "(thread_id IS NULL) <> (comment_id IS NULL)",
            name="ck_votes_single_target",
        ),
        CheckConstraint("vote_type IN (1, -1)", name="ck_votes_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    thread_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("threads.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    comment_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    vote_type: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
