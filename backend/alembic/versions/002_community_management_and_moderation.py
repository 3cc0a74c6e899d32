"""Community rules and invites, thread locks, poll closing, forum moderators and their log.

Revision ID: 002_community_moderation
Revises: 001_initial
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "002_community_moderation"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def _fk(name: str, target: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name, UUID(as_uuid=True), sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    # ─── New columns ────────────────────────────────────────────

    op.add_column(
        "communities", sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.add_column(
        "threads",
        sa.Column("is_locked", sa.Boolean, nullable=False, server_default="false"),
    )
    op.add_column(
        "threads", sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.add_column(
        "threads", _fk("locked_by", "profiles.id", nullable=True, ondelete="SET NULL"),
    )
    op.add_column(
        "polls", sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ─── Community management ───────────────────────────────────

    op.create_table(
        "community_rules",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("community_id", "communities.id"),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="1"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_community_rules_community_id", "community_rules", ["community_id"])

    op.create_table(
        "community_invites",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("community_id", "communities.id"),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("max_uses", sa.Integer, nullable=True),
        sa.Column("uses", sa.Integer, nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _fk("created_by", "profiles.id", nullable=True, ondelete="SET NULL"),
        _created_at(),
    )
    op.create_index(
        "ix_community_invites_community_id", "community_invites", ["community_id"],
    )
    op.create_index("ix_community_invites_code", "community_invites", ["code"], unique=True)

    # ─── Forum moderation ───────────────────────────────────────

    op.create_table(
        "forum_moderators",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("forum_id", "forums.id"),
        _fk("user_id", "profiles.id"),
        _fk("appointed_by", "profiles.id", nullable=True, ondelete="SET NULL"),
        sa.Column("permissions", sa.JSON, nullable=False),
        _created_at(),
        sa.UniqueConstraint("forum_id", "user_id", name="uq_forum_moderators_pair"),
    )
    op.create_index("ix_forum_moderators_forum_id", "forum_moderators", ["forum_id"])
    op.create_index("ix_forum_moderators_user_id", "forum_moderators", ["user_id"])

    op.create_table(
        "moderation_log",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("moderator_id", "profiles.id", nullable=True, ondelete="SET NULL"),
        _fk("forum_id", "forums.id"),
        sa.Column("action_type", sa.String(30), nullable=False),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", UUID(as_uuid=True), nullable=False),
        sa.Column("reason", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_moderation_log_forum_created", "moderation_log", ["forum_id", "created_at"],
    )


def downgrade() -> None:
    for table in ("moderation_log", "forum_moderators", "community_invites", "community_rules"):
        op.drop_table(table)
    op.drop_column("polls", "closed_at")
    for column in ("locked_by", "locked_at", "is_locked"):
        op.drop_column("threads", column)
    op.drop_column("communities", "updated_at")
