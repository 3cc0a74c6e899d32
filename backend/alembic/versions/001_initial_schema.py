"""Initial schema: profiles, forums, threads, comments, engagement, gamification, communities.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def _profile_fk(name: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name, UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    # ─── Core content ───────────────────────────────────────────

    op.create_table(
        "profiles",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(30), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("website", sa.String(500), nullable=True),
        sa.Column("location", sa.String(100), nullable=True),
        sa.Column("avatar_url", sa.String(1000), nullable=True),
        sa.Column("reputation", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("username_changed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_profiles_username", "profiles", ["username"], unique=True)

    op.create_table(
        "forums",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("icon", sa.String(50), nullable=True),
        sa.Column("color", sa.String(20), nullable=True),
        _created_at(),
    )
    op.create_index("ix_forums_slug", "forums", ["slug"], unique=True)

    op.create_table(
        "threads",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "forum_id", UUID(as_uuid=True),
            sa.ForeignKey("forums.id", ondelete="CASCADE"), nullable=False,
        ),
        _profile_fk("user_id", nullable=True, ondelete="SET NULL"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("upvote_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("downvote_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("score", sa.Integer, nullable=False, server_default="0"),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_pinned", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_hidden", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("hidden_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hidden_until", sa.DateTime(timezone=True), nullable=True),
        _profile_fk("hidden_by", nullable=True, ondelete="SET NULL"),
        sa.Column("is_resource", sa.Boolean, nullable=False, server_default="false"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_threads_forum_id", "threads", ["forum_id"])
    op.create_index("ix_threads_user_id", "threads", ["user_id"])

    op.create_table(
        "comments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "thread_id", UUID(as_uuid=True),
            sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=False,
        ),
        _profile_fk("user_id", nullable=True, ondelete="SET NULL"),
        sa.Column(
            "parent_id", UUID(as_uuid=True),
            sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("upvote_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("downvote_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("score", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_comments_thread_id", "comments", ["thread_id"])
    op.create_index("ix_comments_user_id", "comments", ["user_id"])
    op.create_index("ix_comments_parent_id", "comments", ["parent_id"])

    # ─── Engagement ─────────────────────────────────────────────

    op.create_table(
        "votes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _profile_fk("user_id"),
        sa.Column(
            "thread_id", UUID(as_uuid=True),
            sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column(
            "comment_id", UUID(as_uuid=True),
            sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column("vote_type", sa.SmallInteger, nullable=False),
        _created_at(),
        sa.UniqueConstraint("user_id", "thread_id", name="uq_votes_user_thread"),
        sa.UniqueConstraint("user_id", "comment_id", name="uq_votes_user_comment"),
        sa.CheckConstraint(
            "(thread_id IS NULL) <> (comment_id IS NULL)", name="ck_votes_single_target",
        ),
        sa.CheckConstraint("vote_type IN (1, -1)", name="ck_votes_type"),
    )
    op.create_index("ix_votes_thread_id", "votes", ["thread_id"])
    op.create_index("ix_votes_comment_id", "votes", ["comment_id"])

    op.create_table(
        "reactions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _profile_fk("user_id"),
        sa.Column("content_type", sa.String(10), nullable=False),
        sa.Column("content_id", UUID(as_uuid=True), nullable=False),
        sa.Column("reaction_type", sa.String(20), nullable=False),
        _created_at(),
        sa.UniqueConstraint(
            "user_id", "content_type", "content_id", "reaction_type",
            name="uq_reactions_user_content_type",
        ),
    )
    op.create_index("ix_reactions_content", "reactions", ["content_type", "content_id"])

    op.create_table(
        "bookmarks",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _profile_fk("user_id"),
        sa.Column(
            "thread_id", UUID(as_uuid=True),
            sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=False,
        ),
        _created_at(),
        sa.UniqueConstraint("user_id", "thread_id", name="uq_bookmarks_user_thread"),
    )
    op.create_index("ix_bookmarks_user_id", "bookmarks", ["user_id"])

    op.create_table(
        "thread_subscriptions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _profile_fk("user_id"),
        sa.Column(
            "thread_id", UUID(as_uuid=True),
            sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=False,
        ),
        _created_at(),
        sa.UniqueConstraint(
            "user_id", "thread_id", name="uq_thread_subscriptions_user_thread",
        ),
    )
    op.create_index("ix_thread_subscriptions_user_id", "thread_subscriptions", ["user_id"])
    op.create_index("ix_thread_subscriptions_thread_id", "thread_subscriptions", ["thread_id"])

    op.create_table(
        "user_follows",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _profile_fk("follower_id"),
        _profile_fk("following_id"),
        _created_at(),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_user_follows_pair"),
        sa.CheckConstraint("follower_id <> following_id", name="ck_user_follows_not_self"),
    )
    op.create_index("ix_user_follows_follower_id", "user_follows", ["follower_id"])
    op.create_index("ix_user_follows_following_id", "user_follows", ["following_id"])

    op.create_table(
        "notifications",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _profile_fk("user_id"),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        _profile_fk("from_user_id", nullable=True, ondelete="SET NULL"),
        sa.Column(
            "thread_id", UUID(as_uuid=True),
            sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column(
            "comment_id", UUID(as_uuid=True),
            sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column("read", sa.Boolean, nullable=False, server_default="false"),
        _created_at(),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "read"])

    op.create_table(
        "notification_settings",
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("comment", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("reply", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("follow", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("superlike", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("badge", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("subscription", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("email_digest", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # ─── Polls ──────────────────────────────────────────────────

    op.create_table(
        "polls",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "thread_id", UUID(as_uuid=True),
            sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=False, unique=True,
        ),
        sa.Column("question", sa.Text, nullable=False),
        sa.Column("poll_type", sa.String(10), nullable=False, server_default="single"),
        sa.Column("max_choices", sa.Integer, nullable=False, server_default="1"),
        sa.Column("min_level_to_vote", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_closed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("closes_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("show_results_before_vote", sa.Boolean, nullable=False, server_default="true"),
        _profile_fk("created_by", nullable=True, ondelete="SET NULL"),
        _created_at(),
    )

    op.create_table(
        "poll_options",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "poll_id", UUID(as_uuid=True),
            sa.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("option_text", sa.String(200), nullable=False),
        sa.Column("option_order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_poll_options_poll_id", "poll_options", ["poll_id"])

    op.create_table(
        "poll_votes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "poll_id", UUID(as_uuid=True),
            sa.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "option_id", UUID(as_uuid=True),
            sa.ForeignKey("poll_options.id", ondelete="CASCADE"), nullable=False,
        ),
        _profile_fk("user_id"),
        _created_at(),
        sa.UniqueConstraint("option_id", "user_id", name="uq_poll_votes_option_user"),
    )
    op.create_index("ix_poll_votes_poll_id", "poll_votes", ["poll_id"])

    # ─── Gamification ───────────────────────────────────────────

    op.create_table(
        "superlikes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "thread_id", UUID(as_uuid=True),
            sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=False,
        ),
        _profile_fk("user_id"),
        _profile_fk("author_id"),
        _created_at(),
        sa.UniqueConstraint("thread_id", "user_id", name="uq_superlikes_thread_user"),
    )
    op.create_index("ix_superlikes_author_id", "superlikes", ["author_id"])

    op.create_table(
        "karma_history",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _profile_fk("user_id"),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column("source_type", sa.String(20), nullable=False),
        sa.Column("source_id", UUID(as_uuid=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_karma_history_user_created", "karma_history", ["user_id", "created_at"])

    op.create_table(
        "user_milestones",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _profile_fk("user_id"),
        sa.Column("milestone", sa.String(30), nullable=False),
        sa.Column("awarded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "milestone", name="uq_user_milestones_user_milestone"),
    )
    op.create_index("ix_user_milestones_user_id", "user_milestones", ["user_id"])

    op.create_table(
        "badges",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("icon", sa.String(50), nullable=True),
        sa.Column("color", sa.String(20), nullable=True),
        sa.Column("category", sa.String(30), nullable=False, server_default="general"),
        sa.Column("criteria_type", sa.String(20), nullable=False),
        sa.Column("criteria_value", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        _created_at(),
    )

    op.create_table(
        "user_badges",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _profile_fk("user_id"),
        sa.Column(
            "badge_id", UUID(as_uuid=True),
            sa.ForeignKey("badges.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("earned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
    )
    op.create_index("ix_user_badges_user_id", "user_badges", ["user_id"])

    # ─── Moderation ─────────────────────────────────────────────

    op.create_table(
        "reports",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _profile_fk("reporter_id", nullable=True, ondelete="SET NULL"),
        sa.Column("content_type", sa.String(10), nullable=False),
        sa.Column("content_id", UUID(as_uuid=True), nullable=False),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _profile_fk("reviewed_by", nullable=True, ondelete="SET NULL"),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_reports_status", "reports", ["status"])

    # ─── Communities ────────────────────────────────────────────

    op.create_table(
        "communities",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(60), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("rules", sa.Text, nullable=True),
        sa.Column("visibility", sa.String(20), nullable=False, server_default="public"),
        sa.Column("require_approval", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("member_limit", sa.Integer, nullable=True),
        _profile_fk("created_by", nullable=True, ondelete="SET NULL"),
        _created_at(),
    )
    op.create_index("ix_communities_slug", "communities", ["slug"], unique=True)
    op.create_index("ix_communities_created_by", "communities", ["created_by"])

    op.create_table(
        "community_members",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "community_id", UUID(as_uuid=True),
            sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False,
        ),
        _profile_fk("user_id"),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("community_id", "user_id", name="uq_community_members_pair"),
    )
    op.create_index("ix_community_members_community_id", "community_members", ["community_id"])
    op.create_index("ix_community_members_user_id", "community_members", ["user_id"])

    op.create_table(
        "community_join_requests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "community_id", UUID(as_uuid=True),
            sa.ForeignKey("communities.id", ondelete="CASCADE"), nullable=False,
        ),
        _profile_fk("user_id"),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _profile_fk("reviewed_by", nullable=True, ondelete="SET NULL"),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_community_join_requests_community_id", "community_join_requests", ["community_id"],
    )


def downgrade() -> None:
    for table in (
        "community_join_requests", "community_members", "communities",
        "reports", "user_badges", "badges", "user_milestones", "karma_history",
        "superlikes", "poll_votes", "poll_options", "polls",
        "notification_settings", "notifications", "user_follows",
        "thread_subscriptions", "bookmarks", "reactions", "votes",
        "comments", "threads", "forums", "profiles",
    ):
        op.drop_table(table)
