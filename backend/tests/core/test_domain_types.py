"""Domain Types: verifies enum values match stored column values.

Tests:
    - Vote directions are the integers stored in votes.vote_type
    - Every notification type has a matching settings column
    - Enums serialize to their plain string value
"""

import json

from loophub.core.domain_types import (
    BadgeCriteria, CommunityVisibility, ContentType, JoinRequestStatus,
    MemberRole, ModerationAction, NotificationType, PollType, ReportStatus, ThreadSort,
    TrendingPeriod, VoteType,
)
from loophub.core.reactions import CONTENT_TYPES
from loophub.models.forum_moderator import ModerationLog
from loophub.models.notification import NotificationSettings
from loophub.services.notifications import SETTINGS_FIELDS


def test_vote_directions():
    assert VoteType.UPVOTE == 1
    assert VoteType.DOWNVOTE == -1
    assert VoteType(-1) is VoteType.DOWNVOTE


def test_each_notification_type_can_be_muted():
    columns = set(NotificationSettings.__table__.columns.keys())
    for notification_type in NotificationType:
        assert notification_type.value in columns
        assert notification_type.value in SETTINGS_FIELDS


def test_content_types_match_reaction_targets():
    assert tuple(c.value for c in ContentType) == CONTENT_TYPES


def test_enums_serialize_as_strings():
    payload = json.dumps({"status": ReportStatus.PENDING, "role": MemberRole.OWNER})
    assert payload == '{"status": "pending", "role": "owner"}'


def test_lifecycle_states():
    assert {s.value for s in ReportStatus} == {"pending", "resolved", "dismissed"}
    assert {s.value for s in JoinRequestStatus} == {"pending", "approved", "rejected"}
    assert {v.value for v in CommunityVisibility} == {"public", "private", "invite_only"}


def test_listing_and_poll_options():
    assert [s.value for s in ThreadSort] == ["new", "top", "active"]
    assert {p.value for p in PollType} == {"single", "multiple"}
    assert {c.value for c in BadgeCriteria} == {"threads", "comments", "karma", "followers"}


def test_moderation_actions_fit_the_log_column():
    width = ModerationLog.__table__.c.action_type.type.length
    assert all(len(action.value) <= width for action in ModerationAction)


def test_trending_periods():
    assert [p.value for p in TrendingPeriod] == ["day", "week", "month"]
