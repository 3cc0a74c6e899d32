"""Domain Types: enums that replace bare strings across the codebase.

Invariants:
    - All valid states encoded as str Enums: serialize to JSON without custom encoders
    - Enum values match the values stored in the database columns
"""

from enum import Enum, IntEnum


class VoteType(IntEnum):
    """Vote direction stored in votes.vote_type."""
    UPVOTE = 1
    DOWNVOTE = -1


class ContentType(str, Enum):
    """Content that can receive reactions and reports."""
    THREAD = "thread"
    COMMENT = "comment"


class NotificationType(str, Enum):
    """Notification kinds; each one can be muted in notification settings."""
    COMMENT = "comment"
    REPLY = "reply"
    FOLLOW = "follow"
    SUPERLIKE = "superlike"
    BADGE = "badge"
    SUBSCRIPTION = "subscription"


class PollType(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


class ReportStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class CommunityVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    INVITE_ONLY = "invite_only"


class MemberRole(str, Enum):
    OWNER = "owner"
    MODERATOR = "moderator"
    MEMBER = "member"


class JoinRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ThreadSort(str, Enum):
    """Forum listing orders."""
    NEW = "new"
    TOP = "top"
    ACTIVE = "active"


class BadgeCriteria(str, Enum):
    """What a badge's criteria_value is compared against."""
    THREADS = "threads"
    COMMENTS = "comments"
    KARMA = "karma"
    FOLLOWERS = "followers"


class TrendingPeriod(str, Enum):
    """Window for counting new members in trending communities."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class ModerationAction(str, Enum):
    """action_type values written to moderation_log."""
    LOCK_THREAD = "lock_thread"
    UNLOCK_THREAD = "unlock_thread"
    PIN_THREAD = "pin_thread"
    UNPIN_THREAD = "unpin_thread"
    DELETE_THREAD = "delete_thread"
    DELETE_COMMENT = "delete_comment"
    CLOSE_POLL = "close_poll"
    DELETE_POLL = "delete_poll"
