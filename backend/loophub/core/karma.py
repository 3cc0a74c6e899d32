"""Karma Rules: point values per action, expected-karma audit, milestone detection.

Invariants:
    - KARMA_VALUES holds every award and penalty amount; no magic numbers elsewhere
    - calculate_expected_karma is the single formula the audit compares against
    - detect_milestones never returns a milestone present in already_awarded

Design Decisions:
    - Plain name -> int mapping instead of IntEnum: several actions share a value
      (FIRST_THREAD and THREAD_MARKED_RESOURCE are both 10) and IntEnum would alias them
"""

from dataclasses import dataclass
from enum import Enum


KARMA_VALUES: dict[str, int] = {
    # Content creation
    "CREATE_THREAD": 5,
    "CREATE_COMMENT": 2,
    # Engagement
    "RECEIVE_LIKE": 1,
    "RECEIVE_SUPERLIKE": 2,
    # Quality
    "THREAD_MARKED_RESOURCE": 10,
    "THREAD_TO_FRONTPAGE": 20,
    # Milestones
    "FIRST_THREAD": 10,
    "FIRST_COMMENT": 5,
    "TEN_THREADS": 25,
    "FIFTY_COMMENTS": 30,
    "HUNDRED_LIKES": 50,
    # Streaks
    "STREAK_7_DAYS": 15,
    "STREAK_30_DAYS": 50,
    "STREAK_90_DAYS": 100,
    # Penalties
    "CONTENT_DELETED": -5,
    "THREAD_DELETED": -15,
    "VALID_REPORT": -10,
    "SPAM_DETECTED": -25,
    "TEMP_BAN": -50,
}


class KarmaSource(str, Enum):
    """karma_history.source_type values."""
    THREAD = "thread"
    COMMENT = "comment"
    LIKE = "like"
    SUPERLIKE = "superlike"
    MODERATION = "moderation"
    MANUAL = "manual"


# milestone -> (counter it reads, threshold, description)
MILESTONES: dict[str, tuple[str, int, str]] = {
    "FIRST_THREAD": ("threads", 1, "First thread published"),
    "TEN_THREADS": ("threads", 10, "10 threads published"),
    "FIRST_COMMENT": ("comments", 1, "First comment"),
    "FIFTY_COMMENTS": ("comments", 50, "50 comments published"),
    "HUNDRED_LIKES": ("likes", 100, "100 likes received"),
}


@dataclass
class ContentCounts:
    """Everything a user produced or received that carries karma."""
    threads: int = 0
    comments: int = 0
    thread_upvotes: int = 0
    comment_upvotes: int = 0
    resources: int = 0
    superlikes_received: int = 0
    milestone_karma: int = 0
    penalties: int = 0

    @property
    def likes_received(self) -> int:
        return self.thread_upvotes + self.comment_upvotes


def calculate_expected_karma(counts: ContentCounts) -> int:
    """Karma a user should hold given their content. Pure, no IO."""
    total = counts.threads * KARMA_VALUES["CREATE_THREAD"]
    total += counts.comments * KARMA_VALUES["CREATE_COMMENT"]
    total += counts.likes_received * KARMA_VALUES["RECEIVE_LIKE"]
    total += counts.resources * KARMA_VALUES["THREAD_MARKED_RESOURCE"]
    total += counts.superlikes_received * KARMA_VALUES["RECEIVE_SUPERLIKE"]
    total += counts.milestone_karma
    total += counts.penalties
    return total


def build_audit_result(current: int, calculated: int, fixed: bool = False) -> dict:
    return {
        "current": current,
        "calculated": calculated,
        "difference": calculated - current,
        "fixed": fixed,
    }


def format_adjustment_reason(difference: int) -> str:
    sign = "+" if difference > 0 else ""
    return f"Karma audit correction: {sign}{difference}"


def detect_milestones(
    threads: int,
    comments: int,
    likes_received: int,
    already_awarded: set[str],
) -> list[str]:
    """Milestones reached but not yet awarded, in declaration order."""
    counters = {"threads": threads, "comments": comments, "likes": likes_received}
    return [
        name
        for name, (counter, threshold, _) in MILESTONES.items()
        if name not in already_awarded and counters[counter] >= threshold
    ]


def milestone_description(milestone: str) -> str:
    return MILESTONES[milestone][2]
