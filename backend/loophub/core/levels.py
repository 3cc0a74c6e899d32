"""Levels & Permissions: karma thresholds mapped to cumulative permission sets.

Invariants:
    - Six levels (0-5); thresholds 20 / 100 / 500 / 2000 / 10000
    - Every level's permissions are a superset of the previous level's
    - Negative karma is level 0 (penalties never push below the first tier)
    - progress_to_next_level is clamped to [0, 100]; max level reports 100
"""

from dataclasses import dataclass
from enum import Enum


class Permission(str, Enum):
    """Capabilities unlocked by level."""
    POST_WITH_DAILY_LIMIT = "post_with_daily_limit"
    COMMENT = "comment"
    VOTE = "vote"
    EDIT_EXTENDED = "edit_extended"
    UPLOAD_IMAGES_NO_COOLDOWN = "upload_images_no_cooldown"
    CREATE_SPECIAL_THREADS = "create_special_threads"
    PROPOSE_TAGS = "propose_tags"
    ACCESS_BETA_FEATURES = "access_beta_features"
    CREATE_POLLS = "create_polls"
    SUPERLIKE = "superlike"
    SHADOW_HIDE = "shadow_hide"
    RECOMMEND_TO_FRONTPAGE = "recommend_to_frontpage"
    MODERATE_NICHE = "moderate_niche"
    CREATE_CATEGORIES = "create_categories"


@dataclass(frozen=True)
class LevelInfo:
    level: int
    name: str
    min_karma: int
    max_karma: int | None
    permissions: tuple[Permission, ...]


MAX_LEVEL = 5

_BASE = (Permission.POST_WITH_DAILY_LIMIT, Permission.COMMENT, Permission.VOTE)
_L1 = _BASE + (Permission.EDIT_EXTENDED, Permission.UPLOAD_IMAGES_NO_COOLDOWN)
_L2 = _L1 + (Permission.CREATE_SPECIAL_THREADS, Permission.PROPOSE_TAGS)
_L3 = _L2 + (
    Permission.ACCESS_BETA_FEATURES, Permission.CREATE_POLLS, Permission.SUPERLIKE,
)
_L4 = _L3 + (Permission.SHADOW_HIDE, Permission.RECOMMEND_TO_FRONTPAGE)
_L5 = _L4 + (Permission.MODERATE_NICHE, Permission.CREATE_CATEGORIES)

LEVELS: dict[int, LevelInfo] = {
    0: LevelInfo(0, "Novice", 0, 20, _BASE),
    1: LevelInfo(1, "Collaborator", 20, 100, _L1),
    2: LevelInfo(2, "Contributor", 100, 500, _L2),
    3: LevelInfo(3, "Expert", 500, 2000, _L3),
    4: LevelInfo(4, "Master", 2000, 10000, _L4),
    5: LevelInfo(5, "Legend", 10000, None, _L5),
}


def get_user_level(karma: int) -> int:
    """Level (0-5) for a karma score."""
    if karma < 20:
        return 0
    if karma < 100:
        return 1
    if karma < 500:
        return 2
    if karma < 2000:
        return 3
    if karma < 10000:
        return 4
    return 5


def get_level_info(karma: int) -> LevelInfo:
    return LEVELS[get_user_level(karma)]


def has_permission(karma: int, permission: Permission | str) -> bool:
    """True if the level reached with this karma grants the permission."""
    try:
        wanted = Permission(permission)
    except ValueError:
        return False
    return wanted in get_level_info(karma).permissions


def minimum_level_for(permission: Permission) -> int:
    """Lowest level granting the permission (used in denial messages)."""
    for level in range(MAX_LEVEL + 1):
        if permission in LEVELS[level].permissions:
            return level
    raise ValueError(f"Permission {permission} is not granted by any level")


def progress_to_next_level(karma: int) -> float:
    """Percentage of the way from the current level's floor to the next one."""
    level = get_user_level(karma)
    if level == MAX_LEVEL:
        return 100.0
    current_min = LEVELS[level].min_karma
    next_min = LEVELS[level + 1].min_karma
    progress = (karma - current_min) / (next_min - current_min) * 100
    return min(100.0, max(0.0, progress))


def karma_to_next_level(karma: int) -> int:
    level = get_user_level(karma)
    if level == MAX_LEVEL:
        return 0
    return max(0, LEVELS[level + 1].min_karma - karma)


def build_user_permissions(karma: int) -> dict:
    """Full permission snapshot for /me/permissions and profile pages."""
    info = get_level_info(karma)
    return {
        "level": info.level,
        "level_name": info.name,
        "karma": karma,
        "permissions": [p.value for p in info.permissions],
        "progress_to_next_level": round(progress_to_next_level(karma), 2),
        "karma_to_next_level": karma_to_next_level(karma),
    }
