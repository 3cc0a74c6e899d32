"""Forum Moderation Rules: moderator permission flags and their defaults.

Invariants:
    - Every flag is one of MODERATOR_PERMISSIONS; unknown flags are rejected
    - New moderators get every flag unless the appointing admin narrows them
    - Admins hold every flag on every forum
"""

from enum import Enum


class ModeratorPermission(str, Enum):
    DELETE_THREADS = "can_delete_threads"
    DELETE_COMMENTS = "can_delete_comments"
    HIDE_CONTENT = "can_hide_content"
    PIN_THREADS = "can_pin_threads"
    LOCK_THREADS = "can_lock_threads"
    MANAGE_REPORTS = "can_manage_reports"


MODERATOR_PERMISSIONS = tuple(p.value for p in ModeratorPermission)


def all_permissions() -> dict[str, bool]:
    return {name: True for name in MODERATOR_PERMISSIONS}


def merge_permissions(
    overrides: dict[str, bool] | None,
) -> tuple[dict[str, bool], str | None]:
    """Defaults with the given flags applied, plus an error naming any unknown flag."""
    merged = all_permissions()
    if not overrides:
        return merged, None
    unknown = sorted(set(overrides) - set(MODERATOR_PERMISSIONS))
    if unknown:
        return merged, f"Unknown moderator permission: {', '.join(unknown)}"
    merged.update({name: bool(value) for name, value in overrides.items()})
    return merged, None


def has_flag(permissions: dict | None, flag: ModeratorPermission) -> bool:
    return bool((permissions or {}).get(flag.value, False))
