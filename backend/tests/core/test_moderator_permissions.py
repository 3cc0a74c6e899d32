"""Forum Moderation Rules: permission flags, defaults and overrides."""

from loophub.core.moderation import (
    MODERATOR_PERMISSIONS, ModeratorPermission, all_permissions, has_flag, merge_permissions,
)


def test_defaults_grant_every_flag():
    perms = all_permissions()
    assert set(perms) == set(MODERATOR_PERMISSIONS)
    assert all(perms.values())


def test_overrides_narrow_defaults():
    merged, error = merge_permissions({"can_delete_threads": False})
    assert error is None
    assert merged["can_delete_threads"] is False
    assert merged["can_lock_threads"] is True


def test_unknown_flags_are_reported():
    merged, error = merge_permissions({"can_ban": True, "can_pin_threads": False})
    assert error == "Unknown moderator permission: can_ban"
    assert merged == all_permissions()


def test_has_flag():
    assert has_flag({"can_lock_threads": True}, ModeratorPermission.LOCK_THREADS)
    assert not has_flag({"can_lock_threads": False}, ModeratorPermission.LOCK_THREADS)
    assert not has_flag({}, ModeratorPermission.PIN_THREADS)
    assert not has_flag(None, ModeratorPermission.PIN_THREADS)
