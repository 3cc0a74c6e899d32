"""Levels & Permissions: karma thresholds, cumulative permissions and progress math.

Tests:
    - Each threshold boundary lands on the right level (19/20, 99/100, ...)
    - Negative karma is level 0
    - Permissions only ever grow with level
    - progress/karma_to_next_level at the floor, midway and the top level
"""

import pytest

from loophub.core.levels import (
    LEVELS, MAX_LEVEL, Permission,
    build_user_permissions, get_level_info, get_user_level, has_permission,
    karma_to_next_level, minimum_level_for, progress_to_next_level,
)


@pytest.mark.parametrize("karma,level", [
    (-50, 0), (0, 0), (19, 0), (20, 1), (99, 1), (100, 2),
    (499, 2), (500, 3), (1999, 3), (2000, 4), (9999, 4), (10000, 5), (10**6, 5),
])
def test_level_thresholds(karma, level):
    assert get_user_level(karma) == level


def test_level_names():
    assert [LEVELS[i].name for i in range(MAX_LEVEL + 1)] == [
        "Novice", "Collaborator", "Contributor", "Expert", "Master", "Legend",
    ]


def test_permissions_are_cumulative():
    for level in range(1, MAX_LEVEL + 1):
        previous = set(LEVELS[level - 1].permissions)
        assert previous < set(LEVELS[level].permissions)


def test_novice_can_post_comment_and_vote_only():
    assert set(get_level_info(0).permissions) == {
        Permission.POST_WITH_DAILY_LIMIT, Permission.COMMENT, Permission.VOTE,
    }


def test_has_permission_follows_level():
    assert not has_permission(499, Permission.SUPERLIKE)
    assert has_permission(500, Permission.SUPERLIKE)
    assert has_permission(500, "create_polls")
    assert not has_permission(1999, Permission.SHADOW_HIDE)
    assert has_permission(2000, Permission.SHADOW_HIDE)


def test_unknown_permission_is_denied():
    assert has_permission(10**6, "fly") is False


def test_minimum_level_for():
    assert minimum_level_for(Permission.VOTE) == 0
    assert minimum_level_for(Permission.CREATE_SPECIAL_THREADS) == 2
    assert minimum_level_for(Permission.SUPERLIKE) == 3
    assert minimum_level_for(Permission.CREATE_CATEGORIES) == 5


def test_progress_within_level():
    assert progress_to_next_level(0) == 0.0
    assert progress_to_next_level(10) == 50.0
    assert progress_to_next_level(60) == 50.0
    assert progress_to_next_level(10000) == 100.0


def test_progress_never_negative():
    assert progress_to_next_level(-30) == 0.0


def test_karma_to_next_level():
    assert karma_to_next_level(0) == 20
    assert karma_to_next_level(95) == 5
    assert karma_to_next_level(-10) == 30
    assert karma_to_next_level(25000) == 0


def test_build_user_permissions_snapshot():
    snapshot = build_user_permissions(150)
    assert snapshot["level"] == 2
    assert snapshot["level_name"] == "Contributor"
    assert snapshot["karma"] == 150
    assert "propose_tags" in snapshot["permissions"]
    assert "superlike" not in snapshot["permissions"]
    assert snapshot["progress_to_next_level"] == 12.5
    assert snapshot["karma_to_next_level"] == 350
