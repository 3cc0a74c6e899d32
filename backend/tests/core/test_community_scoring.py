"""Community Rules: trending score, activity windows and invite validity."""

import string
from datetime import datetime, timedelta, timezone

import pytest

from loophub.core.communities import (
    INVITE_CODE_LENGTH, days_since, generate_invite_code, invite_problem,
    period_start, recency_bonus, trending_score,
)
from loophub.core.domain_types import TrendingPeriod


NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("period, days", [
    (TrendingPeriod.DAY, 1), (TrendingPeriod.WEEK, 7), (TrendingPeriod.MONTH, 30),
])
def test_period_start(period, days):
    assert period_start(period, NOW) == NOW - timedelta(days=days)


def test_age_is_at_least_one_day():
    assert days_since(NOW - timedelta(hours=3), NOW) == 1
    assert days_since(NOW - timedelta(days=9, hours=23), NOW) == 9


def test_age_accepts_naive_timestamps():
    assert days_since(datetime(2026, 4, 21, 12, 0), NOW) == 10


@pytest.mark.parametrize("age, bonus", [(1, 20), (7, 20), (8, 10), (30, 10), (31, 0)])
def test_recency_bonus_steps(age, bonus):
    assert recency_bonus(age) == bonus


def test_trending_score_weights_growth():
    assert trending_score(new_members=3, member_count=3, age_days=2) == 51.5
    assert trending_score(new_members=0, member_count=40, age_days=90) == 20.0
    assert trending_score(0, 0, 365) == 0


def test_invite_codes_are_url_safe():
    code = generate_invite_code()
    assert len(code) == INVITE_CODE_LENGTH
    assert set(code) <= set(string.ascii_letters + string.digits + "_-")
    assert generate_invite_code(24) != generate_invite_code(24)


def test_invite_problem():
    assert invite_problem(None, None, 99, NOW) is None
    assert invite_problem(NOW + timedelta(minutes=1), 5, 4, NOW) is None
    assert invite_problem(NOW - timedelta(seconds=1), None, 0, NOW) == "Invite has expired"
    assert invite_problem(None, 5, 5, NOW) == "Invite has reached maximum uses"
