"""Community Rules: trending score, activity windows, invite codes and invite validity.

Invariants:
    - trending = new_members * 10 + member_count * 0.5 + recency bonus
    - Recency bonus: 20 within 7 days of creation, 10 within 30 days, 0 afterwards
    - Community age counts as at least one day
    - An invite is unusable once expires_at has passed or uses reached max_uses

Design Decisions:
    - Invite codes come from secrets (URL-safe alphabet) so they cannot be guessed
"""

import math
import secrets
import string
from datetime import datetime, timedelta, timezone

from loophub.core.domain_types import TrendingPeriod
from loophub.core.polls import ensure_utc


NEW_MEMBER_WEIGHT = 10
MEMBER_WEIGHT = 0.5
INVITE_CODE_LENGTH = 10
MAX_TRENDING = 20

_PERIOD_DAYS = {
    TrendingPeriod.DAY: 1,
    TrendingPeriod.WEEK: 7,
    TrendingPeriod.MONTH: 30,
}
_INVITE_ALPHABET = string.ascii_letters + string.digits + "_-"


def period_start(period: TrendingPeriod, now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=_PERIOD_DAYS[period])


def days_since(created_at: datetime, now: datetime | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    elapsed = ensure_utc(now) - ensure_utc(created_at)
    return max(1, math.floor(elapsed.total_seconds() / 86400))


def recency_bonus(age_days: int) -> int:
    if age_days <= 7:
        return 20
    if age_days <= 30:
        return 10
    return 0


def trending_score(new_members: int, member_count: int, age_days: int) -> float:
    return (
        new_members * NEW_MEMBER_WEIGHT
        + member_count * MEMBER_WEIGHT
        + recency_bonus(age_days)
    )


def generate_invite_code(length: int = INVITE_CODE_LENGTH) -> str:
    return "".join(secrets.choice(_INVITE_ALPHABET) for _ in range(length))


def invite_problem(
    expires_at: datetime | None,
    max_uses: int | None,
    uses: int,
    now: datetime | None = None,
) -> str | None:
    """Why an invite can no longer be redeemed, or None while it still works."""
    now = now or datetime.now(timezone.utc)
    if expires_at is not None and ensure_utc(expires_at) < ensure_utc(now):
        return "Invite has expired"
    if max_uses and uses >= max_uses:
        return "Invite has reached maximum uses"
    return None
