"""Rate Limiter: fixed-window request counters keyed by caller identifier.

Invariants:
    - A window allows exactly max_requests hits; the next hit is denied until reset_at
    - An expired record (reset_at < now) starts a fresh window with count=1
    - Denied hits never move reset_at
    - Above PURGE_THRESHOLD keys, expired records are dropped before the lookup
    - Every mutation of the store happens under the lock

Design Decisions:
    - In-process dict: single worker only, counters are lost on restart
    - Time is injected (now=...) so tests never sleep
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Mapping


PURGE_THRESHOLD = 1000


@dataclass(frozen=True)
class RateLimitRule:
    window_seconds: int
    max_requests: int


RATE_LIMITS: dict[str, RateLimitRule] = {
    "comments": RateLimitRule(60, 10),
    "threads": RateLimitRule(3600, 5),
    "search": RateLimitRule(60, 30),
    "reports": RateLimitRule(3600, 5),
    "notifications": RateLimitRule(60, 60),
    "auth": RateLimitRule(900, 5),
    "signup": RateLimitRule(3600, 3),
    "votes": RateLimitRule(60, 60),
    "user_search": RateLimitRule(60, 30),
    "uploads": RateLimitRule(3600, 10),
    "default": RateLimitRule(60, 20),
}


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    limit: int

    def retry_after(self, now: float | None = None) -> int:
        """Whole seconds until the window resets (never negative)."""
        now = time.time() if now is None else now
        return max(0, math.ceil(self.reset_at - now))

    @property
    def reset_epoch(self) -> int:
        return math.ceil(self.reset_at)


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window counter store."""

    def __init__(self):
        self._store: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def hit(
        self, key: str, rule: RateLimitRule, now: float | None = None,
    ) -> RateLimitResult:
        """Count one request against key and report whether it is allowed."""
        now = time.time() if now is None else now
        with self._lock:
            if len(self._store) > PURGE_THRESHOLD:
                self._purge_expired(now)

            record = self._store.get(key)
            if record is None or record.reset_at < now:
                reset_at = now + rule.window_seconds
                self._store[key] = _Window(count=1, reset_at=reset_at)
                return RateLimitResult(
                    True, rule.max_requests - 1, reset_at, rule.max_requests,
                )

            if record.count >= rule.max_requests:
                return RateLimitResult(
                    False, 0, record.reset_at, rule.max_requests,
                )

            record.count += 1
            return RateLimitResult(
                True, rule.max_requests - record.count,
                record.reset_at, rule.max_requests,
            )

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, w in self._store.items() if w.reset_at < now]
        for k in expired:
            del self._store[k]

    def reset(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


def rate_limit_key(rule_name: str, identifier: str) -> str:
    return f"{rule_name}:{identifier}"


def rate_limit_identifier(
    user_id: str | None,
    headers: Mapping[str, str],
    client_host: str | None = None,
) -> str:
    """user:<id> for authenticated callers, otherwise ip:<best known address>."""
    if user_id:
        return f"user:{user_id}"
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = headers.get("x-real-ip") or client_host or "unknown"
    return f"ip:{ip}"
