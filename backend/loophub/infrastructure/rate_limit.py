"""Request Rate Limiting: FastAPI dependency over the shared in-process limiter.

Invariants:
    - Every limited request gets X-RateLimit-Limit / -Remaining / -Reset headers
    - A denied request raises RateLimitExceededError (429 with Retry-After)
    - Counters are keyed "<rule>:<user:id | ip:addr>"
    - settings.rate_limit_enabled = False turns every limiter into a no-op

Design Decisions:
    - Dependency factory (rate_limited("comments")) instead of middleware: the rule
      is chosen per route, next to the handler it protects
"""

import logging

from fastapi import Depends, Request, Response

from loophub.config import get_settings
from loophub.core.errors import ErrorContext, RateLimitExceededError
from loophub.core.rate_limit import (
    RATE_LIMITS, RateLimiter, rate_limit_identifier, rate_limit_key,
)
from loophub.infrastructure.auth import AuthUser, get_current_user

logger = logging.getLogger(__name__)

limiter = RateLimiter()


def rate_limited(rule_name: str = "default"):
    """Build a dependency that counts the request against RATE_LIMITS[rule_name]."""
    rule = RATE_LIMITS[rule_name]

    async def dependency(
        request: Request,
        response: Response,
        user: AuthUser | None = Depends(get_current_user),
    ) -> None:
        if not get_settings().rate_limit_enabled:
            return
        identifier = rate_limit_identifier(
            str(user.id) if user else None,
            request.headers,
            request.client.host if request.client else None,
        )
        key = rate_limit_key(rule_name, identifier)
        result = limiter.hit(key, rule)
        if not result.allowed:
            retry_after = result.retry_after()
            logger.info(
                f"Rate limit exceeded for {key}",
                extra={"rate_limit_key": key, "path": request.url.path},
            )
            raise RateLimitExceededError(
                retry_after, result.limit, result.reset_epoch,
                ErrorContext(user_id=str(user.id) if user else None),
            )
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        response.headers["X-RateLimit-Reset"] = str(result.reset_epoch)

    return dependency
