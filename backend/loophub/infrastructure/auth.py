"""Bearer JWT Authentication: verifies tokens minted by the external auth provider.

Invariants:
    - Tokens are HS256, audience from settings, and must carry sub, exp, aud, role
    - require_auth raises AuthenticationRequiredError (401) on a missing or invalid token
    - get_current_user returns None without a header, but still rejects a bad token
    - require_profile guarantees a profiles row exists for the subject

Design Decisions:
    - Verification only: sign-up, login and refresh belong to the auth provider
    - Profiles are created lazily on the first authenticated request
"""

import logging
import uuid
from dataclasses import dataclass

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.config import get_settings
from loophub.core.errors import AuthenticationRequiredError, PermissionDeniedError
from loophub.infrastructure.database import get_db
from loophub.models.profile import Profile

logger = logging.getLogger(__name__)

security = HTTPBearer(
    scheme_name="Bearer JWT",
    description="Access token issued by the auth provider.",
    auto_error=False,
)


@dataclass
class AuthUser:
    """Caller identity extracted from a verified token."""
    id: uuid.UUID
    email: str | None = None
    role: str = "authenticated"
    user_metadata: dict | None = None


def verify_jwt(token: str) -> dict:
    """Decode and verify a bearer token; raise 401 on any failure."""
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            options={
                "verify_exp": True,
                "verify_aud": True,
                "require": ["sub", "exp", "aud", "role"],
            },
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationRequiredError("Token has expired")
    except jwt.InvalidAudienceError:
        raise AuthenticationRequiredError("Invalid token audience")
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise AuthenticationRequiredError("Invalid token")


def extract_user(payload: dict) -> AuthUser:
    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise AuthenticationRequiredError("Invalid token subject")
    return AuthUser(
        id=user_id,
        email=payload.get("email"),
        role=payload.get("role", "authenticated"),
        user_metadata=payload.get("user_metadata"),
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> AuthUser | None:
    """Optional auth: None for anonymous callers."""
    if not credentials or not credentials.credentials:
        return None
    return extract_user(verify_jwt(credentials.credentials))


async def require_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> AuthUser:
    if not credentials or not credentials.credentials:
        raise AuthenticationRequiredError("Authorization header required")
    return extract_user(verify_jwt(credentials.credentials))


async def ensure_profile(db: AsyncSession, user: AuthUser) -> Profile:
    """Load the caller's profile, creating an empty one on first sight."""
    profile = await db.get(Profile, user.id)
    if profile is not None:
        return profile
    metadata = user.user_metadata or {}
    profile = Profile(
        id=user.id,
        email=user.email,
        avatar_url=metadata.get("avatar_url"),
        reputation=0,
        is_admin=False,
    )
    db.add(profile)
    await db.commit()
    logger.info("Created profile on first request", extra={"user_id": user.id})
    return profile


async def require_profile(
    user: AuthUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    return await ensure_profile(db, user)


async def require_admin(profile: Profile = Depends(require_profile)) -> Profile:
    if not profile.is_admin:
        logger.info("Admin route denied", extra={"user_id": profile.id})
        raise PermissionDeniedError("Admin access required", permission="admin")
    return profile
