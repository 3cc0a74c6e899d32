"""Community Service: creation, membership, join-request review and trending.

Invariants:
    - Creating requires level >= 3 or admin; non-admins own at most max_communities_per_user
    - The creator becomes the single owner; owners cannot leave
    - Public communities without approval are joined directly; every other join is a request
    - A full community (member_limit reached) accepts no joins or approvals
    - Only owners and moderators review join requests, and a request is reviewed once
    - Trending ranks public communities only, by new members, size and age
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.config import get_settings
from loophub.core.communities import (
    MAX_TRENDING, days_since, period_start, trending_score,
)
from loophub.core.domain_types import (
    CommunityVisibility, JoinRequestStatus, MemberRole, TrendingPeriod,
)
from loophub.core.errors import (
    BusinessRuleError, PermissionDeniedError, ResourceNotFoundError,
)
from loophub.core.levels import get_user_level
from loophub.core.validation import slugify
from loophub.models.community import (
    Community, CommunityJoinRequest, CommunityMember,
)
from loophub.models.profile import Profile

logger = logging.getLogger(__name__)

MIN_CREATOR_LEVEL = 3
REVIEWER_ROLES = (MemberRole.OWNER.value, MemberRole.MODERATOR.value)


async def get_by_slug(db: AsyncSession, slug: str) -> Community:
    community = await db.scalar(select(Community).where(Community.slug == slug))
    if community is None:
        raise ResourceNotFoundError("Community", slug)
    return community


async def member_count(db: AsyncSession, community_id: uuid.UUID) -> int:
    count = await db.scalar(
        select(func.count()).select_from(CommunityMember)
        .where(CommunityMember.community_id == community_id)
    )
    return count or 0


async def get_membership(
    db: AsyncSession, community_id: uuid.UUID, user_id: uuid.UUID,
) -> CommunityMember | None:
    return await db.scalar(
        select(CommunityMember).where(
            CommunityMember.community_id == community_id,
            CommunityMember.user_id == user_id,
        )
    )


async def _unique_slug(db: AsyncSession, name: str) -> str:
    base = slugify(name) or "community"
    slug = base
    suffix = 2
    while await db.scalar(select(Community.id).where(Community.slug == slug)):
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


async def create_community(
    db: AsyncSession,
    creator: Profile,
    name: str,
    description: str | None = None,
    rules: str | None = None,
    visibility: str = CommunityVisibility.PUBLIC.value,
    require_approval: bool = False,
    member_limit: int | None = None,
) -> Community:
    if not creator.is_admin:
        if get_user_level(creator.reputation) < MIN_CREATOR_LEVEL:
            raise PermissionDeniedError(
                f"You need to be level {MIN_CREATOR_LEVEL} or higher to create communities",
                permission="create_community",
            )
        limit = get_settings().max_communities_per_user
        owned = await db.scalar(
            select(func.count()).select_from(Community)
            .where(Community.created_by == creator.id)
        )
        if (owned or 0) >= limit:
            raise PermissionDeniedError(
                f"You can only create up to {limit} communities",
                permission="create_community",
            )

    community = Community(
        name=name.strip(),
        slug=await _unique_slug(db, name),
        description=description.strip() if description else None,
        rules=rules.strip() if rules else None,
        visibility=visibility,
        require_approval=require_approval,
        member_limit=member_limit,
        created_by=creator.id,
    )
    db.add(community)
    await db.flush()
    db.add(CommunityMember(
        community_id=community.id, user_id=creator.id, role=MemberRole.OWNER.value,
    ))
    await db.commit()
    logger.info(f"Community created: {community.slug}", extra={"user_id": creator.id})
    return community


async def _ensure_capacity(db: AsyncSession, community: Community) -> None:
    if community.member_limit and await member_count(db, community.id) >= community.member_limit:
        raise BusinessRuleError("Community is full", "COMMUNITY_FULL")


async def join_community(
    db: AsyncSession, community: Community, user_id: uuid.UUID,
    message: str | None = None,
) -> dict:
    if await get_membership(db, community.id, user_id) is not None:
        raise BusinessRuleError("Already a member", "ALREADY_MEMBER")
    await _ensure_capacity(db, community)

    if (
        community.visibility == CommunityVisibility.PUBLIC.value
        and not community.require_approval
    ):
        db.add(CommunityMember(
            community_id=community.id, user_id=user_id, role=MemberRole.MEMBER.value,
        ))
        await db.commit()
        return {"success": True, "status": "joined"}

    request = await db.scalar(
        select(CommunityJoinRequest).where(
            CommunityJoinRequest.community_id == community.id,
            CommunityJoinRequest.user_id == user_id,
        )
    )
    if request is not None:
        if request.status == JoinRequestStatus.PENDING.value:
            raise BusinessRuleError("Request already pending", "REQUEST_PENDING")
        request.status = JoinRequestStatus.PENDING.value
        request.message = message
        request.reviewed_by = None
        request.reviewed_at = None
    else:
        db.add(CommunityJoinRequest(
            community_id=community.id, user_id=user_id, message=message,
            status=JoinRequestStatus.PENDING.value,
        ))
    await db.commit()
    return {"success": True, "status": "requested"}


async def leave_community(
    db: AsyncSession, community: Community, user_id: uuid.UUID,
) -> None:
    member = await get_membership(db, community.id, user_id)
    if member is None:
        raise BusinessRuleError("Not a member", "NOT_A_MEMBER")
    if member.role == MemberRole.OWNER.value:
        raise BusinessRuleError(
            "Owner cannot leave. Transfer ownership or delete the community.",
            "OWNER_CANNOT_LEAVE",
        )
    await db.delete(member)
    await db.commit()


async def require_reviewer(
    db: AsyncSession, community: Community, user_id: uuid.UUID,
    message: str = "Only owners and moderators can manage join requests",
) -> CommunityMember:
    member = await get_membership(db, community.id, user_id)
    if member is None or member.role not in REVIEWER_ROLES:
        raise PermissionDeniedError(message)
    return member


async def review_request(
    db: AsyncSession,
    community: Community,
    request_id: uuid.UUID,
    reviewer_id: uuid.UUID,
    action: str,
) -> CommunityJoinRequest:
    await require_reviewer(db, community, reviewer_id)
    request = await db.get(CommunityJoinRequest, request_id)
    if request is None or request.community_id != community.id:
        raise ResourceNotFoundError("Join request", str(request_id))
    if request.status != JoinRequestStatus.PENDING.value:
        raise BusinessRuleError("Request already reviewed", "REQUEST_REVIEWED")

    if action == "approve":
        await _ensure_capacity(db, community)
        if await get_membership(db, community.id, request.user_id) is None:
            db.add(CommunityMember(
                community_id=community.id, user_id=request.user_id,
                role=MemberRole.MEMBER.value,
            ))
        request.status = JoinRequestStatus.APPROVED.value
    else:
        request.status = JoinRequestStatus.REJECTED.value
    request.reviewed_by = reviewer_id
    request.reviewed_at = datetime.now(timezone.utc)
    await db.commit()
    return request


# ─── Reads ──────────────────────────────────────────────────────

def _member_count_subquery():
    return (
        select(func.count())
        .select_from(CommunityMember)
        .where(CommunityMember.community_id == Community.id)
        .correlate(Community)
        .scalar_subquery()
    )


def community_dict(community: Community, members: int) -> dict:
    return {
        "id": str(community.id),
        "name": community.name,
        "slug": community.slug,
        "description": community.description,
        "rules": community.rules,
        "visibility": community.visibility,
        "require_approval": community.require_approval,
        "member_limit": community.member_limit,
        "created_by": str(community.created_by) if community.created_by else None,
        "created_at": community.created_at.isoformat(),
        "updated_at": community.updated_at.isoformat() if community.updated_at else None,
        "member_count": members,
    }


async def list_communities(
    db: AsyncSession,
    search: str | None = None,
    sort: str = "popular",
    member_id: uuid.UUID | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[dict], int]:
    """Public communities, or every community member_id belongs to when given."""
    members = _member_count_subquery().label("member_count")
    query = select(Community, members)
    if member_id is not None:
        query = query.where(
            Community.id.in_(
                select(CommunityMember.community_id)
                .where(CommunityMember.user_id == member_id)
            )
        )
    else:
        query = query.where(Community.visibility == CommunityVisibility.PUBLIC.value)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            Community.name.ilike(pattern) | Community.description.ilike(pattern)
        )

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    if sort == "alphabetical":
        query = query.order_by(Community.name.asc())
    elif sort == "newest":
        query = query.order_by(Community.created_at.desc())
    else:
        query = query.order_by(members.desc(), Community.created_at.desc())

    result = await db.execute(query.offset(offset).limit(limit))
    return [community_dict(c, count) for c, count in result.all()], total or 0


async def community_detail(
    db: AsyncSession, community: Community, viewer_id: uuid.UUID | None = None,
) -> dict:
    payload = community_dict(community, await member_count(db, community.id))
    membership = None
    pending = None
    if viewer_id is not None:
        member = await get_membership(db, community.id, viewer_id)
        if member is not None:
            membership = {"role": member.role, "joined_at": member.joined_at.isoformat()}
        else:
            request = await db.scalar(
                select(CommunityJoinRequest).where(
                    CommunityJoinRequest.community_id == community.id,
                    CommunityJoinRequest.user_id == viewer_id,
                    CommunityJoinRequest.status == JoinRequestStatus.PENDING.value,
                )
            )
            if request is not None:
                pending = {"status": request.status, "created_at": request.created_at.isoformat()}
    payload["membership"] = membership
    payload["viewer_role"] = membership["role"] if membership else None
    payload["pending_request"] = pending
    return payload


_ROLE_ORDER = case(
    (CommunityMember.role == MemberRole.OWNER.value, 0),
    (CommunityMember.role == MemberRole.MODERATOR.value, 1),
    else_=2,
)


async def list_members(
    db: AsyncSession, community: Community, viewer_id: uuid.UUID | None,
    limit: int = 50, offset: int = 0,
) -> tuple[list[dict], int]:
    """Members owner first; non-public communities are visible to members only."""
    if community.visibility != CommunityVisibility.PUBLIC.value:
        if viewer_id is None or await get_membership(db, community.id, viewer_id) is None:
            raise PermissionDeniedError("Only members can see this community's members")

    result = await db.execute(
        select(CommunityMember, Profile)
        .join(Profile, Profile.id == CommunityMember.user_id)
        .where(CommunityMember.community_id == community.id)
        .order_by(_ROLE_ORDER, CommunityMember.joined_at.asc())
        .offset(offset)
        .limit(limit)
    )
    members = [
        {
            "id": str(member.id),
            "role": member.role,
            "joined_at": member.joined_at.isoformat(),
            "user": {
                "id": str(profile.id),
                "username": profile.username,
                "avatar_url": profile.avatar_url,
                "reputation": profile.reputation,
                "level": get_user_level(profile.reputation),
            },
        }
        for member, profile in result.all()
    ]
    return members, await member_count(db, community.id)


async def list_pending_requests(
    db: AsyncSession, community: Community, reviewer_id: uuid.UUID,
) -> list[dict]:
    await require_reviewer(db, community, reviewer_id)
    result = await db.execute(
        select(CommunityJoinRequest, Profile)
        .outerjoin(Profile, Profile.id == CommunityJoinRequest.user_id)
        .where(
            CommunityJoinRequest.community_id == community.id,
            CommunityJoinRequest.status == JoinRequestStatus.PENDING.value,
        )
        .order_by(CommunityJoinRequest.created_at.asc())
    )
    return [
        {
            "id": str(request.id),
            "message": request.message,
            "status": request.status,
            "created_at": request.created_at.isoformat(),
            "user": {
                "id": str(request.user_id),
                "username": profile.username if profile else None,
                "avatar_url": profile.avatar_url if profile else None,
            },
        }
        for request, profile in result.all()
    ]


async def trending_communities(
    db: AsyncSession,
    period: TrendingPeriod = TrendingPeriod.WEEK,
    limit: int = 10,
    now: datetime | None = None,
) -> list[dict]:
    """Public communities ranked by member growth within the period."""
    now = now or datetime.now(timezone.utc)
    since = period_start(period, now)
    members = _member_count_subquery().label("member_count")
    new_members = (
        select(func.count())
        .select_from(CommunityMember)
        .where(
            CommunityMember.community_id == Community.id,
            CommunityMember.joined_at >= since,
        )
        .correlate(Community)
        .scalar_subquery()
        .label("new_members")
    )
    result = await db.execute(
        select(Community, members, new_members)
        .where(Community.visibility == CommunityVisibility.PUBLIC.value)
        .order_by(Community.created_at.desc())
    )

    scored = []
    for community, count, fresh in result.all():
        payload = community_dict(community, count)
        payload["new_members"] = fresh
        payload["trending_score"] = trending_score(
            fresh, count, days_since(community.created_at, now),
        )
        scored.append(payload)
    scored.sort(key=lambda c: c["trending_score"], reverse=True)
    return scored[:min(limit, MAX_TRENDING)]
