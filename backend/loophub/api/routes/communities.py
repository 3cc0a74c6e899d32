"""Communities: discovery, trending, creation, membership, join requests, rules, invites and settings.

Invariants:
    - /trending and /invite/{code} are declared before /{slug} so they are never read as slugs
"""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.communities import MAX_TRENDING
from loophub.core.domain_types import TrendingPeriod
from loophub.core.errors import AuthenticationRequiredError
from loophub.infrastructure.auth import AuthUser, get_current_user, require_profile
from loophub.infrastructure.database import get_db
from loophub.models.profile import Profile
from loophub.schemas.community import (
    CommunityCreate, CommunityUpdate, InviteCreate, JoinRequestBody, JoinRequestReview,
    MemberRoleUpdate, RuleCreate, RulesReorder,
)
from loophub.services import communities, community_management

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/communities", tags=["communities"])


@router.get("")
async def list_communities(
    q: str | None = Query(None, max_length=100),
    sort: Literal["newest", "alphabetical", "popular"] = Query("popular"),
    my: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: AuthUser | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if my and user is None:
        raise AuthenticationRequiredError()
    items, total = await communities.list_communities(
        db, search=q, sort=sort,
        member_id=user.id if my else None,
        limit=limit, offset=offset,
    )
    return {
        "communities": items,
        "total": total,
        "hasMore": offset + limit < total,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_community(
    body: CommunityCreate,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.create_community(
        db, profile, body.name,
        description=body.description,
        rules=body.rules,
        visibility=body.visibility,
        require_approval=body.require_approval,
        member_limit=body.member_limit,
    )
    return {"community": communities.community_dict(community, 1)}


@router.get("/trending")
async def trending_communities(
    limit: int = Query(10, ge=1, le=MAX_TRENDING),
    period: TrendingPeriod = Query(TrendingPeriod.WEEK),
    db: AsyncSession = Depends(get_db),
):
    items = await communities.trending_communities(db, period, limit=limit)
    return {"communities": items, "period": period.value}


@router.get("/invite/{code}")
async def get_invite(code: str, db: AsyncSession = Depends(get_db)):
    return {"invite": await community_management.invite_info(db, code)}


@router.post("/invite/{code}")
async def redeem_invite(
    code: str,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await community_management.redeem_invite(db, code, profile.id)
    return {
        "success": True,
        "community": {"name": community.name, "slug": community.slug},
    }


@router.get("/{slug}")
async def get_community(
    slug: str,
    user: AuthUser | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    return await communities.community_detail(db, community, user.id if user else None)


@router.post("/{slug}/join")
async def join_community(
    slug: str,
    body: JoinRequestBody | None = None,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    return await communities.join_community(
        db, community, profile.id, message=body.message if body else None,
    )


@router.delete("/{slug}/join")
async def leave_community(
    slug: str,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    await communities.leave_community(db, community, profile.id)
    return {"success": True}


@router.get("/{slug}/members")
async def list_members(
    slug: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: AuthUser | None = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    members, total = await communities.list_members(
        db, community, user.id if user else None, limit=limit, offset=offset,
    )
    return {"members": members, "total": total, "hasMore": offset + limit < total}


@router.get("/{slug}/requests")
async def list_join_requests(
    slug: str,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    return {"requests": await communities.list_pending_requests(db, community, profile.id)}


@router.post("/{slug}/requests/{request_id}")
async def review_join_request(
    slug: str,
    request_id: UUID,
    body: JoinRequestReview,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    request = await communities.review_request(
        db, community, request_id, profile.id, body.action,
    )
    logger.info(
        f"Join request {request_id} {request.status} in {slug}",
        extra={"user_id": profile.id},
    )
    return {"success": True, "status": request.status}


# ─── Management ─────────────────────────────────────────────────

@router.put("/{slug}")
async def update_community(
    slug: str,
    body: CommunityUpdate,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    await community_management.update_community(
        db, community, profile, body.model_dump(exclude_unset=True),
    )
    members = await communities.member_count(db, community.id)
    return {"community": communities.community_dict(community, members)}


@router.delete("/{slug}")
async def delete_community(
    slug: str,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    await community_management.delete_community(db, community, profile)
    return {"success": True}


@router.put("/{slug}/members")
async def change_member_role(
    slug: str,
    body: MemberRoleUpdate,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    await community_management.change_member_role(
        db, community, profile, body.user_id, body.role,
    )
    return {"success": True}


@router.delete("/{slug}/members")
async def remove_member(
    slug: str,
    user_id: UUID = Query(alias="userId"),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    await community_management.remove_member(db, community, profile, user_id)
    return {"success": True}


@router.get("/{slug}/rules")
async def list_rules(slug: str, db: AsyncSession = Depends(get_db)):
    community = await communities.get_by_slug(db, slug)
    return {"rules": await community_management.list_rules(db, community)}


@router.post("/{slug}/rules", status_code=status.HTTP_201_CREATED)
async def add_rule(
    slug: str,
    body: RuleCreate,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    rule = await community_management.add_rule(
        db, community, profile.id, body.title, body.description,
    )
    return {"rule": community_management.rule_dict(rule)}


@router.put("/{slug}/rules")
async def reorder_rules(
    slug: str,
    body: RulesReorder,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    rules = await community_management.reorder_rules(db, community, profile.id, body.rules)
    return {"rules": rules}


@router.delete("/{slug}/rules")
async def delete_rule(
    slug: str,
    rule_id: UUID = Query(alias="ruleId"),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    await community_management.delete_rule(db, community, profile.id, rule_id)
    return {"success": True}


@router.get("/{slug}/invite")
async def list_invites(
    slug: str,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    return {"invites": await community_management.list_invites(db, community, profile.id)}


@router.post("/{slug}/invite", status_code=status.HTTP_201_CREATED)
async def create_invite(
    slug: str,
    body: InviteCreate | None = None,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    invite = await community_management.create_invite(
        db, community, profile.id,
        max_uses=body.max_uses if body else None,
        expires_in_hours=body.expires_in if body else None,
    )
    return {"invite": community_management.invite_dict(invite)}


@router.delete("/{slug}/invite")
async def delete_invite(
    slug: str,
    invite_id: UUID = Query(alias="id"),
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    community = await communities.get_by_slug(db, slug)
    await community_management.delete_invite(db, community, profile.id, invite_id)
    return {"success": True}
