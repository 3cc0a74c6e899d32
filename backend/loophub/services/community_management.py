"""Community Management: settings, deletion, member roles, rules and invites.

Invariants:
    - Settings, deletion and role changes belong to the owner (or an admin)
    - The owner's role cannot be changed and the owner cannot be removed
    - Moderators remove plain members only
    - Rules and invites are managed by owners and moderators
    - New rules go last: sort_order = current max + 1
    - An invite is redeemable until it expires or reaches max_uses; each redemption
      adds exactly one member and one use

Design Decisions:
    - The slug never changes after creation so shared links keep working
    - Child rows (members, requests, rules, invites) are deleted explicitly with the community
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.communities import generate_invite_code, invite_problem
from loophub.core.domain_types import MemberRole
from loophub.core.errors import (
    BusinessRuleError, PermissionDeniedError, ResourceGoneError, ResourceNotFoundError,
)
from loophub.core.url_helpers import community_invite_path
from loophub.models.community import (
    Community, CommunityInvite, CommunityJoinRequest, CommunityMember, CommunityRule,
)
from loophub.models.profile import Profile
from loophub.services import communities
from loophub.services.listings import public_url

logger = logging.getLogger(__name__)

_STAFF_ONLY = "Only owners and moderators can manage {}"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


async def require_manager(
    db: AsyncSession, community: Community, profile: Profile,
) -> None:
    if profile.is_admin:
        return
    member = await communities.get_membership(db, community.id, profile.id)
    if member is None or member.role != MemberRole.OWNER.value:
        raise PermissionDeniedError("Only the owner or an admin can manage this community")


# ─── Settings ───────────────────────────────────────────────────

async def update_community(
    db: AsyncSession, community: Community, profile: Profile, changes: dict,
) -> Community:
    """Apply the provided fields; blank text clears, a member_limit of 0 lifts the cap."""
    await require_manager(db, community, profile)

    if "name" in changes and changes["name"] is not None:
        community.name = changes["name"]
    for field in ("description", "rules"):
        if field in changes:
            value = changes[field]
            setattr(community, field, value.strip() or None if value else None)
    if changes.get("visibility") is not None:
        community.visibility = changes["visibility"]
    if changes.get("require_approval") is not None:
        community.require_approval = changes["require_approval"]
    if "member_limit" in changes:
        community.member_limit = changes["member_limit"] or None
    community.updated_at = datetime.now(timezone.utc)

    await db.commit()
    logger.info(
        f"Community updated: {community.slug}",
        extra={"user_id": profile.id},
    )
    return community


async def delete_community(
    db: AsyncSession, community: Community, profile: Profile,
) -> None:
    await require_manager(db, community, profile)
    for model in (CommunityInvite, CommunityRule, CommunityJoinRequest, CommunityMember):
        await db.execute(delete(model).where(model.community_id == community.id))
    await db.delete(community)
    await db.commit()
    logger.info(f"Community deleted: {community.slug}", extra={"user_id": profile.id})


# ─── Members ────────────────────────────────────────────────────

async def _target_member(
    db: AsyncSession, community: Community, user_id: uuid.UUID,
) -> CommunityMember:
    member = await communities.get_membership(db, community.id, user_id)
    if member is None:
        raise BusinessRuleError("User is not a member", "NOT_A_MEMBER")
    return member


async def change_member_role(
    db: AsyncSession, community: Community, profile: Profile,
    user_id: uuid.UUID, role: str,
) -> CommunityMember:
    await require_manager(db, community, profile)
    member = await _target_member(db, community, user_id)
    if member.role == MemberRole.OWNER.value:
        raise BusinessRuleError("Cannot change owner role", "OWNER_ROLE_LOCKED")
    member.role = role
    await db.commit()
    logger.info(
        f"Member {user_id} is now {role} in {community.slug}",
        extra={"user_id": profile.id},
    )
    return member


async def remove_member(
    db: AsyncSession, community: Community, profile: Profile, user_id: uuid.UUID,
) -> None:
    actor = await communities.get_membership(db, community.id, profile.id)
    actor_role = actor.role if actor else None
    if actor_role not in communities.REVIEWER_ROLES and not profile.is_admin:
        raise PermissionDeniedError("Not authorized to remove members")

    member = await _target_member(db, community, user_id)
    if member.role == MemberRole.OWNER.value:
        raise BusinessRuleError("Cannot remove owner", "CANNOT_REMOVE_OWNER")
    if (
        actor_role == MemberRole.MODERATOR.value
        and member.role == MemberRole.MODERATOR.value
        and not profile.is_admin
    ):
        raise PermissionDeniedError("Moderators cannot remove other moderators")

    await db.delete(member)
    await db.commit()
    logger.info(
        f"Member {user_id} removed from {community.slug}",
        extra={"user_id": profile.id},
    )


# ─── Rules ──────────────────────────────────────────────────────

def rule_dict(rule: CommunityRule) -> dict:
    return {
        "id": str(rule.id),
        "title": rule.title,
        "description": rule.description,
        "sort_order": rule.sort_order,
        "created_at": _iso(rule.created_at),
        "updated_at": _iso(rule.updated_at),
    }


async def list_rules(db: AsyncSession, community: Community) -> list[dict]:
    result = await db.execute(
        select(CommunityRule)
        .where(CommunityRule.community_id == community.id)
        .order_by(CommunityRule.sort_order.asc(), CommunityRule.created_at.asc())
    )
    return [rule_dict(r) for r in result.scalars().all()]


async def add_rule(
    db: AsyncSession, community: Community, user_id: uuid.UUID,
    title: str, description: str | None = None,
) -> CommunityRule:
    await communities.require_reviewer(db, community, user_id, _STAFF_ONLY.format("rules"))
    highest = await db.scalar(
        select(func.max(CommunityRule.sort_order))
        .where(CommunityRule.community_id == community.id)
    )
    rule = CommunityRule(
        community_id=community.id,
        title=title,
        description=description.strip() or None if description else None,
        sort_order=(highest or 0) + 1,
    )
    db.add(rule)
    await db.commit()
    return rule


async def reorder_rules(
    db: AsyncSession, community: Community, user_id: uuid.UUID, items: list,
) -> list[dict]:
    """List position becomes sort_order; ids from other communities are ignored."""
    await communities.require_reviewer(db, community, user_id, _STAFF_ONLY.format("rules"))
    result = await db.execute(
        select(CommunityRule).where(CommunityRule.community_id == community.id)
    )
    by_id = {rule.id: rule for rule in result.scalars().all()}
    for position, item in enumerate(items, start=1):
        rule = by_id.get(item.id)
        if rule is None:
            continue
        rule.sort_order = position
        if item.title is not None:
            rule.title = item.title.strip()
        if "description" in item.model_fields_set:
            rule.description = item.description.strip() or None if item.description else None
    await db.commit()
    return await list_rules(db, community)


async def delete_rule(
    db: AsyncSession, community: Community, user_id: uuid.UUID, rule_id: uuid.UUID,
) -> None:
    await communities.require_reviewer(db, community, user_id, _STAFF_ONLY.format("rules"))
    rule = await db.get(CommunityRule, rule_id)
    if rule is None or rule.community_id != community.id:
        raise ResourceNotFoundError("Rule", str(rule_id))
    await db.delete(rule)
    await db.commit()


# ─── Invites ────────────────────────────────────────────────────

def invite_dict(invite: CommunityInvite) -> dict:
    return {
        "id": str(invite.id),
        "code": invite.code,
        "max_uses": invite.max_uses,
        "uses": invite.uses,
        "expires_at": _iso(invite.expires_at),
        "created_at": _iso(invite.created_at),
        "url": public_url(community_invite_path(invite.code)),
    }


async def create_invite(
    db: AsyncSession, community: Community, user_id: uuid.UUID,
    max_uses: int | None = None, expires_in_hours: int | None = None,
) -> CommunityInvite:
    await communities.require_reviewer(db, community, user_id, _STAFF_ONLY.format("invites"))
    code = generate_invite_code()
    while await db.scalar(select(CommunityInvite.id).where(CommunityInvite.code == code)):
        code = generate_invite_code()
    invite = CommunityInvite(
        community_id=community.id,
        code=code,
        max_uses=max_uses,
        uses=0,
        expires_at=(
            datetime.now(timezone.utc) + timedelta(hours=expires_in_hours)
            if expires_in_hours else None
        ),
        created_by=user_id,
    )
    db.add(invite)
    await db.commit()
    logger.info(f"Invite created for {community.slug}", extra={"user_id": user_id})
    return invite


async def list_invites(
    db: AsyncSession, community: Community, user_id: uuid.UUID,
) -> list[dict]:
    await communities.require_reviewer(db, community, user_id, _STAFF_ONLY.format("invites"))
    result = await db.execute(
        select(CommunityInvite, Profile.username)
        .outerjoin(Profile, Profile.id == CommunityInvite.created_by)
        .where(CommunityInvite.community_id == community.id)
        .order_by(CommunityInvite.created_at.desc())
    )
    return [
        {**invite_dict(invite), "creator": {"username": username}}
        for invite, username in result.all()
    ]


async def delete_invite(
    db: AsyncSession, community: Community, user_id: uuid.UUID, invite_id: uuid.UUID,
) -> None:
    await communities.require_reviewer(db, community, user_id, _STAFF_ONLY.format("invites"))
    invite = await db.get(CommunityInvite, invite_id)
    if invite is None or invite.community_id != community.id:
        raise ResourceNotFoundError("Invite", str(invite_id))
    await db.delete(invite)
    await db.commit()


async def _usable_invite(
    db: AsyncSession, code: str,
) -> tuple[CommunityInvite, Community]:
    row = (await db.execute(
        select(CommunityInvite, Community)
        .join(Community, Community.id == CommunityInvite.community_id)
        .where(CommunityInvite.code == code)
    )).first()
    if row is None:
        raise ResourceNotFoundError("Invite", code)
    invite, community = row
    problem = invite_problem(invite.expires_at, invite.max_uses, invite.uses)
    if problem:
        raise ResourceGoneError(problem, "INVITE_UNUSABLE")
    return invite, community


async def invite_info(db: AsyncSession, code: str) -> dict:
    invite, community = await _usable_invite(db, code)
    return {
        **invite_dict(invite),
        "community": {
            "id": str(community.id),
            "name": community.name,
            "slug": community.slug,
            "description": community.description,
            "visibility": community.visibility,
        },
    }


async def redeem_invite(db: AsyncSession, code: str, user_id: uuid.UUID) -> Community:
    invite, community = await _usable_invite(db, code)
    if community.member_limit and (
        await communities.member_count(db, community.id) >= community.member_limit
    ):
        raise BusinessRuleError("Community is full", "COMMUNITY_FULL")
    if await communities.get_membership(db, community.id, user_id) is not None:
        raise BusinessRuleError("Already a member", "ALREADY_MEMBER")

    db.add(CommunityMember(
        community_id=community.id, user_id=user_id, role=MemberRole.MEMBER.value,
    ))
    invite.uses += 1
    await db.commit()
    logger.info(f"Invite {code} redeemed for {community.slug}", extra={"user_id": user_id})
    return community
