"""Reports: users flag threads and comments; admins review the queue."""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.infrastructure.auth import require_admin, require_profile
from loophub.infrastructure.database import get_db
from loophub.infrastructure.rate_limit import rate_limited
from loophub.models.profile import Profile
from loophub.schemas.moderation import ReportCreate, ReportReview
from loophub.services import moderation

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["reports"])


@router.post(
    "/reports",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited("reports"))],
)
async def create_report(
    body: ReportCreate,
    profile: Profile = Depends(require_profile),
    db: AsyncSession = Depends(get_db),
):
    report = await moderation.create_report(
        db, profile, body.content_type, body.content_id, body.reason,
    )
    return moderation.report_dict(report)


@router.get("/admin/reports")
async def list_reports(
    status_filter: Literal["pending", "resolved", "dismissed"] | None = Query(
        None, alias="status",
    ),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    reports = await moderation.list_reports(db, status_filter, limit, offset)
    return {"reports": [moderation.report_dict(r) for r in reports]}


@router.patch("/admin/reports/{report_id}")
async def review_report(
    report_id: UUID,
    body: ReportReview,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    report, penalized = await moderation.review_report(
        db, report_id, admin, body.status, penalize=body.penalize,
    )
    logger.info(
        f"Report {report_id} marked {body.status}",
        extra={"user_id": admin.id},
    )
    return {**moderation.report_dict(report), "penalized": penalized}
