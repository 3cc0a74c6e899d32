"""Moderation Service: user reports on threads and comments and their admin review.

Invariants:
    - Reports target an existing thread or comment
    - A report is reviewed once (pending -> resolved | dismissed)
    - penalize=True on a resolved report applies VALID_REPORT to the content author
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loophub.core.domain_types import ReportStatus
from loophub.core.errors import BusinessRuleError, ResourceNotFoundError
from loophub.models.comment import Comment
from loophub.models.profile import Profile
from loophub.models.report import Report
from loophub.models.thread import Thread
from loophub.services import karma as karma_service

logger = logging.getLogger(__name__)

_CONTENT_MODELS = {"thread": Thread, "comment": Comment}


async def _content_author(
    db: AsyncSession, content_type: str, content_id: uuid.UUID,
) -> uuid.UUID | None:
    content = await db.get(_CONTENT_MODELS[content_type], content_id)
    return content.user_id if content is not None else None


async def create_report(
    db: AsyncSession, reporter: Profile, content_type: str,
    content_id: uuid.UUID, reason: str,
) -> Report:
    if await db.get(_CONTENT_MODELS[content_type], content_id) is None:
        raise ResourceNotFoundError(content_type.capitalize(), str(content_id))
    report = Report(
        reporter_id=reporter.id,
        content_type=content_type,
        content_id=content_id,
        reason=reason,
        status=ReportStatus.PENDING.value,
    )
    db.add(report)
    await db.commit()
    logger.info(
        f"Report filed against {content_type} {content_id}",
        extra={"user_id": reporter.id},
    )
    return report


async def list_reports(
    db: AsyncSession, status: str | None = None, limit: int = 50, offset: int = 0,
) -> list[Report]:
    query = select(Report)
    if status:
        query = query.where(Report.status == status)
    query = query.order_by(Report.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def review_report(
    db: AsyncSession, report_id: uuid.UUID, reviewer: Profile,
    status: str, penalize: bool = False,
) -> tuple[Report, bool]:
    """Close a pending report. Returns (report, whether the author was penalized)."""
    report = await db.get(Report, report_id)
    if report is None:
        raise ResourceNotFoundError("Report", str(report_id))
    if report.status != ReportStatus.PENDING.value:
        raise BusinessRuleError("Report already reviewed", "REPORT_REVIEWED")

    penalized = False
    if penalize and status == ReportStatus.RESOLVED.value:
        author_id = await _content_author(db, report.content_type, report.content_id)
        if author_id is not None:
            penalized = await karma_service.penalize_karma(
                db, author_id, "VALID_REPORT",
                f"Report upheld: {report.reason[:100]}", report.content_id,
            )

    report.status = status
    report.reviewed_by = reviewer.id
    report.reviewed_at = datetime.now(timezone.utc)
    await db.commit()
    return report, penalized


def report_dict(report: Report) -> dict:
    return {
        "id": str(report.id),
        "reporter_id": str(report.reporter_id) if report.reporter_id else None,
        "content_type": report.content_type,
        "content_id": str(report.content_id),
        "reason": report.reason,
        "status": report.status,
        "reviewed_by": str(report.reviewed_by) if report.reviewed_by else None,
        "reviewed_at": report.reviewed_at.isoformat() if report.reviewed_at else None,
        "created_at": report.created_at.isoformat(),
    }
