"""
Daily report service

Reports belong to the user who submitted them; there is one per user per date and re-submitting
the same date replaces it.
"""

import logging
import uuid
from datetime import UTC, date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.errors import NotFound, PermissionDenied, ValidationError
from taskboard.core.logger import get_logger
from taskboard.domain.permissions import UserRole
from taskboard.domain.reports import normalize_report, report_status
from taskboard.models.profile import Profile
from taskboard.models.report import DailyReport, ReportRead, ReportSubmit, ReportTask

logger = get_logger(__name__, logging.INFO)


def to_read(report: DailyReport) -> ReportRead:
    return ReportRead(
        id=report.id,
        user_id=report.user_id,
        report_date=report.report_date,
        is_on_leave=report.is_on_leave,
        is_half_day=report.is_half_day,
        tasks=[ReportTask.model_validate(task) for task in report.tasks or []],
        status=report_status(report),
        created_at=report.created_at,
        updated_at=report.updated_at,
    )


async def _find(db: AsyncSession, user_id: uuid.UUID, report_date: date) -> DailyReport | None:
    result = await db.execute(
        select(DailyReport).where(
            DailyReport.user_id == user_id,  # type: ignore[arg-type]
            DailyReport.report_date == report_date,  # type: ignore[arg-type]
        )
    )
    return result.scalar_one_or_none()


async def submit_report(db: AsyncSession, current_user: Profile, data: ReportSubmit) -> ReportRead:
    """
    Create or replace the current user's report for a date.

    Raises:
        ValidationError: when a working-day report has no tasks or incomplete task lines
    """
    report_data = normalize_report(data)
    tasks = [task.model_dump(mode="json") for task in report_data.tasks]

    report = await _find(db, current_user.id, report_data.report_date)
    if report is None:
        report = DailyReport(user_id=current_user.id, report_date=report_data.report_date)
        logger.info(f"New report for {current_user.id} on {report_data.report_date}")

    report.is_on_leave = report_data.is_on_leave
    report.is_half_day = report_data.is_half_day
    report.tasks = tasks
    report.updated_at = datetime.now(UTC)

    db.add(report)
    await db.commit()
    await db.refresh(report)
    return to_read(report)


async def list_reports(
    db: AsyncSession,
    current_user: Profile,
    start: date | None = None,
    end: date | None = None,
) -> list[ReportRead]:
    if start is not None and end is not None and start > end:
        raise ValidationError("start must not be after end")

    query = select(DailyReport).where(DailyReport.user_id == current_user.id)  # type: ignore[arg-type]
    if start is not None:
        query = query.where(DailyReport.report_date >= start)  # type: ignore[arg-type, operator]
    if end is not None:
        query = query.where(DailyReport.report_date <= end)  # type: ignore[arg-type, operator]

    result = await db.execute(query.order_by(DailyReport.report_date.desc()))  # type: ignore[attr-defined]
    return [to_read(report) for report in result.scalars().all()]


async def get_report(db: AsyncSession, current_user: Profile, report_date: date) -> ReportRead:
    report = await _find(db, current_user.id, report_date)
    if report is None:
        raise NotFound(f"No report for {report_date.isoformat()}")
    return to_read(report)


async def delete_report(db: AsyncSession, current_user: Profile, report_id: uuid.UUID) -> None:
    report = await db.get(DailyReport, report_id)
    if report is None:
        raise NotFound("Report not found")
    if report.user_id != current_user.id and current_user.role != UserRole.ADMIN.value:
        raise PermissionDenied("You can only delete your own reports")

    await db.delete(report)
    await db.commit()
    logger.info(f"Report {report_id} deleted by {current_user.id}")
