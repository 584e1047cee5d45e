"""
Daily report endpoints

Endpoint                Status Codes
----------------------  ------------------------------------------------
PUT /                   200(OK), 422(Unprocessable Entity)
GET /                   200(OK), 422(Unprocessable Entity)
GET /{report_date}      200(OK), 404(Not Found)
DELETE /{report_id}     204(No Content), 403(Forbidden), 404(Not Found)
"""

import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.api.v1.deps import get_current_user
from taskboard.core.database import get_db
from taskboard.core.errors import TaskboardError
from taskboard.core.logger import get_logger
from taskboard.models.profile import Profile
from taskboard.models.report import ReportRead, ReportSubmit
from taskboard.services import report_service

logger = get_logger(__name__, logging.INFO)

router: APIRouter = APIRouter()


@router.put("/", response_model=ReportRead)
async def submit_report(
    report_data: ReportSubmit,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ReportRead:
    """
    Submit the report for a date (replaces an earlier report for the same date)
    """

    try:
        return await report_service.submit_report(db, current_user, report_data)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to submit report: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit report.",
        )


@router.get("/", response_model=list[ReportRead])
async def get_reports(
    start: date | None = Query(default=None, description="First date (inclusive)"),
    end: date | None = Query(default=None, description="Last date (inclusive)"),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ReportRead]:
    """
    Own reports, newest first
    """
    return await report_service.list_reports(db, current_user, start, end)


@router.get("/{report_date}", response_model=ReportRead)
async def get_report(
    report_date: date,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ReportRead:
    """
    Own report for a date
    """
    return await report_service.get_report(db, current_user, report_date)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(
    report_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete a report
    """

    try:
        await report_service.delete_report(db, current_user, report_id)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to delete report {report_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete report.",
        )
