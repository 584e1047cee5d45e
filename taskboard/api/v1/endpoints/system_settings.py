"""
System settings endpoints

Endpoint    Status Codes
----------  ------------------------------------------------------
GET /       200(OK)
PUT /       200(OK), 403(Forbidden), 422(Unprocessable Entity)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.api.v1.deps import get_current_user, get_system_settings
from taskboard.core.database import get_db
from taskboard.core.errors import TaskboardError
from taskboard.core.logger import get_logger
from taskboard.models.profile import Profile
from taskboard.models.system_settings import SystemSettingsData
from taskboard.services import settings_service

logger = get_logger(__name__, logging.INFO)

router: APIRouter = APIRouter()


@router.get("/", response_model=SystemSettingsData)
async def get_settings(
    current_user: Profile = Depends(get_current_user),
    settings_data: SystemSettingsData = Depends(get_system_settings),
) -> SystemSettingsData:
    """
    Current system settings (defaults until an admin saves them)
    """
    return settings_data


@router.put("/", response_model=SystemSettingsData)
async def update_settings(
    settings_data: SystemSettingsData,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SystemSettingsData:
    """
    Replace the system settings (admin only)
    """

    try:
        return await settings_service.save_system_settings(db, current_user, settings_data)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to save system settings: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save system settings.",
        )
