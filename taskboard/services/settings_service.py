"""
System settings persistence

The settings document is loaded per request and handed to the classifier explicitly; nothing
caches it in process memory.
"""

import logging
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.errors import PermissionDenied
from taskboard.core.logger import get_logger
from taskboard.domain.permissions import UserRole
from taskboard.models.profile import Profile
from taskboard.models.system_settings import GLOBAL_SETTINGS_ID, SystemSettings, SystemSettingsData

logger = get_logger(__name__, logging.INFO)


async def load_system_settings(db: AsyncSession) -> SystemSettingsData:
    """Read the global settings row; a missing or unreadable row yields the defaults"""
    result = await db.execute(select(SystemSettings).where(SystemSettings.id == GLOBAL_SETTINGS_ID))  # type: ignore[arg-type]
    row = result.scalar_one_or_none()
    if row is None:
        return SystemSettingsData()

    try:
        return SystemSettingsData.model_validate(row.settings or {})
    except PydanticValidationError as e:
        logger.warning(f"Stored system settings are invalid, using defaults: {e}")
        return SystemSettingsData()


async def save_system_settings(
    db: AsyncSession,
    current_user: Profile,
    data: SystemSettingsData,
) -> SystemSettingsData:
    """
    Upsert the global settings row (admin only).

    Raises:
        PermissionDenied: if the acting user is not an admin
    """
    if current_user.role != UserRole.ADMIN.value:
        raise PermissionDenied("Only admins can change system settings")

    result = await db.execute(select(SystemSettings).where(SystemSettings.id == GLOBAL_SETTINGS_ID))  # type: ignore[arg-type]
    row = result.scalar_one_or_none()

    document = data.model_dump(mode="json")
    if row is None:
        row = SystemSettings(id=GLOBAL_SETTINGS_ID, settings=document)
        logger.info("Creating global system settings row")
    else:
        row.settings = document
        row.updated_at = datetime.now(UTC)

    db.add(row)
    await db.commit()

    logger.info(f"System settings updated by {current_user.id}")
    return data
