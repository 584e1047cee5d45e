"""
Shared endpoint dependencies

Sign-in happens in the external auth provider; requests carry the signed-in user's profile id in
the X-User-Id header.
"""

import logging
import uuid

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.config import settings
from taskboard.core.database import get_db
from taskboard.core.logger import get_logger
from taskboard.models.profile import Profile
from taskboard.models.system_settings import SystemSettingsData
from taskboard.services.settings_service import load_system_settings

logger = get_logger(__name__, logging.INFO)


async def _resolve_user(db: AsyncSession, raw_user_id: str | None) -> Profile:
    if not raw_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        user_id = uuid.UUID(raw_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user id")

    user = await db.get(Profile, user_id)
    if user is None:
        logger.warning(f"Unknown user id: {raw_user_id}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")

    return user


async def get_current_user(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """Resolve the acting user (401 when the header is missing or unknown)"""
    return await _resolve_user(db, x_user_id)


async def get_stream_user(
    user_id: str | None = Query(default=None, description="Acting user id (EventSource cannot send headers)"),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """Resolve the subscriber of an SSE stream from the X-User-Id header or the user_id query parameter"""
    return await _resolve_user(db, x_user_id or user_id)


async def get_system_settings(db: AsyncSession = Depends(get_db)) -> SystemSettingsData:
    """Settings snapshot for this request"""
    return await load_system_settings(db)


async def require_admin_api_key(request: Request) -> None:
    """Privileged functions need an admin-type API key whenever API keys are configured"""
    if not settings.api_keys:
        return

    key_info = getattr(request.state, "api_key_info", None)
    if key_info is None or key_info.get("type") != "admin":
        logger.warning(f"Privileged function {request.url.path} called without an admin API key")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin API key required")
