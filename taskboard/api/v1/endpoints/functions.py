"""
Privileged function endpoints

Endpoint                      Status Codes
----------------------------  ------------------------------------------------------------
POST /update-user-role        200(OK), 400(Bad Request), 403(Forbidden), 404(Not Found), 500
POST /update-user-manager     200(OK), 400(Bad Request), 403(Forbidden), 404(Not Found), 500

Responses are {"success": true} or {"error": "..."}. These run with elevated rights and skip the
per-user permission model; they require an admin API key when API keys are configured.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.api.v1.deps import require_admin_api_key
from taskboard.core.database import get_db
from taskboard.core.logger import get_logger
from taskboard.models.profile import UpdateUserManagerPayload, UpdateUserRolePayload
from taskboard.services import admin_functions
from taskboard.services.change_feed import ChangeFeed, get_change_feed

logger = get_logger(__name__, logging.INFO)

router: APIRouter = APIRouter(dependencies=[Depends(require_admin_api_key)])


@router.post("/update-user-role")
async def update_user_role(
    payload: UpdateUserRolePayload,
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Set a user's role (clears manager_id for admins and managers)
    """
    result = await admin_functions.update_user_role(db, payload, feed)
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.post("/update-user-manager")
async def update_user_manager(
    payload: UpdateUserManagerPayload,
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Set or clear the manager of an employee or team lead
    """
    result = await admin_functions.update_user_manager(db, payload, feed)
    return JSONResponse(status_code=result.status_code, content=result.body)
