"""
Privileged functions (the only writers of profiles.role and profiles.manager_id)

Function                Status Codes
----------------------  ------------------------------------------------------------
update_user_role        200(OK), 400(Bad Request), 404(Not Found), 500(Internal Error)
update_user_manager     200(OK), 400(Bad Request), 404(Not Found), 500(Internal Error)

Both return a FunctionResult whose body is {"success": true} or {"error": "..."}; callers decide
whether the acting user may invoke them (see profile_service and the /functions endpoints).
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.logger import get_logger
from taskboard.domain.permissions import UserRole, can_hold_manager
from taskboard.models.profile import Profile, UpdateUserManagerPayload, UpdateUserRolePayload
from taskboard.services.change_feed import ChangeFeed

logger = get_logger(__name__, logging.INFO)


@dataclass
class FunctionResult:
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @classmethod
    def success(cls) -> "FunctionResult":
        return cls(200, {"success": True})

    @classmethod
    def error(cls, status_code: int, message: str) -> "FunctionResult":
        return cls(status_code, {"error": message})


async def update_user_role(
    db: AsyncSession,
    payload: UpdateUserRolePayload,
    feed: ChangeFeed | None = None,
) -> FunctionResult:
    """Set a user's role; admins and managers never report to a manager, so their manager_id is cleared"""
    if payload.user_id is None or not payload.new_role:
        return FunctionResult.error(400, "Missing required fields: user_id and new_role")

    try:
        new_role = UserRole(payload.new_role)
    except ValueError:
        return FunctionResult.error(400, f"Invalid role: {payload.new_role}")

    try:
        user = await db.get(Profile, payload.user_id)
        if user is None:
            return FunctionResult.error(404, "User not found")

        user.role = new_role.value
        if not can_hold_manager(new_role):
            user.manager_id = None
        user.updated_at = datetime.now(UTC)

        db.add(user)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to update role of {payload.user_id}: {e}", exc_info=True)
        return FunctionResult.error(500, str(e))

    logger.info(f"Role of {payload.user_id} set to {new_role.value}")
    if feed is not None:
        await feed.publish("profiles", "UPDATE", payload.user_id, {"role": new_role.value})
    return FunctionResult.success()


async def update_user_manager(
    db: AsyncSession,
    payload: UpdateUserManagerPayload,
    feed: ChangeFeed | None = None,
) -> FunctionResult:
    """Assign (or clear, with manager_id = null) the manager of an employee or team lead"""
    if payload.user_id is None:
        return FunctionResult.error(400, "Missing required field: user_id")

    if payload.manager_id is not None and payload.manager_id == payload.user_id:
        return FunctionResult.error(400, "A user cannot be their own manager")

    try:
        user = await db.get(Profile, payload.user_id)
        if user is None:
            return FunctionResult.error(404, "User not found")

        if not can_hold_manager(user.role):
            return FunctionResult.error(400, "Only employees and team leads can be assigned a manager")

        if payload.manager_id is not None:
            manager = await db.get(Profile, payload.manager_id)
            if manager is None:
                return FunctionResult.error(404, "Manager not found")
            if manager.role != UserRole.MANAGER.value:
                return FunctionResult.error(400, "Assigned manager must have the manager role")

        user.manager_id = payload.manager_id
        user.updated_at = datetime.now(UTC)

        db.add(user)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to update manager of {payload.user_id}: {e}", exc_info=True)
        return FunctionResult.error(500, str(e))

    logger.info(f"Manager of {payload.user_id} set to {payload.manager_id}")
    if feed is not None:
        await feed.publish("profiles", "UPDATE", payload.user_id, {"manager_id": payload.manager_id})
    return FunctionResult.success()
