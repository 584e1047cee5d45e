"""
Profile endpoints

Endpoint                      Status Codes
----------------------------  --------------------------------------------------
GET /                         200(OK)
GET /me                       200(OK)
GET /{profile_id}             200(OK), 404(Not Found)
POST /                        201(Created), 403(Forbidden), 422(Unprocessable Entity)
PUT /me                       200(OK), 422(Unprocessable Entity)
GET /{profile_id}/permissions 200(OK), 404(Not Found)
PUT /{profile_id}/role        200(OK), 403(Forbidden), 404(Not Found), 422
PUT /{profile_id}/manager     200(OK), 403(Forbidden), 404(Not Found), 422
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.api.v1.deps import get_current_user
from taskboard.core.database import get_db
from taskboard.core.errors import TaskboardError
from taskboard.core.logger import get_logger
from taskboard.domain.permissions import UserRole
from taskboard.models.profile import (
    ManagerChangeRequest,
    Profile,
    ProfileCreate,
    ProfileRead,
    ProfileUpdate,
    RoleChangeRequest,
)
from taskboard.services import profile_service
from taskboard.services.change_feed import ChangeFeed, get_change_feed

logger = get_logger(__name__, logging.INFO)

router: APIRouter = APIRouter()


@router.get("/", response_model=list[ProfileRead])
async def get_profiles(
    role: UserRole | None = Query(default=None, description="Only users with this role"),
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ProfileRead]:
    """
    Retrieve all profiles
    """
    return await profile_service.list_profiles(db, role)


@router.get("/me", response_model=ProfileRead)
async def get_my_profile(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileRead:
    """
    Profile of the signed-in user
    """
    return await profile_service.read_profile(db, current_user)


@router.put("/me", response_model=ProfileRead)
async def update_my_profile(
    profile_data: ProfileUpdate,
    current_user: Profile = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> ProfileRead:
    """
    Update own name and avatar URL
    """

    try:
        return await profile_service.update_own_profile(db, current_user, profile_data, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to update profile {current_user.id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile.",
        )


@router.get("/{profile_id}", response_model=ProfileRead)
async def get_profile(
    profile_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileRead:
    """
    Get profile by ID
    """
    profile = await profile_service.get_profile(db, profile_id)
    return await profile_service.read_profile(db, profile)


@router.post("/", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
async def create_profile(
    profile_data: ProfileCreate,
    current_user: Profile = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> ProfileRead:
    """
    Create new profile (admin only)
    """

    try:
        return await profile_service.create_profile(db, current_user, profile_data, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create profile: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create profile.",
        )


@router.get("/{profile_id}/permissions")
async def get_permissions(
    profile_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    """
    What the signed-in user may do to this profile
    """
    target = await profile_service.get_profile(db, profile_id)
    return profile_service.permissions_against(current_user, target).to_dict()


@router.put("/{profile_id}/role", response_model=ProfileRead)
async def change_role(
    profile_id: uuid.UUID,
    request: RoleChangeRequest,
    current_user: Profile = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> ProfileRead:
    """
    Change a user's role

    Admins may change anyone but themselves; managers may only promote their own employees to team lead.
    """

    try:
        return await profile_service.change_role(db, current_user, profile_id, request.new_role, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to change role of {profile_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to change role.",
        )


@router.put("/{profile_id}/manager", response_model=ProfileRead)
async def change_manager(
    profile_id: uuid.UUID,
    request: ManagerChangeRequest,
    current_user: Profile = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> ProfileRead:
    """
    Assign or clear the manager of an employee or team lead
    """

    try:
        return await profile_service.change_manager(db, current_user, profile_id, request.manager_id, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to change manager of {profile_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to change manager.",
        )
