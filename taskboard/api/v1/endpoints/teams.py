"""
Team endpoints

Endpoint            Status Codes
------------------  ---------------------------------------------------------
GET /               200(OK), 403(Forbidden)
GET /{team_id}      200(OK), 403(Forbidden), 404(Not Found)
POST /              201(Created), 403(Forbidden), 422(Unprocessable Entity)
PUT /{team_id}      200(OK), 403(Forbidden), 404(Not Found), 422
DELETE /{team_id}   204(No Content), 403(Forbidden), 404(Not Found)
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.api.v1.deps import get_current_user
from taskboard.core.database import get_db
from taskboard.core.errors import TaskboardError
from taskboard.core.logger import get_logger
from taskboard.models.profile import Profile
from taskboard.models.team import TeamCreate, TeamRead, TeamUpdate
from taskboard.services import team_service
from taskboard.services.change_feed import ChangeFeed, get_change_feed

logger = get_logger(__name__, logging.INFO)

router: APIRouter = APIRouter()


@router.get("/", response_model=list[TeamRead])
async def get_teams(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[TeamRead]:
    """
    Teams visible to the current user
    """
    return await team_service.list_teams(db, current_user)


@router.get("/{team_id}", response_model=TeamRead)
async def get_team(
    team_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TeamRead:
    """
    Get team by ID
    """
    return await team_service.get_team(db, current_user, team_id)


@router.post("/", response_model=TeamRead, status_code=status.HTTP_201_CREATED)
async def create_team(
    team_data: TeamCreate,
    current_user: Profile = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> TeamRead:
    """
    Create new team with its lead and members
    """

    try:
        return await team_service.create_team(db, current_user, team_data, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create team: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create team.",
        )


@router.put("/{team_id}", response_model=TeamRead)
async def update_team(
    team_id: uuid.UUID,
    team_data: TeamUpdate,
    current_user: Profile = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> TeamRead:
    """
    Update team; lead_id and member_ids replace the current membership
    """

    try:
        return await team_service.update_team(db, current_user, team_id, team_data, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to update team {team_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update team.",
        )


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete team and its memberships
    """

    try:
        await team_service.delete_team(db, current_user, team_id, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to delete team {team_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete team.",
        )
