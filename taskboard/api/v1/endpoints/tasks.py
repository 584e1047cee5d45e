"""
Task endpoints

Endpoint                              Status Codes
------------------------------------  ---------------------------------------------------
GET /                                 200(OK), 403(Forbidden)
GET /{task_id}                        200(OK), 403(Forbidden), 404(Not Found)
POST /                                201(Created), 403(Forbidden), 422(Unprocessable Entity)
PUT /{task_id}                        200(OK), 403, 404, 422 (due date change without reason)
PATCH /{task_id}/quadrant             200(OK), 403, 404, 422
PATCH /{task_id}/progress             200(OK), 403, 404, 422 (decrease, or increase without note)
PATCH /{task_id}/completion           200(OK), 403, 404
DELETE /{task_id}                     204(No Content), 403, 404
GET /{task_id}/due-date-changes       200(OK), 403, 404
GET /{task_id}/progress-updates       200(OK), 403, 404
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.api.v1.deps import get_current_user, get_system_settings
from taskboard.core.database import get_db
from taskboard.core.errors import TaskboardError
from taskboard.core.logger import get_logger
from taskboard.models.audit import DueDateChangeRead, TaskProgressUpdateRead
from taskboard.models.profile import Profile
from taskboard.models.system_settings import SortOrder, SystemSettingsData
from taskboard.models.task import (
    TaskCompletionRequest,
    TaskCreate,
    TaskMove,
    TaskPage,
    TaskProgressEditRequest,
    TaskRead,
    TaskUpdate,
)
from taskboard.services import audit_service, task_service
from taskboard.services.change_feed import ChangeFeed, get_change_feed

logger = get_logger(__name__, logging.INFO)

router: APIRouter = APIRouter()


@router.get("/", response_model=TaskPage)
async def get_tasks(
    assigned_to: uuid.UUID | None = Query(default=None, description="Only tasks assigned to this user"),
    hide_completed: bool = Query(default=False, description="Hide completed tasks"),
    sort: SortOrder | None = Query(default=None, description="Sort order (defaults to the system setting)"),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=100, description="Page size (defaults to tasks_per_page)"),
    current_user: Profile = Depends(get_current_user),
    settings_data: SystemSettingsData = Depends(get_system_settings),
    db: AsyncSession = Depends(get_db),
) -> TaskPage:
    """
    Retrieve the tasks visible to the current user

    Every task is re-classified with the current thresholds; changed quadrants are saved.
    """

    try:
        return await task_service.list_tasks(
            db,
            current_user,
            settings_data,
            assigned_to=assigned_to,
            hide_completed=hide_completed,
            sort=sort,
            page=page,
            limit=limit,
        )

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to list tasks: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list tasks.",
        )


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    settings_data: SystemSettingsData = Depends(get_system_settings),
    db: AsyncSession = Depends(get_db),
) -> TaskRead:
    """
    Get task by ID
    """
    return await task_service.get_task(db, current_user, task_id, settings_data)


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    current_user: Profile = Depends(get_current_user),
    settings_data: SystemSettingsData = Depends(get_system_settings),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> TaskRead:
    """
    Create new task

    The quadrant is computed from the due date unless quadrant 5 (routine) is requested.
    """

    try:
        return await task_service.create_task(db, current_user, task_data, settings_data, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create task: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create task.",
        )


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    task_data: TaskUpdate,
    current_user: Profile = Depends(get_current_user),
    settings_data: SystemSettingsData = Depends(get_system_settings),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> TaskRead:
    """
    Update task

    Changing the due date requires due_date_change_reason; the change is recorded in due_date_change.
    """

    try:
        return await task_service.update_task(db, current_user, task_id, task_data, settings_data, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to update task {task_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update task.",
        )


@router.patch("/{task_id}/quadrant", response_model=TaskRead)
async def move_task(
    task_id: uuid.UUID,
    move: TaskMove,
    current_user: Profile = Depends(get_current_user),
    settings_data: SystemSettingsData = Depends(get_system_settings),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> TaskRead:
    """
    Move a task onto a quadrant ({"quadrant": n}) or back to automatic placement ({"auto": true})
    """

    try:
        return await task_service.move_task(db, current_user, task_id, move, settings_data, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to move task {task_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to move task.",
        )


@router.patch("/{task_id}/progress", response_model=TaskRead)
async def edit_task_progress(
    task_id: uuid.UUID,
    edit: TaskProgressEditRequest,
    current_user: Profile = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> TaskRead:
    """
    Raise a task's progress

    Progress never decreases, and an increase is only saved together with a note.
    """

    try:
        return await task_service.edit_progress(db, current_user, task_id, edit, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to update progress of task {task_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update task progress.",
        )


@router.patch("/{task_id}/completion", response_model=TaskRead)
async def set_task_completion(
    task_id: uuid.UUID,
    completion: TaskCompletionRequest,
    current_user: Profile = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> TaskRead:
    """
    Mark a task completed (progress 100) or not completed (progress 0)
    """

    try:
        return await task_service.set_completion(db, current_user, task_id, completion.completed, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to toggle completion of task {task_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update task completion.",
        )


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete task
    """

    try:
        await task_service.delete_task(db, current_user, task_id, feed)

    except (HTTPException, TaskboardError):
        await db.rollback()
        raise

    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to delete task {task_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete task.",
        )


@router.get("/{task_id}/due-date-changes", response_model=list[DueDateChangeRead])
async def get_due_date_changes(
    task_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Due date history of a task, newest first
    """
    await task_service.load_task(db, current_user, task_id)
    return await audit_service.list_due_date_changes(db, task_id)


@router.get("/{task_id}/progress-updates", response_model=list[TaskProgressUpdateRead])
async def get_progress_updates(
    task_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Progress history of a task, newest first
    """
    await task_service.load_task(db, current_user, task_id)
    return await audit_service.list_progress_updates(db, task_id)
