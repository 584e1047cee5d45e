"""
Task service

Operation                       Audit rows                     Change event
------------------------------  -----------------------------  ------------
create_task                     -                              INSERT
update_task                     due_date_change (if moved)     UPDATE
move_task                       -                              UPDATE
edit_progress                   task_progress_update           UPDATE
set_completion                  task_progress_update           UPDATE
delete_task                     -                              DELETE

Visibility: admins see every task; everyone sees tasks they created or are assigned; managers also
see tasks of users reporting to them; team leads also see tasks of the members of teams they lead.
Every fetch re-classifies unpinned tasks with the current settings and persists changed quadrants.
"""

import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.errors import NotFound, PermissionDenied, ValidationError
from taskboard.core.logger import get_logger
from taskboard.domain.audit import DEFAULT_AUDIT_REASON, due_date_changed, plan_audit_rows
from taskboard.domain.permissions import UserRole, can_access_user_tasks, get_user_permissions
from taskboard.domain.progress import begin_progress_edit, is_completed_progress, next_progress
from taskboard.domain.quadrant import (
    Quadrant,
    determine_task_quadrant,
    is_quadrant_pinned,
    priority_label,
    reclassify_task,
)
from taskboard.models.profile import Profile
from taskboard.models.system_settings import SortOrder, SystemSettingsData
from taskboard.models.task import (
    Task,
    TaskCreate,
    TaskMove,
    TaskPage,
    TaskProgressEditRequest,
    TaskRead,
    TaskUpdate,
)
from taskboard.models.team import TeamMember
from taskboard.services.audit_service import write_audit_rows
from taskboard.services.change_feed import ChangeFeed

logger = get_logger(__name__, logging.INFO)


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


async def led_member_ids(db: AsyncSession, lead_id: uuid.UUID) -> set[uuid.UUID]:
    """Members of every team the user leads"""
    led_teams = select(TeamMember.team_id).where(
        TeamMember.user_id == lead_id,  # type: ignore[arg-type]
        TeamMember.is_lead.is_(True),  # type: ignore[attr-defined]
    )
    result = await db.execute(
        select(TeamMember.user_id).where(TeamMember.team_id.in_(led_teams))  # type: ignore[attr-defined]
    )
    return {user_id for user_id in result.scalars().all() if user_id != lead_id}


async def can_access_user(db: AsyncSession, current_user: Profile, target_user_id: uuid.UUID | None) -> bool:
    """Whether the current user may see and update tasks assigned to the target user"""
    if target_user_id is None:
        return False

    role = UserRole(current_user.role)
    target_manager_id = None
    led_ids: set[uuid.UUID] = set()

    if role == UserRole.MANAGER:
        target = await db.get(Profile, target_user_id)
        target_manager_id = target.manager_id if target else None
    elif role == UserRole.TEAM_LEAD:
        led_ids = await led_member_ids(db, current_user.id)

    return can_access_user_tasks(
        role,
        current_user.id,
        target_user_id,
        target_manager_id=target_manager_id,
        led_member_ids=led_ids,
    )


async def can_access_task(db: AsyncSession, current_user: Profile, task: Task) -> bool:
    if current_user.role == UserRole.ADMIN.value:
        return True
    if current_user.id in (task.created_by_id, task.assigned_to_id):
        return True
    return await can_access_user(db, current_user, task.assigned_to_id)


async def _scope_filter(db: AsyncSession, current_user: Profile):
    """WHERE clause restricting tasks to the current user's scope (None = unrestricted)"""
    role = UserRole(current_user.role)
    if role == UserRole.ADMIN:
        return None

    clauses = [
        Task.created_by_id == current_user.id,  # type: ignore[arg-type]
        Task.assigned_to_id == current_user.id,  # type: ignore[arg-type]
    ]
    if role == UserRole.MANAGER:
        reports = select(Profile.id).where(Profile.manager_id == current_user.id)  # type: ignore[arg-type]
        clauses.append(Task.assigned_to_id.in_(reports))  # type: ignore[union-attr]
    elif role == UserRole.TEAM_LEAD:
        led_ids = await led_member_ids(db, current_user.id)
        if led_ids:
            clauses.append(Task.assigned_to_id.in_(list(led_ids)))  # type: ignore[union-attr]

    return or_(*clauses)


async def load_task(db: AsyncSession, current_user: Profile, task_id: uuid.UUID) -> Task:
    """Fetch a task the user can see, without reclassifying it (404, then 403)"""
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")
    if not await can_access_task(db, current_user, task):
        logger.info(f"User {current_user.id} denied access to task {task_id}")
        raise PermissionDenied("You do not have access to this task")
    return task


def _require_task_updates(current_user: Profile) -> None:
    if not get_user_permissions(current_user.role).can_update_tasks:
        raise PermissionDenied("You are not allowed to update tasks")


# ---------------------------------------------------------------------------
# Read helpers
# ---------------------------------------------------------------------------


async def _profile_names(db: AsyncSession, ids: Iterable[uuid.UUID | None]) -> dict[uuid.UUID, str]:
    wanted = {profile_id for profile_id in ids if profile_id is not None}
    if not wanted:
        return {}
    result = await db.execute(select(Profile.id, Profile.name).where(Profile.id.in_(wanted)))  # type: ignore[attr-defined]
    return {row.id: row.name for row in result.all()}


def to_read(task: Task, names: dict[uuid.UUID, str], today: date | None = None) -> TaskRead:
    created_by_name = names.get(task.created_by_id) if task.created_by_id else None
    assigned_to_name = names.get(task.assigned_to_id) if task.assigned_to_id else None
    return TaskRead(
        id=task.id,
        title=task.title,
        notes=task.notes,
        icon=task.icon,
        progress=task.progress,
        created_by_id=task.created_by_id,
        created_by_name=created_by_name or "Unknown",
        assigned_to_id=task.assigned_to_id,
        assigned_to_name=assigned_to_name or "Unassigned",
        due_date=task.due_date,
        completed=task.completed,
        quadrant=task.quadrant,
        quadrant_override=task.quadrant_override,
        priority_label=priority_label(task, today),
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


async def _read_one(db: AsyncSession, task: Task, today: date | None = None) -> TaskRead:
    names = await _profile_names(db, (task.created_by_id, task.assigned_to_id))
    return to_read(task, names, today)


async def refresh_quadrants(
    db: AsyncSession,
    tasks: Sequence[Task],
    settings_data: SystemSettingsData,
    today: date | None = None,
) -> int:
    """
    Re-classify fetched tasks and persist the ones whose quadrant changed.

    Returns:
        number of tasks whose quadrant changed
    """
    changed = 0
    for task in tasks:
        quadrant = reclassify_task(task, settings_data, today)
        if quadrant != task.quadrant:
            logger.debug(f"Task {task.id} moved from quadrant {task.quadrant} to {int(quadrant)}")
            task.quadrant = int(quadrant)
            db.add(task)
            changed += 1

    if changed:
        await db.commit()
    return changed


def sort_tasks(tasks: Sequence[Task], sort_order: SortOrder) -> list[Task]:
    """
    Order tasks for the board.

    Date orders put tasks without a due date last. Priority orders group by quadrant and keep
    due-date order inside a quadrant.
    """
    dated = [task for task in tasks if task.due_date is not None]
    undated = [task for task in tasks if task.due_date is None]
    dated.sort(key=lambda task: task.due_date, reverse=sort_order == "duedate-desc")
    ordered = dated + undated

    # list.sort is stable, so ties keep their due-date order
    if sort_order == "priority-asc":
        ordered.sort(key=lambda task: task.quadrant)
    elif sort_order == "priority-desc":
        ordered.sort(key=lambda task: task.quadrant, reverse=True)

    return ordered


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_tasks(
    db: AsyncSession,
    current_user: Profile,
    settings_data: SystemSettingsData,
    *,
    assigned_to: uuid.UUID | None = None,
    hide_completed: bool = False,
    sort: SortOrder | None = None,
    page: int = 1,
    limit: int | None = None,
    today: date | None = None,
) -> TaskPage:
    """
    Tasks visible to the current user, re-classified and paginated.

    Raises:
        PermissionDenied: if assigned_to names a user outside the current user's scope
    """
    if not get_user_permissions(current_user.role).can_view_tasks:
        raise PermissionDenied("You are not allowed to view tasks")

    query = select(Task)
    scope = await _scope_filter(db, current_user)
    if scope is not None:
        query = query.where(scope)

    if assigned_to is not None:
        if not await can_access_user(db, current_user, assigned_to):
            raise PermissionDenied("You do not have access to this user's tasks")
        query = query.where(Task.assigned_to_id == assigned_to)  # type: ignore[arg-type]

    if hide_completed:
        query = query.where(Task.completed.is_(False))  # type: ignore[attr-defined]

    result = await db.execute(query)
    tasks = list(result.scalars().all())

    await refresh_quadrants(db, tasks, settings_data, today)

    ordered = sort_tasks(tasks, sort or settings_data.default_sort_order)
    page_size = limit or settings_data.tasks_per_page
    start = (page - 1) * page_size
    page_items = ordered[start : start + page_size]

    referenced = [task.created_by_id for task in page_items] + [task.assigned_to_id for task in page_items]
    names = await _profile_names(db, referenced)
    return TaskPage(
        items=[to_read(task, names, today) for task in page_items],
        total=len(ordered),
        page=page,
        limit=page_size,
    )


async def get_task(
    db: AsyncSession,
    current_user: Profile,
    task_id: uuid.UUID,
    settings_data: SystemSettingsData,
    today: date | None = None,
) -> TaskRead:
    task = await load_task(db, current_user, task_id)
    await refresh_quadrants(db, [task], settings_data, today)
    return await _read_one(db, task, today)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_task(
    db: AsyncSession,
    current_user: Profile,
    data: TaskCreate,
    settings_data: SystemSettingsData,
    feed: ChangeFeed,
    today: date | None = None,
) -> TaskRead:
    """
    Create a task assigned to a user in the current user's scope.

    Raises:
        ValidationError: if the assignee is missing or does not exist
        PermissionDenied: if the assignee is outside the current user's scope
    """
    _require_task_updates(current_user)

    if data.assigned_to_id is None:
        raise ValidationError("Assignee is required")

    assignee = await db.get(Profile, data.assigned_to_id)
    if assignee is None:
        raise ValidationError("Assigned user does not exist")

    if not await can_access_user(db, current_user, assignee.id):
        raise PermissionDenied("You cannot assign tasks to this user")

    task = Task(
        title=data.title,
        notes=data.notes,
        icon=data.icon,
        assigned_to_id=assignee.id,
        created_by_id=current_user.id,
        due_date=data.due_date,
    )
    if data.quadrant == Quadrant.ROUTINE:
        task.quadrant = int(Quadrant.ROUTINE)
    else:
        task.quadrant = int(determine_task_quadrant(task, settings_data, today))

    db.add(task)
    await db.commit()
    await db.refresh(task)

    logger.info(f"Task {task.id} created by {current_user.id} in quadrant {task.quadrant}")
    await feed.publish("tasks", "INSERT", task.id, {"assigned_to_id": task.assigned_to_id})
    return await _read_one(db, task, today)


async def update_task(
    db: AsyncSession,
    current_user: Profile,
    task_id: uuid.UUID,
    data: TaskUpdate,
    settings_data: SystemSettingsData,
    feed: ChangeFeed,
    today: date | None = None,
) -> TaskRead:
    """
    Partial update. A due-date change needs a reason and is audited after the update commits.

    Raises:
        ValidationError: on a blank title, a missing assignee, or a due-date change without reason
    """
    _require_task_updates(current_user)
    task = await load_task(db, current_user, task_id)

    update_data = data.model_dump(exclude_unset=True)
    reason = update_data.pop("due_date_change_reason", None)

    old_due_date = task.due_date
    due_date_touched = "due_date" in update_data
    new_due_date = update_data.get("due_date", old_due_date)
    moved = due_date_touched and due_date_changed(old_due_date, new_due_date)

    if moved and not (reason or "").strip():
        raise ValidationError("A reason is required to change the due date")

    if "title" in update_data and update_data["title"] is None:
        raise ValidationError("Title is required")

    if "assigned_to_id" in update_data:
        assignee_id = update_data["assigned_to_id"]
        if assignee_id is None:
            raise ValidationError("Assignee is required")
        if await db.get(Profile, assignee_id) is None:
            raise ValidationError("Assigned user does not exist")
        if assignee_id != task.assigned_to_id and not await can_access_user(db, current_user, assignee_id):
            raise PermissionDenied("You cannot assign tasks to this user")

    for field, value in update_data.items():
        setattr(task, field, value)

    if moved and not task.completed and not is_quadrant_pinned(task):
        task.quadrant = int(determine_task_quadrant(task, settings_data, today))

    task.updated_at = datetime.now(UTC)
    db.add(task)
    await db.commit()
    await db.refresh(task)

    planned = plan_audit_rows(
        task.id,
        old_due_date=old_due_date,
        new_due_date=task.due_date,
        due_date_touched=due_date_touched,
        due_date_reason=reason,
    )
    if planned:
        await write_audit_rows(db, planned)
        await db.refresh(task)

    await feed.publish("tasks", "UPDATE", task.id, {"fields": sorted(update_data)})
    return await _read_one(db, task, today)


async def move_task(
    db: AsyncSession,
    current_user: Profile,
    task_id: uuid.UUID,
    move: TaskMove,
    settings_data: SystemSettingsData,
    feed: ChangeFeed,
    today: date | None = None,
) -> TaskRead:
    """Manual move onto a quadrant (pins it), or hand the task back to the classifier"""
    _require_task_updates(current_user)
    task = await load_task(db, current_user, task_id)

    if move.auto:
        task.quadrant_override = False
        task.quadrant = int(determine_task_quadrant(task, settings_data, today))
    else:
        if move.quadrant is None:
            raise ValidationError("Quadrant is required unless moving back to automatic")
        task.quadrant = move.quadrant
        task.quadrant_override = True

    task.updated_at = datetime.now(UTC)
    db.add(task)
    await db.commit()
    await db.refresh(task)

    logger.info(f"Task {task.id} moved to quadrant {task.quadrant} (override={task.quadrant_override})")
    await feed.publish("tasks", "UPDATE", task.id, {"quadrant": task.quadrant})
    return await _read_one(db, task, today)


async def edit_progress(
    db: AsyncSession,
    current_user: Profile,
    task_id: uuid.UUID,
    request: TaskProgressEditRequest,
    feed: ChangeFeed,
    today: date | None = None,
) -> TaskRead:
    """
    Direct progress edit. The increase is only stored once a note is supplied; reaching 100
    completes the task.

    Raises:
        ValidationError: on a decrease, or an increase without a note (nothing is stored)
    """
    _require_task_updates(current_user)
    task = await load_task(db, current_user, task_id)

    edit = begin_progress_edit(task.progress, request.progress)
    try:
        edit.confirm(request.note)
    except ValidationError:
        edit.cancel()
        logger.info(f"Progress edit on task {task.id} rolled back: no note supplied")
        raise

    if not edit.is_change:
        return await _read_one(db, task, today)

    task.progress = edit.value
    if is_completed_progress(task.progress):
        task.completed = True
    task.updated_at = datetime.now(UTC)
    db.add(task)
    await db.commit()
    await db.refresh(task)

    planned = plan_audit_rows(
        task.id,
        old_progress=edit.previous,
        new_progress=task.progress,
        progress_note=edit.note,
    )
    await write_audit_rows(db, planned)
    await db.refresh(task)

    await feed.publish("tasks", "UPDATE", task.id, {"progress": task.progress})
    return await _read_one(db, task, today)


async def set_completion(
    db: AsyncSession,
    current_user: Profile,
    task_id: uuid.UUID,
    completed: bool,
    feed: ChangeFeed,
    today: date | None = None,
) -> TaskRead:
    """Completion toggle; progress is forced to 100 or reset to 0"""
    _require_task_updates(current_user)
    task = await load_task(db, current_user, task_id)

    old_progress = task.progress
    task.completed = completed
    task.progress = next_progress(old_progress, completed)
    task.updated_at = datetime.now(UTC)
    db.add(task)
    await db.commit()
    await db.refresh(task)

    planned = plan_audit_rows(
        task.id,
        old_progress=old_progress,
        new_progress=task.progress,
        progress_note=DEFAULT_AUDIT_REASON,
    )
    if planned:
        await write_audit_rows(db, planned)
        await db.refresh(task)

    await feed.publish("tasks", "UPDATE", task.id, {"completed": task.completed})
    return await _read_one(db, task, today)


async def delete_task(
    db: AsyncSession,
    current_user: Profile,
    task_id: uuid.UUID,
    feed: ChangeFeed,
) -> None:
    _require_task_updates(current_user)
    task = await load_task(db, current_user, task_id)

    await db.delete(task)
    await db.commit()

    logger.info(f"Task {task_id} deleted by {current_user.id}")
    await feed.publish("tasks", "DELETE", task_id)
