"""
Audit row persistence

Called after the task update has been committed. The rows go into their own transaction, so a
failure here never undoes the task change; AUDIT_WRITE_FAILURE_POLICY decides whether the caller
sees the failure.
"""

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.config import settings
from taskboard.core.errors import PersistenceError
from taskboard.core.logger import get_logger
from taskboard.domain.audit import AuditKind, AuditWriteFailurePolicy, PlannedAuditRow
from taskboard.models.audit import DueDateChange, TaskProgressUpdate

logger = get_logger(__name__, logging.INFO)


def _to_row(planned: PlannedAuditRow) -> DueDateChange | TaskProgressUpdate:
    if planned.kind == AuditKind.DUE_DATE:
        return DueDateChange(
            task_id=planned.task_id,
            last_due_date=planned.old_value,
            updated_due_date=planned.new_value,
            reason_to_change=planned.reason,
        )
    return TaskProgressUpdate(
        task_id=planned.task_id,
        previous_progress=planned.old_value,
        current_progress=planned.new_value,
        updates=planned.reason,
    )


async def write_audit_rows(
    db: AsyncSession,
    planned: Sequence[PlannedAuditRow],
    policy: AuditWriteFailurePolicy | None = None,
) -> int:
    """
    Persist planned audit rows.

    Returns:
        number of rows written (0 when the write failed under LOG_AND_CONTINUE)

    Raises:
        PersistenceError: if the write failed and the policy is RAISE
    """
    if not planned:
        return 0

    policy = policy or AuditWriteFailurePolicy(settings.AUDIT_WRITE_FAILURE_POLICY)

    try:
        db.add_all([_to_row(row) for row in planned])
        await db.commit()
    except Exception as e:
        await db.rollback()
        kinds = ", ".join(row.kind.value for row in planned)
        logger.error(
            f"Audit write failed for task {planned[0].task_id} ({kinds}); task update is already committed: {e}",
            exc_info=True,
        )
        if policy == AuditWriteFailurePolicy.RAISE:
            raise PersistenceError("Task was updated but its audit trail could not be written") from e
        return 0

    return len(planned)


async def list_due_date_changes(db: AsyncSession, task_id: uuid.UUID) -> list[DueDateChange]:
    result = await db.execute(
        select(DueDateChange)
        .where(DueDateChange.task_id == task_id)  # type: ignore[arg-type]
        .order_by(DueDateChange.created_at.desc(), DueDateChange.id.desc())  # type: ignore[attr-defined, union-attr]
    )
    return list(result.scalars().all())


async def list_progress_updates(db: AsyncSession, task_id: uuid.UUID) -> list[TaskProgressUpdate]:
    result = await db.execute(
        select(TaskProgressUpdate)
        .where(TaskProgressUpdate.task_id == task_id)  # type: ignore[arg-type]
        .order_by(TaskProgressUpdate.created_at.desc(), TaskProgressUpdate.id.desc())  # type: ignore[attr-defined, union-attr]
    )
    return list(result.scalars().all())
