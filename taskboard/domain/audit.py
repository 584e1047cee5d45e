"""
Audit rules for due-date and progress changes

One audit row is planned per changed field. Rows are written only after the task update itself
has been committed; what happens when the audit write fails is decided by AuditWriteFailurePolicy.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from taskboard.domain.quadrant import calendar_date

DEFAULT_AUDIT_REASON = "No reason provided"


class AuditWriteFailurePolicy(str, Enum):
    """What to do when an audit row cannot be written after a committed task update"""

    LOG_AND_CONTINUE = "log_and_continue"
    RAISE = "raise"


class AuditKind(str, Enum):
    DUE_DATE = "due_date_change"
    PROGRESS = "task_progress_update"


@dataclass(frozen=True)
class PlannedAuditRow:
    kind: AuditKind
    task_id: Any
    old_value: Any
    new_value: Any
    reason: str


def due_date_changed(old: date | datetime | None, new: date | datetime | None) -> bool:
    """True when the calendar date the classifier sees differs (setting or clearing a due date counts)"""
    if old is None or new is None:
        return old is not new
    return calendar_date(old) != calendar_date(new)


def progress_changed(old: int | None, new: int | None) -> bool:
    return new is not None and old != new


def resolve_reason(reason: str | None) -> str:
    cleaned = (reason or "").strip()
    return cleaned or DEFAULT_AUDIT_REASON


def plan_audit_rows(
    task_id: Any,
    *,
    old_due_date: date | datetime | None = None,
    new_due_date: date | datetime | None = None,
    due_date_touched: bool = False,
    old_progress: int | None = None,
    new_progress: int | None = None,
    due_date_reason: str | None = None,
    progress_note: str | None = None,
) -> list[PlannedAuditRow]:
    """
    Plan the audit rows for a task update.

    Args:
        due_date_touched: the update set due_date (needed because None is a valid new value)
    """
    rows: list[PlannedAuditRow] = []

    if due_date_touched and due_date_changed(old_due_date, new_due_date):
        rows.append(
            PlannedAuditRow(
                kind=AuditKind.DUE_DATE,
                task_id=task_id,
                old_value=old_due_date,
                new_value=new_due_date,
                reason=resolve_reason(due_date_reason),
            )
        )

    if progress_changed(old_progress, new_progress):
        rows.append(
            PlannedAuditRow(
                kind=AuditKind.PROGRESS,
                task_id=task_id,
                old_value=old_progress,
                new_value=new_progress,
                reason=resolve_reason(progress_note),
            )
        )

    return rows
