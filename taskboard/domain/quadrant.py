"""
Quadrant classifier

Maps a task's due date and completion state onto the Eisenhower-style board:

    Quadrant                  Rule (thresholds from SystemSettingsData)
    ------------------------  ------------------------------------------------
    1 Important & urgent      overdue, or due within `critical` days
    2 Important, not urgent   due within `medium` days
    3 Urgent, not important   due later than `medium` days
    4 Neither                 no due date
    5 Routine                 manual assignment only, never computed

Completed tasks keep whatever quadrant they had when they were completed.
All functions here are pure: `today` can be passed in, otherwise the local calendar date is used.
"""

from datetime import date, datetime
from enum import IntEnum
from typing import Any, Protocol

from taskboard.models.system_settings import SystemSettingsData


class Quadrant(IntEnum):
    """Priority buckets of the task board"""

    IMPORTANT_URGENT = 1
    IMPORTANT_NOT_URGENT = 2
    NOT_IMPORTANT_URGENT = 3
    NOT_IMPORTANT_NOT_URGENT = 4
    ROUTINE = 5


class ClassifiableTask(Protocol):
    due_date: date | datetime | None
    completed: bool
    quadrant: int


DEFAULT_SETTINGS = SystemSettingsData()


def calendar_date(value: date | datetime) -> date:
    """Calendar date of a due date; aware timestamps are read in the server's local calendar"""
    if isinstance(value, datetime):
        return value.astimezone().date() if value.tzinfo is not None else value.date()
    return value


def days_until_due(due_date: date | datetime, today: date | None = None) -> int:
    """Calendar-day difference between the due date and today (negative means overdue)"""
    return (calendar_date(due_date) - (today or date.today())).days


def determine_task_quadrant(
    task: ClassifiableTask,
    settings: SystemSettingsData | None = None,
    today: date | None = None,
) -> Quadrant:
    """
    Classify a task into quadrants 1-4.

    Args:
        task: anything with due_date, completed and quadrant attributes
        settings: thresholds source, defaults when None
        today: reference date, local date when None

    Returns:
        Quadrant (never ROUTINE)
    """
    if task.due_date is None:
        return Quadrant.NOT_IMPORTANT_NOT_URGENT

    if task.completed:
        return Quadrant(task.quadrant)

    days = days_until_due(task.due_date, today)
    if days < 0:
        return Quadrant.IMPORTANT_URGENT

    thresholds = (settings or DEFAULT_SETTINGS).task_due_date_thresholds
    if days <= thresholds.critical:
        return Quadrant.IMPORTANT_URGENT
    if days <= thresholds.medium:
        return Quadrant.IMPORTANT_NOT_URGENT
    return Quadrant.NOT_IMPORTANT_URGENT


def is_quadrant_pinned(task: Any) -> bool:
    """Routine tasks and manually moved tasks are exempt from date-based reclassification"""
    return task.quadrant == Quadrant.ROUTINE or bool(getattr(task, "quadrant_override", False))


def reclassify_task(
    task: ClassifiableTask,
    settings: SystemSettingsData | None = None,
    today: date | None = None,
) -> Quadrant:
    """Quadrant a task should carry when it is fetched"""
    if is_quadrant_pinned(task):
        return Quadrant(task.quadrant)
    return determine_task_quadrant(task, settings, today)


def priority_label(task: ClassifiableTask, today: date | None = None) -> str:
    """Human readable due-date status shown next to a task"""
    if task.completed:
        return "Completed"
    if task.due_date is None:
        return "No due date"

    days = days_until_due(task.due_date, today)
    if days < 0:
        return f"Overdue by {abs(days)} days"
    if days == 0:
        return "Due today!"
    return f"Due in {days} days"
