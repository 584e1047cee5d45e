"""
Daily report rules

A report on leave carries no tasks and cannot be a half day. Any other report needs at least
one task, each with a description and the person who issued it.
"""

from typing import Any, Literal

from taskboard.core.errors import ValidationError
from taskboard.models.report import ReportSubmit

ReportStatus = Literal["on-leave", "half-day", "completed", "none"]


def normalize_report(report: ReportSubmit) -> ReportSubmit:
    """
    Apply the leave rules and validate the task lines.

    Raises:
        ValidationError: when a working-day report is missing tasks or task details
    """
    if report.is_on_leave:
        return report.model_copy(update={"tasks": [], "is_half_day": False})

    if not report.tasks:
        raise ValidationError("At least one task is required unless on leave")

    for index, task in enumerate(report.tasks, start=1):
        if not task.description.strip():
            raise ValidationError(f"Task {index}: description is required")
        if not task.issued_by.strip():
            raise ValidationError(f"Task {index}: issued by is required")

    return report


def report_status(report: Any | None) -> ReportStatus:
    """Status shown on the report calendar for a single day"""
    if report is None:
        return "none"
    if report.is_on_leave:
        return "on-leave"
    if report.is_half_day:
        return "half-day"
    return "completed"
