"""
Test daily report rules
"""

from datetime import date

import pytest

from taskboard.core.errors import ValidationError
from taskboard.domain.reports import normalize_report, report_status
from taskboard.models.report import ReportSubmit, ReportTask

DAY = date(2025, 5, 2)


def test_leave_clears_tasks_and_half_day():
    report = ReportSubmit(
        report_date=DAY,
        is_on_leave=True,
        is_half_day=True,
        tasks=[ReportTask(description="ignored", issued_by="nobody")],
    )

    normalized = normalize_report(report)

    assert normalized.tasks == []
    assert normalized.is_half_day is False
    assert report_status(normalized) == "on-leave"


def test_working_day_needs_tasks():
    with pytest.raises(ValidationError):
        normalize_report(ReportSubmit(report_date=DAY))


@pytest.mark.parametrize(
    "task",
    [
        ReportTask(description="", issued_by="Max"),
        ReportTask(description="Fix login", issued_by="  "),
    ],
)
def test_task_lines_need_description_and_issuer(task: ReportTask):
    with pytest.raises(ValidationError):
        normalize_report(ReportSubmit(report_date=DAY, tasks=[task]))


def test_status():
    task = ReportTask(description="Fix login", issued_by="Max", completion_percentage=50, status="In Progress")

    assert report_status(None) == "none"
    assert report_status(normalize_report(ReportSubmit(report_date=DAY, is_half_day=True, tasks=[task]))) == "half-day"
    assert report_status(normalize_report(ReportSubmit(report_date=DAY, tasks=[task]))) == "completed"
