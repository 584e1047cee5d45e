"""
Database models
"""

from taskboard.models.audit import DueDateChange, TaskProgressUpdate
from taskboard.models.profile import Profile
from taskboard.models.report import DailyReport
from taskboard.models.system_settings import SystemSettings
from taskboard.models.task import Task
from taskboard.models.team import Team, TeamMember

__all__ = [
    "Profile",
    "Task",
    "Team",
    "TeamMember",
    "SystemSettings",
    "DueDateChange",
    "TaskProgressUpdate",
    "DailyReport",
]
