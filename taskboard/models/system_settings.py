"""
System settings model

A single global row (id = "global") holds the settings document as JSON. A missing row means
"use the defaults" below; the row is created lazily on the first save.
"""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field as PydanticField, model_validator
from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel  # type: ignore[attr-defined]

from taskboard.core.database import JSONType

GLOBAL_SETTINGS_ID = "global"

SortOrder = Literal["duedate-asc", "duedate-desc", "priority-asc", "priority-desc"]


class TaskDueDateThresholds(BaseModel):
    """Day thresholds used by the quadrant classifier"""

    critical: int = PydanticField(default=2, ge=0)  # <= critical days -> quadrant 1
    medium: int = PydanticField(default=5, ge=0)  # <= medium days -> quadrant 2
    low: int = PydanticField(default=5, ge=0)  # documentation only; anything later -> quadrant 3

    @model_validator(mode="after")
    def check_order(self) -> "TaskDueDateThresholds":
        if not self.critical <= self.medium <= self.low:
            raise ValueError("thresholds must satisfy critical <= medium <= low")
        return self


class SystemSettingsData(BaseModel):
    """Settings document passed explicitly to the classifier and list endpoints"""

    task_due_date_thresholds: TaskDueDateThresholds = PydanticField(default_factory=TaskDueDateThresholds)
    tasks_per_page: int = PydanticField(default=10, ge=1, le=100)
    default_sort_order: SortOrder = "duedate-asc"
    mark_overdue_days: int = PydanticField(default=3, ge=0)
    warning_days: int = PydanticField(default=2, ge=0)


class SystemSettings(SQLModel, table=True):
    """System settings database model"""

    __tablename__ = "system_settings"  # type: ignore[assignment]

    id: str = Field(default=GLOBAL_SETTINGS_ID, max_length=32, primary_key=True)
    settings: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSONType, nullable=False))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )
