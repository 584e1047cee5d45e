"""
Task model

quadrant_override is set when a user drags a task onto a quadrant; such tasks (and routine
quadrant-5 tasks) keep their quadrant when the board is re-classified on fetch.
"""

import uuid
from datetime import UTC, datetime

from pydantic import field_validator
from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel  # type: ignore[attr-defined]
from uuid_utils.compat import uuid7

DEFAULT_TASK_ICON = "📝"


class TaskBase(SQLModel):
    """Base task model"""

    title: str = Field(min_length=1, max_length=255, index=True)
    notes: str | None = Field(default=None)
    icon: str | None = Field(default=DEFAULT_TASK_ICON, max_length=32)


class Task(TaskBase, table=True):
    """Task database model"""

    __tablename__ = "tasks"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid7, primary_key=True)
    progress: int = Field(default=0, ge=0, le=100)
    created_by_id: uuid.UUID | None = Field(default=None, foreign_key="profiles.id", index=True)
    assigned_to_id: uuid.UUID | None = Field(default=None, foreign_key="profiles.id", index=True)
    due_date: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), index=True))
    completed: bool = Field(default=False)
    quadrant: int = Field(default=4, ge=1, le=5)
    quadrant_override: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), index=True),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )


def _strip_title(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        raise ValueError("Title is required")
    return stripped


class TaskCreate(TaskBase):
    """Schema for creating a task (quadrant is computed unless 5 = routine is requested)"""

    assigned_to_id: uuid.UUID | None = None
    due_date: datetime | None = None
    quadrant: int | None = Field(default=None, ge=1, le=5)

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        return _strip_title(value)  # type: ignore[return-value]


class TaskUpdate(SQLModel):
    """
    Schema for updating a task

    Changing due_date requires due_date_change_reason. Progress is not editable here; use the
    progress and completion endpoints.
    """

    title: str | None = Field(default=None, max_length=255)
    notes: str | None = None
    icon: str | None = Field(default=None, max_length=32)
    assigned_to_id: uuid.UUID | None = None
    due_date: datetime | None = None
    due_date_change_reason: str | None = Field(default=None, max_length=1024)

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        return _strip_title(value)


class TaskMove(SQLModel):
    """Manual move onto a quadrant; `auto` hands the task back to the classifier"""

    quadrant: int | None = Field(default=None, ge=1, le=5)
    auto: bool = False


class TaskProgressEditRequest(SQLModel):
    """Direct progress edit; an increase needs a note"""

    progress: int = Field(ge=0, le=100)
    note: str | None = Field(default=None, max_length=2048)


class TaskCompletionRequest(SQLModel):
    """Completion toggle target state"""

    completed: bool


class TaskRead(TaskBase):
    """Schema for reading a task"""

    id: uuid.UUID
    progress: int
    created_by_id: uuid.UUID | None = None
    created_by_name: str = "Unknown"
    assigned_to_id: uuid.UUID | None = None
    assigned_to_name: str = "Unassigned"
    due_date: datetime | None = None
    completed: bool
    quadrant: int
    quadrant_override: bool = False
    priority_label: str
    created_at: datetime
    updated_at: datetime


class TaskPage(SQLModel):
    """One page of the task board"""

    items: list[TaskRead]
    total: int
    page: int
    limit: int
