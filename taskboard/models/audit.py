"""
Audit trail models (append-only)

Table                   Written when
----------------------  ---------------------------------------------------------
due_date_change         a task's due date moves to a different calendar date
task_progress_update    a task's progress value changes

There are no update or delete schemas: rows are never modified by the application.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid
from sqlmodel import Field, SQLModel  # type: ignore[attr-defined]
from uuid_utils.compat import uuid7


class DueDateChange(SQLModel, table=True):
    """Due date change database model"""

    __tablename__ = "due_date_change"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid7, primary_key=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), index=True),
    )
    task_id: uuid.UUID = Field(sa_column=Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), index=True))
    last_due_date: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    updated_due_date: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    reason_to_change: str = Field(sa_column=Column(Text, nullable=False))


class TaskProgressUpdate(SQLModel, table=True):
    """Task progress update database model"""

    __tablename__ = "task_progress_update"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid7, primary_key=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), index=True),
    )
    task_id: uuid.UUID = Field(sa_column=Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), index=True))
    previous_progress: int
    current_progress: int
    updates: str = Field(sa_column=Column(Text, nullable=False))


class DueDateChangeRead(SQLModel):
    """Schema for reading a due date change"""

    id: uuid.UUID
    created_at: datetime
    task_id: uuid.UUID
    last_due_date: datetime | None = None
    updated_due_date: datetime | None = None
    reason_to_change: str


class TaskProgressUpdateRead(SQLModel):
    """Schema for reading a progress update"""

    id: uuid.UUID
    created_at: datetime
    task_id: uuid.UUID
    previous_progress: int
    current_progress: int
    updates: str
