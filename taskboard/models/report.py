"""
Daily report model

One report per user per calendar date. Tasks are stored inline as a JSON list.
"""

import uuid
from datetime import UTC, date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field as PydanticField
from sqlalchemy import Column, Date, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel  # type: ignore[attr-defined]
from uuid_utils.compat import uuid7

from taskboard.core.database import JSONType

ReportTaskStatus = Literal["Pending", "In Progress", "Completed"]


class ReportTask(BaseModel):
    """A single line of a daily report"""

    description: str = ""
    completion_percentage: int = PydanticField(default=0, ge=0, le=100)
    status: ReportTaskStatus = "Pending"
    comment: str | None = None
    issued_by: str = ""
    project: str | None = None


class DailyReport(SQLModel, table=True):
    """Daily report database model"""

    __tablename__ = "daily_reports"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("user_id", "report_date", name="uq_daily_reports_user_date"),)

    id: uuid.UUID = Field(default_factory=uuid7, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="profiles.id", index=True)
    report_date: date = Field(sa_column=Column(Date, nullable=False, index=True))
    is_on_leave: bool = Field(default=False)
    is_half_day: bool = Field(default=False)
    tasks: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )


class ReportSubmit(SQLModel):
    """Schema for submitting (or re-submitting) a report"""

    report_date: date
    is_on_leave: bool = False
    is_half_day: bool = False
    tasks: list[ReportTask] = Field(default_factory=list)


class ReportRead(SQLModel):
    """Schema for reading a report"""

    id: uuid.UUID
    user_id: uuid.UUID
    report_date: date
    is_on_leave: bool
    is_half_day: bool
    tasks: list[ReportTask]
    status: str
    created_at: datetime
    updated_at: datetime
