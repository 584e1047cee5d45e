"""
Team and team membership models

The lead is stored as a team_members row with is_lead = true; every other row is a member.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlmodel import Field, SQLModel  # type: ignore[attr-defined]
from uuid_utils.compat import uuid7


class TeamBase(SQLModel):
    """Base team model"""

    name: str = Field(min_length=1, max_length=255, index=True)


class Team(TeamBase, table=True):
    """Team database model"""

    __tablename__ = "teams"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid7, primary_key=True)
    manager_id: uuid.UUID | None = Field(default=None, foreign_key="profiles.id", index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )


class TeamMember(SQLModel, table=True):
    """Team membership database model"""

    __tablename__ = "team_members"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid7, primary_key=True)
    team_id: uuid.UUID = Field(sa_column=Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), index=True))
    user_id: uuid.UUID = Field(foreign_key="profiles.id", index=True)
    is_lead: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )


class TeamCreate(TeamBase):
    """Schema for creating a team; managers may omit manager_id (defaults to themselves)"""

    manager_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None
    member_ids: list[uuid.UUID] = Field(default_factory=list)


class TeamUpdate(SQLModel):
    """Schema for updating a team; lead and members are replaced as a whole"""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    manager_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None
    member_ids: list[uuid.UUID] | None = None


class TeamRead(TeamBase):
    """Schema for reading a team"""

    id: uuid.UUID
    manager_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None
    member_ids: list[uuid.UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
