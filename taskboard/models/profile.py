"""
Profile (user) model

role and manager_id are only written through the privileged functions in
taskboard.services.admin_functions; the regular profile update schema cannot touch them.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel  # type: ignore[attr-defined]
from uuid_utils.compat import uuid7

from taskboard.domain.permissions import UserRole


class ProfileBase(SQLModel):
    """Base profile model"""

    email: str = Field(unique=True, index=True, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    avatar_url: str | None = Field(default=None, max_length=1024)


class Profile(ProfileBase, table=True):
    """Profile database model"""

    __tablename__ = "profiles"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid7, primary_key=True)
    role: str = Field(default=UserRole.EMPLOYEE.value, sa_column=Column(String(32), nullable=False, index=True))
    manager_id: uuid.UUID | None = Field(default=None, foreign_key="profiles.id", index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True)),
    )


class ProfileCreate(ProfileBase):
    """Schema for creating a profile (admin only)"""

    role: UserRole = UserRole.EMPLOYEE
    manager_id: uuid.UUID | None = None


class ProfileUpdate(SQLModel):
    """Schema for a user updating their own profile"""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    avatar_url: str | None = Field(default=None, max_length=1024)


class ProfileRead(ProfileBase):
    """Schema for reading a profile"""

    id: uuid.UUID
    role: UserRole
    manager_id: uuid.UUID | None = None
    manager_name: str | None = None
    created_at: datetime
    updated_at: datetime


class RoleChangeRequest(SQLModel):
    """Body of PUT /profiles/{id}/role"""

    new_role: UserRole


class ManagerChangeRequest(SQLModel):
    """Body of PUT /profiles/{id}/manager"""

    manager_id: uuid.UUID | None = None


class UpdateUserRolePayload(SQLModel):
    """Body of POST /functions/update-user-role"""

    user_id: uuid.UUID | None = None
    new_role: str | None = None


class UpdateUserManagerPayload(SQLModel):
    """Body of POST /functions/update-user-manager"""

    user_id: uuid.UUID | None = None
    manager_id: uuid.UUID | None = None
