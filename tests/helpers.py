"""
Shared test helpers
"""

import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.domain.permissions import UserRole
from taskboard.models.profile import Profile
from taskboard.services.change_feed import ChangeFeed


class RecordingChangeFeed(ChangeFeed):
    """Change feed that keeps events in memory instead of pushing them to Redis"""

    def __init__(self):
        super().__init__(enabled=True)
        self.events: list[dict[str, Any]] = []

    async def publish(self, table, event, row_id, payload=None):
        self.events.append({"table": table, "event": event, "id": str(row_id), "payload": payload or {}})
        return f"{len(self.events)}-0"

    def of(self, table: str) -> list[dict[str, Any]]:
        return [event for event in self.events if event["table"] == table]


async def make_profile(
    db: AsyncSession,
    name: str,
    role: UserRole = UserRole.EMPLOYEE,
    manager: Profile | None = None,
) -> Profile:
    profile = Profile(
        email=f"{name.lower().replace(' ', '.')}-{uuid.uuid4().hex[:6]}@example.com",
        name=name,
        role=role.value,
        manager_id=manager.id if manager else None,
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    # Detached copies stay readable after a request rolls the shared session back
    db.expunge(profile)
    return profile


def as_user(profile: Profile) -> dict[str, str]:
    """Headers identifying the acting user"""
    return {"X-User-Id": str(profile.id)}


def due_in(days: int) -> str:
    """Naive local noon, `days` calendar days from today"""
    return (datetime.now() + timedelta(days=days)).replace(hour=12, minute=0, second=0, microsecond=0).isoformat()
