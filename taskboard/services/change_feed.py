"""
Realtime change feed

Every committed mutation of a watched table is pushed onto the Redis stream "realtime:<table>".
Subscribers (GET /api/v1/realtime/{table}/events) re-fetch and re-classify on every event.

Publishing is best-effort: a Redis failure is logged and never fails the mutation that triggered it.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Literal

from taskboard.core.config import settings
from taskboard.core.logger import get_logger
from taskboard.core.rsmqueue import RedisStreamMessageQueue

logger = get_logger(__name__, logging.INFO)

ChangeEvent = Literal["INSERT", "UPDATE", "DELETE"]

WATCHED_TABLES = frozenset({"tasks", "profiles", "teams", "team_members"})


def channel_for(table: str) -> str:
    return f"realtime:{table}"


class ChangeFeed:
    """Publishes row-change events for the watched tables"""

    def __init__(self, mq: RedisStreamMessageQueue | None = None, enabled: bool | None = None):
        self._mq = mq
        self.enabled = settings.REALTIME_ENABLED if enabled is None else enabled

    @property
    def mq(self) -> RedisStreamMessageQueue:
        if self._mq is None:
            self._mq = RedisStreamMessageQueue()
        return self._mq

    async def publish(
        self,
        table: str,
        event: ChangeEvent,
        row_id: Any,
        payload: dict[str, Any] | None = None,
    ) -> str | None:
        """
        Push a row-change event.

        Returns:
            stream entry ID, or None when the feed is disabled or publishing failed
        """
        if not self.enabled:
            return None
        if table not in WATCHED_TABLES:
            logger.warning(f"Ignoring change event for unwatched table '{table}'")
            return None

        body = {
            "table": table,
            "id": str(row_id),
            "record": payload or {},
            "commit_timestamp": datetime.now(UTC).isoformat(),
        }
        try:
            return await self.mq.broadcast(channel_for(table), event, body)
        except Exception as e:
            logger.error(f"Failed to publish {event} on '{table}' for {row_id}: {e}", exc_info=True)
            return None

    async def close(self) -> None:
        if self._mq is not None:
            await self._mq.close()
            self._mq = None


change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Dependency for the shared change feed"""
    return change_feed
