"""
Redis Stream Message Queue (rsmqueue.py)
----------------------------------------
Redis Stream-based queue carrying row-change events for the realtime feed.

Each table (tasks, profiles, teams, team_members) has its own stream. Producers append one entry per
committed row change; every subscriber reads through its own consumer group, so each connected client
receives every event (broadcast) and re-fetches + re-classifies on receipt.

Redis commands used:
- XADD / EXPIRE (pipelined) for producers
- XGROUP CREATE ... MKSTREAM for lazy stream + group creation
- XREADGROUP / XACK for consumers, XGROUP DELCONSUMER on disconnect
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import suppress
from typing import TYPE_CHECKING, Any, Literal

from redis import asyncio as aioredis  # type: ignore[import-untyped]
from uuid_utils import uuid7

from taskboard.core.config import settings
from taskboard.core.logger import get_logger

logger = get_logger(__name__, logging.INFO)

if TYPE_CHECKING:
    from redis.asyncio import Redis  # type: ignore[import-untyped]


class RedisStreamMessageQueue:
    """
    Thin wrapper around Redis Streams with consumer groups.

    Redis Keys:
        Each channel is a Redis Stream: <prefix><channel_id>
        e.g. "rt:channel:realtime:tasks"

    Consumer Groups:
        - Different consumer groups on the same stream = each group gets ALL entries (broadcast)
        - Same consumer group = entries are DISTRIBUTED between its consumers
        Realtime subscribers therefore use one group per client: consumer_group=f"rt-consumer-{client_id}"

    Stored entry shape:
        { "data": "<json string>" }
        Example: { "data": '{"type":"UPDATE","payload":{"table":"tasks","id":"..."}}' }

    Typical usage:

        mq = RedisStreamMessageQueue()
        await mq.broadcast("realtime:tasks", "UPDATE", {"table": "tasks", "id": task_id})

        async for msg_id, event in mq.consume_with_disconnect_check("realtime:tasks", "client-1"):
            ...
    """

    __slots__ = ("r", "prefix", "group", "stream_id_type", "maxlen", "ttl", "block_ms", "read_count")

    def __init__(
        self,
        redis_url: str | None = None,
        *,
        stream_prefix: str = "rt:channel:",
        consumer_group: str = "rt-consumer-default",
        stream_id_type: Literal["stream_from_beginning", "stream_from_new_only"] = "stream_from_new_only",
        maxlen: int | None = None,
        ttl_seconds: int | None = None,
        block_ms: int = 15000,  # 15 seconds
        read_count: int = 10,
        decode_responses: bool = True,
    ):
        """
        Args:
            redis_url: e.g. "redis://localhost:6379/0" (defaults to settings.redis_url)
            stream_prefix: prefix for stream keys
            consumer_group: name of the consumer group
            stream_id_type: where a newly created group starts reading ("0" or "$")
            maxlen: entries kept per stream (XADD MAXLEN ~), defaults to settings.REALTIME_STREAM_MAXLEN
            ttl_seconds: EXPIRE for each stream, defaults to settings.REALTIME_STREAM_TTL_SECONDS
            block_ms: blocking time for XREADGROUP calls
            read_count: number of entries to read per XREADGROUP call
            decode_responses: if True, decode bytes to strings
        """
        url = redis_url or settings.redis_url
        self.r: Redis = aioredis.from_url(url, decode_responses=decode_responses)  # type: ignore[no-untyped-call]
        self.prefix: str = stream_prefix
        self.group: str = consumer_group
        self.stream_id_type: Literal["stream_from_beginning", "stream_from_new_only"] = stream_id_type
        self.maxlen: int = maxlen or settings.REALTIME_STREAM_MAXLEN
        self.ttl: int = ttl_seconds or settings.REALTIME_STREAM_TTL_SECONDS
        self.block_ms: int = block_ms
        self.read_count: int = read_count

    # -------------------- utilities --------------------
    def key(self, channel_id: str) -> str:
        """Generate Redis key for a channel ID."""
        return f"{self.prefix}{channel_id}"

    @staticmethod
    def _encode_payload(data: dict[str, Any]) -> dict[str, str]:
        """Encode payload data to Redis stream format (compact JSON, default=str for UUID/datetime)."""
        return {"data": json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)}

    @staticmethod
    def _decode_payload(fields: dict[str, str]) -> dict[str, Any]:
        """Decode Redis stream fields to payload data."""
        return json.loads(fields["data"])

    async def ensure_group(self, channel_id: str) -> None:
        """
        Create stream + consumer group if missing.

        Redis commands:
            XGROUP CREATE <stream> <group> <0|$> MKSTREAM
        """
        key = self.key(channel_id)
        stream_id = "0" if self.stream_id_type == "stream_from_beginning" else "$"
        try:
            await self.r.xgroup_create(key, self.group, id=stream_id, mkstream=True)  # type: ignore[no-untyped-call]
            logger.debug(f"Created consumer group '{self.group}' for stream '{key}'")
        except Exception as e:
            error_msg = str(e)
            if "BUSYGROUP" in error_msg:
                return
            logger.warning(f"Error creating consumer group for '{key}': {error_msg}")

    async def close(self) -> None:
        """Close the underlying connection pool."""
        with suppress(Exception):
            await self.r.aclose()  # type: ignore[no-untyped-call]

    # -------------------- producers --------------------
    async def send(self, channel_id: str, data: dict[str, Any]) -> str:
        """
        Append an entry to the channel.

        Redis commands:
            XADD <stream> MAXLEN ~ <maxlen> * data <json>
            EXPIRE <stream> <ttl>

        Returns:
            entry ID (e.g. "1763006032172-0")
        """
        key = self.key(channel_id)

        pipe = self.r.pipeline()  # type: ignore[no-untyped-call]
        pipe.xadd(key, self._encode_payload(data), maxlen=self.maxlen, approximate=True)  # type: ignore[no-untyped-call]
        pipe.expire(key, self.ttl)  # type: ignore[no-untyped-call]
        results = await pipe.execute()  # type: ignore[no-untyped-call]

        msg_id = str(results[0])  # type: ignore[arg-type]
        logger.debug(f"Sent entry to '{key}': {msg_id}")
        return msg_id

    async def broadcast(self, channel_id: str, event_type: str, payload: dict[str, Any]) -> str:
        """
        Broadcast an event to all subscribers of the channel.

        Example:
            await mq.broadcast("realtime:tasks", "INSERT", {"table": "tasks", "id": "..."})
        """
        data = {"type": event_type, "payload": payload}
        return await self.send(channel_id, data)

    # -------------------- consumers --------------------
    async def consume_with_disconnect_check(
        self,
        channel_id: str,
        consumer_id: str | None = None,
        *,
        disconnect_check: Callable[[], Awaitable[bool]] | None = None,
        block_ms: int | None = None,
        count: int | None = None,
        auto_ack: bool = True,
    ) -> AsyncGenerator[tuple[str, dict[str, Any]]]:
        """
        Consume new entries, checking for client disconnect between reads (for SSE).

        Redis commands:
            XREADGROUP GROUP <group> <consumer> BLOCK <ms> COUNT <n> STREAMS <stream> >
            XACK <stream> <group> <msg_id> (if auto_ack=True)

        Yields:
            (msg_id, payload) tuples
        """
        key = self.key(channel_id)
        consumer = consumer_id or str(uuid7())
        block = block_ms or self.block_ms
        read_count = count or self.read_count

        await self.ensure_group(channel_id)

        logger.debug(f"Consumer '{consumer}' started consuming from '{key}'")

        try:
            while True:
                if disconnect_check is not None and await disconnect_check():
                    logger.debug(f"Client disconnected, stopping consumer '{consumer}'")
                    break

                try:
                    resp = await self.r.xreadgroup(  # type: ignore[no-untyped-call]
                        groupname=self.group,
                        consumername=consumer,
                        streams={key: ">"},
                        count=read_count,
                        block=block,
                    )
                except Exception as e:
                    logger.error(f"Error reading from stream '{key}': {e}")
                    await asyncio.sleep(1.0)
                    continue

                if not resp:
                    continue

                # resp is a list of (stream, [(id, {field: value}), ...])
                for _stream, messages in resp:  # type: ignore[misc]
                    for msg_id, fields in messages:  # type: ignore[misc]
                        payload = self._decode_payload(fields)  # type: ignore[arg-type]
                        yield msg_id, payload  # type: ignore[misc]

                        if auto_ack:
                            with suppress(Exception):
                                await self.r.xack(key, self.group, msg_id)  # type: ignore[no-untyped-call]

        finally:
            with suppress(Exception):
                await self.r.xgroup_delconsumer(key, self.group, consumer)  # type: ignore[no-untyped-call]
                logger.debug(f"Removed consumer '{consumer}' from '{key}'")


# ---------------------------------------------------------------------------
# SSE helper
# ---------------------------------------------------------------------------


def sse_event(data: dict[str, Any], event: str | None = None) -> bytes:
    """
    Encode dict as SSE (Server-Sent Events) format.

    Example:
        yield sse_event({"type": "UPDATE", "payload": {...}}, event="change")
    """
    payload = json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)
    lines: list[str] = []
    if event:
        lines.append(f"event: {event}\n")
    for chunk in payload.splitlines() or [payload]:
        lines.append(f"data: {chunk}\n")
    lines.append("\n")
    return "".join(lines).encode("utf-8")
