"""
Realtime change feed endpoints (Server-Sent Events over Redis Streams)

Clients subscribe per table and re-fetch (and so re-classify) whenever an event arrives:

    $ curl -N "http://localhost:33001/api/v1/realtime/tasks/events?user_id=<profile id>"

With replay=true a new subscriber first receives the events still kept in the stream.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from uuid_utils import uuid7

from taskboard.api.v1.deps import get_stream_user
from taskboard.core.logger import get_logger
from taskboard.core.rsmqueue import RedisStreamMessageQueue, sse_event
from taskboard.models.profile import Profile
from taskboard.services.change_feed import WATCHED_TABLES, channel_for

router: APIRouter = APIRouter()

logger = get_logger(__name__, logging.INFO)


def subscriber_queue(consumer_id: str, replay: bool = False) -> RedisStreamMessageQueue:
    # One consumer group per client so every client receives every event
    return RedisStreamMessageQueue(
        consumer_group=f"rt-consumer-{consumer_id}",
        stream_id_type="stream_from_beginning" if replay else "stream_from_new_only",
    )


@router.get("/{table}/events", summary="Subscribe to row changes of a table (SSE)")
async def subscribe_to_table_changes(
    table: str,
    request: Request,
    replay: bool = Query(default=False, description="Start with the events still kept in the stream"),
    current_user: Profile = Depends(get_stream_user),
):
    """
    Stream INSERT / UPDATE / DELETE events of a table.

    Args:

        - table: tasks | profiles | teams | team_members

    Query Parameters:

        - user_id: acting user (or the X-User-Id header)
        - consumer: optional consumer ID (auto-generated if not provided)
        - replay: deliver the retained events before new ones

    Returns: SSE stream of change events
    """
    if table not in WATCHED_TABLES:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No change feed for table '{table}'",
        )

    consumer_id = request.query_params.get("consumer") or str(uuid7())
    channel = channel_for(table)

    logger.info(f"Starting SSE stream for '{channel}', consumer '{consumer_id}', user {current_user.id}")

    headers = {
        "Content-Type": "text/event-stream",
        "Cache-Control": "no-cache, no-transform",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }

    async def stream_generator():
        """Generator that streams change events with disconnect detection."""
        mq = subscriber_queue(consumer_id, replay)
        try:
            yield sse_event({"type": "connected", "consumer": consumer_id, "table": table}, event="system")

            async for msg_id, data in mq.consume_with_disconnect_check(
                channel,
                consumer_id,
                disconnect_check=request.is_disconnected,
            ):
                payload = {
                    "id": msg_id,
                    "type": data.get("type"),
                    "data": data.get("payload", {}),
                    "ts": int(msg_id.split("-")[0]),
                }
                yield sse_event(payload, event="change")

        except Exception as e:
            logger.error(f"Error in SSE stream: {e}", exc_info=True)
            yield sse_event({"type": "error", "message": str(e)}, event="error")

        finally:
            await mq.close()
            logger.info(f"SSE stream closed for '{channel}', consumer '{consumer_id}'")

    return StreamingResponse(stream_generator(), headers=headers, status_code=200)
