"""Server-Sent Events live channel."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from sourceverifier.api.broadcaster import Message, NotificationBroadcaster
from sourceverifier.api.dependencies import get_actor, get_broadcaster
from sourceverifier.workflow.value_objects import Actor

router = APIRouter(prefix="/api", tags=["events"])


@router.get("/events")
async def events(
    request: Request,
    actor: Actor = Depends(get_actor),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
) -> EventSourceResponse:
    """Stream workflow events scoped to the caller's role and country."""
    settings = request.app.state.typed.settings
    return EventSourceResponse(
        _event_stream(broadcaster, actor),
        sep="\n",
        ping=settings.sse_ping_seconds,
    )


async def _event_stream(
    broadcaster: NotificationBroadcaster,
    actor: Actor,
) -> AsyncIterator[Message]:
    """Drain one connection's queue until it is pruned or closed."""
    conn = await broadcaster.register(actor)
    try:
        while True:
            message = await conn.queue.get()
            if message is None:
                break
            yield message
    finally:
        await broadcaster.deregister(conn)
