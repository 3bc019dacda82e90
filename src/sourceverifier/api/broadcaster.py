"""In-process registry of live connections with scoped fan-out.

Each connection owns a bounded queue drained by its SSE generator.
``publish`` is synchronous and only calls ``put_nowait``, so the
mutation that triggered it never waits on a slow consumer. A consumer
whose queue is full is considered dead and pruned.

Single-process only: each worker has its own instance.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sourceverifier.constants import (
    BROADCAST_QUEUE_SIZE,
    ID_HEX_LENGTH,
    ConnectionState,
    SSEEvent,
)
from sourceverifier.services.events import DomainEvent
from sourceverifier.workflow.policy import can_receive
from sourceverifier.workflow.value_objects import Actor

logger = logging.getLogger(__name__)

type Message = dict[str, str]


def _connection_id() -> str:
    return uuid.uuid4().hex[:ID_HEX_LENGTH]


@dataclass
class Connection:
    """One live stream. Scope is fixed at connect time."""

    actor: Actor
    queue: asyncio.Queue[Message | None]
    id: str = field(default_factory=_connection_id)
    state: ConnectionState = ConnectionState.CONNECTING


class NotificationBroadcaster:
    """Maps user ids to their open connections and fans events out.

    ``register``/``deregister`` serialize on ``_lock``; ``publish``
    walks a snapshot, so a concurrent disconnect never breaks it.
    """

    def __init__(self, queue_size: int = BROADCAST_QUEUE_SIZE) -> None:
        self._connections: dict[str, dict[str, Connection]] = {}
        self._lock = asyncio.Lock()
        self._queue_size = queue_size

    async def register(self, actor: Actor) -> Connection:
        """Open a connection; its first message is ``connected``."""
        conn = Connection(
            actor=actor,
            queue=asyncio.Queue(maxsize=self._queue_size),
        )
        async with self._lock:
            self._connections.setdefault(actor.user_id, {})[
                conn.id
            ] = conn
            conn.queue.put_nowait({
                "event": SSEEvent.CONNECTED,
                "data": json.dumps({
                    "connection_id": conn.id,
                    "user_id": actor.user_id,
                    "role": actor.role,
                    "country": actor.country,
                }),
            })
            conn.state = ConnectionState.OPEN
        logger.info(
            "event=connection_open id=%s user=%s role=%s country=%s",
            conn.id,
            actor.user_id,
            actor.role,
            actor.country,
        )
        return conn

    async def deregister(self, conn: Connection) -> None:
        """Close ``conn``. Idempotent."""
        async with self._lock:
            self._remove(conn)
        logger.info(
            "event=connection_closed id=%s user=%s",
            conn.id,
            conn.actor.user_id,
        )

    def publish(self, event: DomainEvent) -> int:
        """Fan ``event`` out to every connection allowed to see it."""
        submission = event.submission
        return self.broadcast_to(
            lambda actor: can_receive(
                actor, submission.country, submission.submitter_id
            ),
            event.to_sse(),
        )

    def broadcast_to(
        self,
        predicate: Callable[[Actor], bool],
        message: Message,
    ) -> int:
        """Deliver ``message`` to open connections matching ``predicate``.

        Returns the number of queues the message landed in.
        """
        delivered = 0
        for conn in self._snapshot():
            if conn.state != ConnectionState.OPEN:
                continue
            if not predicate(conn.actor):
                continue
            try:
                conn.queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning(
                    "event=connection_pruned id=%s user=%s"
                    " reason=queue_full",
                    conn.id,
                    conn.actor.user_id,
                )
                self._prune(conn)
                continue
            delivered += 1
        return delivered

    def connections_for(self, user_id: str) -> list[Connection]:
        return list(self._connections.get(user_id, {}).values())

    def connection_stats(self) -> dict[str, Any]:
        conns = self._snapshot()
        return {
            "total": len(conns),
            "users": len(self._connections),
            "by_role": dict(Counter(str(c.actor.role) for c in conns)),
            "by_country": dict(Counter(c.actor.country for c in conns)),
        }

    async def close_all(self) -> None:
        """End every stream (application shutdown)."""
        async with self._lock:
            for conn in self._snapshot():
                self._prune(conn)

    def _snapshot(self) -> list[Connection]:
        return [
            conn
            for by_id in self._connections.values()
            for conn in by_id.values()
        ]

    def _prune(self, conn: Connection) -> None:
        """Drop ``conn`` and wake its reader with the end sentinel."""
        self._remove(conn)
        while not conn.queue.empty():
            conn.queue.get_nowait()
        conn.queue.put_nowait(None)

    def _remove(self, conn: Connection) -> None:
        conn.state = ConnectionState.CLOSED
        by_id = self._connections.get(conn.actor.user_id)
        if by_id is None:
            return
        by_id.pop(conn.id, None)
        if not by_id:
            del self._connections[conn.actor.user_id]
