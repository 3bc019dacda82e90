"""In-flight request deduplication.

IdempotencyGuard collapses identical concurrent operations. Two tabs
sending the same verify request for the same submission share one
transition: the second caller awaits the first caller's outcome instead
of racing it through the optimistic update.

Single-process only: each worker has its own instance. Cross-process
safety comes from the conditional update in the submission store.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any


def make_key(*parts: object) -> str:
    """Join key parts; ``None`` renders as an empty segment."""
    return ":".join("" if p is None else str(p) for p in parts)


@dataclass
class _InFlight:
    key: str
    done: asyncio.Event = field(default_factory=asyncio.Event)
    result: Any = None
    error: BaseException | None = None


class IdempotencyGuard:
    """Deduplicates in-flight async operations by key.

    Usage::

        guard = IdempotencyGuard()
        outcome = await guard.execute(
            make_key("verify", sid, actor_id, status), run_transition
        )
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, _InFlight] = {}
        self._lock = asyncio.Lock()

    async def execute(
        self,
        key: str,
        operation: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run operation unless one with the same key is running.

        Followers re-raise the owner's error, so a failed transition
        is reported to every caller that asked for it.
        """
        async with self._lock:
            owner = self._in_flight.get(key)
            if owner is None:
                tracker = _InFlight(key=key)
                self._in_flight[key] = tracker

        if owner is not None:
            await owner.done.wait()
            if owner.error is not None:
                raise owner.error
            return owner.result

        try:
            tracker.result = await operation()
            return tracker.result
        except BaseException as exc:
            tracker.error = exc
            raise
        finally:
            tracker.done.set()
            async with self._lock:
                self._in_flight.pop(key, None)

    @property
    def active_keys(self) -> list[str]:
        """Return currently in-flight operation keys."""
        return list(self._in_flight.keys())
