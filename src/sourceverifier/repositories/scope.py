"""Per-transition unit of work.

A scope yields a ``Repos`` bundle whose repositories share one session.
Leaving the block normally commits; any exception (cancellation
included) rolls back, so a transition is all-or-nothing. Once a
commit lands, closing the session cannot be cut short by a cancel.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sourceverifier.repositories.award_repo import SqlAwardRepository
from sourceverifier.repositories.protocols import (
    AwardRepository,
    SubmissionRepository,
    UserRepository,
)
from sourceverifier.repositories.submission_repo import (
    SqlSubmissionRepository,
)
from sourceverifier.repositories.user_repo import SqlUserRepository


@dataclass
class Repos:
    """Repository container for one unit of work."""

    submission: SubmissionRepository
    user: UserRepository
    award: AwardRepository


type RepoScope = Callable[[], AbstractAsyncContextManager[Repos]]

# Session closes still running after their caller was cancelled
_closing: set[asyncio.Task[None]] = set()


async def _close(session: AsyncSession) -> None:
    """Close ``session`` without letting a cancel interrupt it.

    A cancel that lands while closing is re-armed on the current task
    rather than raised here, so the caller's post-commit work still
    runs and the task stops at its next suspension point.
    """
    closing = asyncio.create_task(session.close())
    _closing.add(closing)
    closing.add_done_callback(_closing.discard)
    try:
        await asyncio.shield(closing)
    except asyncio.CancelledError:
        task = asyncio.current_task()
        if task is None or closing.cancelled():
            raise
        task.uncancel()
        task.cancel()


def sql_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> RepoScope:
    """Build a RepoScope that opens a fresh session per transition."""

    @asynccontextmanager
    async def _scope() -> AsyncIterator[Repos]:
        session = session_factory()
        try:
            yield Repos(
                submission=SqlSubmissionRepository(session),
                user=SqlUserRepository(session),
                award=SqlAwardRepository(session),
            )
        except BaseException:
            await session.rollback()
            raise
        else:
            await session.commit()
        finally:
            await _close(session)

    return _scope
