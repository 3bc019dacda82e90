"""In-memory fake repositories for testing.

Dict-backed implementations of all 3 repository protocols plus a
RepoScope that hands out the same bundle every time.
No SQLAlchemy and no I/O, so unit tests stay instant.
"""

# pyright: reportUnusedFunction=false

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace

from sourceverifier.constants import SubmissionStatus
from sourceverifier.repositories.scope import RepoScope, Repos
from sourceverifier.workflow.value_objects import Submission, UserStanding


class FakeSubmissionRepository:
    """Dict-backed SubmissionRepository for testing.

    Reads yield to the event loop once so concurrent transitions
    interleave between read and conditional write, like real I/O.
    """

    def __init__(self) -> None:
        self._store: dict[str, Submission] = {}

    async def get(self, submission_id: str) -> Submission | None:
        await asyncio.sleep(0)
        return self._store.get(submission_id)

    async def list_by_ids(
        self, submission_ids: list[str]
    ) -> list[Submission]:
        return [
            self._store[sid]
            for sid in dict.fromkeys(submission_ids)
            if sid in self._store
        ]

    async def create(self, submission: Submission) -> Submission:
        self._store[submission.id] = submission
        return submission

    async def update_if_version(
        self, submission: Submission, expected_version: int
    ) -> bool:
        """CAS: replace only if the stored version is still expected."""
        current = self._store.get(submission.id)
        if current is None or current.version != expected_version:
            return False
        self._store[submission.id] = submission
        return True

    async def delete_if_version(
        self, submission_id: str, expected_version: int
    ) -> bool:
        current = self._store.get(submission_id)
        if current is None or current.version != expected_version:
            return False
        del self._store[submission_id]
        return True

    async def count_by_status(
        self, country: str | None = None
    ) -> dict[str, int]:
        counts = {s.value: 0 for s in SubmissionStatus}
        for s in self._store.values():
            if country and s.country != country:
                continue
            counts[s.status] += 1
        return counts


class FakeUserRepository:
    """Dict-backed UserRepository for testing."""

    def __init__(self) -> None:
        self._store: dict[str, UserStanding] = {}

    async def get(self, user_id: str) -> UserStanding | None:
        return self._store.get(user_id)

    async def ensure(self, user_id: str) -> None:
        self._store.setdefault(
            user_id, UserStanding(user_id=user_id, points=0)
        )

    async def increment_points(self, user_id: str, delta: int) -> int:
        user = self._store[user_id]
        self._store[user_id] = replace(
            user, points=user.points + delta
        )
        return user.points + delta

    async def add_badge(self, user_id: str, badge: str) -> bool:
        user = self._store[user_id]
        if badge in user.badges:
            return False
        self._store[user_id] = replace(
            user, badges=user.badges | {badge}
        )
        return True


class FakeAwardRepository:
    """Set-backed AwardRepository for testing."""

    def __init__(self) -> None:
        self._store: dict[tuple[str, str, str], int] = {}

    async def has(
        self, user_id: str, submission_id: str, rule: str
    ) -> bool:
        return (user_id, submission_id, rule) in self._store

    async def record(
        self, user_id: str, submission_id: str, rule: str, points: int
    ) -> None:
        key = (user_id, submission_id, rule)
        if key in self._store:
            raise ValueError(f"duplicate award {key}")
        self._store[key] = points

    async def count(self, user_id: str, rules: set[str]) -> int:
        return sum(
            1
            for (uid, _, rule) in self._store
            if uid == user_id and rule in rules
        )

    async def total(self, user_id: str) -> int:
        return sum(
            pts
            for (uid, _, _), pts in self._store.items()
            if uid == user_id
        )


def fake_repos() -> Repos:
    return Repos(
        submission=FakeSubmissionRepository(),
        user=FakeUserRepository(),
        award=FakeAwardRepository(),
    )


def fake_scope(repos: Repos) -> RepoScope:
    """RepoScope over a shared fake bundle (no transaction)."""

    @asynccontextmanager
    async def _scope() -> AsyncIterator[Repos]:
        yield repos

    return _scope


# ── Service fakes ─────────────────────────────────────


class FakeDataService:
    """Test double for DataService, always healthy."""

    async def check_connection(self) -> bool:
        return True

    def check_log_dir(self) -> bool:
        return True
