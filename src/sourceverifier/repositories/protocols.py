"""Protocol-based repository interfaces.

SQL implementations satisfy these protocols structurally (no inheritance).
Test doubles can be plain classes or mocks matching the same signature.
"""

from typing import Protocol

from sourceverifier.workflow.value_objects import Submission, UserStanding


class SubmissionRepository(Protocol):
    async def get(self, submission_id: str) -> Submission | None: ...
    async def list_by_ids(
        self, submission_ids: list[str]
    ) -> list[Submission]: ...
    async def create(self, submission: Submission) -> Submission: ...
    async def update_if_version(
        self, submission: Submission, expected_version: int
    ) -> bool: ...
    async def delete_if_version(
        self, submission_id: str, expected_version: int
    ) -> bool: ...
    async def count_by_status(
        self, country: str | None = None
    ) -> dict[str, int]: ...


class UserRepository(Protocol):
    async def get(self, user_id: str) -> UserStanding | None: ...
    async def ensure(self, user_id: str) -> None: ...
    async def increment_points(self, user_id: str, delta: int) -> int: ...
    async def add_badge(self, user_id: str, badge: str) -> bool: ...


class AwardRepository(Protocol):
    async def has(
        self, user_id: str, submission_id: str, rule: str
    ) -> bool: ...
    async def record(
        self, user_id: str, submission_id: str, rule: str, points: int
    ) -> None: ...
    async def count(self, user_id: str, rules: set[str]) -> int: ...
    async def total(self, user_id: str) -> int: ...
