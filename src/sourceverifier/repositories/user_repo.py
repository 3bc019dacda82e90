"""SQL implementation of UserRepository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sourceverifier.models.user import BadgeRecord, UserRecord
from sourceverifier.workflow.value_objects import UserStanding


class SqlUserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> UserStanding | None:
        result = await self._session.execute(
            select(UserRecord)
            .where(UserRecord.id == user_id)
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            return None
        badges = await self._session.execute(
            select(BadgeRecord.badge).where(
                BadgeRecord.user_id == user_id
            )
        )
        return UserStanding(
            user_id=user.id,
            points=user.points,
            badges=frozenset(badges.scalars().all()),
        )

    async def ensure(self, user_id: str) -> None:
        """Create a zero-point row unless one exists.

        The insert runs in a savepoint so a concurrent creator only
        costs the savepoint, never the caller's transaction.
        """
        existing = await self._session.get(UserRecord, user_id)
        if existing is not None:
            return
        try:
            async with self._session.begin_nested():
                self._session.add(UserRecord(id=user_id, points=0))
        except IntegrityError:
            pass

    async def increment_points(self, user_id: str, delta: int) -> int:
        """Atomic ``points = points + delta``; returns the new total."""
        await self._session.execute(
            sa_update(UserRecord)
            .where(UserRecord.id == user_id)
            .values(points=UserRecord.points + delta)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(
            select(UserRecord.points)
            .where(UserRecord.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def add_badge(self, user_id: str, badge: str) -> bool:
        """Insert the badge; False if the user already holds it."""
        result = await self._session.execute(
            select(BadgeRecord.id).where(
                BadgeRecord.user_id == user_id,
                BadgeRecord.badge == badge,
            )
        )
        if result.first() is not None:
            return False
        try:
            async with self._session.begin_nested():
                self._session.add(
                    BadgeRecord(user_id=user_id, badge=badge)
                )
        except IntegrityError:
            return False
        return True
