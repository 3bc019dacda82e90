"""SQL implementation of AwardRepository."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sourceverifier.models.user import PointAwardRecord


class SqlAwardRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def has(
        self, user_id: str, submission_id: str, rule: str
    ) -> bool:
        result = await self._session.execute(
            select(PointAwardRecord.id).where(
                PointAwardRecord.user_id == user_id,
                PointAwardRecord.submission_id == submission_id,
                PointAwardRecord.rule == rule,
            )
        )
        return result.first() is not None

    async def record(
        self, user_id: str, submission_id: str, rule: str, points: int
    ) -> None:
        self._session.add(
            PointAwardRecord(
                user_id=user_id,
                submission_id=submission_id,
                rule=rule,
                points=points,
            )
        )
        await self._session.flush()

    async def count(self, user_id: str, rules: set[str]) -> int:
        result = await self._session.execute(
            select(func.count()).where(
                PointAwardRecord.user_id == user_id,
                PointAwardRecord.rule.in_(rules),
            )
        )
        return result.scalar_one()

    async def total(self, user_id: str) -> int:
        result = await self._session.execute(
            select(
                func.coalesce(func.sum(PointAwardRecord.points), 0)
            ).where(PointAwardRecord.user_id == user_id)
        )
        return result.scalar_one()
