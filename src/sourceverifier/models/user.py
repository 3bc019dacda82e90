"""User point/badge facet and the point award ledger."""

from datetime import UTC, datetime

from sqlalchemy import Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from sourceverifier.models.base import Base


class UserRecord(Base):
    """Only the workflow facet; identity lives with the provider."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    points: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )


class BadgeRecord(Base):
    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge"),)

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    badge: Mapped[str] = mapped_column(String(50))
    earned_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
    )


class PointAwardRecord(Base):
    """One applied award. The unique key makes awards at-most-once."""

    __tablename__ = "point_awards"
    __table_args__ = (
        UniqueConstraint("user_id", "submission_id", "rule"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    submission_id: Mapped[str] = mapped_column(String(36))
    rule: Mapped[str] = mapped_column(String(50))
    points: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
    )
