"""Submission and review-history ORM models."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from sourceverifier.constants import SubmissionStatus
from sourceverifier.models.base import Base


class SubmissionRecord(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        Index("ix_submissions_country_status", "country", "status"),
        Index("ix_submissions_submitter", "submitter_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    url: Mapped[str] = mapped_column(String(2000))
    title: Mapped[str] = mapped_column(String(200))
    publisher: Mapped[str] = mapped_column(String(100))
    country: Mapped[str] = mapped_column(String(8))
    category: Mapped[str] = mapped_column(String(20))
    submitter_id: Mapped[str] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(
        String(20), default=SubmissionStatus.PENDING
    )
    credibility: Mapped[str | None] = mapped_column(
        String(20), nullable=True
    )
    verifier_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    verifier_notes: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )
    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    file_reference: Mapped[str | None] = mapped_column(
        String(500), nullable=True
    )
    wikipedia_article: Mapped[str | None] = mapped_column(
        String(500), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, default=1)
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        onupdate=lambda: datetime.now(UTC),
    )


class ReviewEntryRecord(Base):
    """Append-only history row; ``seq`` orders entries per submission."""

    __tablename__ = "review_entries"
    __table_args__ = (
        UniqueConstraint("submission_id", "seq"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    submission_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        index=True,
    )
    seq: Mapped[int] = mapped_column(Integer)
    actor_id: Mapped[str] = mapped_column(String(64))
    action: Mapped[str] = mapped_column(String(20))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
    )
