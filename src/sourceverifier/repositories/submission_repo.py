"""SQL implementation of SubmissionRepository."""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession

from sourceverifier.constants import (
    Credibility,
    ReviewAction,
    SubmissionStatus,
)
from sourceverifier.models.submission import (
    ReviewEntryRecord,
    SubmissionRecord,
)
from sourceverifier.workflow.value_objects import ReviewEntry, Submission


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _to_entry(row: ReviewEntryRecord) -> ReviewEntry:
    return ReviewEntry(
        actor_id=row.actor_id,
        action=ReviewAction(row.action),
        notes=row.notes,
        timestamp=_as_utc(row.created_at) or datetime.now(UTC),
    )


def _to_submission(
    row: SubmissionRecord, entries: list[ReviewEntryRecord]
) -> Submission:
    return Submission(
        id=row.id,
        url=row.url,
        title=row.title,
        publisher=row.publisher,
        country=row.country,
        category=row.category,
        submitter_id=row.submitter_id,
        status=SubmissionStatus(row.status),
        credibility=(
            Credibility(row.credibility) if row.credibility else None
        ),
        verifier_id=row.verifier_id,
        verifier_notes=row.verifier_notes,
        verified_at=_as_utc(row.verified_at),
        file_reference=row.file_reference,
        wikipedia_article=row.wikipedia_article,
        review_history=tuple(_to_entry(e) for e in entries),
        version=row.version,
        created_at=_as_utc(row.created_at) or datetime.now(UTC),
    )


class SqlSubmissionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, submission_id: str) -> Submission | None:
        result = await self._session.execute(
            select(SubmissionRecord)
            .where(SubmissionRecord.id == submission_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        entries = await self._session.execute(
            select(ReviewEntryRecord)
            .where(ReviewEntryRecord.submission_id == submission_id)
            .order_by(ReviewEntryRecord.seq)
        )
        return _to_submission(row, list(entries.scalars().all()))

    async def list_by_ids(
        self, submission_ids: list[str]
    ) -> list[Submission]:
        """Load many submissions; input order kept, unknown ids skipped."""
        if not submission_ids:
            return []
        result = await self._session.execute(
            select(SubmissionRecord)
            .where(SubmissionRecord.id.in_(submission_ids))
            .execution_options(populate_existing=True)
        )
        rows = {r.id: r for r in result.scalars().all()}
        entries = await self._session.execute(
            select(ReviewEntryRecord)
            .where(ReviewEntryRecord.submission_id.in_(rows))
            .order_by(ReviewEntryRecord.seq)
        )
        by_submission: dict[str, list[ReviewEntryRecord]] = (
            defaultdict(list)
        )
        for e in entries.scalars().all():
            by_submission[e.submission_id].append(e)
        return [
            _to_submission(rows[sid], by_submission[sid])
            for sid in dict.fromkeys(submission_ids)
            if sid in rows
        ]

    async def create(self, submission: Submission) -> Submission:
        self._session.add(
            SubmissionRecord(
                id=submission.id,
                url=submission.url,
                title=submission.title,
                publisher=submission.publisher,
                country=submission.country,
                category=submission.category,
                submitter_id=submission.submitter_id,
                status=submission.status,
                file_reference=submission.file_reference,
                wikipedia_article=submission.wikipedia_article,
                version=submission.version,
                created_at=submission.created_at,
            )
        )
        for seq, entry in enumerate(submission.review_history, 1):
            self._add_entry(submission.id, seq, entry)
        await self._session.flush()
        return submission

    async def update_if_version(
        self, submission: Submission, expected_version: int
    ) -> bool:
        """Conditional write of workflow fields plus the newest entry.

        Returns False (and writes nothing) when another transition
        already bumped the version or the row was deleted.
        """
        result = await self._session.execute(
            sa_update(SubmissionRecord)
            .where(
                SubmissionRecord.id == submission.id,
                SubmissionRecord.version == expected_version,
            )
            .values(
                status=submission.status,
                credibility=submission.credibility,
                verifier_id=submission.verifier_id,
                verifier_notes=submission.verifier_notes,
                verified_at=submission.verified_at,
                version=submission.version,
            )
        )
        rowcount: int = getattr(result, "rowcount", 0) or 0
        if rowcount == 0:
            return False
        if submission.review_history:
            self._add_entry(
                submission.id,
                len(submission.review_history),
                submission.review_history[-1],
            )
        await self._session.flush()
        return True

    async def delete_if_version(
        self, submission_id: str, expected_version: int
    ) -> bool:
        result = await self._session.execute(
            sa_delete(SubmissionRecord).where(
                SubmissionRecord.id == submission_id,
                SubmissionRecord.version == expected_version,
            )
        )
        rowcount: int = getattr(result, "rowcount", 0) or 0
        if rowcount == 0:
            return False
        # SQLite does not enforce ON DELETE CASCADE by default
        await self._session.execute(
            sa_delete(ReviewEntryRecord).where(
                ReviewEntryRecord.submission_id == submission_id
            )
        )
        await self._session.flush()
        return True

    async def count_by_status(
        self, country: str | None = None
    ) -> dict[str, int]:
        stmt = select(
            SubmissionRecord.status, func.count()
        ).group_by(SubmissionRecord.status)
        if country:
            stmt = stmt.where(SubmissionRecord.country == country)
        result = await self._session.execute(stmt)
        counts = {s.value: 0 for s in SubmissionStatus}
        for status, n in result.all():
            counts[status] = n
        return counts

    def _add_entry(
        self, submission_id: str, seq: int, entry: ReviewEntry
    ) -> None:
        self._session.add(
            ReviewEntryRecord(
                submission_id=submission_id,
                seq=seq,
                actor_id=entry.actor_id,
                action=entry.action,
                notes=entry.notes,
                created_at=entry.timestamp,
            )
        )
