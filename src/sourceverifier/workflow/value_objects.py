"""Frozen domain types shared across all layers.

Submissions are values: a transition never mutates one in place, it
builds the successor with ``dataclasses.replace`` and hands both the
successor and its new history entry to the store's conditional update.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from sourceverifier.constants import (
    TERMINAL_STATUSES,
    Credibility,
    ReviewAction,
    Role,
    SubmissionStatus,
)


@dataclass(frozen=True)
class Actor:
    """Authenticated identity as supplied by the identity provider."""

    user_id: str
    role: Role
    country: str


@dataclass(frozen=True)
class ReviewEntry:
    """One immutable line of a submission's review history."""

    actor_id: str
    action: ReviewAction
    notes: str | None
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "action": self.action,
            "notes": self.notes,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class SubmissionDraft:
    """Contributor input for a new submission."""

    url: str
    title: str
    publisher: str
    country: str
    category: str
    file_reference: str | None = None
    wikipedia_article: str | None = None


@dataclass(frozen=True)
class Submission:
    id: str
    url: str
    title: str
    publisher: str
    country: str
    category: str
    submitter_id: str
    status: SubmissionStatus = SubmissionStatus.PENDING
    credibility: Credibility | None = None
    verifier_id: str | None = None
    verifier_notes: str | None = None
    verified_at: datetime | None = None
    file_reference: str | None = None
    wikipedia_article: str | None = None
    review_history: tuple[ReviewEntry, ...] = ()
    version: int = 1
    created_at: datetime = field(
        default_factory=lambda: datetime.now(UTC)
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def has_outcome(
        self,
        status: SubmissionStatus,
        credibility: Credibility | None,
    ) -> bool:
        """True when the submission already holds exactly this outcome."""
        return self.status == status and self.credibility == credibility

    def was_ever_approved(self) -> bool:
        """True if any history entry records an approval."""
        return any(
            e.action == ReviewAction.APPROVED
            for e in self.review_history
        )

    def transitioned(
        self,
        entry: ReviewEntry,
        status: SubmissionStatus,
        credibility: Credibility | None,
    ) -> Submission:
        """Build the successor value for a workflow transition.

        Pending clears every verifier field; a terminal status stamps
        the acting verifier and time from the history entry.
        """
        if status == SubmissionStatus.PENDING:
            return replace(
                self,
                status=status,
                credibility=None,
                verifier_id=None,
                verifier_notes=None,
                verified_at=None,
                review_history=self.review_history + (entry,),
                version=self.version + 1,
            )
        return replace(
            self,
            status=status,
            credibility=credibility,
            verifier_id=entry.actor_id,
            verifier_notes=entry.notes,
            verified_at=entry.timestamp,
            review_history=self.review_history + (entry,),
            version=self.version + 1,
        )

    def summary(self) -> dict[str, Any]:
        """Short form used by batch previews."""
        return {
            "id": self.id,
            "title": self.title,
            "publisher": self.publisher,
            "country": self.country,
            "status": self.status,
            "category": self.category,
            "submitter_id": self.submitter_id,
            "created_at": self.created_at.isoformat(),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "publisher": self.publisher,
            "country": self.country,
            "category": self.category,
            "submitter_id": self.submitter_id,
            "status": self.status,
            "credibility": self.credibility,
            "verifier_id": self.verifier_id,
            "verifier_notes": self.verifier_notes,
            "verified_at": (
                self.verified_at.isoformat()
                if self.verified_at
                else None
            ),
            "file_reference": self.file_reference,
            "wikipedia_article": self.wikipedia_article,
            "review_history": [
                e.to_dict() for e in self.review_history
            ],
            "version": self.version,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class UserStanding:
    """Point/badge facet of a user account."""

    user_id: str
    points: int
    badges: frozenset[str] = frozenset()

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "points": self.points,
            "badges": sorted(self.badges),
        }
