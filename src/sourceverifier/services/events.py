"""Domain events handed from the workflow to the live channel.

Events are transient snapshots; they are fanned out and never stored.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar

from sourceverifier.constants import SSEEvent, SubmissionStatus
from sourceverifier.workflow.value_objects import Submission


@dataclass(frozen=True)
class DomainEvent:
    """Base event: a submission snapshot plus an action label."""

    submission: Submission
    action: str
    actor_id: str | None = None

    sse_event: ClassVar[SSEEvent] = SSEEvent.SUBMISSION_UPDATED

    @property
    def message(self) -> str:
        return f'Submission updated: "{self.submission.title}"'

    def to_sse(self) -> dict[str, str]:
        """Render as an sse-starlette event dict."""
        return {
            "event": self.sse_event,
            "data": json.dumps({
                "action": self.action,
                "submission": self.submission.to_dict(),
                "message": self.message,
            }),
        }


@dataclass(frozen=True)
class SubmissionCreated(DomainEvent):
    sse_event: ClassVar[SSEEvent] = SSEEvent.NEW_SUBMISSION

    @property
    def message(self) -> str:
        s = self.submission
        return f"New submission from {s.country}: {s.title}"


@dataclass(frozen=True)
class SubmissionVerified(DomainEvent):
    sse_event: ClassVar[SSEEvent] = SSEEvent.SUBMISSION_VERIFIED

    @property
    def message(self) -> str:
        s = self.submission
        if s.status == SubmissionStatus.APPROVED:
            return (
                f'Submission verified: "{s.title}"'
                f" marked as {s.credibility}"
            )
        if s.status == SubmissionStatus.REJECTED:
            return f'Submission rejected: "{s.title}"'
        return f'Submission reopened: "{s.title}"'


@dataclass(frozen=True)
class SubmissionUpdated(DomainEvent):
    pass


@dataclass(frozen=True)
class SubmissionDeleted(DomainEvent):
    # Deletions ride the dashboard update channel with action "deleted"
    sse_event: ClassVar[SSEEvent] = SSEEvent.SUBMISSION_UPDATED

    @property
    def message(self) -> str:
        return f'Submission deleted: "{self.submission.title}"'


type EventPublisher = Callable[[DomainEvent], object]
