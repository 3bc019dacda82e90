"""Two-phase batch operations over many submissions.

``preview`` reads and never writes. ``apply`` runs one independent
transition per id through the state machine; an item's failure is
recorded against that id and never aborts its siblings.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from sourceverifier.constants import (
    BATCH_CONCURRENCY,
    BATCH_MAX_IDS,
    NOTES_MAX_LENGTH,
    PREVIEW_DISPLAY_CAP,
    BatchOperation,
    Credibility,
    SubmissionStatus,
)
from sourceverifier.logger import AuditLogger
from sourceverifier.repositories.scope import RepoScope
from sourceverifier.resilience.errors import classify_error, is_retryable
from sourceverifier.services.events import (
    DomainEvent,
    EventPublisher,
    SubmissionDeleted,
    SubmissionUpdated,
)
from sourceverifier.services.verification import (
    VerificationStateMachine,
)
from sourceverifier.workflow.errors import ValidationError, WorkflowError
from sourceverifier.workflow.value_objects import Actor

logger = logging.getLogger(__name__)

_BATCH_STATUSES = frozenset({
    SubmissionStatus.APPROVED,
    SubmissionStatus.REJECTED,
})


@dataclass(frozen=True)
class ItemFailure:
    id: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "reason": self.reason}


@dataclass
class BatchResult:
    operation: BatchOperation
    succeeded: list[str] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"Batch {self.operation} completed:"
            f" {len(self.succeeded)} succeeded,"
            f" {len(self.failed)} failed"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": list(self.succeeded),
            "failed": [f.to_dict() for f in self.failed],
            "message": self.message,
        }


@dataclass(frozen=True)
class BatchPreview:
    total_count: int
    status_groups: dict[str, list[str]]
    missing: list[str]
    submissions: list[dict[str, Any]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_count": self.total_count,
            "status_groups": self.status_groups,
            "missing": self.missing,
            "submissions": self.submissions,
        }


@dataclass(frozen=True)
class BatchRequest:
    """A validated apply request."""

    operation: BatchOperation
    submission_ids: tuple[str, ...]
    status: SubmissionStatus | None = None
    credibility: Credibility | None = None
    notes: str | None = None


class BatchOperationCoordinator:
    def __init__(
        self,
        scope: RepoScope,
        machine: VerificationStateMachine,
        publish: EventPublisher,
        *,
        max_ids: int = BATCH_MAX_IDS,
        display_cap: int = PREVIEW_DISPLAY_CAP,
        concurrency: int = BATCH_CONCURRENCY,
        audit: AuditLogger | None = None,
    ) -> None:
        self._scope = scope
        self._machine = machine
        self._publish = publish
        self._max_ids = max_ids
        self._display_cap = display_cap
        self._concurrency = concurrency
        self._audit = audit

    @property
    def concurrency(self) -> int:
        """Most items in flight at once during ``apply``."""
        return self._concurrency

    # ── Preview ──────────────────────────────────────────

    async def preview(self, submission_ids: Sequence[str]) -> BatchPreview:
        """Group the current state of each id by status."""
        ids = self._normalize_ids(submission_ids)
        async with self._scope() as repos:
            found = await repos.submission.list_by_ids(list(ids))

        groups: dict[str, list[str]] = {}
        for s in found:
            groups.setdefault(s.status, []).append(s.id)
        known = {s.id for s in found}
        return BatchPreview(
            total_count=len(found),
            status_groups=groups,
            missing=[sid for sid in ids if sid not in known],
            submissions=[
                s.summary() for s in found[: self._display_cap]
            ],
        )

    # ── Apply ────────────────────────────────────────────

    def parse_request(
        self,
        operation: str,
        submission_ids: Sequence[str],
        *,
        status: str | None = None,
        credibility: str | None = None,
        notes: str | None = None,
    ) -> BatchRequest:
        """Validate a whole request before any item is touched."""
        try:
            op = BatchOperation(operation)
        except ValueError:
            raise ValidationError(
                f"Invalid operation: {operation}"
            ) from None
        ids = self._normalize_ids(submission_ids)

        target_status: SubmissionStatus | None = None
        if op == BatchOperation.APPROVE:
            target_status = SubmissionStatus.APPROVED
        elif op == BatchOperation.REJECT:
            target_status = SubmissionStatus.REJECTED
        elif op == BatchOperation.UPDATE_STATUS:
            if status not in _BATCH_STATUSES:
                raise ValidationError(
                    "updateStatus requires status approved or rejected"
                )
            target_status = SubmissionStatus(status)

        target_credibility: Credibility | None = None
        if target_status == SubmissionStatus.APPROVED:
            try:
                target_credibility = Credibility(
                    credibility or Credibility.CREDIBLE
                )
            except ValueError:
                raise ValidationError(
                    f"Invalid credibility: {credibility}"
                ) from None
        elif credibility is not None:
            raise ValidationError(
                "Credibility can only be set when approving"
            )

        if target_status is not None and not (notes and notes.strip()):
            notes = f"Batch {target_status} by admin"
        if notes is not None and len(notes) > NOTES_MAX_LENGTH:
            raise ValidationError(
                f"Notes must be at most {NOTES_MAX_LENGTH} characters"
            )

        return BatchRequest(
            operation=op,
            submission_ids=ids,
            status=target_status,
            credibility=target_credibility,
            notes=notes,
        )

    async def apply(
        self,
        operation: str,
        submission_ids: Sequence[str],
        actor: Actor,
        *,
        status: str | None = None,
        credibility: str | None = None,
        notes: str | None = None,
    ) -> BatchResult:
        """Run ``operation`` on every id; failures are per item.

        Items run concurrently, bounded by a semaphore; each one is
        its own transition. One event per mutated item is published
        once the items settle, including when the batch is cancelled
        part way.
        """
        request = self.parse_request(
            operation,
            submission_ids,
            status=status,
            credibility=credibility,
            notes=notes,
        )
        semaphore = asyncio.Semaphore(self._concurrency)
        succeeded: set[str] = set()
        failures: dict[str, str] = {}
        committed: list[DomainEvent] = []

        async def _run(sid: str) -> None:
            async with semaphore:
                try:
                    event = await self._apply_one(request, sid, actor)
                except WorkflowError as exc:
                    failures[sid] = exc.message
                    return
                except Exception as exc:
                    error_class = classify_error(exc)
                    logger.exception(
                        "event=batch_item_error id=%s op=%s class=%s"
                        " retryable=%s",
                        sid,
                        request.operation,
                        error_class.value,
                        is_retryable(exc),
                    )
                    failures[sid] = (
                        f"Unexpected {error_class.value} error"
                    )
                    return
            succeeded.add(sid)
            if event is not None:
                committed.append(event)

        try:
            await asyncio.gather(
                *(_run(sid) for sid in request.submission_ids)
            )
        finally:
            for event in committed:
                self._emit(event)

        result = BatchResult(
            operation=request.operation,
            succeeded=[
                sid for sid in request.submission_ids if sid in succeeded
            ],
            failed=[
                ItemFailure(sid, failures[sid])
                for sid in request.submission_ids
                if sid in failures
            ],
        )
        logger.info(
            "event=batch_applied op=%s actor=%s total=%d"
            " succeeded=%d failed=%d",
            request.operation,
            actor.user_id,
            len(request.submission_ids),
            len(result.succeeded),
            len(result.failed),
        )
        if self._audit is not None:
            self._audit.log_batch(
                actor.user_id,
                request.operation,
                request.submission_ids,
                len(result.succeeded),
                len(result.failed),
                notes=request.notes,
            )
        return result

    async def _apply_one(
        self, request: BatchRequest, submission_id: str, actor: Actor
    ) -> DomainEvent | None:
        """Apply one item; returns its event, or None for a no-op."""
        if request.operation == BatchOperation.DELETE:
            deleted = await self._machine.delete(
                submission_id, actor, publish=False
            )
            return SubmissionDeleted(
                deleted, action="deleted", actor_id=actor.user_id
            )

        if request.status is None:
            raise ValidationError("A target status is required")
        outcome = await self._machine.verify(
            submission_id,
            actor,
            request.status,
            request.credibility,
            request.notes,
            publish=False,
        )
        if not outcome.changed:
            return None
        return SubmissionUpdated(
            outcome.submission,
            action=f"batch_{request.operation}",
            actor_id=actor.user_id,
        )

    def _normalize_ids(
        self, submission_ids: Sequence[str]
    ) -> tuple[str, ...]:
        """Strip blanks and collapse duplicates, keeping order."""
        ids = tuple(
            dict.fromkeys(
                sid.strip() for sid in submission_ids if sid.strip()
            )
        )
        if not ids:
            raise ValidationError("submissionIds must not be empty")
        if len(ids) > self._max_ids:
            raise ValidationError(
                f"At most {self._max_ids} submissions per batch"
            )
        return ids

    def _emit(self, event: DomainEvent) -> None:
        try:
            self._publish(event)
        except Exception:
            logger.exception(
                "event=publish_failed id=%s", event.submission.id
            )
