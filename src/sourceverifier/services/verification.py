"""Submission verification state machine.

Each transition runs in its own unit of work: read, authorize, build
the successor value, conditional write keyed on ``version``, award
points. Events and audit records go out only after the commit.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sourceverifier.constants import (
    COUNTRY_CODE_PATTERN,
    NOTES_MAX_LENGTH,
    PUBLISHER_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Category,
    Credibility,
    PointRule,
    ReviewAction,
    SubmissionStatus,
)
from sourceverifier.logger import AuditLogger
from sourceverifier.repositories.scope import RepoScope, Repos
from sourceverifier.resilience.idempotency import (
    IdempotencyGuard,
    make_key,
)
from sourceverifier.services.events import (
    DomainEvent,
    EventPublisher,
    SubmissionCreated,
    SubmissionDeleted,
    SubmissionVerified,
)
from sourceverifier.services.ledger import PointLedger
from sourceverifier.workflow import policy
from sourceverifier.workflow.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from sourceverifier.workflow.value_objects import (
    Actor,
    ReviewEntry,
    Submission,
    SubmissionDraft,
)

logger = logging.getLogger(__name__)

_ACTIONS: dict[SubmissionStatus, ReviewAction] = {
    SubmissionStatus.APPROVED: ReviewAction.APPROVED,
    SubmissionStatus.REJECTED: ReviewAction.REJECTED,
    SubmissionStatus.PENDING: ReviewAction.REOPENED,
}


@dataclass(frozen=True)
class VerifyTarget:
    """A validated transition target."""

    status: SubmissionStatus
    credibility: Credibility | None = None
    notes: str | None = None


@dataclass(frozen=True)
class TransitionOutcome:
    submission: Submission
    changed: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "submission": self.submission.to_dict(),
            "changed": self.changed,
        }


def parse_target(
    status: str,
    credibility: str | None = None,
    notes: str | None = None,
) -> VerifyTarget:
    """Validate raw request values into a ``VerifyTarget``."""
    try:
        target_status = SubmissionStatus(status)
    except ValueError:
        raise ValidationError(f"Invalid status: {status}") from None

    target_credibility: Credibility | None = None
    if credibility is not None:
        try:
            target_credibility = Credibility(credibility)
        except ValueError:
            raise ValidationError(
                f"Invalid credibility: {credibility}"
            ) from None

    if target_status == SubmissionStatus.APPROVED:
        if target_credibility is None:
            raise ValidationError(
                "Credibility is required when approving"
            )
    elif target_credibility is not None:
        raise ValidationError(
            "Credibility can only be set when approving"
        )

    if notes is not None:
        notes = notes.strip() or None
    if notes is not None and len(notes) > NOTES_MAX_LENGTH:
        raise ValidationError(
            f"Notes must be at most {NOTES_MAX_LENGTH} characters"
        )
    return VerifyTarget(target_status, target_credibility, notes)


def validate_draft(draft: SubmissionDraft) -> None:
    if draft.category not in set(Category):
        raise ValidationError(f"Invalid category: {draft.category}")
    if not draft.title.strip():
        raise ValidationError("Title is required")
    if len(draft.title) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Title must be at most {TITLE_MAX_LENGTH} characters"
        )
    if not draft.publisher.strip():
        raise ValidationError("Publisher is required")
    if len(draft.publisher) > PUBLISHER_MAX_LENGTH:
        raise ValidationError(
            f"Publisher must be at most {PUBLISHER_MAX_LENGTH}"
            " characters"
        )
    if not (draft.url.strip() or (draft.file_reference or "").strip()):
        raise ValidationError("A URL or file reference is required")


class VerificationStateMachine:
    """Applies submission transitions and their point side effects."""

    def __init__(
        self,
        scope: RepoScope,
        ledger: PointLedger,
        publish: EventPublisher,
        *,
        guard: IdempotencyGuard | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self._scope = scope
        self._ledger = ledger
        self._publish = publish
        self._guard = guard or IdempotencyGuard()
        self._audit = audit

    # ── Creation ─────────────────────────────────────────

    async def submit(
        self, actor: Actor, draft: SubmissionDraft
    ) -> Submission:
        """Create a pending submission and award the base points."""
        validate_draft(draft)
        country = (draft.country or actor.country).strip().upper()
        if not country:
            raise ValidationError("Country is required")
        if not re.fullmatch(COUNTRY_CODE_PATTERN, country):
            raise ValidationError("Country must be a 2-3 letter code")

        submission = Submission(
            id=str(uuid.uuid4()),
            url=draft.url.strip(),
            title=draft.title.strip(),
            publisher=draft.publisher.strip(),
            country=country,
            category=draft.category,
            submitter_id=actor.user_id,
            file_reference=draft.file_reference,
            wikipedia_article=draft.wikipedia_article,
        )
        async with self._scope() as repos:
            await repos.submission.create(submission)
            await self._ledger.award(
                repos,
                actor.user_id,
                PointRule.SUBMISSION_CREATED,
                submission.id,
            )

        logger.info(
            "event=submission_created id=%s country=%s submitter=%s",
            submission.id,
            submission.country,
            submission.submitter_id,
        )
        self._emit(
            SubmissionCreated(
                submission, action="created", actor_id=actor.user_id
            )
        )
        return submission

    # ── Reads ────────────────────────────────────────────

    async def get(self, submission_id: str) -> Submission:
        async with self._scope() as repos:
            return await _load(repos, submission_id)

    async def stats(self, country: str | None = None) -> dict[str, int]:
        """Submission counts per status, optionally for one country."""
        async with self._scope() as repos:
            return await repos.submission.count_by_status(
                country.strip().upper() if country else None
            )

    async def standing(self, user_id: str) -> dict[str, Any]:
        async with self._scope() as repos:
            standing = await self._ledger.standing(repos, user_id)
        return standing.to_dict()

    # ── Transitions ──────────────────────────────────────

    async def verify(
        self,
        submission_id: str,
        actor: Actor,
        status: str,
        credibility: str | None = None,
        notes: str | None = None,
        *,
        publish: bool = True,
    ) -> TransitionOutcome:
        """Move a submission to ``status``.

        A repeated call with the same outcome is a no-op that returns
        the current state. Identical concurrent calls share one run.
        """
        target = parse_target(status, credibility, notes)
        key = make_key(
            "verify",
            submission_id,
            actor.user_id,
            actor.role,
            actor.country,
            target.status,
            target.credibility,
            target.notes,
            publish,
        )
        outcome: TransitionOutcome = await self._guard.execute(
            key,
            lambda: self._verify(submission_id, actor, target, publish),
        )
        return outcome

    async def _verify(
        self,
        submission_id: str,
        actor: Actor,
        target: VerifyTarget,
        publish: bool,
    ) -> TransitionOutcome:
        async with self._scope() as repos:
            current = await _load(repos, submission_id)
            _authorize_verify(actor, current, target)
            if current.has_outcome(target.status, target.credibility):
                return TransitionOutcome(current, changed=False)

            entry = ReviewEntry(
                actor_id=actor.user_id,
                action=_ACTIONS[target.status],
                notes=target.notes,
                timestamp=datetime.now(UTC),
            )
            successor = current.transitioned(
                entry, target.status, target.credibility
            )
            won = await repos.submission.update_if_version(
                successor, current.version
            )
            if won:
                await self._award_transition(repos, current, successor)

        if not won:
            return await self._resolve_lost_race(submission_id, target)

        logger.info(
            "event=submission_transition id=%s actor=%s from=%s to=%s"
            " credibility=%s",
            successor.id,
            actor.user_id,
            current.status,
            successor.status,
            successor.credibility or "-",
        )
        if self._audit is not None:
            self._audit.log_transition(
                successor.id,
                actor.user_id,
                entry.action,
                current.status,
                successor.status,
            )
        if publish:
            self._emit(
                SubmissionVerified(
                    successor,
                    action=entry.action,
                    actor_id=actor.user_id,
                )
            )
        return TransitionOutcome(successor, changed=True)

    async def _award_transition(
        self, repos: Repos, before: Submission, after: Submission
    ) -> None:
        """Award points earned by moving ``before`` to ``after``.

        The submitter bonus applies only to the first approval ever
        recorded; rejections and re-opens move no points.
        """
        if after.status != SubmissionStatus.APPROVED:
            return
        if not before.was_ever_approved():
            rule = (
                PointRule.APPROVED_CREDIBLE
                if after.credibility == Credibility.CREDIBLE
                else PointRule.APPROVED_UNRELIABLE
            )
            await self._ledger.award(
                repos, after.submitter_id, rule, after.id
            )
        if after.verifier_id is not None:
            await self._ledger.award(
                repos,
                after.verifier_id,
                PointRule.VERIFICATION,
                after.id,
            )

    async def _resolve_lost_race(
        self, submission_id: str, target: VerifyTarget
    ) -> TransitionOutcome:
        """Re-read after a failed conditional write."""
        async with self._scope() as repos:
            latest = await repos.submission.get(submission_id)
        if latest is None:
            raise NotFoundError("Submission not found")
        if latest.has_outcome(target.status, target.credibility):
            logger.info(
                "event=transition_race_noop id=%s status=%s",
                submission_id,
                target.status,
            )
            return TransitionOutcome(latest, changed=False)
        logger.warning(
            "event=transition_conflict id=%s wanted=%s found=%s",
            submission_id,
            target.status,
            latest.status,
        )
        raise ConflictError(
            "Submission was modified by another reviewer"
        )

    # ── Deletion ─────────────────────────────────────────

    async def delete(
        self,
        submission_id: str,
        actor: Actor,
        *,
        publish: bool = True,
    ) -> Submission:
        """Remove a submission; returns the last snapshot."""
        async with self._scope() as repos:
            current = await _load(repos, submission_id)
            if not policy.can_delete(actor, current):
                raise ForbiddenError(
                    "Only the submitter of a pending submission"
                    " or an admin can delete it"
                )
            deleted = await repos.submission.delete_if_version(
                current.id, current.version
            )

        if not deleted:
            async with self._scope() as repos:
                latest = await repos.submission.get(submission_id)
            if latest is None:
                raise NotFoundError("Submission not found")
            raise ConflictError(
                "Submission was modified while deleting"
            )

        logger.info(
            "event=submission_deleted id=%s actor=%s status=%s",
            current.id,
            actor.user_id,
            current.status,
        )
        if self._audit is not None:
            self._audit.log_deletion(
                current.id, actor.user_id, current.status
            )
        if publish:
            self._emit(
                SubmissionDeleted(
                    current, action="deleted", actor_id=actor.user_id
                )
            )
        return current

    def _emit(self, event: DomainEvent) -> None:
        try:
            self._publish(event)
        except Exception:
            logger.exception(
                "event=publish_failed id=%s", event.submission.id
            )


async def _load(repos: Repos, submission_id: str) -> Submission:
    submission = await repos.submission.get(submission_id)
    if submission is None:
        raise NotFoundError("Submission not found")
    return submission


def _authorize_verify(
    actor: Actor, submission: Submission, target: VerifyTarget
) -> None:
    if not policy.can_verify(actor, submission):
        if policy.Capability.VERIFY in policy.capabilities(actor):
            raise ForbiddenError(
                "You can only verify submissions from your country"
            )
        raise ForbiddenError("Verifier or admin role required")
    if target.status == SubmissionStatus.PENDING:
        if not policy.can_override(actor):
            raise ForbiddenError("Only admins can re-open a submission")
        return
    if (
        submission.is_terminal
        and not submission.has_outcome(target.status, target.credibility)
        and not policy.can_override(actor)
    ):
        raise ConflictError("Submission has already been verified")
