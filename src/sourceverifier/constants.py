"""Shared constants: single source of truth for cross-module values.

StrEnum members are str-compatible, so downstream code (JSON, SQL,
SSE payloads) works unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class SubmissionStatus(StrEnum):
    """Submission workflow status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TERMINAL_STATUSES = frozenset({
    SubmissionStatus.APPROVED,
    SubmissionStatus.REJECTED,
})


class Credibility(StrEnum):
    """Sub-classification of an approved submission."""

    CREDIBLE = "credible"
    UNRELIABLE = "unreliable"


class Category(StrEnum):
    """Source category chosen by the contributor."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    UNRELIABLE = "unreliable"


class Role(StrEnum):
    """Actor role supplied by the identity provider."""

    CONTRIBUTOR = "contributor"
    VERIFIER = "verifier"
    ADMIN = "admin"


class ReviewAction(StrEnum):
    """Action label recorded in a submission's review history."""

    APPROVED = "approved"
    REJECTED = "rejected"
    REOPENED = "reopened"


class BatchOperation(StrEnum):
    """Operations accepted by the batch coordinator."""

    APPROVE = "approve"
    REJECT = "reject"
    DELETE = "delete"
    UPDATE_STATUS = "updateStatus"


class PointRule(StrEnum):
    """Ledger rule identifiers. Values are looked up in Settings."""

    SUBMISSION_CREATED = "submission_created"
    APPROVED_CREDIBLE = "approved_credible"
    APPROVED_UNRELIABLE = "approved_unreliable"
    VERIFICATION = "verification"


APPROVAL_RULES = frozenset({
    PointRule.APPROVED_CREDIBLE,
    PointRule.APPROVED_UNRELIABLE,
})


class Badge(StrEnum):
    """Badge identifiers awarded by the ledger."""

    FIRST_SUBMISSION = "first-submission"
    RELIABLE_HUNTER = "reliable-hunter"
    QUALITY_VERIFIER = "quality-verifier"
    SOURCE_GUARDIAN = "source-guardian"
    CITATION_CHAMPION = "citation-champion"


class SSEEvent(StrEnum):
    """Server-Sent Event names on the live channel."""

    CONNECTED = "connected"
    NEW_SUBMISSION = "new-submission"
    SUBMISSION_UPDATED = "submission-updated"
    SUBMISSION_VERIFIED = "submission-verified"


class ConnectionState(StrEnum):
    """Lifecycle of a live connection."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


# ── Field Limits ─────────────────────────────────────────

TITLE_MAX_LENGTH = 200
PUBLISHER_MAX_LENGTH = 100
NOTES_MAX_LENGTH = 500
COUNTRY_CODE_PATTERN = r"[A-Z]{2,3}"

# ── Batch ────────────────────────────────────────────────

BATCH_MAX_IDS = 1000
PREVIEW_DISPLAY_CAP = 10
BATCH_CONCURRENCY = 8
AUDIT_ID_SAMPLE = 10

# ── Live Channel ─────────────────────────────────────────

BROADCAST_QUEUE_SIZE = 256
SSE_PING_SECONDS = 15

# ── Identity Headers ─────────────────────────────────────

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"
USER_COUNTRY_HEADER = "X-User-Country"

# ── Auth Exempt Paths ────────────────────────────────────

AUTH_EXEMPT_PATHS = frozenset({
    "/api/health",
    "/api/docs",
    "/api/redoc",
    "/api/openapi.json",
})

AUTH_EXEMPT_PREFIXES = ("/api/health",)

API_KEY_HEADER = "X-API-Key"

# EventSource cannot set headers, so the live stream may carry the key
# as a query parameter instead.
API_KEY_QUERY_PATHS = frozenset({"/api/events"})
API_KEY_QUERY_PARAM = "api_key"

# ── ID Generation ───────────────────────────────────────

ID_HEX_LENGTH = 12
