"""Tests for error classification."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from sourceverifier.resilience.errors import (
    ErrorClass,
    classify_error,
    is_retryable,
)
from sourceverifier.workflow.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)


def _operational(message: str) -> OperationalError:
    return OperationalError("UPDATE submissions", {}, Exception(message))


# ── classify_error ───────────────────────────────────────────


def test_conflict_is_transient() -> None:
    """A lost race may succeed when re-applied."""
    err = ConflictError("Submission was modified by another reviewer")
    assert classify_error(err) == ErrorClass.TRANSIENT


@pytest.mark.parametrize(
    "err",
    [
        NotFoundError("Submission not found"),
        ForbiddenError("Verifier or admin role required"),
        ValidationError("Invalid status: archived"),
    ],
)
def test_workflow_errors_are_client(err: Exception) -> None:
    assert classify_error(err) == ErrorClass.CLIENT
    assert is_retryable(err) is False


def test_locked_database_is_transient() -> None:
    assert (
        classify_error(_operational("database is locked"))
        == ErrorClass.TRANSIENT
    )


def test_other_operational_error_is_server() -> None:
    assert (
        classify_error(_operational("disk I/O error"))
        == ErrorClass.SERVER
    )


def test_integrity_error_is_server() -> None:
    err = IntegrityError("INSERT", {}, Exception("UNIQUE failed"))
    assert classify_error(err) == ErrorClass.SERVER


def test_classify_timeout_error_type() -> None:
    assert classify_error(TimeoutError()) == ErrorClass.TIMEOUT
    assert classify_error(asyncio.TimeoutError()) == ErrorClass.TIMEOUT


def test_classify_string_fallback_connection() -> None:
    err = Exception("connection reset by peer")
    assert classify_error(err) == ErrorClass.TRANSIENT


def test_classify_string_fallback_timeout() -> None:
    err = Exception("request timed out after 30s")
    assert classify_error(err) == ErrorClass.TIMEOUT


def test_classify_unknown() -> None:
    err = RuntimeError("something completely unexpected")
    assert classify_error(err) == ErrorClass.UNKNOWN
    assert is_retryable(err) is False


# ── is_retryable ─────────────────────────────────────────────


def test_retryable_classes() -> None:
    assert is_retryable(_operational("database is locked")) is True
    assert is_retryable(_operational("disk I/O error")) is True
    assert is_retryable(TimeoutError()) is True
