"""Error classification for structured error handling.

Classifies exceptions by category to enable:
- Structured logging (which errors are transient vs permanent)
- Per-item failure reasons in batch results
- Safe re-apply decisions (only retry transient/server/timeout)
"""

from __future__ import annotations

import asyncio
from enum import Enum

from sqlalchemy.exc import DBAPIError, OperationalError

from sourceverifier.workflow.errors import ConflictError, WorkflowError


class ErrorClass(Enum):
    TRANSIENT = "transient"  # lost race or locked database, retryable
    SERVER = "server"  # storage failure, retryable
    TIMEOUT = "timeout"  # deadline exceeded, retryable with backoff
    CLIENT = "client"  # rejected by the workflow, do NOT retry
    UNKNOWN = "unknown"  # unclassified, do NOT retry


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an error to determine handling strategy.

    Checks workflow types first, then storage and timeout types,
    falls back to string matching for untyped exceptions.
    """
    # 1. Workflow errors: a lost race may succeed on re-apply
    if isinstance(error, ConflictError):
        return ErrorClass.TRANSIENT
    if isinstance(error, WorkflowError):
        return ErrorClass.CLIENT

    # 2. Storage errors
    if isinstance(error, OperationalError):
        msg = str(error).lower()
        if "locked" in msg or "busy" in msg:
            return ErrorClass.TRANSIENT
        return ErrorClass.SERVER
    if isinstance(error, DBAPIError):
        return ErrorClass.SERVER

    # 3. Timeouts
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorClass.TIMEOUT

    # 4. Fall back to string matching for untyped exceptions
    msg = str(error).lower()

    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "connection" in msg:
        return ErrorClass.TRANSIENT

    return ErrorClass.UNKNOWN


_RETRYABLE = frozenset({
    ErrorClass.TRANSIENT,
    ErrorClass.SERVER,
    ErrorClass.TIMEOUT,
})


def is_retryable(error: BaseException) -> bool:
    """Return True if the error category supports retry."""
    return classify_error(error) in _RETRYABLE
