"""Typed workflow errors.

Each error carries the HTTP status the API layer answers with, so
route handlers never translate exceptions by hand.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for expected, user-facing workflow failures."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(WorkflowError):
    """Unknown submission or user id."""

    status_code = 404


class ForbiddenError(WorkflowError):
    """Capability or country-scope violation."""

    status_code = 403


class ValidationError(WorkflowError):
    """Malformed request or transition target."""

    status_code = 400


class ConflictError(WorkflowError):
    """The submission already holds a different outcome."""

    status_code = 409
