"""Request/response schemas for the HTTP API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from sourceverifier.constants import (
    NOTES_MAX_LENGTH,
    PUBLISHER_MAX_LENGTH,
    TITLE_MAX_LENGTH,
)


class APIResponse(BaseModel):
    """Standard response envelope for all API endpoints."""

    success: bool
    data: Any | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SubmissionCreate(BaseModel):
    """Request body for POST /api/submissions."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = ""
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    publisher: str = Field(min_length=1, max_length=PUBLISHER_MAX_LENGTH)
    country: str = ""
    category: str
    file_reference: str | None = Field(
        default=None, alias="fileReference"
    )
    wikipedia_article: str | None = Field(
        default=None, alias="wikipediaArticle"
    )


class VerifyRequest(BaseModel):
    """Request body for PUT /api/submissions/{id}/verify."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    credibility: str | None = None
    verifier_notes: str | None = Field(
        default=None,
        alias="verifierNotes",
        max_length=NOTES_MAX_LENGTH,
    )


class BatchPreviewRequest(BaseModel):
    """Request body for POST /api/admin/batch/preview."""

    model_config = ConfigDict(populate_by_name=True)

    submission_ids: list[str] = Field(alias="submissionIds")


class BatchApplyRequest(BaseModel):
    """Request body for POST /api/admin/batch/apply."""

    model_config = ConfigDict(populate_by_name=True)

    operation: str
    submission_ids: list[str] = Field(alias="submissionIds")
    status: str | None = None
    credibility: str | None = None
    verifier_notes: str | None = Field(
        default=None, alias="verifierNotes"
    )
