"""Submission creation, lookup, verification and deletion routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sourceverifier.api.dependencies import get_actor, get_machine
from sourceverifier.api.schemas import (
    APIResponse,
    SubmissionCreate,
    VerifyRequest,
)
from sourceverifier.services.verification import (
    VerificationStateMachine,
)
from sourceverifier.workflow.value_objects import Actor, SubmissionDraft

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


@router.post("", status_code=201)
async def create_submission(
    body: SubmissionCreate,
    actor: Actor = Depends(get_actor),
    machine: VerificationStateMachine = Depends(get_machine),
) -> APIResponse:
    """Submit a new source for verification."""
    submission = await machine.submit(
        actor,
        SubmissionDraft(
            url=body.url,
            title=body.title,
            publisher=body.publisher,
            country=body.country,
            category=body.category,
            file_reference=body.file_reference,
            wikipedia_article=body.wikipedia_article,
        ),
    )
    return APIResponse(success=True, data=submission.to_dict())


@router.get("/stats")
async def submission_stats(
    country: str | None = None,
    actor: Actor = Depends(get_actor),
    machine: VerificationStateMachine = Depends(get_machine),
) -> APIResponse:
    """Counts per status, optionally for one country."""
    counts = await machine.stats(country)
    return APIResponse(
        success=True,
        data=counts,
        metadata={"country": country.upper() if country else None},
    )


@router.get("/{submission_id}")
async def get_submission(
    submission_id: str,
    actor: Actor = Depends(get_actor),
    machine: VerificationStateMachine = Depends(get_machine),
) -> APIResponse:
    submission = await machine.get(submission_id)
    return APIResponse(success=True, data=submission.to_dict())


@router.put("/{submission_id}/verify")
async def verify_submission(
    submission_id: str,
    body: VerifyRequest,
    actor: Actor = Depends(get_actor),
    machine: VerificationStateMachine = Depends(get_machine),
) -> APIResponse:
    """Approve, reject or (admin only) re-open a submission."""
    outcome = await machine.verify(
        submission_id,
        actor,
        body.status,
        body.credibility,
        body.verifier_notes,
    )
    return APIResponse(
        success=True,
        data=outcome.submission.to_dict(),
        metadata={"changed": outcome.changed},
    )


@router.delete("/{submission_id}")
async def delete_submission(
    submission_id: str,
    actor: Actor = Depends(get_actor),
    machine: VerificationStateMachine = Depends(get_machine),
) -> APIResponse:
    submission = await machine.delete(submission_id, actor)
    return APIResponse(success=True, data={"id": submission.id})
