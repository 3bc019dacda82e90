"""Admin batch operations and live-channel stats."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sourceverifier.api.broadcaster import NotificationBroadcaster
from sourceverifier.api.dependencies import (
    get_batch,
    get_broadcaster,
    require_admin,
)
from sourceverifier.api.schemas import (
    APIResponse,
    BatchApplyRequest,
    BatchPreviewRequest,
)
from sourceverifier.services.batch import BatchOperationCoordinator
from sourceverifier.workflow.value_objects import Actor

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/batch/preview")
async def batch_preview(
    body: BatchPreviewRequest,
    actor: Actor = Depends(require_admin),
    batch: BatchOperationCoordinator = Depends(get_batch),
) -> APIResponse:
    """Show what a batch would touch. Never writes."""
    preview = await batch.preview(body.submission_ids)
    return APIResponse(success=True, data=preview.to_dict())


@router.post("/batch/apply")
async def batch_apply(
    body: BatchApplyRequest,
    actor: Actor = Depends(require_admin),
    batch: BatchOperationCoordinator = Depends(get_batch),
) -> APIResponse:
    """Apply an operation per item.

    Per-item failures are reported in ``failed``; the call itself
    succeeds whenever the request was well formed.
    """
    result = await batch.apply(
        body.operation,
        body.submission_ids,
        actor,
        status=body.status,
        credibility=body.credibility,
        notes=body.verifier_notes,
    )
    return APIResponse(
        success=True,
        data=result.to_dict(),
        metadata={"operation": result.operation},
    )


@router.get("/connections")
async def connections(
    actor: Actor = Depends(require_admin),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
) -> APIResponse:
    return APIResponse(
        success=True, data=broadcaster.connection_stats()
    )
