"""User point and badge standing."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sourceverifier.api.dependencies import get_actor, get_machine
from sourceverifier.api.schemas import APIResponse
from sourceverifier.services.verification import (
    VerificationStateMachine,
)
from sourceverifier.workflow.value_objects import Actor

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/{user_id}/standing")
async def user_standing(
    user_id: str,
    actor: Actor = Depends(get_actor),
    machine: VerificationStateMachine = Depends(get_machine),
) -> APIResponse:
    standing = await machine.standing(user_id)
    return APIResponse(success=True, data=standing)
