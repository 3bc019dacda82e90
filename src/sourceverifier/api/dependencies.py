"""FastAPI dependency injection for identity and services."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from sourceverifier.api.app_state import AppState
from sourceverifier.api.broadcaster import NotificationBroadcaster
from sourceverifier.constants import (
    USER_COUNTRY_HEADER,
    USER_ID_HEADER,
    USER_ROLE_HEADER,
    Role,
)
from sourceverifier.services.batch import BatchOperationCoordinator
from sourceverifier.services.data_service import DataService
from sourceverifier.services.verification import (
    VerificationStateMachine,
)
from sourceverifier.workflow.policy import is_admin
from sourceverifier.workflow.value_objects import Actor

logger = logging.getLogger(__name__)


def get_state(request: Request) -> AppState:
    return request.app.state.typed  # type: ignore[no-any-return]


def get_actor(request: Request) -> Actor:
    """Identity injected by the upstream auth provider.

    Missing or malformed headers answer 401.
    """
    user_id = request.headers.get(USER_ID_HEADER, "").strip()
    raw_role = request.headers.get(USER_ROLE_HEADER, "").strip()
    country = request.headers.get(USER_COUNTRY_HEADER, "").strip()
    if not user_id or not raw_role:
        raise HTTPException(
            status_code=401, detail="Authentication required"
        )
    try:
        role = Role(raw_role.lower())
    except ValueError:
        logger.warning(
            "event=invalid_identity user=%s role=%s", user_id, raw_role
        )
        raise HTTPException(
            status_code=401, detail="Invalid role"
        ) from None
    if role == Role.VERIFIER and not country:
        raise HTTPException(
            status_code=401, detail="Verifier country is required"
        )
    return Actor(user_id=user_id, role=role, country=country.upper())


def require_admin(request: Request) -> Actor:
    actor = get_actor(request)
    if not is_admin(actor):
        raise HTTPException(
            status_code=403, detail="Admin role required"
        )
    return actor


def get_machine(request: Request) -> VerificationStateMachine:
    return get_state(request).machine


def get_batch(request: Request) -> BatchOperationCoordinator:
    return get_state(request).batch


def get_broadcaster(request: Request) -> NotificationBroadcaster:
    return get_state(request).broadcaster


def get_data_service(request: Request) -> DataService:
    return get_state(request).data_service
