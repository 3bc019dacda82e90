"""Typed application state: replaces untyped getattr() access."""

from __future__ import annotations

from dataclasses import dataclass

from sourceverifier.api.broadcaster import NotificationBroadcaster
from sourceverifier.config import Settings
from sourceverifier.logger import AuditLogger
from sourceverifier.repositories.scope import RepoScope
from sourceverifier.services.batch import BatchOperationCoordinator
from sourceverifier.services.data_service import DataService
from sourceverifier.services.ledger import PointLedger
from sourceverifier.services.verification import (
    VerificationStateMachine,
)


@dataclass
class AppState:
    """Typed container for app.state attributes."""

    settings: Settings
    broadcaster: NotificationBroadcaster
    machine: VerificationStateMachine
    batch: BatchOperationCoordinator
    data_service: DataService


def build_state(
    settings: Settings,
    scope: RepoScope,
    data_service: DataService,
    *,
    audit: AuditLogger | None = None,
) -> AppState:
    """Wire the workflow services around one broadcaster."""
    broadcaster = NotificationBroadcaster(
        queue_size=settings.broadcast_queue_size
    )
    ledger = PointLedger(
        settings.point_values, settings.badge_thresholds
    )
    machine = VerificationStateMachine(
        scope,
        ledger,
        broadcaster.publish,
        audit=audit,
    )
    batch = BatchOperationCoordinator(
        scope,
        machine,
        broadcaster.publish,
        max_ids=settings.batch_max_ids,
        display_cap=settings.preview_display_cap,
        concurrency=settings.batch_concurrency,
        audit=audit,
    )
    return AppState(
        settings=settings,
        broadcaster=broadcaster,
        machine=machine,
        batch=batch,
        data_service=data_service,
    )
