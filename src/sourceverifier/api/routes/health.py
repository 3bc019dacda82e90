"""Health check endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from sourceverifier import __version__
from sourceverifier.api.broadcaster import NotificationBroadcaster
from sourceverifier.api.dependencies import (
    get_broadcaster,
    get_data_service,
)
from sourceverifier.services.data_service import DataService

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Basic health check for load balancers."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/detailed")
async def health_detailed(
    data_service: DataService = Depends(get_data_service),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
) -> dict[str, object]:
    """Detailed health check with component-level status."""
    db_healthy = await data_service.check_connection()
    log_writable = data_service.check_log_dir()

    components = {
        "database": {
            "status": "connected" if db_healthy else "disconnected"
        },
        "audit_log": {
            "status": "available" if log_writable else "unavailable"
        },
        "live_channel": {
            "status": "available",
            "connections": broadcaster.connection_stats()["total"],
        },
    }

    all_healthy = all(
        c["status"] in ("connected", "available")
        for c in components.values()
    )

    return {
        "status": "healthy" if all_healthy else "degraded",
        "version": __version__,
        "components": components,
        "timestamp": datetime.now(UTC).isoformat(),
    }
