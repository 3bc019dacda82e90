"""FastAPI application with lifespan startup."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sourceverifier.logging_config import setup_logging

setup_logging()

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker  # noqa: E402

from sourceverifier import __version__  # noqa: E402
from sourceverifier.api.app_state import build_state  # noqa: E402
from sourceverifier.api.errors import register_error_handlers  # noqa: E402
from sourceverifier.api.middleware.auth import ApiKeyMiddleware  # noqa: E402
from sourceverifier.api.routes import (  # noqa: E402
    admin,
    events,
    health,
    submissions,
    users,
)
from sourceverifier.config import Settings, create_app_engine  # noqa: E402
from sourceverifier.logger import AuditLogger  # noqa: E402
from sourceverifier.models.base import Base  # noqa: E402
from sourceverifier.repositories.scope import sql_scope  # noqa: E402
from sourceverifier.services.data_service import DataService  # noqa: E402

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # 1. Use module-level settings (single source of truth)
    settings = _settings

    # 2. Create async engine (SQLite gets WAL via pool-connect listener)
    engine = create_app_engine(
        settings.database_url, echo=settings.debug_mode
    )

    # 3. Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # 4. Session factory and per-transition unit of work
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    scope = sql_scope(session_factory)

    # 5. Audit trail
    audit = AuditLogger(log_dir=settings.log_dir, level=settings.log_level)

    # 6. Services, wired around one broadcaster
    state = build_state(
        settings,
        scope,
        DataService(session_factory, settings),
        audit=audit,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.typed = state

    # 7. Security: warn if the shared key gate is disabled
    if not settings.api_key:
        _logger.warning(
            "event=no_api_key action=identity_headers_only"
        )

    yield

    # Cleanup: end open streams before the engine goes away
    await state.broadcaster.close_all()
    await engine.dispose()


app = FastAPI(
    title="Source Verifier",
    description=(
        "Citation source verification workflow with"
        " scoped live notifications"
    ),
    version=__version__,
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# Middleware stack (Starlette LIFO: last added = outermost = runs first)
#
# Inbound request order:
#   CORSMiddleware (outermost) -> ApiKeyMiddleware -> Router
#
# CORS must be outermost so OPTIONS preflight is answered before
# ApiKeyMiddleware rejects for missing X-API-Key.
_settings = Settings()
_cors_origins = [
    o.strip()
    for o in _settings.cors_origins.split(",")
    if o.strip()
]

app.add_middleware(ApiKeyMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "X-API-Key",
        "X-User-Id",
        "X-User-Role",
        "X-User-Country",
        "Cache-Control",
    ],
    allow_credentials=False,
)

register_error_handlers(app)

# Routes
app.include_router(health.router)
app.include_router(submissions.router)
app.include_router(admin.router)
app.include_router(users.router)
app.include_router(events.router)
