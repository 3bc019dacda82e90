"""Shared test fixtures: fake workflow wiring, in-memory SQLite."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
)

from sourceverifier.api.app_state import AppState, build_state
from sourceverifier.config import Settings
from sourceverifier.constants import Category, Role
from sourceverifier.logger import AuditLogger
from sourceverifier.main import app
from sourceverifier.models.base import Base
from sourceverifier.repositories.fakes import (
    FakeDataService,
    fake_repos,
    fake_scope,
)
from sourceverifier.repositories.scope import Repos
from sourceverifier.services.events import DomainEvent
from sourceverifier.services.ledger import PointLedger
from sourceverifier.services.verification import (
    VerificationStateMachine,
)
from sourceverifier.workflow.value_objects import Actor, SubmissionDraft

CONTRIBUTOR = Actor("u-alice", Role.CONTRIBUTOR, "GH")
OTHER_CONTRIBUTOR = Actor("u-bob", Role.CONTRIBUTOR, "GH")
GH_VERIFIER = Actor("v-kofi", Role.VERIFIER, "GH")
GH_VERIFIER_2 = Actor("v-ama", Role.VERIFIER, "GH")
NG_VERIFIER = Actor("v-chidi", Role.VERIFIER, "NG")
ADMIN = Actor("a-root", Role.ADMIN, "")


def make_settings(tmp_path: Path | None = None, **overrides: object) -> Settings:
    """Settings isolated from any local .env file."""
    values: dict[str, object] = {
        "database_url": "sqlite:///:memory:",
        "api_key": "",
    }
    if tmp_path is not None:
        values["log_dir"] = tmp_path / "logs"
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]


def make_draft(
    title: str = "Ghana Statistical Service census report",
    country: str = "GH",
    category: str = Category.PRIMARY,
) -> SubmissionDraft:
    return SubmissionDraft(
        url="https://statsghana.gov.gh/census",
        title=title,
        publisher="Ghana Statistical Service",
        country=country,
        category=category,
    )


def make_machine(
    repos: Repos,
    publish: Callable[[DomainEvent], object],
    settings: Settings | None = None,
) -> VerificationStateMachine:
    settings = settings or make_settings()
    return VerificationStateMachine(
        fake_scope(repos),
        PointLedger(settings.point_values, settings.badge_thresholds),
        publish,
    )


def identity(actor: Actor) -> dict[str, str]:
    """Identity headers as injected by the upstream auth provider."""
    return {
        "X-User-Id": actor.user_id,
        "X-User-Role": actor.role,
        "X-User-Country": actor.country,
    }


def setup_test_app(
    tmp_path: Path, **settings_overrides: object
) -> tuple[Repos, AppState]:
    """Common app-state setup for API test fixtures.

    Wires the real services over fake repositories, so routes run
    without a database. Returns (repos, state) for seeding and
    inspection.
    """
    repos = fake_repos()
    settings = make_settings(tmp_path, **settings_overrides)
    state = build_state(
        settings,
        fake_scope(repos),
        FakeDataService(),  # type: ignore[arg-type]
        audit=AuditLogger(
            log_dir=Path(tmp_path / "logs"), level="WARNING"
        ),
    )
    app.state.settings = settings
    app.state.typed = state
    return repos, state


def parse_sse_events(
    raw: str,
) -> list[dict[str, str]]:
    """Parse raw SSE text into list of {event, data} dicts."""
    events: list[dict[str, str]] = []
    current_event = ""
    current_data = ""

    for line in raw.replace("\r\n", "\n").split("\n"):
        line = line.strip()
        if line.startswith("event:"):
            current_event = line[6:].strip()
        elif line.startswith("data:"):
            current_data = line[5:].strip()
        elif line == "" and current_event:
            events.append(
                {"event": current_event, "data": current_data}
            )
            current_event = ""
            current_data = ""

    if current_event and current_data:
        events.append(
            {"event": current_event, "data": current_data}
        )

    return events


@pytest.fixture
def repos() -> Repos:
    return fake_repos()


@pytest.fixture
def published() -> list[DomainEvent]:
    return []


@pytest.fixture
def machine(
    repos: Repos, published: list[DomainEvent]
) -> VerificationStateMachine:
    return make_machine(repos, published.append)


@pytest.fixture
async def engine():
    """In-memory engine with all tables created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    """Function-scoped session with connection-level rollback."""
    async with engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(
            bind=connection, expire_on_commit=False
        )
        yield session
        await session.close()
        await transaction.rollback()
