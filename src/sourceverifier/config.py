"""Environment-based configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings
from sqlalchemy import Connection, event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from sourceverifier.constants import (
    BATCH_CONCURRENCY,
    BATCH_MAX_IDS,
    BROADCAST_QUEUE_SIZE,
    PREVIEW_DISPLAY_CAP,
    SSE_PING_SECONDS,
    Badge,
    PointRule,
)


class Settings(BaseSettings):
    """Reads from .env file and environment variables."""

    # Database
    database_url: str = "sqlite:///data/sourceverifier.db"

    # Directories
    log_dir: Path = Path("logs")

    # Logging
    log_level: str = "INFO"
    debug_mode: bool = False

    # API
    api_key: str = ""
    cors_origins: str = "http://localhost:3000"

    # Points (the source docs disagree on these, so they stay tunable)
    points_submission: int = 10
    points_approved_credible: int = 25
    points_approved_unreliable: int = 10
    points_verification: int = 5

    # Badge thresholds
    badge_first_submission: int = 1
    badge_reliable_hunter: int = 10
    badge_quality_verifier: int = 25
    badge_source_guardian: int = 100
    badge_citation_champion: int = 500

    # Batch
    batch_max_ids: int = BATCH_MAX_IDS
    preview_display_cap: int = PREVIEW_DISPLAY_CAP
    batch_concurrency: int = BATCH_CONCURRENCY

    # Live channel
    broadcast_queue_size: int = BROADCAST_QUEUE_SIZE
    sse_ping_seconds: int = SSE_PING_SECONDS

    @field_validator(
        "points_submission",
        "points_approved_credible",
        "points_approved_unreliable",
        "points_verification",
    )
    @classmethod
    def _non_negative_points(cls, v: int) -> int:
        if v < 0:
            raise ValueError("point values must be non-negative")
        return v

    @field_validator(
        "batch_max_ids",
        "preview_display_cap",
        "batch_concurrency",
        "broadcast_queue_size",
        "sse_ping_seconds",
    )
    @classmethod
    def _positive_limits(cls, v: int) -> int:
        if v < 1:
            raise ValueError("limits must be at least 1")
        return v

    @property
    def point_values(self) -> dict[PointRule, int]:
        """Fixed point value per ledger rule."""
        return {
            PointRule.SUBMISSION_CREATED: self.points_submission,
            PointRule.APPROVED_CREDIBLE: self.points_approved_credible,
            PointRule.APPROVED_UNRELIABLE: (
                self.points_approved_unreliable
            ),
            PointRule.VERIFICATION: self.points_verification,
        }

    @property
    def badge_thresholds(self) -> dict[Badge, int]:
        return {
            Badge.FIRST_SUBMISSION: self.badge_first_submission,
            Badge.RELIABLE_HUNTER: self.badge_reliable_hunter,
            Badge.QUALITY_VERIFIER: self.badge_quality_verifier,
            Badge.SOURCE_GUARDIAN: self.badge_source_guardian,
            Badge.CITATION_CHAMPION: self.badge_citation_champion,
        }

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "extra": "ignore",
    }


def create_app_engine(
    url: str, *, echo: bool = False
) -> AsyncEngine:
    """Create async engine; SQLite URLs get WAL journal mode.

    Handles URL conversion (sqlite:/// → sqlite+aiosqlite:///)
    and sets WAL mode via a pool-connect event listener so it
    fires once per raw DBAPI connection, not per ORM session.
    SQLite transactions begin IMMEDIATE, serializing writers.
    """
    if url.startswith("sqlite:///"):
        db_url = "sqlite+aiosqlite:///" + url[len("sqlite:///"):]
        _ensure_sqlite_dir(url[len("sqlite:///"):])
    else:
        db_url = url
    engine = create_async_engine(db_url, echo=echo)

    if db_url.startswith("sqlite"):

        @event.listens_for(engine.sync_engine, "connect")
        def _set_wal_mode(
            dbapi_conn: object,
            _connection_record: object,
        ) -> None:
            cursor = dbapi_conn.cursor()  # type: ignore[union-attr]
            cursor.execute("PRAGMA journal_mode=WAL")  # pyright: ignore[reportUnknownMemberType]
            cursor.close()  # pyright: ignore[reportUnknownMemberType]
            # Driver-level autocommit; SQLAlchemy emits BEGIN itself
            dbapi_conn.isolation_level = None  # type: ignore[attr-defined]

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn: Connection) -> None:
            # Take the write lock up front so savepoints nest and a
            # read-then-write never fails on a stale WAL snapshot.
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def _ensure_sqlite_dir(path: str) -> None:
    """SQLite will not create missing parent directories."""
    if not path or path.startswith(":memory:"):
        return
    Path(path).parent.mkdir(parents=True, exist_ok=True)
