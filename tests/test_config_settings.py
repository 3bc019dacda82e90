"""Tests for Settings validators and the engine factory."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import text

from sourceverifier.config import create_app_engine
from sourceverifier.constants import Badge, PointRule
from tests.conftest import make_settings


class TestPointValues:
    def test_defaults(self) -> None:
        s = make_settings()
        assert s.point_values == {
            PointRule.SUBMISSION_CREATED: 10,
            PointRule.APPROVED_CREDIBLE: 25,
            PointRule.APPROVED_UNRELIABLE: 10,
            PointRule.VERIFICATION: 5,
        }

    def test_override(self) -> None:
        s = make_settings(points_verification=3)
        assert s.point_values[PointRule.VERIFICATION] == 3

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            make_settings(points_submission=-1)

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POINTS_APPROVED_CREDIBLE", "40")
        s = make_settings()
        assert s.point_values[PointRule.APPROVED_CREDIBLE] == 40


class TestThresholdsAndLimits:
    def test_badge_thresholds(self) -> None:
        s = make_settings(badge_reliable_hunter=3)
        assert s.badge_thresholds[Badge.RELIABLE_HUNTER] == 3
        assert s.badge_thresholds[Badge.FIRST_SUBMISSION] == 1

    @pytest.mark.parametrize(
        "field",
        [
            "batch_max_ids",
            "preview_display_cap",
            "broadcast_queue_size",
            "sse_ping_seconds",
            "batch_concurrency",
        ],
    )
    def test_limits_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            make_settings(**{field: 0})

    def test_batch_concurrency(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert make_settings().batch_concurrency == 8
        monkeypatch.setenv("BATCH_CONCURRENCY", "2")
        assert make_settings().batch_concurrency == 2


class TestCreateAppEngine:
    async def test_wal_mode_set_on_connect(self, tmp_path: Path) -> None:
        """WAL journal mode is set automatically on connection."""
        engine = create_app_engine(f"sqlite:///{tmp_path / 'test.db'}")
        async with engine.connect() as conn:
            row = await conn.execute(text("PRAGMA journal_mode"))
            mode = row.scalar()
        await engine.dispose()
        assert mode == "wal"

    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        db_file = tmp_path / "nested" / "dir" / "sv.db"
        engine = create_app_engine(f"sqlite:///{db_file}")
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        await engine.dispose()
        assert db_file.parent.is_dir()

    async def test_url_conversion(self, tmp_path: Path) -> None:
        """sqlite:/// is converted to sqlite+aiosqlite:///."""
        engine = create_app_engine(f"sqlite:///{tmp_path / 'x.db'}")
        assert "aiosqlite" in str(engine.url)
        await engine.dispose()

    async def test_already_converted_url_passthrough(self) -> None:
        engine = create_app_engine("sqlite+aiosqlite:///:memory:")
        assert str(engine.url) == "sqlite+aiosqlite:///:memory:"
        await engine.dispose()

    async def test_savepoint_rolls_back_with_outer(
        self, tmp_path: Path
    ) -> None:
        engine = create_app_engine(f"sqlite:///{tmp_path / 'sp.db'}")
        async with engine.begin() as conn:
            await conn.execute(text("CREATE TABLE t (x INTEGER)"))

        async with engine.connect() as conn:
            trans = await conn.begin()
            nested = await conn.begin_nested()
            await conn.execute(text("INSERT INTO t VALUES (1)"))
            await nested.commit()
            await trans.rollback()

        async with engine.connect() as conn:
            count = (
                await conn.execute(text("SELECT COUNT(*) FROM t"))
            ).scalar()
        await engine.dispose()
        assert count == 0
