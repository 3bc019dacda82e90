"""Tests for CLI argument parsing and commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import inspect

from sourceverifier import __version__
from sourceverifier.cli import _build_parser, _create_tables, main
from sourceverifier.config import create_app_engine


class TestArgParser:
    def test_version_flag(self) -> None:
        args = _build_parser().parse_args(["--version"])
        assert args.version is True

    def test_serve_defaults(self) -> None:
        args = _build_parser().parse_args(["serve"])
        assert args.command == "serve"
        assert args.host == "127.0.0.1"
        assert args.port == 8000
        assert args.reload is False

    def test_serve_with_options(self) -> None:
        args = _build_parser().parse_args(
            ["serve", "--host", "0.0.0.0", "-p", "9000", "--reload"]
        )
        assert args.host == "0.0.0.0"
        assert args.port == 9000
        assert args.reload is True

    def test_init_db_url(self) -> None:
        args = _build_parser().parse_args(
            ["init-db", "--database-url", "sqlite:///x.db"]
        )
        assert args.command == "init-db"
        assert args.database_url == "sqlite:///x.db"

    def test_no_command(self) -> None:
        args = _build_parser().parse_args([])
        assert args.command is None


class TestMain:
    def test_prints_version(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["--version"])
        assert capsys.readouterr().out.strip() == (
            f"sourceverifier {__version__}"
        )

    def test_serve_runs_uvicorn(self) -> None:
        with patch("uvicorn.run") as run:
            main(["serve", "--port", "8123"])
        run.assert_called_once()
        assert run.call_args.args == ("sourceverifier.main:app",)
        assert run.call_args.kwargs["port"] == 8123

    def test_init_db_creates_tables(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        url = f"sqlite:///{tmp_path / 'data' / 'sv.db'}"
        main(["init-db", "--database-url", url])
        assert "Database ready" in capsys.readouterr().out
        assert (tmp_path / "data" / "sv.db").exists()


async def test_create_tables(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'sv.db'}"
    await _create_tables(url)

    engine = create_app_engine(url)
    async with engine.connect() as conn:
        names = await conn.run_sync(
            lambda sync: inspect(sync).get_table_names()
        )
    await engine.dispose()
    assert {"submissions", "users"} <= set(names)
