"""CLI entry point: ``sourceverifier serve`` and ``sourceverifier init-db``."""

from __future__ import annotations

from sourceverifier.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import asyncio  # noqa: E402
import logging  # noqa: E402

from sourceverifier import __version__  # noqa: E402
from sourceverifier.config import Settings, create_app_engine  # noqa: E402
from sourceverifier.models.base import Base  # noqa: E402

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"sourceverifier {__version__}")
        return

    if args.command == "serve":
        _run_serve(args)
    elif args.command == "init-db":
        _run_init_db(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="sourceverifier",
        description=(
            "Citation source verification workflow service."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind address (default: 127.0.0.1)",
    )
    serve.add_argument(
        "--port",
        "-p",
        type=int,
        default=8000,
        help="Port (default: 8000)",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development)",
    )

    init_db = sub.add_parser(
        "init-db", help="Create database tables and exit"
    )
    init_db.add_argument(
        "--database-url",
        default=None,
        help="Override DATABASE_URL from the environment",
    )

    return parser


def _run_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run(
        "sourceverifier.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


def _run_init_db(args: argparse.Namespace) -> None:
    settings = Settings()
    url = args.database_url or settings.database_url
    asyncio.run(_create_tables(url))
    print(f"Database ready: {url}")


async def _create_tables(url: str) -> None:
    engine = create_app_engine(url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("event=tables_created url=%s", url)
    finally:
        await engine.dispose()
