"""Command line entry point that runs the lobby server with uvicorn."""

from __future__ import annotations

import argparse
import logging

from cardlobby.backend.config import configure_logging, load_settings
from cardlobby.backend.store import PostgresLobbyStore

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Card game lobby server")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument(
        "--migrate",
        action="store_true",
        help="create the PostgreSQL tables from db_schema.sql and exit",
    )
    return parser.parse_args(argv)


def migrate(database_url: str | None) -> int:
    if not database_url:
        logger.error("CARDLOBBY_DATABASE_URL is required for --migrate")
        return 1
    PostgresLobbyStore(database_url=database_url).apply_schema()
    logger.info("Database schema is up to date")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    if args.migrate:
        return migrate(load_settings().database_url)

    import uvicorn

    uvicorn.run("cardlobby.backend.api:app", host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
