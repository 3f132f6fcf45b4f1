"""Configuration helpers for backend runtime."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class BackendSettings:
    server_salt: str
    database_url: str | None
    host: str
    port: int
    lock_timeout_s: float
    send_timeout_s: float
    log_level: str


def load_settings() -> BackendSettings:
    port_raw = os.getenv("CARDLOBBY_PORT", "8000")
    return BackendSettings(
        server_salt=os.getenv("CARDLOBBY_SERVER_SALT", "dev-salt"),
        database_url=os.getenv("CARDLOBBY_DATABASE_URL"),
        host=os.getenv("CARDLOBBY_HOST", "127.0.0.1"),
        port=int(port_raw),
        lock_timeout_s=float(os.getenv("CARDLOBBY_LOCK_TIMEOUT", "5.0")),
        send_timeout_s=float(os.getenv("CARDLOBBY_SEND_TIMEOUT", "2.0")),
        log_level=os.getenv("CARDLOBBY_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
