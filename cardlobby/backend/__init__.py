"""Backend package for the card game lobby server."""

from .config import BackendSettings, configure_logging, load_settings
from .directory import Directory, InMemoryDirectory, PostgresDirectory, create_directory
from .errors import BusyError, ConflictError, ForbiddenError, InvalidArgumentError, LobbyError, NotFoundError
from .hub import TopicHub
from .registry import SessionRegistry
from .coin_toss import CoinTossCoordinator
from .board import BoardRelay
from .store import InMemoryLobbyStore, LobbyStore, PostgresLobbyStore, create_store

__all__ = [
    "BackendSettings",
    "BoardRelay",
    "BusyError",
    "CoinTossCoordinator",
    "configure_logging",
    "ConflictError",
    "create_directory",
    "create_store",
    "Directory",
    "ForbiddenError",
    "InMemoryDirectory",
    "InMemoryLobbyStore",
    "InvalidArgumentError",
    "load_settings",
    "LobbyError",
    "LobbyStore",
    "NotFoundError",
    "PostgresDirectory",
    "PostgresLobbyStore",
    "SessionRegistry",
    "TopicHub",
]
