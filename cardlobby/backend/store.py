"""Persistence interfaces and implementations for lobby rows."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from cardlobby.backend.models import STATUS_WAITING, Lobby

SCHEMA_PATH = Path(__file__).with_name("db_schema.sql")

LOBBY_COLUMNS = (
    "idlobby",
    "lobby_name",
    "player1_uid",
    "is_private",
    "password",
    "status",
    "player2_uid",
    "player1_deckid",
    "player2_deckid",
    "player1_characterid",
    "player2_characterid",
    "map_idmap",
)


class LobbyStore(Protocol):
    def create_lobby(
        self, name: str, player1_id: int, is_private: bool, password_hash: str | None
    ) -> Lobby:
        """Persist a new WAITING lobby and return it with its assigned id."""

    def save_lobby(self, lobby: Lobby) -> None:
        """Overwrite the stored row for an existing lobby."""

    def delete_lobby(self, lobby_id: int) -> None:
        """Remove a lobby row; missing rows are ignored."""

    def load_lobbies(self) -> list[Lobby]:
        """Return every stored lobby ordered by id."""


@dataclass
class InMemoryLobbyStore:
    def __post_init__(self) -> None:
        self._rows: dict[int, Lobby] = {}
        self._ids = itertools.count(1)

    def create_lobby(
        self, name: str, player1_id: int, is_private: bool, password_hash: str | None
    ) -> Lobby:
        lobby = Lobby(
            lobby_id=next(self._ids),
            name=name,
            player1_id=player1_id,
            is_private=is_private,
            password_hash=password_hash,
            status=STATUS_WAITING,
        )
        self._rows[lobby.lobby_id] = lobby
        return lobby

    def save_lobby(self, lobby: Lobby) -> None:
        self._rows[lobby.lobby_id] = lobby

    def delete_lobby(self, lobby_id: int) -> None:
        self._rows.pop(lobby_id, None)

    def load_lobbies(self) -> list[Lobby]:
        return [self._rows[lobby_id] for lobby_id in sorted(self._rows)]


def lobby_to_row(lobby: Lobby) -> tuple[Any, ...]:
    return (
        lobby.lobby_id,
        lobby.name,
        lobby.player1_id,
        lobby.is_private,
        lobby.password_hash,
        lobby.status,
        lobby.player2_id,
        lobby.player1_deck_id,
        lobby.player2_deck_id,
        lobby.player1_character_id,
        lobby.player2_character_id,
        lobby.map_id,
    )


def lobby_from_row(row: tuple[Any, ...]) -> Lobby:
    values = dict(zip(LOBBY_COLUMNS, row))
    return Lobby(
        lobby_id=int(values["idlobby"]),
        name=values["lobby_name"],
        player1_id=int(values["player1_uid"]),
        is_private=bool(values["is_private"]),
        password_hash=values["password"],
        status=values["status"] or STATUS_WAITING,
        player2_id=values["player2_uid"],
        player1_deck_id=values["player1_deckid"],
        player2_deck_id=values["player2_deckid"],
        player1_character_id=values["player1_characterid"],
        player2_character_id=values["player2_characterid"],
        map_id=values["map_idmap"],
    )


@dataclass
class PostgresLobbyStore:
    database_url: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def apply_schema(self) -> None:
        """Create the lobby tables and their lookup tables if they are missing."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
            conn.commit()

    def create_lobby(
        self, name: str, player1_id: int, is_private: bool, password_hash: str | None
    ) -> Lobby:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO lobby (lobby_name, player1_uid, is_private, password, status)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING idlobby
                    """,
                    (name, player1_id, is_private, password_hash, STATUS_WAITING),
                )
                (lobby_id,) = cur.fetchone()
            conn.commit()

        return Lobby(
            lobby_id=int(lobby_id),
            name=name,
            player1_id=player1_id,
            is_private=is_private,
            password_hash=password_hash,
            status=STATUS_WAITING,
        )

    def save_lobby(self, lobby: Lobby) -> None:
        row = lobby_to_row(lobby)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE lobby
                    SET lobby_name = %s, player1_uid = %s, is_private = %s, password = %s,
                        status = %s, player2_uid = %s, player1_deckid = %s, player2_deckid = %s,
                        player1_characterid = %s, player2_characterid = %s, map_idmap = %s
                    WHERE idlobby = %s
                    """,
                    row[1:] + row[:1],
                )
            conn.commit()

    def delete_lobby(self, lobby_id: int) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM lobby WHERE idlobby = %s", (lobby_id,))
            conn.commit()

    def load_lobbies(self) -> list[Lobby]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {', '.join(LOBBY_COLUMNS)} FROM lobby ORDER BY idlobby")
                rows = cur.fetchall()
        return [lobby_from_row(row) for row in rows]


def create_store(database_url: str | None) -> LobbyStore:
    if database_url:
        return PostgresLobbyStore(database_url=database_url)
    return InMemoryLobbyStore()

