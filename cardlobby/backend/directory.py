"""Lookups against the account and inventory data owned by other services.

The lobby server only needs display names for users, decks, characters and
maps. A ``None`` result means the id does not resolve.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


class Directory(Protocol):
    def user_name(self, user_id: int) -> str | None:
        """Return the username for a user id."""

    def deck_name(self, deck_id: int) -> str | None:
        """Return the display name of a deck."""

    def character_name(self, character_id: int) -> str | None:
        """Return the display name of a character."""

    def map_name(self, map_id: int) -> str | None:
        """Return the display name of a map."""


@dataclass
class InMemoryDirectory:
    users: dict[int, str] = field(default_factory=dict)
    decks: dict[int, str] = field(default_factory=dict)
    characters: dict[int, str] = field(default_factory=dict)
    maps: dict[int, str] = field(default_factory=dict)

    def user_name(self, user_id: int) -> str | None:
        return self.users.get(user_id)

    def deck_name(self, deck_id: int) -> str | None:
        return self.decks.get(deck_id)

    def character_name(self, character_id: int) -> str | None:
        return self.characters.get(character_id)

    def map_name(self, map_id: int) -> str | None:
        return self.maps.get(map_id)


@dataclass
class PostgresDirectory:
    database_url: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def _fetch_name(self, sql: str, key: int) -> str | None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (key,))
                row = cur.fetchone()
        if row is None:
            return None
        return row[0]

    def user_name(self, user_id: int) -> str | None:
        return self._fetch_name("SELECT username FROM users WHERE uid = %s", user_id)

    def deck_name(self, deck_id: int) -> str | None:
        return self._fetch_name("SELECT deckname FROM deck WHERE iddeck = %s", deck_id)

    def character_name(self, character_id: int) -> str | None:
        return self._fetch_name('SELECT charactername FROM "character" WHERE idcharacter = %s', character_id)

    def map_name(self, map_id: int) -> str | None:
        return self._fetch_name("SELECT mapname FROM map WHERE idmap = %s", map_id)


def create_directory(database_url: str | None) -> Directory:
    if database_url:
        return PostgresDirectory(database_url=database_url)
    return InMemoryDirectory()
