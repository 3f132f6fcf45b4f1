"""Domain models for lobbies, coin-toss negotiations and topic names."""

from __future__ import annotations

from dataclasses import dataclass, field

STATUS_WAITING = "WAITING"
STATUS_STARTED = "STARTED"

SIDE_HEAD = "head"
SIDE_TAIL = "tail"
COIN_SIDES = (SIDE_HEAD, SIDE_TAIL)

LOBBY_LIST_TOPIC = "lobbies"


def lobby_topic(lobby_id: int) -> str:
    return f"lobby:{lobby_id}"


def board_topic(lobby_id: int) -> str:
    return f"board:{lobby_id}"


def coin_toss_topic(lobby_id: int) -> str:
    return f"coin-toss:{lobby_id}"


@dataclass(frozen=True)
class Lobby:
    lobby_id: int
    name: str
    player1_id: int
    is_private: bool = False
    password_hash: str | None = None
    status: str = STATUS_WAITING
    player2_id: int | None = None
    player1_deck_id: int | None = None
    player2_deck_id: int | None = None
    player1_character_id: int | None = None
    player2_character_id: int | None = None
    map_id: int | None = None

    def slot_of(self, user_id: int) -> int | None:
        """Return 1 or 2 for a member of the lobby, None otherwise."""
        if user_id == self.player1_id:
            return 1
        if self.player2_id is not None and user_id == self.player2_id:
            return 2
        return None


@dataclass
class CoinTossNegotiation:
    lobby_id: int
    choices: dict[int, str] = field(default_factory=dict)
