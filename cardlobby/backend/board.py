"""Relay of board snapshots between the players of a lobby."""

from __future__ import annotations

from typing import Any

from .hub import TopicHub
from .models import board_topic


class BoardRelay:
    """Republishes submitted boards verbatim.

    Moves are not checked for legality or turn ownership and nothing is
    stored; clients own the game rules.
    """

    def __init__(self, hub: TopicHub) -> None:
        self._hub = hub

    async def relay_move(self, lobby_id: int, board: dict[str, Any]) -> int:
        return await self._hub.publish(board_topic(lobby_id), {"type": "board.update", "board": board})
