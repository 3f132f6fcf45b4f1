"""State builders for lobby snapshots sent to clients."""

from __future__ import annotations

from typing import Any

from .directory import Directory
from .models import CoinTossNegotiation, Lobby


def _name_or_none(lookup, key: int | None) -> str | None:
    if key is None:
        return None
    return lookup(key)


def build_lobby_view(lobby: Lobby, directory: Directory, ready: bool | None = None) -> dict[str, Any]:
    """Return the client-facing view of a lobby.

    The password hash never leaves the server. ``ready`` is a transient flag
    relayed from a selection update and is only included when supplied.
    """
    view: dict[str, Any] = {
        "id": lobby.lobby_id,
        "lobbyName": lobby.name,
        "isPrivate": lobby.is_private,
        "status": lobby.status,
        "player1Id": lobby.player1_id,
        "player2Id": lobby.player2_id,
        "player1Name": directory.user_name(lobby.player1_id),
        "player2Name": _name_or_none(directory.user_name, lobby.player2_id),
        "player1DeckName": _name_or_none(directory.deck_name, lobby.player1_deck_id),
        "player2DeckName": _name_or_none(directory.deck_name, lobby.player2_deck_id),
        "player1CharacterName": _name_or_none(directory.character_name, lobby.player1_character_id),
        "player2CharacterName": _name_or_none(directory.character_name, lobby.player2_character_id),
        "mapName": _name_or_none(directory.map_name, lobby.map_id),
    }
    if ready is not None:
        view["ready"] = ready
    return view


def build_lobby_list(lobbies: list[Lobby], directory: Directory) -> list[dict[str, Any]]:
    return [build_lobby_view(lobby, directory) for lobby in sorted(lobbies, key=lambda item: item.lobby_id)]


def build_coin_toss_state(
    negotiation: CoinTossNegotiation,
    toss_result: str | None = None,
    starter_player: int | None = None,
) -> dict[str, Any]:
    state: dict[str, Any] = {
        "lobbyId": negotiation.lobby_id,
        "choices": {str(player_id): side for player_id, side in negotiation.choices.items()},
    }
    if toss_result is not None:
        state["tossResult"] = toss_result
        state["starterPlayer"] = starter_player
    return state
