"""Pure lobby transitions.

Each function takes the current Lobby and returns the next one without
touching shared state, raising a LobbyError when the transition is not
allowed. The registry applies the result only after it has been persisted,
so a failed transition never leaves a partially updated lobby behind.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .errors import ConflictError, ForbiddenError, NotFoundError
from .models import STATUS_STARTED, Lobby


@dataclass(frozen=True)
class LeaveResult:
    lobby: Lobby | None
    host_migrated: bool = False

    @property
    def deleted(self) -> bool:
        return self.lobby is None


def apply_join(lobby: Lobby, user_id: int, password_ok: bool) -> Lobby:
    if lobby.is_private and not password_ok:
        raise ForbiddenError("Invalid password for private lobby")
    _require_waiting(lobby)
    if user_id == lobby.player1_id:
        raise ConflictError("User is already the host of this lobby")
    if lobby.player2_id is not None:
        raise ConflictError("Lobby is already full")
    return replace(lobby, player2_id=user_id)


def apply_leave(lobby: Lobby, user_id: int) -> LeaveResult:
    slot = lobby.slot_of(user_id)
    if slot is None:
        raise ForbiddenError("User is not a member of this lobby")

    if slot == 2:
        return LeaveResult(lobby=_without_player2(lobby))

    if lobby.player2_id is None:
        return LeaveResult(lobby=None)

    promoted = replace(
        _without_player2(lobby),
        player1_id=lobby.player2_id,
        player1_deck_id=lobby.player2_deck_id,
        player1_character_id=lobby.player2_character_id,
    )
    return LeaveResult(lobby=promoted, host_migrated=True)


def apply_selection(
    lobby: Lobby,
    user_id: int,
    deck_id: int | None = None,
    character_id: int | None = None,
) -> Lobby:
    slot = lobby.slot_of(user_id)
    if slot is None:
        raise ForbiddenError("User is not a member of this lobby")
    _require_waiting(lobby)

    changes: dict[str, int] = {}
    if deck_id is not None:
        changes[f"player{slot}_deck_id"] = deck_id
    if character_id is not None:
        changes[f"player{slot}_character_id"] = character_id
    return replace(lobby, **changes)


def apply_map(lobby: Lobby, user_id: int, map_id: int) -> Lobby:
    if user_id != lobby.player1_id:
        raise ForbiddenError("Only the host can change the map")
    _require_waiting(lobby)
    return replace(lobby, map_id=map_id)


def apply_start(lobby: Lobby, user_id: int) -> Lobby:
    """Move a full, fully configured lobby to STARTED."""
    if user_id != lobby.player1_id:
        raise ForbiddenError("Only the host can start the game")
    _require_waiting(lobby)
    if lobby.player2_id is None:
        raise ConflictError("Lobby needs two players to start")
    selections = (
        lobby.player1_deck_id,
        lobby.player1_character_id,
        lobby.player2_deck_id,
        lobby.player2_character_id,
    )
    if any(selection is None for selection in selections):
        raise ConflictError("Both players must select a deck and a character")
    return replace(lobby, status=STATUS_STARTED)


def apply_kick(lobby: Lobby, host_id: int, target_id: int) -> Lobby:
    if host_id != lobby.player1_id:
        raise ForbiddenError("Only the host can kick players")
    _require_waiting(lobby)
    if target_id == host_id:
        raise ConflictError("The host cannot kick themselves")
    if lobby.player2_id is None or target_id != lobby.player2_id:
        raise NotFoundError("Target is not the second player of this lobby")
    return _without_player2(lobby)


def _require_waiting(lobby: Lobby) -> None:
    if lobby.status == STATUS_STARTED:
        raise ConflictError("Game has already started")


def _without_player2(lobby: Lobby) -> Lobby:
    return replace(lobby, player2_id=None, player2_deck_id=None, player2_character_id=None)
