"""Authoritative in-memory lobby state with per-lobby serialization.

Every mutation runs under the lobby's lock: the transition is computed on a
copy, written to the store, swapped into memory, and only then published.
Publishing happens while the lock is still held so that subscribers of a
lobby topic observe updates in the order they were applied.

Store writes and directory lookups are blocking calls, so they run in a
worker thread and a slow query in one lobby never stalls the event loop
serving the others.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .coin_toss import CoinTossCoordinator
from .directory import Directory
from .engine import apply_join, apply_kick, apply_leave, apply_map, apply_selection, apply_start
from .errors import ConflictError, InvalidArgumentError, NotFoundError
from .hub import Subscriber, TopicHub
from .locks import KeyedLocks
from .models import LOBBY_LIST_TOPIC, Lobby, board_topic, coin_toss_topic, lobby_topic
from .security import hash_password, verify_password
from .state import build_lobby_list, build_lobby_view
from .store import LobbyStore

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100


class SessionRegistry:
    def __init__(
        self,
        store: LobbyStore,
        directory: Directory,
        hub: TopicHub,
        server_salt: str = "dev-salt",
        locks: KeyedLocks | None = None,
        coin_toss: CoinTossCoordinator | None = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._hub = hub
        self._server_salt = server_salt
        self._locks = locks if locks is not None else KeyedLocks()
        # Always taken inside a lobby lock, never the other way around.
        self._user_locks = KeyedLocks(self._locks.timeout_s)
        self._coin_toss = coin_toss
        self._lobbies: dict[int, Lobby] = {}

    async def restore(self) -> int:
        """Load persisted lobbies into memory, returning how many were found."""
        lobbies = await asyncio.to_thread(self._store.load_lobbies)
        self._lobbies = {lobby.lobby_id: lobby for lobby in lobbies}
        logger.info("Restored %d lobbies from store", len(self._lobbies))
        return len(self._lobbies)

    def has_lobby(self, lobby_id: int) -> bool:
        return lobby_id in self._lobbies

    async def list_lobbies(self) -> list[dict[str, Any]]:
        lobbies = list(self._lobbies.values())
        return await asyncio.to_thread(build_lobby_list, lobbies, self._directory)

    async def get_lobby(self, lobby_id: int) -> dict[str, Any]:
        return await self._view(self._require(lobby_id))

    async def attach(self, lobby_id: int, subscriber: Subscriber) -> None:
        """Subscribe to a lobby's topics and send it a ``lobby.snapshot``.

        Runs under the lobby lock, so the snapshot includes every update
        published before it and every later update arrives after it.
        """
        async with self._locks.hold(lobby_id):
            lobby = self._require(lobby_id)
            for topic in (lobby_topic(lobby_id), board_topic(lobby_id), coin_toss_topic(lobby_id)):
                self._hub.subscribe(topic, subscriber)
            view = await self._view(lobby)
            await self._hub.send(lobby_topic(lobby_id), subscriber, {"type": "lobby.snapshot", "lobby": view})

    async def create_lobby(
        self,
        host_id: int,
        name: str,
        password: str | None = None,
        is_private: bool = False,
    ) -> dict[str, Any]:
        name = (name or "").strip()
        if not name or len(name) > MAX_NAME_LENGTH:
            raise InvalidArgumentError(f"Lobby name must be 1-{MAX_NAME_LENGTH} characters")
        if is_private and not password:
            raise InvalidArgumentError("Private lobbies require a password")
        await self._require_user(host_id)

        password_hash = hash_password(password, self._server_salt) if password else None
        async with self._user_locks.hold(host_id):
            self._require_free(host_id)
            lobby = await asyncio.to_thread(
                self._store.create_lobby,
                name=name,
                player1_id=host_id,
                is_private=is_private,
                password_hash=password_hash,
            )
            self._lobbies[lobby.lobby_id] = lobby
        logger.info("Lobby %s created by user %s", lobby.lobby_id, host_id)

        await self._publish_list()
        return await self._view(lobby)

    async def join_lobby(self, lobby_id: int, user_id: int, password: str | None = None) -> dict[str, Any]:
        async with self._locks.hold(lobby_id):
            lobby = self._require(lobby_id)
            await self._require_user(user_id)
            password_ok = verify_password(password, lobby.password_hash, self._server_salt)
            updated = apply_join(lobby, user_id=user_id, password_ok=password_ok)
            async with self._user_locks.hold(user_id):
                self._require_free(user_id)
                await self._commit(updated)
            logger.info("User %s joined lobby %s", user_id, lobby_id)

            await self._publish_list()
            return await self._publish_lobby(updated)

    async def update_selections(
        self,
        lobby_id: int,
        user_id: int,
        deck_id: int | None = None,
        character_id: int | None = None,
        ready: bool | None = None,
    ) -> dict[str, Any]:
        async with self._locks.hold(lobby_id):
            lobby = self._require(lobby_id)
            if deck_id is not None:
                if await asyncio.to_thread(self._directory.deck_name, deck_id) is None:
                    raise NotFoundError(f"Deck {deck_id} not found")
            if character_id is not None:
                if await asyncio.to_thread(self._directory.character_name, character_id) is None:
                    raise NotFoundError(f"Character {character_id} not found")
            updated = apply_selection(lobby, user_id=user_id, deck_id=deck_id, character_id=character_id)
            if updated != lobby:
                await self._commit(updated)

            return await self._publish_lobby(updated, ready=ready)

    async def update_map(self, lobby_id: int, user_id: int, map_id: int) -> dict[str, Any]:
        async with self._locks.hold(lobby_id):
            lobby = self._require(lobby_id)
            if await asyncio.to_thread(self._directory.map_name, map_id) is None:
                raise NotFoundError(f"Map {map_id} not found")
            updated = apply_map(lobby, user_id=user_id, map_id=map_id)
            await self._commit(updated)

            return await self._publish_lobby(updated)

    async def leave_lobby(self, lobby_id: int, user_id: int) -> dict[str, Any] | None:
        """Remove a player, returning the surviving lobby view or None when it was closed."""
        async with self._locks.hold(lobby_id):
            lobby = self._require(lobby_id)
            result = apply_leave(lobby, user_id=user_id)
            if result.deleted:
                await self._close(lobby_id)
                logger.info("Lobby %s closed after user %s left", lobby_id, user_id)
                return None

            await self._commit(result.lobby)
            if result.host_migrated:
                logger.info("Lobby %s host moved from %s to %s", lobby_id, user_id, result.lobby.player1_id)
            await self._publish_list()
            return await self._publish_lobby(result.lobby)

    async def kick_player(self, lobby_id: int, host_id: int, target_id: int) -> dict[str, Any]:
        async with self._locks.hold(lobby_id):
            lobby = self._require(lobby_id)
            updated = apply_kick(lobby, host_id=host_id, target_id=target_id)
            await self._commit(updated)
            logger.info("User %s kicked from lobby %s", target_id, lobby_id)

            await self._hub.publish(
                lobby_topic(lobby_id),
                {"type": "lobby.kicked", "lobbyId": lobby_id, "targetId": target_id},
            )
            await self._publish_list()
            return await self._publish_lobby(updated)

    async def start_game(self, lobby_id: int, user_id: int) -> dict[str, Any]:
        async with self._locks.hold(lobby_id):
            lobby = self._require(lobby_id)
            updated = apply_start(lobby, user_id=user_id)
            await self._commit(updated)
            logger.info("Lobby %s started", lobby_id)

            await self._publish_list()
            return await self._publish_lobby(updated)

    async def delete_lobby(self, lobby_id: int) -> bool:
        """Remove a lobby unconditionally. Returns False when it did not exist."""
        async with self._locks.hold(lobby_id):
            if lobby_id not in self._lobbies:
                await self._publish_list()
                return False
            await self._close(lobby_id)
            logger.info("Lobby %s deleted", lobby_id)
            return True

    def _require(self, lobby_id: int) -> Lobby:
        lobby = self._lobbies.get(lobby_id)
        if lobby is None:
            raise NotFoundError(f"Lobby {lobby_id} not found")
        return lobby

    def _require_free(self, user_id: int) -> None:
        for lobby in self._lobbies.values():
            if lobby.slot_of(user_id) is not None:
                raise ConflictError(f"User is already in lobby {lobby.lobby_id}")

    async def _require_user(self, user_id: int) -> None:
        if await asyncio.to_thread(self._directory.user_name, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")

    async def _view(self, lobby: Lobby, ready: bool | None = None) -> dict[str, Any]:
        return await asyncio.to_thread(build_lobby_view, lobby, self._directory, ready)

    async def _commit(self, lobby: Lobby) -> None:
        await asyncio.to_thread(self._store.save_lobby, lobby)
        self._lobbies[lobby.lobby_id] = lobby

    async def _close(self, lobby_id: int) -> None:
        await asyncio.to_thread(self._store.delete_lobby, lobby_id)
        self._lobbies.pop(lobby_id, None)
        if self._coin_toss is not None:
            self._coin_toss.discard(lobby_id)
        await self._hub.publish(lobby_topic(lobby_id), {"type": "lobby.closed", "lobbyId": lobby_id})
        await self._publish_list()

    async def _publish_list(self) -> None:
        await self._hub.publish(LOBBY_LIST_TOPIC, {"type": "lobby.list", "lobbies": await self.list_lobbies()})

    async def _publish_lobby(self, lobby: Lobby, ready: bool | None = None) -> dict[str, Any]:
        view = await self._view(lobby, ready=ready)
        await self._hub.publish(lobby_topic(lobby.lobby_id), {"type": "lobby.state", "lobby": view})
        return view
