"""FastAPI endpoints for lobby management and websocket sync."""

from __future__ import annotations

import logging
import random
from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator, Literal, Union

from fastapi import Body, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .board import BoardRelay
from .coin_toss import CoinTossCoordinator
from .config import BackendSettings, load_settings
from .directory import Directory, create_directory
from .errors import INVALID_ARGUMENT, LobbyError, NotFoundError
from .hub import TopicHub
from .locks import KeyedLocks
from .models import LOBBY_LIST_TOPIC
from .registry import SessionRegistry
from .store import LobbyStore, create_store

logger = logging.getLogger(__name__)


class CreateLobbyRequest(BaseModel):
    host_id: int
    name: str = Field(min_length=1, max_length=100)
    password: str | None = Field(default=None, max_length=100)
    is_private: bool = False


class JoinLobbyRequest(BaseModel):
    user_id: int
    password: str | None = None


class LeaveLobbyRequest(BaseModel):
    user_id: int


class SelectionRequest(BaseModel):
    user_id: int
    deck_id: int | None = None
    character_id: int | None = None
    ready: bool | None = None


class MapRequest(BaseModel):
    user_id: int
    map_id: int


class StartGameRequest(BaseModel):
    user_id: int


class KickRequest(BaseModel):
    host_id: int
    target_id: int


class CoinTossRequest(BaseModel):
    player_id: int
    side: str = Field(min_length=1)


class LobbyResponse(BaseModel):
    lobby: dict[str, Any]


class LobbyListResponse(BaseModel):
    lobbies: list[dict[str, Any]]


class LeaveLobbyResponse(BaseModel):
    closed: bool
    lobby: dict[str, Any] | None = None


class DeleteLobbyResponse(BaseModel):
    deleted: bool


class CoinTossResponse(BaseModel):
    toss: dict[str, Any]


class MoveResponse(BaseModel):
    delivered: int


class BoardMoveMessage(BaseModel):
    type: Literal["board.move"]
    board: dict[str, Any]


class CoinTossChoiceMessage(BaseModel):
    type: Literal["coin_toss.choice"]
    player_id: int
    side: str


class SelectionMessage(BaseModel):
    type: Literal["lobby.selection"]
    user_id: int
    deck_id: int | None = None
    character_id: int | None = None
    ready: bool | None = None


class MapMessage(BaseModel):
    type: Literal["lobby.map"]
    user_id: int
    map_id: int


ClientMessage = Annotated[
    Union[BoardMoveMessage, CoinTossChoiceMessage, SelectionMessage, MapMessage],
    Field(discriminator="type"),
]
client_message_adapter: TypeAdapter[Any] = TypeAdapter(ClientMessage)


def _error_message(code: str, message: str) -> dict[str, Any]:
    return {"type": "error", "code": code, "message": message}


def create_app(
    store: LobbyStore | None = None,
    directory: Directory | None = None,
    settings: BackendSettings | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    local_settings = settings if settings is not None else load_settings()
    lobby_store = store if store is not None else create_store(local_settings.database_url)
    lobby_directory = directory if directory is not None else create_directory(local_settings.database_url)

    hub = TopicHub(send_timeout_s=local_settings.send_timeout_s)
    coin_toss = CoinTossCoordinator(hub=hub, rng=rng, locks=KeyedLocks(local_settings.lock_timeout_s))
    registry = SessionRegistry(
        store=lobby_store,
        directory=lobby_directory,
        hub=hub,
        server_salt=local_settings.server_salt,
        locks=KeyedLocks(local_settings.lock_timeout_s),
        coin_toss=coin_toss,
    )
    board_relay = BoardRelay(hub=hub)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await registry.restore()
        yield

    app = FastAPI(title="Card Lobby API", version="0.1.0", lifespan=lifespan)
    app.state.hub = hub
    app.state.registry = registry
    app.state.coin_toss = coin_toss
    app.state.board_relay = board_relay

    @app.exception_handler(LobbyError)
    async def lobby_error_handler(request: Request, exc: LobbyError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

    @app.post("/api/lobbies", response_model=LobbyResponse)
    async def create_lobby(payload: CreateLobbyRequest) -> LobbyResponse:
        lobby = await registry.create_lobby(
            host_id=payload.host_id,
            name=payload.name,
            password=payload.password,
            is_private=payload.is_private,
        )
        return LobbyResponse(lobby=lobby)

    @app.get("/api/lobbies", response_model=LobbyListResponse)
    async def list_lobbies() -> LobbyListResponse:
        return LobbyListResponse(lobbies=await registry.list_lobbies())

    @app.get("/api/lobbies/{lobby_id}", response_model=LobbyResponse)
    async def get_lobby(lobby_id: int) -> LobbyResponse:
        return LobbyResponse(lobby=await registry.get_lobby(lobby_id))

    @app.post("/api/lobbies/{lobby_id}/join", response_model=LobbyResponse)
    async def join_lobby(lobby_id: int, payload: JoinLobbyRequest) -> LobbyResponse:
        lobby = await registry.join_lobby(lobby_id=lobby_id, user_id=payload.user_id, password=payload.password)
        return LobbyResponse(lobby=lobby)

    @app.post("/api/lobbies/{lobby_id}/leave", response_model=LeaveLobbyResponse)
    async def leave_lobby(lobby_id: int, payload: LeaveLobbyRequest) -> LeaveLobbyResponse:
        lobby = await registry.leave_lobby(lobby_id=lobby_id, user_id=payload.user_id)
        return LeaveLobbyResponse(closed=lobby is None, lobby=lobby)

    @app.delete("/api/lobbies/{lobby_id}", response_model=DeleteLobbyResponse)
    async def delete_lobby(lobby_id: int) -> DeleteLobbyResponse:
        return DeleteLobbyResponse(deleted=await registry.delete_lobby(lobby_id))

    @app.patch("/api/lobbies/{lobby_id}/selections", response_model=LobbyResponse)
    async def update_selections(lobby_id: int, payload: SelectionRequest) -> LobbyResponse:
        lobby = await registry.update_selections(
            lobby_id=lobby_id,
            user_id=payload.user_id,
            deck_id=payload.deck_id,
            character_id=payload.character_id,
            ready=payload.ready,
        )
        return LobbyResponse(lobby=lobby)

    @app.patch("/api/lobbies/{lobby_id}/map", response_model=LobbyResponse)
    async def update_map(lobby_id: int, payload: MapRequest) -> LobbyResponse:
        lobby = await registry.update_map(lobby_id=lobby_id, user_id=payload.user_id, map_id=payload.map_id)
        return LobbyResponse(lobby=lobby)

    @app.post("/api/lobbies/{lobby_id}/start", response_model=LobbyResponse)
    async def start_game(lobby_id: int, payload: StartGameRequest) -> LobbyResponse:
        return LobbyResponse(lobby=await registry.start_game(lobby_id=lobby_id, user_id=payload.user_id))

    @app.post("/api/lobbies/{lobby_id}/kick", response_model=LobbyResponse)
    async def kick_player(lobby_id: int, payload: KickRequest) -> LobbyResponse:
        lobby = await registry.kick_player(lobby_id=lobby_id, host_id=payload.host_id, target_id=payload.target_id)
        return LobbyResponse(lobby=lobby)

    @app.post("/api/lobbies/{lobby_id}/coin-toss", response_model=CoinTossResponse)
    async def submit_coin_toss(lobby_id: int, payload: CoinTossRequest) -> CoinTossResponse:
        toss = await coin_toss.submit_choice(lobby_id=lobby_id, player_id=payload.player_id, side=payload.side)
        return CoinTossResponse(toss=toss)

    @app.post("/api/lobbies/{lobby_id}/moves", response_model=MoveResponse)
    async def submit_move(lobby_id: int, board: dict[str, Any] = Body(...)) -> MoveResponse:
        return MoveResponse(delivered=await board_relay.relay_move(lobby_id=lobby_id, board=board))

    async def handle_client_message(lobby_id: int, raw: str, websocket: WebSocket) -> None:
        try:
            message = client_message_adapter.validate_json(raw)
        except ValidationError as exc:
            await websocket.send_json(_error_message(INVALID_ARGUMENT, f"Malformed message: {exc.error_count()} error(s)"))
            return

        try:
            if isinstance(message, BoardMoveMessage):
                await board_relay.relay_move(lobby_id=lobby_id, board=message.board)
            elif isinstance(message, CoinTossChoiceMessage):
                await coin_toss.submit_choice(lobby_id=lobby_id, player_id=message.player_id, side=message.side)
            elif isinstance(message, SelectionMessage):
                await registry.update_selections(
                    lobby_id=lobby_id,
                    user_id=message.user_id,
                    deck_id=message.deck_id,
                    character_id=message.character_id,
                    ready=message.ready,
                )
            elif isinstance(message, MapMessage):
                await registry.update_map(lobby_id=lobby_id, user_id=message.user_id, map_id=message.map_id)
        except LobbyError as exc:
            logger.info("Rejected %s in lobby %s: %s", message.type, lobby_id, exc.message)
            await websocket.send_json(_error_message(exc.code, exc.message))

    @app.websocket("/ws/lobbies")
    async def lobby_list_ws(websocket: WebSocket) -> None:
        await websocket.accept()
        hub.subscribe(LOBBY_LIST_TOPIC, websocket)
        await websocket.send_json({"type": "lobby.list", "lobbies": await registry.list_lobbies()})

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            hub.unsubscribe_all(websocket)

    @app.websocket("/ws/lobbies/{lobby_id}")
    async def lobby_ws(websocket: WebSocket, lobby_id: int) -> None:
        if not registry.has_lobby(lobby_id):
            await websocket.close(code=1008)
            return

        await websocket.accept()
        try:
            try:
                await registry.attach(lobby_id, websocket)
            except NotFoundError:
                await websocket.close(code=1008)
                return
            while True:
                raw = await websocket.receive_text()
                await handle_client_message(lobby_id=lobby_id, raw=raw, websocket=websocket)
        except WebSocketDisconnect:
            pass
        finally:
            hub.unsubscribe_all(websocket)

    return app


app = create_app()
