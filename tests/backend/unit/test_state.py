from cardlobby.backend.directory import InMemoryDirectory
from cardlobby.backend.models import CoinTossNegotiation, Lobby
from cardlobby.backend.state import build_coin_toss_state, build_lobby_list, build_lobby_view


def _directory() -> InMemoryDirectory:
    return InMemoryDirectory(
        users={1: "alice", 2: "bob"},
        decks={10: "Dragons"},
        characters={30: "Aerith"},
        maps={5: "Volcano"},
    )


def test_build_lobby_view_resolves_display_names() -> None:
    lobby = Lobby(
        lobby_id=3,
        name="Arena",
        player1_id=1,
        player2_id=2,
        player1_deck_id=10,
        player2_character_id=30,
        map_id=5,
        password_hash="hidden",
        is_private=True,
    )

    view = build_lobby_view(lobby, _directory())

    assert view["id"] == 3
    assert view["lobbyName"] == "Arena"
    assert view["status"] == "WAITING"
    assert view["isPrivate"] is True
    assert view["player1Name"] == "alice"
    assert view["player2Name"] == "bob"
    assert view["player1DeckName"] == "Dragons"
    assert view["player2DeckName"] is None
    assert view["player2CharacterName"] == "Aerith"
    assert view["mapName"] == "Volcano"
    assert "ready" not in view
    assert "hidden" not in view.values()


def test_build_lobby_view_includes_ready_flag_only_when_given() -> None:
    lobby = Lobby(lobby_id=3, name="Arena", player1_id=1)

    assert build_lobby_view(lobby, _directory(), ready=True)["ready"] is True
    assert build_lobby_view(lobby, _directory(), ready=False)["ready"] is False


def test_build_lobby_list_orders_by_id() -> None:
    lobbies = [Lobby(lobby_id=9, name="B", player1_id=1), Lobby(lobby_id=2, name="A", player1_id=2)]

    views = build_lobby_list(lobbies, _directory())

    assert [view["id"] for view in views] == [2, 9]


def test_build_coin_toss_state_partial_and_resolved() -> None:
    negotiation = CoinTossNegotiation(lobby_id=4, choices={1: "head"})

    partial = build_coin_toss_state(negotiation)
    negotiation.choices[2] = "tail"
    resolved = build_coin_toss_state(negotiation, toss_result="tail", starter_player=2)

    assert partial == {"lobbyId": 4, "choices": {"1": "head"}}
    assert resolved["choices"] == {"1": "head", "2": "tail"}
    assert resolved["tossResult"] == "tail"
    assert resolved["starterPlayer"] == 2
