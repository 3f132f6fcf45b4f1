from cardlobby.backend.models import STATUS_STARTED, Lobby
from cardlobby.backend.store import (
    InMemoryLobbyStore,
    PostgresLobbyStore,
    create_store,
    lobby_from_row,
    lobby_to_row,
)


def test_create_store_returns_postgres_store_when_database_url_present() -> None:
    store = create_store(database_url="postgresql://local")

    assert isinstance(store, PostgresLobbyStore)


def test_create_store_returns_in_memory_store_when_database_url_missing() -> None:
    store = create_store(database_url=None)

    assert isinstance(store, InMemoryLobbyStore)


def test_in_memory_store_assigns_increasing_ids_and_round_trips() -> None:
    store = InMemoryLobbyStore()

    first = store.create_lobby(name="A", player1_id=1, is_private=False, password_hash=None)
    second = store.create_lobby(name="B", player1_id=2, is_private=True, password_hash="h")
    store.delete_lobby(first.lobby_id)
    store.delete_lobby(999)

    assert second.lobby_id == first.lobby_id + 1
    assert store.load_lobbies() == [second]


def test_in_memory_store_save_overwrites_row() -> None:
    store = InMemoryLobbyStore()
    created = store.create_lobby(name="A", player1_id=1, is_private=False, password_hash=None)
    started = Lobby(lobby_id=created.lobby_id, name="A", player1_id=1, status=STATUS_STARTED)

    store.save_lobby(started)

    assert store.load_lobbies() == [started]


def test_row_mapping_keeps_every_column() -> None:
    lobby = Lobby(
        lobby_id=4,
        name="Arena",
        player1_id=1,
        is_private=True,
        password_hash="hash",
        status=STATUS_STARTED,
        player2_id=2,
        player1_deck_id=10,
        player2_deck_id=11,
        player1_character_id=20,
        player2_character_id=21,
        map_id=5,
    )

    assert lobby_from_row(lobby_to_row(lobby)) == lobby


class _FakeCursor:
    def __init__(self, rows: list[tuple]) -> None:
        self.commands: list[tuple[str, tuple]] = []
        self.rows = rows

    def execute(self, sql: str, params: tuple = ()) -> None:
        self.commands.append((sql, params))

    def fetchone(self) -> tuple | None:
        return self.rows[0] if self.rows else None

    def fetchall(self) -> list[tuple]:
        return list(self.rows)

    def __enter__(self) -> "_FakeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


class _FakeConnection:
    def __init__(self, rows: list[tuple]) -> None:
        self.cursor_instance = _FakeCursor(rows)
        self.committed = False

    def cursor(self) -> _FakeCursor:
        return self.cursor_instance

    def commit(self) -> None:
        self.committed = True

    def __enter__(self) -> "_FakeConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


class _PostgresStoreWithFakeConnection(PostgresLobbyStore):
    def __init__(self, rows: list[tuple] | None = None) -> None:
        super().__init__(database_url="postgresql://local")
        self.fake_connection = _FakeConnection(rows or [])

    def _connect(self) -> _FakeConnection:
        return self.fake_connection


def test_postgres_create_lobby_inserts_and_uses_returned_id() -> None:
    store = _PostgresStoreWithFakeConnection(rows=[(42,)])

    lobby = store.create_lobby(name="Arena", player1_id=1, is_private=False, password_hash=None)

    assert lobby.lobby_id == 42
    assert lobby.status == "WAITING"
    assert store.fake_connection.committed is True
    sql, params = store.fake_connection.cursor_instance.commands[0]
    assert "INSERT INTO lobby" in sql
    assert params == ("Arena", 1, False, None, "WAITING")


def test_postgres_save_lobby_updates_row_by_id() -> None:
    store = _PostgresStoreWithFakeConnection()
    lobby = Lobby(lobby_id=42, name="Arena", player1_id=1, player2_id=2, map_id=5)

    store.save_lobby(lobby)

    sql, params = store.fake_connection.cursor_instance.commands[0]
    assert "UPDATE lobby" in sql
    assert params[-1] == 42
    assert params[0] == "Arena"
    assert params[-2] == 5
    assert store.fake_connection.committed is True


def test_postgres_delete_and_load() -> None:
    row = lobby_to_row(Lobby(lobby_id=3, name="Arena", player1_id=1))
    store = _PostgresStoreWithFakeConnection(rows=[row])

    store.delete_lobby(3)
    loaded = store.load_lobbies()

    commands = store.fake_connection.cursor_instance.commands
    assert commands[0] == ("DELETE FROM lobby WHERE idlobby = %s", (3,))
    assert "FROM lobby ORDER BY idlobby" in commands[1][0]
    assert loaded == [Lobby(lobby_id=3, name="Arena", player1_id=1)]


def test_postgres_apply_schema_runs_bundled_sql() -> None:
    store = _PostgresStoreWithFakeConnection()

    store.apply_schema()

    sql, _ = store.fake_connection.cursor_instance.commands[0]
    assert "CREATE TABLE IF NOT EXISTS lobby" in sql
    assert store.fake_connection.committed is True
