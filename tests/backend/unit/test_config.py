import logging

from cardlobby.backend.config import configure_logging, load_settings


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("CARDLOBBY_SERVER_SALT", "salt-1")
    monkeypatch.setenv("CARDLOBBY_DATABASE_URL", "postgresql://local")
    monkeypatch.setenv("CARDLOBBY_HOST", "localhost")
    monkeypatch.setenv("CARDLOBBY_PORT", "9000")
    monkeypatch.setenv("CARDLOBBY_LOCK_TIMEOUT", "1.5")
    monkeypatch.setenv("CARDLOBBY_SEND_TIMEOUT", "0.25")
    monkeypatch.setenv("CARDLOBBY_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.server_salt == "salt-1"
    assert settings.database_url == "postgresql://local"
    assert settings.host == "localhost"
    assert settings.port == 9000
    assert settings.lock_timeout_s == 1.5
    assert settings.send_timeout_s == 0.25
    assert settings.log_level == "DEBUG"


def test_load_settings_applies_defaults(monkeypatch) -> None:
    for name in (
        "CARDLOBBY_SERVER_SALT",
        "CARDLOBBY_DATABASE_URL",
        "CARDLOBBY_HOST",
        "CARDLOBBY_PORT",
        "CARDLOBBY_LOCK_TIMEOUT",
        "CARDLOBBY_SEND_TIMEOUT",
        "CARDLOBBY_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.server_salt == "dev-salt"
    assert settings.database_url is None
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.lock_timeout_s == 5.0
    assert settings.send_timeout_s == 2.0
    assert settings.log_level == "INFO"


def test_configure_logging_sets_root_level(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging("warning")

    assert calls[0]["level"] == logging.WARNING
    assert "%(name)s" in calls[0]["format"]
