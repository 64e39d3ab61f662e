import logging

import pytest

from werewolf.config import Settings, configure_logging, load_settings

ENV_KEYS = [
    "WEREWOLF_HOST",
    "WEREWOLF_PORT",
    "WEREWOLF_DEBUG",
    "WEREWOLF_LOG_LEVEL",
    "WEREWOLF_TIMER_SECONDS",
    "WEREWOLF_MAX_PHASE_HOPS",
    "WEREWOLF_MAX_PLAYERS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        # set first so monkeypatch also undoes values loaded from .env files
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "missing.env"))
    assert settings == Settings()
    assert settings.port == 3001
    assert settings.timer_seconds == 120


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("WEREWOLF_PORT", "4000")
    monkeypatch.setenv("WEREWOLF_DEBUG", "yes")
    monkeypatch.setenv("WEREWOLF_LOG_LEVEL", "debug")
    monkeypatch.setenv("WEREWOLF_TIMER_SECONDS", "0")
    settings = load_settings(str(tmp_path / "missing.env"))
    assert settings.port == 4000
    assert settings.debug is True
    assert settings.log_level == "DEBUG"
    assert settings.timer_seconds is None


def test_env_file_is_read(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("WEREWOLF_MAX_PLAYERS=9\n", encoding="utf-8")
    settings = load_settings(str(env_file))
    assert settings.max_players == 9


def test_bad_integer(monkeypatch, tmp_path):
    monkeypatch.setenv("WEREWOLF_PORT", "http")
    with pytest.raises(ValueError, match="WEREWOLF_PORT"):
        load_settings(str(tmp_path / "missing.env"))


def test_configure_logging_accepts_names():
    configure_logging("warning")
    configure_logging("not-a-level")
    assert logging.getLogger("werewolf").getEffectiveLevel() <= logging.CRITICAL
