from __future__ import annotations

import pytest

from bot.config import DEFAULT_DATABASE_URL, default_lock_file, env_bool, env_int, load_config


def test_env_bool_parser_truthy_falsy_defaults(monkeypatch):
    monkeypatch.setenv("FLAG", "true")
    assert env_bool("FLAG") is True

    monkeypatch.setenv("FLAG", "off")
    assert env_bool("FLAG") is False

    monkeypatch.delenv("FLAG", raising=False)
    assert env_bool("FLAG", default=True) is True


def test_env_int_rejects_garbage(monkeypatch):
    monkeypatch.setenv("GUILD_ID", "abc")
    with pytest.raises(ValueError, match="Invalid integer env GUILD_ID"):
        env_int("GUILD_ID", default=0)

    monkeypatch.setenv("GUILD_ID", "  ")
    assert env_int("GUILD_ID", default=7) == 7


def test_defaults(monkeypatch):
    for name in ("DATABASE_URL", "DISCORD_LOG_LEVEL", "SUBMISSION_WINDOW_SECONDS", "LOCK_FILE", "DOCKER_CONTAINER"):
        monkeypatch.delenv(name, raising=False)

    cfg = load_config()

    assert cfg.database_url == DEFAULT_DATABASE_URL
    assert cfg.discord_log_level == "INFO"
    assert cfg.submission_window_seconds == 60.0
    assert cfg.lock_file == "bot.lock"
    assert cfg.channel_id_for_topic("abmeldung") == cfg.absence_channel_id
    assert cfg.channel_id_for_topic("unbekannt") == 0


def test_intent_toggle_reaches_config(monkeypatch):
    monkeypatch.setenv("ENABLE_MESSAGE_CONTENT_INTENT", "false")
    assert load_config().enable_message_content_intent is False


def test_discord_log_level_validation_rejects_invalid_value(monkeypatch):
    monkeypatch.setenv("DISCORD_LOG_LEVEL", "trace")
    with pytest.raises(ValueError, match="DISCORD_LOG_LEVEL must be one of"):
        load_config()


def test_submission_window_must_be_positive(monkeypatch):
    monkeypatch.setenv("SUBMISSION_WINDOW_SECONDS", "0")
    with pytest.raises(ValueError, match="SUBMISSION_WINDOW_SECONDS must be > 0"):
        load_config()


def test_lock_file_moves_to_tmp_in_containers(monkeypatch):
    monkeypatch.setenv("DOCKER_CONTAINER", "1")
    monkeypatch.delenv("LOCK_FILE", raising=False)

    assert default_lock_file() == "/tmp/bot.lock"
    assert load_config().lock_file == "/tmp/bot.lock"
