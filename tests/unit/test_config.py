"""Tests for dispatcher configuration."""

import pytest

from webhook_dispatcher.config import DispatcherConfig


def test_defaults():
    config = DispatcherConfig()

    assert config.max_attempts == 5
    assert config.request_timeout == 10.0
    assert config.max_backoff == 300.0
    assert config.jitter == 0.2
    assert config.db_path is None
    assert config.require_secret is False


def test_from_dict_ignores_unknown_keys():
    config = DispatcherConfig.from_dict({"worker_count": 8, "unknown": True})

    assert config.worker_count == 8


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WEBHOOK_WORKER_COUNT", "2")
    monkeypatch.setenv("WEBHOOK_MAX_ATTEMPTS", "7")
    monkeypatch.setenv("WEBHOOK_REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("WEBHOOK_MAX_QUEUE_SIZE", "50")
    monkeypatch.setenv("WEBHOOK_REQUIRE_SECRET", "true")
    monkeypatch.setenv("WEBHOOK_DB_PATH", str(tmp_path / "subs.db"))

    config = DispatcherConfig.from_env()

    assert config.worker_count == 2
    assert config.max_attempts == 7
    assert config.request_timeout == 2.5
    assert config.max_queue_size == 50
    assert config.require_secret is True
    assert config.db_path == str(tmp_path / "subs.db")


def test_from_env_reads_dotenv(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text("WEBHOOK_BACKOFF_BASE=0.5\n")
    monkeypatch.chdir(tmp_path)

    try:
        config = DispatcherConfig.from_env()
    finally:
        monkeypatch.delenv("WEBHOOK_BACKOFF_BASE", raising=False)

    assert config.backoff_base == 0.5


@pytest.mark.parametrize(
    "overrides",
    [
        {"worker_count": 0},
        {"max_attempts": 0},
        {"request_timeout": 0},
        {"backoff_base": 0},
        {"backoff_base": 10, "max_backoff": 5},
        {"jitter": 1.0},
        {"max_queue_size": 0},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValueError):
        DispatcherConfig(**overrides)
