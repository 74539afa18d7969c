"""Tests for environment-driven settings."""

import pytest

from pushrelay.outbound.settings import (
    DEFAULT_SEND_ENDPOINT,
    MODE_DRY_RUN,
    MODE_LIVE,
    load_push_settings,
)

ENV_VARS = [
    "PUSH_API_KEY",
    "PUSH_MODE",
    "PUSH_SEND_ENDPOINT",
    "PUSH_TIME_TO_LIVE",
    "PUSH_MAX_RETRIES",
    "PUSH_HTTP_TIMEOUT",
    "PUSH_PERSIST_RESULTS",
    "PUSH_QUEUE_MAXSIZE",
    "PUSH_QUEUE_DRAIN_SECONDS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_to_dry_run_without_key():
    settings = load_push_settings()

    assert settings.mode == MODE_DRY_RUN
    assert not settings.is_live
    assert settings.send_endpoint == DEFAULT_SEND_ENDPOINT
    assert settings.max_retries == 3
    assert settings.time_to_live is None
    assert settings.persist_results is False


def test_live_mode_requires_api_key(monkeypatch):
    monkeypatch.setenv("PUSH_MODE", "live")

    with pytest.raises(RuntimeError, match="PUSH_API_KEY") as exc_info:
        load_push_settings()
    assert "Export it before starting pushrelay" in str(exc_info.value)


def test_live_mode_reads_everything(monkeypatch):
    monkeypatch.setenv("PUSH_MODE", "LIVE")
    monkeypatch.setenv("PUSH_API_KEY", " abc ")
    monkeypatch.setenv("PUSH_TIME_TO_LIVE", "3600")
    monkeypatch.setenv("PUSH_MAX_RETRIES", "5")
    monkeypatch.setenv("PUSH_PERSIST_RESULTS", "true")
    monkeypatch.setenv("PUSH_QUEUE_DRAIN_SECONDS", "60")

    settings = load_push_settings()

    assert settings.mode == MODE_LIVE
    assert settings.authorization_header == "key=abc"
    assert settings.time_to_live == 3600
    assert settings.max_retries == 5
    assert settings.persist_results is True
    assert settings.queue_drain_seconds == 60


def test_rejects_unknown_mode(monkeypatch):
    monkeypatch.setenv("PUSH_MODE", "staging")

    with pytest.raises(RuntimeError, match="PUSH_MODE"):
        load_push_settings()


def test_rejects_non_integer(monkeypatch):
    monkeypatch.setenv("PUSH_MAX_RETRIES", "three")

    with pytest.raises(RuntimeError, match="PUSH_MAX_RETRIES"):
        load_push_settings()
