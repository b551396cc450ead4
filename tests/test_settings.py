# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from afkbot.settings import SessionConfig, Settings

_ENV = (
    "SERVER_HOST",
    "SERVER_PORT",
    "BOT_USERNAME",
    "MC_VERSION",
    "AFKBOT_HOST",
    "AFKBOT_PORT",
    "AFKBOT_USERNAME",
    "AFKBOT_VERSION",
    "AFKBOT_AUTH",
    "AFKBOT_MAX_ATTEMPTS",
    "AFKBOT_STATUS_PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = Settings()

    assert settings.host == "3rsi_01.aternos.me"
    assert settings.port == 61765
    assert settings.username == "AFKbot"
    assert settings.version == "1.21.8"
    assert settings.auth == "offline"
    assert settings.max_attempts == 10
    assert settings.base_delay_s == 5.0
    assert settings.cap_delay_s == 60.0
    assert settings.activity_interval_s == 30.0
    assert settings.status_port == 3000


def test_bare_env_names(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SERVER_HOST", "mc.example.org")
    monkeypatch.setenv("SERVER_PORT", "25570")
    monkeypatch.setenv("BOT_USERNAME", "Idler")
    monkeypatch.setenv("MC_VERSION", "1.20.4")

    config = Settings().session_config()

    assert config == SessionConfig(host="mc.example.org", port=25570, username="Idler", version="1.20.4", auth="offline")


def test_prefixed_env_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SERVER_HOST", "bare.example.org")
    monkeypatch.setenv("AFKBOT_HOST", "prefixed.example.org")
    monkeypatch.setenv("AFKBOT_MAX_ATTEMPTS", "3")

    settings = Settings()

    assert settings.host == "prefixed.example.org"
    assert settings.max_attempts == 3


def test_keyword_overrides() -> None:
    settings = Settings(host="localhost", port=25565, status_port=8080)

    assert settings.host == "localhost"
    assert settings.port == 25565
    assert settings.status_port == 8080


def test_invalid_port_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SERVER_PORT", "not-a-port")
    with pytest.raises(ValidationError):
        Settings()


def test_session_config_is_frozen() -> None:
    config = Settings().session_config()
    with pytest.raises(ValidationError):
        config.host = "elsewhere"  # type: ignore[misc]
