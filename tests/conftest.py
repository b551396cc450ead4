# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog

from afkbot.settings import SessionConfig
from afkbot.state import SessionContext


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """Undo configure_logging() so no test logs into another test's stream."""
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig(host="127.0.0.1", port=25565, username="AFKbot", version="1.21.8", auth="offline")


@pytest.fixture
def context(session_config: SessionConfig) -> SessionContext:
    return SessionContext(config=session_config)
