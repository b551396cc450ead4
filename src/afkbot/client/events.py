# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Events a session client delivers to the reconnection controller."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LoggedIn:
    username: str


@dataclass(frozen=True, slots=True)
class Ready:
    """The player is spawned and intents are accepted."""


@dataclass(frozen=True, slots=True)
class Disconnected:
    reason: str
    kicked: bool = False


@dataclass(frozen=True, slots=True)
class ClientError:
    error: BaseException


@dataclass(frozen=True, slots=True)
class ChatMessage:
    sender: str
    text: str


@dataclass(frozen=True, slots=True)
class HealthChanged:
    health: float
    food: float


SessionEvent = LoggedIn | Ready | Disconnected | ClientError | ChatMessage | HealthChanged
EventSink = Callable[[SessionEvent], None]
