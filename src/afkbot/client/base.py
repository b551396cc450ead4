# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Abstract base class for game session clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from afkbot.client.events import EventSink
    from afkbot.settings import SessionConfig


class Control(StrEnum):
    """Movement controls a client can toggle."""

    FORWARD = "forward"
    JUMP = "jump"
    SNEAK = "sneak"


class SessionClient(ABC):
    """Speaks the game protocol and models server-side player state.

    Lifecycle changes are reported through the `emit` sink handed to
    `connect`; intents are awaited and raise on a closed session.
    """

    @abstractmethod
    async def connect(self, config: SessionConfig, emit: EventSink) -> None:
        """Open a session to config.host:config.port.

        Args:
            config: Target server and identity
            emit: Sink for lifecycle, chat and health events

        Raises:
            ConnectError: If the session cannot be opened
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the session gracefully.

        Should be idempotent - safe to call multiple times.
        """

    @abstractmethod
    async def chat(self, text: str) -> None:
        """Send a chat message.

        Raises:
            SessionClosedError: If not connected
        """

    @abstractmethod
    async def look(self, yaw: float, pitch: float) -> None:
        """Turn the player's head (radians)."""

    @abstractmethod
    async def set_control_state(self, control: Control, state: bool) -> None:
        """Press or release a movement control."""

    @abstractmethod
    async def respawn(self) -> None:
        """Ask the server to respawn a dead player."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the session is open and the player is in the world."""

    @property
    def username(self) -> str | None:
        return None

    @property
    def health(self) -> float | None:
        return None

    @property
    def food(self) -> float | None:
        return None
