# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""TCP probe client: holds a raw connection to the server without speaking the game protocol.

Useful for exercising the reconnect engine against a real host and for
checking reachability. Intents are accepted and logged but not encoded.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from afkbot.client.base import Control, SessionClient
from afkbot.client.events import ClientError, Disconnected, LoggedIn, Ready
from afkbot.constants import DEFAULT_CONNECT_TIMEOUT_S
from afkbot.errors import ConnectError, SessionClosedError
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from asyncio import StreamReader, StreamWriter

    from afkbot.client.events import EventSink
    from afkbot.settings import SessionConfig

log = get_logger(__name__)

FULL_HEALTH = 20.0
FULL_FOOD = 20.0


class TcpProbeClient(SessionClient):
    def __init__(self, *, connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S, read_size: int = 4096) -> None:
        self._connect_timeout_s = connect_timeout_s
        self._read_size = read_size
        self._reader: StreamReader | None = None
        self._writer: StreamWriter | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._username: str | None = None
        self._emit: EventSink | None = None

    async def connect(self, config: SessionConfig, emit: EventSink) -> None:
        if self._writer:
            await self.close()

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(config.host, config.port),
                timeout=self._connect_timeout_s,
            )
        except Exception as e:
            raise ConnectError(f"Failed to connect to {config.host}:{config.port}: {e}") from e

        self._username = config.username
        self._emit = emit
        log.info("tcp_probe_connected", host=config.host, port=config.port)

        emit(LoggedIn(username=config.username))
        emit(Ready())
        self._reader_task = asyncio.create_task(self._read_loop())

    async def _read_loop(self) -> None:
        assert self._reader is not None
        try:
            while True:
                data = await self._reader.read(self._read_size)
                if not data:
                    break
        except asyncio.CancelledError:
            return
        except (ConnectionError, OSError) as e:
            self._drop()
            self._notify(ClientError(error=e))
            return
        self._drop()
        self._notify(Disconnected(reason="connection ended"))

    def _notify(self, event: Disconnected | ClientError) -> None:
        if self._emit is not None:
            self._emit(event)

    def _drop(self) -> None:
        writer = self._writer
        self._writer = None
        self._reader = None
        if writer is not None:
            with contextlib.suppress(Exception):
                writer.close()

    async def close(self) -> None:
        task = self._reader_task
        self._reader_task = None
        self._emit = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        writer = self._writer
        if not writer:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except (ConnectionResetError, BrokenPipeError, RuntimeError):
            pass
        finally:
            self._writer = None
            self._reader = None

        log.info("tcp_probe_disconnected")

    def _require_open(self) -> None:
        if not self.is_connected():
            raise SessionClosedError("Not connected")

    async def chat(self, text: str) -> None:
        self._require_open()
        log.debug("tcp_probe_chat", text=text)

    async def look(self, yaw: float, pitch: float) -> None:
        self._require_open()
        log.debug("tcp_probe_look", yaw=round(yaw, 3), pitch=round(pitch, 3))

    async def set_control_state(self, control: Control, state: bool) -> None:
        self._require_open()
        log.debug("tcp_probe_control", control=str(control), state=state)

    async def respawn(self) -> None:
        self._require_open()
        log.debug("tcp_probe_respawn")

    def is_connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    @property
    def username(self) -> str | None:
        return self._username

    @property
    def health(self) -> float | None:
        return FULL_HEALTH if self.is_connected() else None

    @property
    def food(self) -> float | None:
        return FULL_FOOD if self.is_connected() else None
