# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Fault-injection client wrapper (deterministic).

Wraps a real client and injects connect failures and kicks at deterministic
intervals so resilience runs and tests are repeatable.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from afkbot.client.base import Control, SessionClient
from afkbot.client.events import Disconnected, Ready
from afkbot.errors import ConnectError

if TYPE_CHECKING:
    from afkbot.client.events import EventSink, SessionEvent
    from afkbot.settings import SessionConfig


class ChaosClient(SessionClient):
    def __init__(
        self,
        inner: SessionClient,
        *,
        fail_every_n_connects: int = 0,
        kick_after_s: float | None = None,
    ) -> None:
        self._inner = inner
        self._fail_n = int(fail_every_n_connects or 0)
        self._kick_after_s = kick_after_s if kick_after_s and kick_after_s > 0 else None
        self._connect_count = 0
        self._kick_task: asyncio.Task[None] | None = None

    @property
    def connect_count(self) -> int:
        return self._connect_count

    async def connect(self, config: SessionConfig, emit: EventSink) -> None:
        self._connect_count += 1

        if self._fail_n > 0 and (self._connect_count % self._fail_n) == 0:
            raise ConnectError(f"chaos: injected connect failure #{self._connect_count}")

        def _relay(event: SessionEvent) -> None:
            emit(event)
            if isinstance(event, Ready) and self._kick_after_s is not None:
                self._schedule_kick(emit)

        await self._inner.connect(config, _relay)

    def _schedule_kick(self, emit: EventSink) -> None:
        if self._kick_task is not None and not self._kick_task.done():
            return

        async def _kick() -> None:
            assert self._kick_after_s is not None
            await asyncio.sleep(self._kick_after_s)
            with contextlib.suppress(Exception):
                await self._inner.close()
            emit(Disconnected(reason=f"chaos: injected kick", kicked=True))

        self._kick_task = asyncio.create_task(_kick())

    async def close(self) -> None:
        task = self._kick_task
        self._kick_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._inner.close()

    async def chat(self, text: str) -> None:
        await self._inner.chat(text)

    async def look(self, yaw: float, pitch: float) -> None:
        await self._inner.look(yaw, pitch)

    async def set_control_state(self, control: Control, state: bool) -> None:
        await self._inner.set_control_state(control, state)

    async def respawn(self) -> None:
        await self._inner.respawn()

    def is_connected(self) -> bool:
        return self._inner.is_connected()

    @property
    def username(self) -> str | None:
        return self._inner.username

    @property
    def health(self) -> float | None:
        return self._inner.health

    @property
    def food(self) -> float | None:
        return self._inner.food
