# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Anti-AFK activity scheduler.

While the session is active, every tick rolls a few independent random
micro-actions (jump, sneak, look around, step forward) so the server sees
the player as present.
"""

from __future__ import annotations

import asyncio
import math
import random
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from afkbot.client.base import Control
from afkbot.constants import DEFAULT_ACTIVITY_INTERVAL_S
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from afkbot.client.base import SessionClient

logger = get_logger(__name__)

JUMP_CHANCE = 0.3
JUMP_HOLD_S = 0.1
SNEAK_CHANCE = 0.2
SNEAK_HOLD_S = 0.2
LOOK_CHANCE = 0.4
LOOK_PITCH_SPAN = 0.5
FORWARD_CHANCE = 0.15
FORWARD_HOLD_S = 0.5


class ActivityStatus(BaseModel):
    interval_s: float
    running: bool
    ticks: int


class ActivityScheduler:
    def __init__(
        self,
        *,
        interval_s: float = DEFAULT_ACTIVITY_INTERVAL_S,
        rng: random.Random | None = None,
    ) -> None:
        self._interval_s = interval_s
        self._rng = rng or random.Random()
        self._client: SessionClient | None = None
        self._task: asyncio.Task[None] | None = None
        self._releases: set[asyncio.Task[None]] = set()
        self._ticks = 0

    @property
    def tick_task(self) -> asyncio.Task[None] | None:
        return self._task

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def status(self) -> dict[str, Any]:
        return ActivityStatus(interval_s=self._interval_s, running=self.is_running(), ticks=self._ticks).model_dump()

    def start(self, client: SessionClient) -> None:
        """Begin ticking against `client`, replacing any previous tick task."""
        if self._task and not self._task.done():
            self._task.cancel()
        self._client = client
        self._task = asyncio.create_task(self._loop())
        logger.debug("activity_started", interval_s=self._interval_s)

    def stop(self) -> None:
        """Cancel the pending tick. Already scheduled control releases still run."""
        task = self._task
        self._task = None
        self._client = None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("activity_stopped")

    async def _loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval_s)
                try:
                    await self.tick()
                except Exception as e:
                    logger.warning("activity_tick_failed", error=str(e))
        except asyncio.CancelledError:
            return

    async def tick(self) -> list[str]:
        """Roll every action once and issue the ones that fire. Returns their names."""
        client = self._client
        if client is None or not client.is_connected():
            return []
        self._ticks += 1
        fired: list[str] = []

        if self._rng.random() < JUMP_CHANCE:
            fired.append("jump")
            await self._hold(client, Control.JUMP, True, JUMP_HOLD_S)

        if self._rng.random() < SNEAK_CHANCE:
            fired.append("sneak")
            await self._hold(client, Control.SNEAK, True, SNEAK_HOLD_S)

        if self._rng.random() < LOOK_CHANCE:
            fired.append("look")
            yaw = self._rng.random() * math.pi * 2
            pitch = (self._rng.random() - 0.5) * LOOK_PITCH_SPAN
            await self._issue("look", client.look(yaw, pitch))

        if self._rng.random() < FORWARD_CHANCE:
            fired.append("forward")
            # Coin flip between stepping forward and standing still.
            forward = self._rng.random() > 0.5
            await self._hold(client, Control.FORWARD, forward, FORWARD_HOLD_S)

        if fired:
            logger.debug("activity_tick", actions=fired)
        return fired

    async def _hold(self, client: SessionClient, control: Control, state: bool, hold_s: float) -> None:
        await self._issue(str(control), client.set_control_state(control, state))
        task = asyncio.create_task(self._release(client, control, hold_s))
        self._releases.add(task)
        task.add_done_callback(self._releases.discard)

    async def _release(self, client: SessionClient, control: Control, hold_s: float) -> None:
        await asyncio.sleep(hold_s)
        await self._issue(f"{control}_release", client.set_control_state(control, False))

    async def _issue(self, action: str, intent: Awaitable[None]) -> bool:
        try:
            await intent
        except Exception as e:
            logger.warning("activity_intent_failed", action=action, error=str(e))
            return False
        return True
