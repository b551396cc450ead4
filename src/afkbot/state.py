# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Lifecycle, reconnect and status state shared by the controller, scheduler and reporter.

Everything here is mutated from the single asyncio event loop only; the
controller is the one writer.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel

from afkbot import constants
from afkbot.settings import SessionConfig


class LifecycleState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    DISCONNECTED = "disconnected"
    EXHAUSTED = "exhausted"


def backoff_delay(attempt: int, base_s: float, cap_s: float) -> float:
    """Delay before reconnect number `attempt` (1-based): base * 2^(attempt-1), capped."""
    if attempt < 1:
        return 0.0
    # Clamp the exponent so very large attempt numbers cannot overflow.
    exponent = min(attempt - 1, 32)
    return min(base_s * (2**exponent), cap_s)


@dataclass
class ReconnectState:
    max_attempts: int = constants.DEFAULT_MAX_ATTEMPTS
    base_delay_s: float = constants.DEFAULT_BASE_DELAY_S
    cap_delay_s: float = constants.DEFAULT_CAP_DELAY_S
    attempt_count: int = 0

    def can_retry(self) -> bool:
        return self.attempt_count < self.max_attempts

    def next_attempt(self) -> float:
        """Count one more reconnect attempt and return the delay to wait before it."""
        self.attempt_count += 1
        return backoff_delay(self.attempt_count, self.base_delay_s, self.cap_delay_s)

    def reset(self) -> None:
        self.attempt_count = 0


class StatusSnapshot(BaseModel):
    """Point-in-time view of the session, as served to external pollers."""

    state: LifecycleState
    connected: bool
    uptime_seconds: float
    reconnect_count: int
    attempt_count: int
    last_error: str | None = None
    last_error_kind: str | None = None
    start_time: float

    @property
    def uptime_minutes(self) -> int:
        return int(self.uptime_seconds // 60)


@dataclass
class SessionContext:
    """The one owned bundle of config and mutable session state."""

    config: SessionConfig
    reconnect: ReconnectState = field(default_factory=ReconnectState)
    state: LifecycleState = LifecycleState.IDLE
    connected: bool = False
    reconnect_count: int = 0
    last_error: str | None = None
    last_error_kind: str | None = None
    clock: Callable[[], float] = time.monotonic
    start_time: float = field(default_factory=time.time)
    _start_mono: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        self._start_mono = self.clock()

    def uptime_seconds(self) -> float:
        return max(0.0, self.clock() - self._start_mono)

    def record_error(self, message: str | None, kind: str | None = None) -> None:
        self.last_error = message
        self.last_error_kind = kind if message is not None else None

    def snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(
            state=self.state,
            connected=self.connected,
            uptime_seconds=self.uptime_seconds(),
            reconnect_count=self.reconnect_count,
            attempt_count=self.reconnect.attempt_count,
            last_error=self.last_error,
            last_error_kind=self.last_error_kind,
            start_time=self.start_time,
        )
