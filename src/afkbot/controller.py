# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Reconnection controller: the session lifecycle state machine.

States: idle -> connecting -> active -> disconnected -> connecting ... and
finally exhausted once the reconnect budget is spent. Every client event goes
through `dispatch`, on the single event loop, so the context needs no locks.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Coroutine
from typing import TYPE_CHECKING, Any, assert_never

from afkbot import constants
from afkbot.activity import ActivityScheduler
from afkbot.client.events import ChatMessage, ClientError, Disconnected, HealthChanged, LoggedIn, Ready
from afkbot.errors import FailureKind, classify_failure
from afkbot.logging import get_logger
from afkbot.reactions import SessionReactions
from afkbot.state import LifecycleState

if TYPE_CHECKING:
    from afkbot.client.base import SessionClient
    from afkbot.client.events import SessionEvent
    from afkbot.state import SessionContext

logger = get_logger(__name__)

ClientFactory = Callable[[], "SessionClient"]
Sleep = Callable[[float], Awaitable[None]]

_LIVE_STATES = (LifecycleState.CONNECTING, LifecycleState.ACTIVE)


class ReconnectionController:
    def __init__(
        self,
        context: SessionContext,
        client_factory: ClientFactory,
        *,
        scheduler: ActivityScheduler | None = None,
        reactions: SessionReactions | None = None,
        sleep: Sleep = asyncio.sleep,
        shutdown_timeout_s: float = constants.DEFAULT_SHUTDOWN_TIMEOUT_S,
    ) -> None:
        self._context = context
        self._client_factory = client_factory
        self.scheduler = scheduler or ActivityScheduler()
        self._reactions = reactions or SessionReactions(context)
        self._sleep = sleep
        self._shutdown_timeout_s = shutdown_timeout_s

        self._client: SessionClient | None = None
        self._generation = 0
        self._connect_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._side_tasks: set[asyncio.Task[Any]] = set()
        # Replaced clients whose close has not finished yet.
        self._closing: set[SessionClient] = set()

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def state(self) -> LifecycleState:
        return self._context.state

    @property
    def client(self) -> SessionClient | None:
        return self._client

    @property
    def pending_reconnect(self) -> asyncio.Task[None] | None:
        """The scheduled reconnect, if one is waiting to fire."""
        task = self._reconnect_task
        if task is None or task.done():
            return None
        return task

    def start(self) -> None:
        if self._context.state is not LifecycleState.IDLE:
            logger.debug("controller_already_started", state=str(self._context.state))
            return
        self._set_state(LifecycleState.CONNECTING)
        self._begin_connect()

    # -- connecting ---------------------------------------------------------

    def _begin_connect(self) -> None:
        self._generation += 1
        generation = self._generation
        client = self._client_factory()
        self._client = client
        self._connect_task = asyncio.create_task(self._connect(client, generation))

    async def _connect(self, client: SessionClient, generation: int) -> None:
        config = self._context.config
        logger.info(
            "session_starting",
            attempt=self._context.reconnect.attempt_count + 1,
            host=config.host,
            port=config.port,
        )

        def _emit(event: SessionEvent) -> None:
            if generation != self._generation:
                logger.debug("stale_event_ignored", event_type=type(event).__name__)
                return
            self.dispatch(event)

        try:
            await client.connect(config, _emit)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("session_create_failed", error=str(e))
            _emit(ClientError(error=e))

    # -- event dispatch -----------------------------------------------------

    def dispatch(self, event: SessionEvent) -> None:
        match event:
            case Ready():
                self._on_ready()
            case LoggedIn(username=username):
                logger.info("session_logged_in", username=username)
            case Disconnected(reason=reason, kicked=True):
                logger.warning("session_kicked", reason=reason)
                self._on_lost(f"Kicked: {reason}", FailureKind.KICKED)
            case Disconnected(reason=reason):
                logger.info("session_ended", reason=reason)
                self._on_lost(None, None)
            case ClientError(error=error):
                kind = classify_failure(error)
                message = str(error) or type(error).__name__
                logger.error("session_error", error=message, kind=str(kind))
                if kind is FailureKind.UNREACHABLE:
                    logger.warning("server_unreachable", host=self._context.config.host)
                elif kind is FailureKind.AUTH:
                    logger.warning("authentication_issue", username=self._context.config.username)
                self._on_lost(message, kind)
            case ChatMessage():
                if self._context.state is LifecycleState.ACTIVE and self._client is not None:
                    self._spawn(self._reactions.on_chat(self._client, event))
            case HealthChanged():
                if self._context.state is LifecycleState.ACTIVE and self._client is not None:
                    self._spawn(self._reactions.on_health(self._client, event))
            case _:
                assert_never(event)

    def _on_ready(self) -> None:
        client = self._client
        state = self._context.state
        if client is None or state not in _LIVE_STATES:
            return
        if state is LifecycleState.ACTIVE:
            # Respawned: keep one scheduler running against the same client.
            self.scheduler.start(client)
            return

        self._context.reconnect.reset()
        self._context.record_error(None)
        self._context.connected = True
        self._set_state(LifecycleState.ACTIVE)
        self.scheduler.start(client)
        logger.info("session_active", username=client.username)
        self._spawn(self._reactions.greet(client))

    def _on_lost(self, message: str | None, kind: FailureKind | None) -> None:
        if self._context.state not in _LIVE_STATES:
            return
        self.scheduler.stop()
        self._cancel_side_tasks()
        self._context.connected = False
        if message is not None:
            self._context.record_error(message, str(kind) if kind else None)
        self._set_state(LifecycleState.DISCONNECTED)
        self._handle_reconnect()

    # -- reconnecting -------------------------------------------------------

    def _handle_reconnect(self) -> None:
        reconnect = self._context.reconnect
        stale = self._client
        self._client = None
        if stale is not None:
            self._closing.add(stale)

        if not reconnect.can_retry():
            self._set_state(LifecycleState.EXHAUSTED)
            logger.error("reconnect_exhausted", max_attempts=reconnect.max_attempts)
            if stale is not None:
                self._spawn(self._close_quietly(stale))
            return

        delay = reconnect.next_attempt()
        self._context.reconnect_count += 1
        logger.info(
            "reconnect_scheduled",
            delay_s=delay,
            attempt=reconnect.attempt_count,
            max_attempts=reconnect.max_attempts,
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay, stale))

    async def _reconnect_after(self, delay: float, stale: SessionClient | None) -> None:
        if stale is not None:
            await self._close_quietly(stale)
        await self._sleep(delay)
        if self._context.state is not LifecycleState.DISCONNECTED:
            return
        self._set_state(LifecycleState.CONNECTING)
        self._begin_connect()

    # -- shutdown -----------------------------------------------------------

    async def shutdown(self) -> None:
        """Stop everything and close the client, bounded and best-effort."""
        logger.info("session_shutdown", state=str(self._context.state))
        # Outstanding client callbacks now belong to a superseded generation.
        self._generation += 1
        self.scheduler.stop()
        self._cancel_side_tasks()

        for task in (self._reconnect_task, self._connect_task):
            if task is not None and not task.done() and task is not asyncio.current_task():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError, Exception):
                    await task
        self._reconnect_task = None
        self._connect_task = None

        client = self._client
        self._client = None
        stale = list(self._closing)
        self._closing.clear()
        self._context.connected = False
        self._set_state(LifecycleState.IDLE)

        closers = [c.close() for c in stale]
        if client is not None:
            closers.append(self._farewell(client))
        if closers:
            with contextlib.suppress(Exception):
                await asyncio.wait_for(
                    asyncio.gather(*closers, return_exceptions=True),
                    timeout=self._shutdown_timeout_s,
                )

    async def _farewell(self, client: SessionClient) -> None:
        if client.is_connected():
            with contextlib.suppress(Exception):
                await client.chat(constants.FAREWELL_TEXT)
        await client.close()

    async def _close_quietly(self, client: SessionClient) -> None:
        try:
            await asyncio.wait_for(client.close(), timeout=self._shutdown_timeout_s)
        except Exception as e:
            logger.debug("client_close_failed", error=str(e))
        self._closing.discard(client)

    # -- helpers ------------------------------------------------------------

    def _set_state(self, state: LifecycleState) -> None:
        previous = self._context.state
        self._context.state = state
        if previous is not state:
            logger.debug("lifecycle_transition", previous=str(previous), state=str(state))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._side_tasks.add(task)
        task.add_done_callback(self._side_tasks.discard)

    def _cancel_side_tasks(self) -> None:
        for task in list(self._side_tasks):
            task.cancel()
        self._side_tasks.clear()
