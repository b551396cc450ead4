# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the reconnection controller state machine."""

from __future__ import annotations

import asyncio
import io
import json

import pytest
import structlog

from afkbot.activity import ActivityScheduler
from afkbot.client.events import ChatMessage, ClientError, Disconnected, HealthChanged, Ready
from afkbot.constants import FAREWELL_TEXT, GREETING_TEXT
from afkbot.controller import ReconnectionController
from afkbot.logging import configure_logging
from afkbot.reactions import SessionReactions
from afkbot.settings import Settings
from afkbot.state import LifecycleState, SessionContext
from tests.fakes import FakeClient, RecordingSleep, ScriptedFactory, refused, wait_until


def make_controller(
    context: SessionContext,
    factory: ScriptedFactory,
    *,
    sleep: RecordingSleep | None = None,
    shutdown_timeout_s: float = 1.0,
) -> ReconnectionController:
    return ReconnectionController(
        context,
        factory,
        scheduler=ActivityScheduler(interval_s=3600),
        reactions=SessionReactions(context, greeting_delay_s=0),
        sleep=sleep or RecordingSleep(),
        shutdown_timeout_s=shutdown_timeout_s,
    )


async def started(controller: ReconnectionController) -> None:
    controller.start()
    await wait_until(lambda: controller.state is not LifecycleState.CONNECTING)


@pytest.mark.asyncio
async def test_start_connects_and_becomes_active(context: SessionContext) -> None:
    factory = ScriptedFactory()
    controller = make_controller(context, factory)

    assert controller.state is LifecycleState.IDLE
    controller.start()
    assert controller.state is LifecycleState.CONNECTING
    await wait_until(lambda: controller.state is LifecycleState.ACTIVE)

    assert context.connected is True
    assert controller.scheduler.is_running()
    assert controller.client is factory.created[0]
    await wait_until(lambda: GREETING_TEXT in factory.created[0].chats)
    await controller.shutdown()


@pytest.mark.asyncio
async def test_start_is_ignored_once_running(context: SessionContext) -> None:
    factory = ScriptedFactory()
    controller = make_controller(context, factory)
    await started(controller)

    controller.start()
    await asyncio.sleep(0.01)

    assert len(factory.created) == 1
    await controller.shutdown()


@pytest.mark.asyncio
async def test_kick_then_reconnect_scenario(context: SessionContext) -> None:
    sleep = RecordingSleep()
    factory = ScriptedFactory()
    controller = make_controller(context, factory, sleep=sleep)
    await started(controller)
    first = factory.created[0]

    first.emit(Disconnected(reason="idle too long", kicked=True))

    assert controller.state is LifecycleState.DISCONNECTED
    assert context.last_error == "Kicked: idle too long"
    assert context.last_error_kind == "kicked"
    assert context.connected is False
    assert not controller.scheduler.is_running()
    assert controller.pending_reconnect is not None

    await wait_until(lambda: controller.state is LifecycleState.ACTIVE)

    assert sleep.delays == [5.0]
    assert context.reconnect_count == 1
    assert context.reconnect.attempt_count == 0
    assert context.last_error is None
    assert first.closes == 1
    assert controller.client is factory.created[1]
    await controller.shutdown()


@pytest.mark.asyncio
async def test_exhausts_after_max_failed_reconnects(context: SessionContext) -> None:
    sleep = RecordingSleep()
    factory = ScriptedFactory(default=refused)
    controller = make_controller(context, factory, sleep=sleep)

    controller.start()
    await wait_until(lambda: controller.state is LifecycleState.EXHAUSTED)
    await asyncio.sleep(0.01)

    assert context.reconnect_count == 10
    assert context.reconnect.attempt_count == 10
    # Initial connect plus ten reconnects, nothing further scheduled.
    assert len(factory.created) == 11
    assert controller.pending_reconnect is None
    assert sleep.delays == [5.0, 10.0, 20.0, 40.0] + [60.0] * 6
    assert context.connected is False
    assert context.last_error_kind == "unreachable"
    assert context.snapshot().state is LifecycleState.EXHAUSTED
    await controller.shutdown()


@pytest.mark.asyncio
async def test_active_resets_attempts_and_error(context: SessionContext) -> None:
    factory = ScriptedFactory(refused, refused, refused)
    controller = make_controller(context, factory)

    controller.start()
    await wait_until(lambda: controller.state is LifecycleState.ACTIVE)

    assert len(factory.created) == 4
    assert context.reconnect.attempt_count == 0
    assert context.reconnect_count == 3
    assert context.last_error is None
    assert context.last_error_kind is None
    await controller.shutdown()


@pytest.mark.asyncio
async def test_budget_restarts_after_success(context: SessionContext) -> None:
    sleep = RecordingSleep()
    factory = ScriptedFactory(refused, refused)
    controller = make_controller(context, factory, sleep=sleep)
    controller.start()
    await wait_until(lambda: controller.state is LifecycleState.ACTIVE)

    controller.client.emit(Disconnected(reason="server closed"))
    await wait_until(lambda: controller.state is LifecycleState.ACTIVE)

    # Third wait starts again from the base delay.
    assert sleep.delays == [5.0, 10.0, 5.0]
    await controller.shutdown()


@pytest.mark.asyncio
async def test_scheduler_follows_active_state(context: SessionContext) -> None:
    factory = ScriptedFactory()
    controller = make_controller(context, factory)
    await started(controller)
    first_tick = controller.scheduler.tick_task
    assert first_tick is not None and not first_tick.done()

    controller.client.emit(ClientError(error=RuntimeError("read ECONNRESET")))
    assert not controller.scheduler.is_running()
    assert controller.scheduler.tick_task is None

    await wait_until(lambda: controller.state is LifecycleState.ACTIVE)
    second_tick = controller.scheduler.tick_task

    assert second_tick is not None and second_tick is not first_tick
    assert first_tick.done()
    assert not second_tick.done()
    await controller.shutdown()


@pytest.mark.asyncio
async def test_respawn_ready_keeps_single_scheduler(context: SessionContext) -> None:
    factory = ScriptedFactory()
    controller = make_controller(context, factory)
    await started(controller)
    before = controller.scheduler.tick_task

    controller.client.emit(Ready())
    await asyncio.sleep(0.01)

    assert controller.state is LifecycleState.ACTIVE
    assert before is not None and before.done()
    assert controller.scheduler.is_running()
    assert context.reconnect_count == 0
    await controller.shutdown()


@pytest.mark.asyncio
async def test_kick_followed_by_end_counts_once(context: SessionContext) -> None:
    factory = ScriptedFactory()
    controller = make_controller(context, factory)
    await started(controller)
    client = controller.client

    client.emit(Disconnected(reason="banned for afk", kicked=True))
    client.emit(Disconnected(reason="connection ended"))

    assert context.reconnect_count == 1
    assert context.reconnect.attempt_count == 1
    assert context.last_error == "Kicked: banned for afk"
    await controller.shutdown()


@pytest.mark.asyncio
async def test_plain_end_keeps_previous_error(context: SessionContext) -> None:
    factory = ScriptedFactory()
    controller = make_controller(context, factory)
    await started(controller)
    context.record_error("earlier", "other")

    controller.client.emit(Disconnected(reason="socket closed"))

    assert context.last_error == "earlier"
    await controller.shutdown()


@pytest.mark.asyncio
async def test_events_from_replaced_client_are_ignored(context: SessionContext) -> None:
    factory = ScriptedFactory()
    controller = make_controller(context, factory)
    await started(controller)
    old = controller.client
    old.emit(Disconnected(reason="kicked", kicked=True))
    await wait_until(lambda: controller.state is LifecycleState.ACTIVE)

    old._emit(Disconnected(reason="late end"))
    old._emit(ClientError(error=RuntimeError("late error")))

    assert controller.state is LifecycleState.ACTIVE
    assert context.reconnect_count == 1
    await controller.shutdown()


@pytest.mark.asyncio
async def test_auth_errors_follow_same_retry_path(context: SessionContext) -> None:
    sleep = RecordingSleep()
    factory = ScriptedFactory()
    controller = make_controller(context, factory, sleep=sleep)
    await started(controller)

    controller.client.emit(ClientError(error=RuntimeError("Invalid session.")))

    assert context.last_error == "Invalid session."
    assert context.last_error_kind == "auth"
    assert controller.pending_reconnect is not None
    await wait_until(lambda: controller.state is LifecycleState.ACTIVE)
    assert sleep.delays == [5.0]
    await controller.shutdown()


@pytest.mark.asyncio
async def test_chat_status_command_gets_reply(context: SessionContext) -> None:
    factory = ScriptedFactory()
    controller = make_controller(context, factory)
    await started(controller)
    client = controller.client

    client.emit(ChatMessage(sender="steve", text="hey AFK Bot Status?"))
    client.emit(ChatMessage(sender="AFKbot", text="afk bot status"))
    await wait_until(lambda: any(c.startswith("Active for") for c in client.chats))
    await asyncio.sleep(0.01)

    replies = [c for c in client.chats if c.startswith("Active for")]
    assert replies == ["Active for 0m, Health: 20, Food: 20"]
    await controller.shutdown()


@pytest.mark.asyncio
async def test_death_triggers_respawn(context: SessionContext) -> None:
    factory = ScriptedFactory()
    controller = make_controller(context, factory)
    await started(controller)
    client = controller.client

    client.emit(HealthChanged(health=0, food=12))
    await wait_until(lambda: client.respawns == 1)
    await controller.shutdown()


@pytest.mark.asyncio
async def test_shutdown_closes_client_and_returns_idle(context: SessionContext) -> None:
    factory = ScriptedFactory()
    controller = make_controller(context, factory)
    await started(controller)
    client = controller.client

    await controller.shutdown()

    assert controller.state is LifecycleState.IDLE
    assert context.connected is False
    assert not controller.scheduler.is_running()
    assert FAREWELL_TEXT in client.chats
    assert client.closes == 1


@pytest.mark.asyncio
async def test_shutdown_bounded_when_close_hangs(context: SessionContext) -> None:
    factory = ScriptedFactory(lambda: FakeClient(close_hangs=True))
    controller = make_controller(context, factory, shutdown_timeout_s=0.05)
    await started(controller)

    await asyncio.wait_for(controller.shutdown(), timeout=1.0)

    assert controller.state is LifecycleState.IDLE


@pytest.mark.asyncio
async def test_shutdown_swallows_close_errors(context: SessionContext) -> None:
    factory = ScriptedFactory(lambda: FakeClient(close_error=OSError("broken pipe")))
    controller = make_controller(context, factory)
    await started(controller)

    await controller.shutdown()

    assert controller.state is LifecycleState.IDLE


@pytest.mark.asyncio
async def test_shutdown_cancels_pending_reconnect(context: SessionContext) -> None:
    async def slow_sleep(delay: float) -> None:
        await asyncio.sleep(3600)

    factory = ScriptedFactory()
    controller = ReconnectionController(
        context,
        factory,
        scheduler=ActivityScheduler(interval_s=3600),
        reactions=SessionReactions(context, greeting_delay_s=0),
        sleep=slow_sleep,
    )
    await started(controller)
    controller.client.emit(Disconnected(reason="kicked", kicked=True))
    assert controller.pending_reconnect is not None

    await controller.shutdown()

    assert controller.pending_reconnect is None
    assert controller.state is LifecycleState.IDLE
    assert len(factory.created) == 1


@pytest.mark.asyncio
async def test_shutdown_from_exhausted(context: SessionContext) -> None:
    context.reconnect.max_attempts = 0
    factory = ScriptedFactory(default=refused)
    controller = make_controller(context, factory)

    controller.start()
    await wait_until(lambda: controller.state is LifecycleState.EXHAUSTED)
    assert context.reconnect_count == 0

    await controller.shutdown()
    assert controller.state is LifecycleState.IDLE


@pytest.mark.asyncio
async def test_late_events_after_shutdown_log_at_debug(context: SessionContext) -> None:
    stream = io.StringIO()
    configure_logging(Settings(log_level="DEBUG", log_format="json"), stream=stream)
    try:
        factory = ScriptedFactory()
        controller = make_controller(context, factory)
        await started(controller)
        client = controller.client
        await controller.shutdown()

        client._emit(Disconnected(reason="connection ended"))
        client._emit(ClientError(error=RuntimeError("late error")))
    finally:
        structlog.reset_defaults()

    assert controller.state is LifecycleState.IDLE
    assert context.reconnect_count == 0
    stale = [json.loads(line) for line in stream.getvalue().splitlines() if "stale_event_ignored" in line]
    assert [record["event_type"] for record in stale] == ["Disconnected", "ClientError"]


class SlowFirstCloseClient(FakeClient):
    """Its first close never finishes; later ones do."""

    def __init__(self) -> None:
        super().__init__()
        self.closed = False

    async def close(self) -> None:
        self.closes += 1
        if self.closes == 1:
            await asyncio.sleep(3600)
        self.connected = False
        self.closed = True


@pytest.mark.asyncio
async def test_shutdown_closes_client_still_closing_from_reconnect(context: SessionContext) -> None:
    factory = ScriptedFactory(SlowFirstCloseClient)
    controller = make_controller(context, factory, shutdown_timeout_s=0.5)
    await started(controller)
    old = controller.client
    old.emit(Disconnected(reason="kicked", kicked=True))
    await wait_until(lambda: old.closes == 1)

    await asyncio.wait_for(controller.shutdown(), timeout=2.0)

    assert old.closed is True
    assert controller.state is LifecycleState.IDLE
    assert len(factory.created) == 1


@pytest.mark.asyncio
async def test_shutdown_closes_client_left_over_from_exhaustion(context: SessionContext) -> None:
    context.reconnect.max_attempts = 0
    factory = ScriptedFactory(SlowFirstCloseClient)
    controller = make_controller(context, factory, shutdown_timeout_s=0.5)
    await started(controller)
    old = controller.client
    old.emit(Disconnected(reason="server closed"))
    assert controller.state is LifecycleState.EXHAUSTED
    await wait_until(lambda: old.closes == 1)

    await controller.shutdown()

    assert old.closed is True
