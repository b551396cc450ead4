# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Process wiring: status server, controller, heartbeat and signal-driven shutdown."""

from __future__ import annotations

import asyncio
import contextlib
import importlib
import itertools
import signal
from typing import TYPE_CHECKING

from afkbot.activity import ActivityScheduler
from afkbot.client.chaos import ChaosClient
from afkbot.client.tcp import TcpProbeClient
from afkbot.controller import ReconnectionController
from afkbot.logging import bind_session, get_logger
from afkbot.state import ReconnectState, SessionContext
from afkbot.status import StatusServer, create_status_app

if TYPE_CHECKING:
    from afkbot.client.base import SessionClient
    from afkbot.controller import ClientFactory
    from afkbot.settings import Settings

logger = get_logger(__name__)


def load_client_factory(path: str) -> ClientFactory:
    """Import a `module:callable` that builds a SessionClient."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Client factory must look like 'package.module:callable', got {path!r}")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ValueError(f"{path!r} is not callable")
    return factory


def resolve_client_factory(settings: Settings) -> ClientFactory:
    if settings.client_factory:
        base = load_client_factory(settings.client_factory)
    else:

        def base() -> SessionClient:
            return TcpProbeClient(connect_timeout_s=settings.connect_timeout_s)

    if not settings.chaos_fail_every and not settings.chaos_kick_after_s:
        return base

    # Clients are built fresh per attempt; the count spans reconnects.
    connects = itertools.count(1)

    def chaotic() -> SessionClient:
        n = next(connects)
        return ChaosClient(
            base(),
            fail_every_n_connects=1 if _fails(n, settings.chaos_fail_every) else 0,
            kick_after_s=settings.chaos_kick_after_s,
        )

    return chaotic


def _fails(connect_number: int, every: int) -> bool:
    return every > 0 and connect_number % every == 0


def build_controller(settings: Settings, client_factory: ClientFactory | None = None) -> ReconnectionController:
    context = SessionContext(
        config=settings.session_config(),
        reconnect=ReconnectState(
            max_attempts=settings.max_attempts,
            base_delay_s=settings.base_delay_s,
            cap_delay_s=settings.cap_delay_s,
        ),
    )
    return ReconnectionController(
        context,
        client_factory or resolve_client_factory(settings),
        scheduler=ActivityScheduler(interval_s=settings.activity_interval_s),
        shutdown_timeout_s=settings.shutdown_timeout_s,
    )


def log_startup(settings: Settings) -> None:
    logger.info("using_configuration", target=f"{settings.host}:{settings.port}")
    logger.info("using_identity", username=settings.username, version=settings.version, auth=settings.auth)


async def heartbeat(context: SessionContext, interval_s: float) -> None:
    while True:
        await asyncio.sleep(interval_s)
        logger.info(
            "heartbeat",
            connected=context.connected,
            state=str(context.state),
            reconnects=context.reconnect_count,
        )


async def run_bot(
    settings: Settings,
    *,
    client_factory: ClientFactory | None = None,
    stop_event: asyncio.Event | None = None,
) -> ReconnectionController:
    """Run until SIGINT/SIGTERM (or `stop_event`), then shut down gracefully."""
    bind_session(settings.session_config())
    log_startup(settings)
    controller = build_controller(settings, client_factory)
    server = StatusServer(
        create_status_app(controller.context),
        host=settings.status_host,
        port=settings.status_port,
    )
    stop = stop_event or asyncio.Event()

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)
            installed.append(sig)

    beat: asyncio.Task[None] | None = None
    try:
        await server.start()
        controller.start()
        beat = asyncio.create_task(heartbeat(controller.context, settings.heartbeat_interval_s))
        await stop.wait()
    finally:
        logger.info("shutting_down")
        if beat is not None:
            beat.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await beat
        await controller.shutdown()
        await server.stop(timeout_s=settings.shutdown_timeout_s)
        for sig in installed:
            loop.remove_signal_handler(sig)
    return controller
