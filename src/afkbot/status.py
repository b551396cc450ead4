# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Status endpoint served by uvicorn inside the bot's event loop."""

from __future__ import annotations

import asyncio
import contextlib
import socket
from collections.abc import Iterator
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI

from afkbot.api import status_routes
from afkbot.constants import STATUS_HOST, STATUS_PORT
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.state import SessionContext

logger = get_logger(__name__)


def create_status_app(context: SessionContext) -> FastAPI:
    app = FastAPI(title="afkbot status")
    app.state.context = context
    app.include_router(status_routes.router)
    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signals to the bot runner."""

    def install_signal_handlers(self) -> None:
        return

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def _bind(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


class StatusServer:
    def __init__(self, app: FastAPI, *, host: str = STATUS_HOST, port: int = STATUS_PORT) -> None:
        self._host = host
        self._port = port
        self._server = _EmbeddedServer(uvicorn.Config(app, host=host, port=port, log_level="warning"))
        self._task: asyncio.Task[None] | None = None

    @property
    def started(self) -> bool:
        return self._server.started

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        # Bound here so a taken port raises OSError instead of uvicorn exiting the process.
        sock = _bind(self._host, self._port)
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]))
        while not self._server.started:
            if self._task.done():
                # Surfaces startup errors raised by uvicorn.
                await self._task
                raise RuntimeError(f"Status server on port {self._port} exited during startup")
            await asyncio.sleep(0.05)
        logger.info("status_server_running", host=self._host, port=self._port)

    async def stop(self, timeout_s: float = 5.0) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        if task.done():
            if not task.cancelled() and task.exception() is not None:
                logger.debug("status_server_failed", error=str(task.exception()))
            return
        self._server.should_exit = True
        try:
            await asyncio.wait_for(task, timeout=timeout_s)
        except (TimeoutError, asyncio.CancelledError):
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
