# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""structlog setup for the bot process.

Logs go to stderr so `afkbot status` / `afkbot backoff` output on stdout stays
clean. `log_format` picks a console renderer for terminals or one JSON object
per line for hosting panels that ship logs elsewhere.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from afkbot.settings import SessionConfig, Settings

__all__ = ["bind_session", "configure_logging", "get_logger"]


def _renderer(log_format: str, stream: Any) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def configure_logging(settings: Settings | None = None, *, stream: Any = None) -> None:
    """Install the process-wide structlog pipeline.

    Call once at startup, before the controller is built. `stream` defaults
    to stderr and exists so tests can capture rendered lines.
    """
    if settings is None:
        from afkbot.settings import Settings

        settings = Settings()

    if stream is None:
        stream = sys.stderr
    level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=settings.log_format == "json"),
    ]
    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
    processors.append(_renderer(settings.log_format, stream))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


def bind_session(config: SessionConfig) -> None:
    """Tag every following log line with the target server and bot name."""
    structlog.contextvars.bind_contextvars(
        target=f"{config.host}:{config.port}",
        bot=config.username,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)
