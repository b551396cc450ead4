# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Exception hierarchy and failure classification for session errors."""

from __future__ import annotations

import socket
from enum import StrEnum


class AfkBotError(Exception):
    """Base exception for afkbot."""

    pass


class ConnectError(AfkBotError):
    """The session client could not establish a session."""

    pass


class SessionClosedError(AfkBotError):
    """An intent was issued on a session that is not open."""

    pass


class FailureKind(StrEnum):
    """Why a session failed. Informational only: every kind is retried the same way."""

    UNREACHABLE = "unreachable"
    AUTH = "auth"
    KICKED = "kicked"
    OTHER = "other"


_UNREACHABLE_MARKERS = (
    "enotfound",
    "econnrefused",
    "connection refused",
    "name or service not known",
    "nodename nor servname",
    "unreachable",
    "timed out",
)

_AUTH_MARKERS = (
    "invalid session",
    "authentication",
    "not authenticated",
    "failed to verify username",
)


def classify_failure(error: BaseException | str) -> FailureKind:
    """Classify a session failure for logging and status reporting."""
    msg = str(error).lower()
    if any(marker in msg for marker in _AUTH_MARKERS):
        return FailureKind.AUTH
    if isinstance(error, (socket.gaierror, ConnectionRefusedError, TimeoutError)):
        return FailureKind.UNREACHABLE
    if any(marker in msg for marker in _UNREACHABLE_MARKERS):
        return FailureKind.UNREACHABLE
    cause = error.__cause__ if isinstance(error, BaseException) else None
    if cause is not None:
        return classify_failure(cause)
    return FailureKind.OTHER
