# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Status API routes.

Read-only view of the session context. The context is attached to
`app.state.context` by `afkbot.status.create_status_app`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from afkbot.constants import STATUS_TEXT

if TYPE_CHECKING:
    from afkbot.state import SessionContext, StatusSnapshot

router = APIRouter()


class StatusResponse(BaseModel):
    status: str = STATUS_TEXT
    state: str
    connected: bool
    uptime: str
    uptime_seconds: float = Field(alias="uptimeSeconds")
    reconnects: int
    last_error: str | None = Field(default=None, alias="lastError")
    last_error_kind: str | None = Field(default=None, alias="lastErrorKind")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_snapshot(cls, snapshot: StatusSnapshot) -> StatusResponse:
        return cls(
            state=str(snapshot.state),
            connected=snapshot.connected,
            uptime=f"{snapshot.uptime_minutes} minutes",
            uptime_seconds=snapshot.uptime_seconds,
            reconnects=snapshot.reconnect_count,
            last_error=snapshot.last_error,
            last_error_kind=snapshot.last_error_kind,
        )


def _context(request: Request) -> SessionContext:
    return request.app.state.context


@router.get("/")
async def get_status(request: Request):
    """Current session status."""
    snapshot = _context(request).snapshot()
    return StatusResponse.from_snapshot(snapshot).model_dump(by_alias=True)


@router.get("/health")
async def health():
    """Liveness probe for the status process itself."""
    return {"ok": True}
