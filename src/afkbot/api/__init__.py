# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP API for polling bot status."""

from __future__ import annotations

from afkbot.api.status_routes import StatusResponse, router

__all__ = ["StatusResponse", "router"]
