# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Session clients the reconnection controller can drive."""

from __future__ import annotations

from afkbot.client.base import Control, SessionClient
from afkbot.client.chaos import ChaosClient
from afkbot.client.tcp import TcpProbeClient

__all__ = ["ChaosClient", "Control", "SessionClient", "TcpProbeClient"]
