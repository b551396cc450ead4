# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Shared constants for afkbot."""

from __future__ import annotations

# Default target server
DEFAULT_HOST = "3rsi_01.aternos.me"
DEFAULT_PORT = 61765
DEFAULT_USERNAME = "AFKbot"
DEFAULT_VERSION = "1.21.8"
DEFAULT_AUTH = "offline"

# Reconnect backoff
DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_BASE_DELAY_S = 5.0
DEFAULT_CAP_DELAY_S = 60.0
DEFAULT_CONNECT_TIMEOUT_S = 30.0

# Anti-AFK activity
DEFAULT_ACTIVITY_INTERVAL_S = 30.0
GREETING_DELAY_S = 2.0
GREETING_TEXT = "AFK Bot is now active!"
FAREWELL_TEXT = "AFK Bot shutting down!"
STATUS_COMMAND = "afk bot status"
HUNGRY_FOOD_LEVEL = 3

# Status endpoint
STATUS_HOST = "0.0.0.0"
STATUS_PORT = 3000
STATUS_TEXT = "AFK Bot Running"

# Process
DEFAULT_HEARTBEAT_INTERVAL_S = 300.0
DEFAULT_SHUTDOWN_TIMEOUT_S = 5.0
