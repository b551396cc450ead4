# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Small in-session reactions: greeting, chat status command, respawn on death."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from afkbot import constants
from afkbot.logging import get_logger

if TYPE_CHECKING:
    from afkbot.client.base import SessionClient
    from afkbot.client.events import ChatMessage, HealthChanged
    from afkbot.state import SessionContext

logger = get_logger(__name__)


def _fmt(value: float | None) -> str:
    return "?" if value is None else f"{value:g}"


class SessionReactions:
    def __init__(self, context: SessionContext, *, greeting_delay_s: float = constants.GREETING_DELAY_S) -> None:
        self._context = context
        self._greeting_delay_s = greeting_delay_s

    async def greet(self, client: SessionClient) -> None:
        await asyncio.sleep(self._greeting_delay_s)
        try:
            await client.chat(constants.GREETING_TEXT)
        except Exception as e:
            logger.info("greeting_not_sent", error=str(e))

    def status_line(self, client: SessionClient) -> str:
        minutes = self._context.snapshot().uptime_minutes
        return f"Active for {minutes}m, Health: {_fmt(client.health)}, Food: {_fmt(client.food)}"

    async def on_chat(self, client: SessionClient, event: ChatMessage) -> None:
        if client.username is not None and event.sender == client.username:
            return
        logger.info("chat_message", sender=event.sender, text=event.text)

        if constants.STATUS_COMMAND in event.text.lower():
            try:
                await client.chat(self.status_line(client))
            except Exception as e:
                logger.warning("status_reply_failed", error=str(e))

    async def on_health(self, client: SessionClient, event: HealthChanged) -> None:
        if event.health <= 0:
            logger.warning("player_died_respawning")
            try:
                await client.respawn()
            except Exception as e:
                logger.warning("respawn_failed", error=str(e))
        elif event.food <= constants.HUNGRY_FOOD_LEVEL:
            logger.warning("player_hungry", food=event.food)
