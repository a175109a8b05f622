"""Telegram notification adapter — implements NotificationPort.

Wraps a telegram.Bot instance to satisfy the NotificationPort protocol.
"""

from __future__ import annotations

import logging

from telegram import Bot

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot, parse_mode: str | None = "Markdown") -> None:
        self._bot = bot
        self._parse_mode = parse_mode

    async def send_message(self, user_id: int, text: str) -> None:
        await self._bot.send_message(chat_id=user_id, text=text, parse_mode=self._parse_mode)
        logger.debug("Notification sent to %d (%d chars)", user_id, len(text))
