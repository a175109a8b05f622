"""Notification port — abstract interface for sending messages to users.

The rollover check depends on this protocol, never on a specific messaging
provider.
"""

from __future__ import annotations

from typing import Protocol


class NotificationPort(Protocol):
    """Outbound messages to a Telegram user id (or any chat-like target)."""

    async def send_message(self, user_id: int, text: str) -> None: ...
