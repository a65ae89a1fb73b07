"""Telegram notification service.

Reports swap outcomes to users. Delivery is best-effort: failures are
logged and never raised to the caller. Uses a singleton pattern to share
the bot instance.
"""

import asyncio
import html
import logging
from typing import Optional, Union

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError

from swapconnect.config import get_settings

logger = logging.getLogger(__name__)

UserId = Union[int, str]

# Singleton bot instance
_bot_instance: Optional[Bot] = None
_bot_lock = asyncio.Lock()


async def get_bot() -> Optional[Bot]:
    """Get or create the bot instance for notifications."""
    global _bot_instance

    if _bot_instance is not None:
        return _bot_instance

    async with _bot_lock:
        # Double-check after acquiring lock
        if _bot_instance is not None:
            return _bot_instance

        settings = get_settings()
        if not settings.telegram_bot_token:
            logger.warning("Telegram bot token not configured - notifications disabled")
            return None

        _bot_instance = Bot(token=settings.telegram_bot_token)
        return _bot_instance


async def close_bot() -> None:
    """Close the bot session (call on shutdown)."""
    global _bot_instance
    if _bot_instance is not None:
        await _bot_instance.session.close()
        _bot_instance = None


def format_swap_completed(
    aggregator_id: str,
    transaction_hash: str,
    explorer_url: Optional[str] = None,
) -> str:
    """Message for a submitted swap."""
    lines = [
        "<b>Swap submitted</b>",
        f"Aggregator: {html.escape(aggregator_id)}",
        f"Tx: <code>{html.escape(transaction_hash)}</code>",
    ]
    if explorer_url:
        lines.append(f'<a href="{html.escape(explorer_url, quote=True)}">Open in explorer</a>')
    return "\n".join(lines)


def format_swap_failed(reason: str) -> str:
    return f"<b>Swap failed</b>\n{html.escape(reason)}"


class TelegramNotifier:
    """Service for sending Telegram notifications to users."""

    def __init__(self, bot: Optional[Bot] = None):
        """Initialize with optional bot instance.

        If no bot provided, will use the singleton instance.
        """
        self._bot = bot

    async def _get_bot(self) -> Optional[Bot]:
        """Get the bot instance."""
        if self._bot:
            return self._bot
        return await get_bot()

    async def send_message(
        self,
        user_id: UserId,
        message: str,
        parse_mode: Optional[str] = "HTML",
    ) -> bool:
        """Send a message to a user.

        Args:
            user_id: User's Telegram chat ID
            message: Message text
            parse_mode: Optional parse mode (HTML, Markdown, etc.)

        Returns:
            True if message was sent successfully
        """
        bot = await self._get_bot()
        if not bot:
            logger.warning("Cannot send notification - bot not initialized")
            return False

        try:
            await bot.send_message(
                chat_id=user_id,
                text=message,
                parse_mode=parse_mode,
                disable_web_page_preview=True,
            )
            return True
        except TelegramForbiddenError:
            logger.warning(f"User {user_id} has blocked the bot")
            return False
        except TelegramBadRequest as e:
            logger.error(f"Bad request sending to {user_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to send notification to {user_id}: {e}")
            return False

    async def notify(self, user_id: UserId, message: str) -> bool:
        """Notification sink entry point used by the session orchestrators."""
        return await self.send_message(user_id, message)
