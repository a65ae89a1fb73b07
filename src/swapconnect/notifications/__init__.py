"""User notifications."""

from swapconnect.notifications.telegram import TelegramNotifier, close_bot, get_bot

__all__ = ["TelegramNotifier", "close_bot", "get_bot"]
