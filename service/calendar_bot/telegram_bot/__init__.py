"""
Telegram Bot module for the calendar assistant.

ARCHITECTURE: Thin routing layer - NO business logic here!
- Receives updates from Telegram (long polling or webhook)
- Hands text messages and keyboard presses to the calendar agent
- Sends replies through the Bot API client

All calendar logic lives in calendar_bot.services.agent.
"""

from .bot import handle_telegram_update, initialize_bot, shutdown_bot, run_polling
from .telegram_api import send_message, split_message

__all__ = [
    "handle_telegram_update",
    "initialize_bot",
    "shutdown_bot",
    "run_polling",
    "send_message",
    "split_message",
]
