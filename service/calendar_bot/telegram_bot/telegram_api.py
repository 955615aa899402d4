"""
Telegram Bot API client for sending messages.

Simple wrapper for sending messages back to Telegram. Replies longer than
Telegram's 4096 character limit are split on line boundaries and sent as
several messages.
"""

import asyncio
from typing import Any, Optional

import httpx

from calendar_bot.config import get_settings
from calendar_bot.errors import TransportError
from calendar_bot.logging_config import get_logger

logger = get_logger("telegram_api")

TELEGRAM_MAX_LENGTH = 4096
CHUNK_LENGTH = 4000  # Leave room for the continuation marker
CONTINUED_MARKER = "\n\n[Message continued...]"
PART_DELAY_SECONDS = 0.1


def split_message(text: str, max_length: int = CHUNK_LENGTH) -> list[str]:
    """
    Split text into chunks of at most max_length characters.

    Breaks after the last newline in a chunk when that newline sits in the
    second half of the chunk, otherwise cuts at max_length.
    """
    parts = []
    start = 0

    while start < len(text):
        end = min(start + max_length, len(text))

        if end < len(text):
            last_newline = text.rfind("\n", start, end)
            if last_newline - start > max_length // 2:
                end = last_newline + 1

        parts.append(text[start:end])
        start = end

    return parts


async def _call(method: str, payload: dict[str, Any]) -> dict[str, Any]:
    settings = get_settings()
    url = f"https://api.telegram.org/bot{settings.telegram_bot_token}/{method}"

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.post(url, json=payload)
        response.raise_for_status()
        return response.json()


async def send_message(chat_id: int, text: str, parse_mode: Optional[str] = None) -> None:
    """
    Send message to Telegram user, splitting overlong text.

    Raises:
        TransportError: Telegram rejected or did not receive a part
    """
    logger.info(f"Sending message to chat_id={chat_id}, text_len={len(text)}")

    if len(text) <= TELEGRAM_MAX_LENGTH:
        parts = [text]
    else:
        parts = split_message(text)
        logger.info(f"Message too long ({len(text)} chars), splitting into {len(parts)} parts")

    for i, part in enumerate(parts):
        if i < len(parts) - 1:
            part += CONTINUED_MARKER

        payload: dict[str, Any] = {"chat_id": chat_id, "text": part}
        if parse_mode:
            payload["parse_mode"] = parse_mode

        try:
            await _call("sendMessage", payload)
        except httpx.HTTPError as e:
            if len(parts) == 1:
                raise TransportError(f"failed to send message: {e}") from e
            raise TransportError(f"failed to send message part {i + 1}/{len(parts)}: {e}") from e

        if len(parts) > 1:
            # Small delay between parts to stay under rate limits
            await asyncio.sleep(PART_DELAY_SECONDS)


async def send_message_with_buttons(
    chat_id: int,
    text: str,
    buttons: list[list[dict]],
    parse_mode: Optional[str] = None
) -> dict:
    """
    Send message with inline keyboard buttons.

    Args:
        chat_id: Telegram chat ID
        text: Message text
        buttons: 2D array of button dicts, each with 'text' and 'callback_data'
                 Example: [[{"text": "Today", "callback_data": "calendar_today"}]]
        parse_mode: Optional parse mode (Markdown, HTML)

    Returns:
        Response dict with message_id
    """
    payload = {
        "chat_id": chat_id,
        "text": text,
        "reply_markup": {
            "inline_keyboard": buttons
        }
    }

    if parse_mode:
        payload["parse_mode"] = parse_mode

    try:
        return await _call("sendMessage", payload)
    except httpx.HTTPError as e:
        raise TransportError(f"failed to send message with keyboard: {e}") from e


async def answer_callback_query(callback_query_id: str, text: str = "") -> None:
    payload = {"callback_query_id": callback_query_id}
    if text:
        payload["text"] = text

    try:
        await _call("answerCallbackQuery", payload)
    except httpx.HTTPError as e:
        raise TransportError(f"failed to answer callback query: {e}") from e


def calendar_keyboard() -> list[list[dict]]:
    """Inline keyboard for quick day navigation."""
    return [[
        {"text": "Today", "callback_data": "calendar_today"},
        {"text": "Tomorrow", "callback_data": "calendar_tomorrow"},
    ]]
