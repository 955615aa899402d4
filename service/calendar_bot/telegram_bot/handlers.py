"""
Telegram message and command handlers.

ARCHITECTURE: Direct function calls - NO HTTP overhead!
- Handlers call the calendar agent directly
- Replies go out through telegram_api.send_message (splits long text)
- python-telegram-bot runs each update as its own task, so messages from
  one user are not processed in order
"""

from telegram import Update
from telegram.ext import ContextTypes

from calendar_bot.errors import TransportError
from calendar_bot.services.agent import get_calendar_agent
from calendar_bot.services.conversation_store import UserStats
from calendar_bot.logging_config import get_logger
from .telegram_api import answer_callback_query, calendar_keyboard, send_message_with_buttons

logger = get_logger("telegram_bot")


def format_stats(stats: UserStats) -> str:
    if not stats.total_interactions:
        return "No interactions yet. Ask me about your calendar!"

    lines = [
        "📊 Your stats",
        f"• Interactions: {stats.total_interactions}",
        f"• First: {stats.first_interaction:%Y-%m-%d %H:%M} UTC",
        f"• Last: {stats.last_interaction:%Y-%m-%d %H:%M} UTC",
    ]
    if stats.actions_used:
        lines.append("• Actions:")
        for action, count in sorted(stats.actions_used.items(), key=lambda item: -item[1]):
            lines.append(f"  {action}: {count}")
    return "\n".join(lines)


async def handle_start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    user = update.effective_user

    welcome_text = f"""👋 Hi, {user.first_name}!

I'm your calendar assistant. I read and manage your Google Calendar.

<b>Try:</b>
• "What do I have today?"
• "What did I do last week?"
• "Book lunch with Anna tomorrow at 12:30"

Use /calendar for quick buttons and /help for more."""

    await update.message.reply_text(welcome_text, parse_mode="HTML")


async def handle_help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    help_text = """📖 <b>How to use the calendar assistant</b>

<b>Viewing events:</b>
• "Events for today" / "tomorrow" / "yesterday"
• "What's on 2025-08-05?"
• "What did I do last week?"

<b>Creating events:</b>
• "Dentist on Friday at 15:00"
Events last one hour unless you say otherwise.

<b>Changing or deleting:</b>
Ask for the day's events first, then refer to the event.

<b>Commands:</b>
/start — bot info
/help — this help
/calendar — today/tomorrow buttons
/stats — your usage stats"""

    await update.message.reply_text(help_text, parse_mode="HTML")


async def handle_calendar_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /calendar command - show day navigation keyboard."""
    chat_id = update.effective_chat.id
    try:
        await send_message_with_buttons(chat_id, "Which day?", calendar_keyboard())
    except TransportError as e:
        logger.error(f"Failed to send calendar keyboard to chat_id={chat_id}: {e}")


async def handle_stats_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stats command."""
    stats = get_calendar_agent().get_user_stats(update.effective_user.id)
    await update.message.reply_text(format_stats(stats))


async def handle_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle incoming text message.

    The agent does everything: context, classification, calendar, reply.
    Only a failed reply comes back here, and it is logged.
    """
    user = update.effective_user
    chat_id = update.effective_chat.id
    message_text = update.message.text

    logger.info(f"Received message from user_id={user.id}, chat_id={chat_id}, text_len={len(message_text)}")

    try:
        await get_calendar_agent().handle_message(user.id, chat_id, message_text)
    except TransportError as e:
        logger.error(f"Error processing message for user_id={user.id}: {e}")


async def handle_callback_query(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle inline keyboard presses (calendar_today, calendar_tomorrow)."""
    query = update.callback_query
    user = update.effective_user
    chat_id = update.effective_chat.id

    try:
        await answer_callback_query(query.id)
        await get_calendar_agent().handle_calendar_callback(user.id, chat_id, query.data or "")
    except TransportError as e:
        logger.error(f"Failed to answer calendar callback for user_id={user.id}: {e}")


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle errors in handlers."""
    logger.error(f"Bot error: {context.error}", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text(
            "❌ Error processing message.\n"
            "Try again or use /help"
        )
