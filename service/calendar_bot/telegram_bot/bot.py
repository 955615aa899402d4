"""
Main Telegram bot handler.

Uses python-telegram-bot in one of two modes:
- polling: run_polling() owns the event loop (default)
- webhook: FastAPI receives updates and calls handle_telegram_update()
"""

from telegram import Update
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, MessageHandler, filters

from calendar_bot.config import get_settings, log_settings
from calendar_bot.errors import PersistenceError
from calendar_bot.logging_config import get_logger
from calendar_bot.services.agent import get_calendar_agent
from .handlers import (
    handle_start_command,
    handle_help_command,
    handle_calendar_command,
    handle_stats_command,
    handle_text_message,
    handle_callback_query,
    handle_error,
)

logger = get_logger("telegram_bot")

# Global application instance (initialized once)
_application: Application | None = None


async def _on_startup(application: Application) -> None:
    """Wire the agent eagerly so bad credentials fail at startup, not on the first message."""
    settings = get_settings()
    log_settings(settings, logger)

    agent = get_calendar_agent()
    await agent.calendar.check_connection()

    if settings.interaction_retention_days > 0:
        try:
            removed = agent.cleanup_old_interactions(settings.interaction_retention_days)
            logger.info(f"Removed {removed} interactions older than {settings.interaction_retention_days} days")
        except PersistenceError as e:
            logger.error(f"Interaction cleanup failed: {e}")


def get_bot_application() -> Application:
    """Get or create telegram bot application."""
    global _application

    if _application is None:
        settings = get_settings()

        # One task per update; per-user ordering is not preserved
        _application = (
            Application.builder()
            .token(settings.telegram_bot_token)
            .concurrent_updates(True)
            .post_init(_on_startup)
            .build()
        )

        # Register handlers
        _application.add_handler(CommandHandler("start", handle_start_command))
        _application.add_handler(CommandHandler("help", handle_help_command))
        _application.add_handler(CommandHandler("calendar", handle_calendar_command))
        _application.add_handler(CommandHandler("stats", handle_stats_command))

        # Text messages
        _application.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text_message)
        )

        # Callback queries (inline keyboard buttons)
        _application.add_handler(
            CallbackQueryHandler(handle_callback_query, pattern=r"^calendar_")
        )

        # Error handler
        _application.add_error_handler(handle_error)

        logger.info("Telegram bot application initialized")

    return _application


async def handle_telegram_update(update_data: dict) -> None:
    """
    Process incoming webhook update from Telegram.

    This is called by FastAPI webhook endpoint.
    Runs handlers in background (fire-and-forget).
    """
    try:
        app = get_bot_application()

        # Convert dict to Update object
        update = Update.de_json(update_data, app.bot)

        if update:
            await app.process_update(update)
        else:
            logger.warning("Received invalid update data")

    except Exception as e:
        logger.error(f"Failed to process update: {e}", exc_info=True)


async def initialize_bot() -> None:
    """
    Initialize bot application for webhook mode (call on startup).
    """
    app = get_bot_application()
    await app.initialize()
    # post_init only fires under run_polling/run_webhook
    await _on_startup(app)
    logger.info("Bot initialized successfully")


async def shutdown_bot() -> None:
    """
    Shutdown bot application (call on shutdown).
    """
    global _application
    if _application:
        await _application.shutdown()
        logger.info("Bot shut down")


def run_polling() -> None:
    """Long-poll Telegram until interrupted."""
    app = get_bot_application()
    logger.info("Bot started. Listening for messages...")
    app.run_polling(allowed_updates=Update.ALL_TYPES)
