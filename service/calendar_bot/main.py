import asyncio
import sys

from fastapi import FastAPI, Request, Header, HTTPException
from pydantic import ValidationError

from calendar_bot import __version__
from calendar_bot.config import get_settings
from calendar_bot.logging_config import bot_logger as logger, setup_logging
from calendar_bot.telegram_bot.bot import handle_telegram_update, initialize_bot, shutdown_bot, run_polling

app = FastAPI(
    title="Calendar Assistant Bot",
    description="Telegram assistant for Google Calendar",
    version=__version__
)


# Lifecycle events
@app.on_event("startup")
async def startup_event():
    """Initialize bot on startup."""
    logger.info("[STARTUP] Initializing Telegram bot...")
    await initialize_bot()
    logger.info("[STARTUP] Bot ready")


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown bot on application shutdown."""
    logger.info("[SHUTDOWN] Shutting down Telegram bot...")
    await shutdown_bot()
    logger.info("[SHUTDOWN] Bot stopped")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": __version__
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Calendar Assistant Bot",
        "docs": "/docs"
    }


# Telegram webhook endpoint
@app.post("/telegram/webhook")
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: str = Header(None)
):
    """
    Webhook endpoint for Telegram updates.

    Telegram sends updates here when messages arrive.
    """
    settings = get_settings()

    # Verify secret token if configured
    if settings.telegram_webhook_secret:
        if x_telegram_bot_api_secret_token != settings.telegram_webhook_secret:
            raise HTTPException(status_code=403, detail="Invalid secret token")

    update_data = await request.json()

    # Handle update in background (fire-and-forget for fast 200 OK)
    asyncio.create_task(handle_telegram_update(update_data))

    return {"ok": True}


def run() -> None:
    """Console entry point: validate config, then poll or serve the webhook."""
    try:
        settings = get_settings()
    except ValidationError as e:
        logger.critical(f"Configuration error: {e}")
        sys.exit(1)

    setup_logging(settings.log_level)

    if settings.bot_mode == "webhook":
        import uvicorn
        uvicorn.run(app, host="0.0.0.0", port=settings.port)
    else:
        run_polling()


if __name__ == "__main__":
    run()
