from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Literal


class Settings(BaseSettings):
    # Telegram
    telegram_bot_token: str
    telegram_webhook_secret: str = ""  # Optional: for webhook verification
    bot_mode: Literal["polling", "webhook"] = "polling"

    # OpenAI
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.7

    # Google Calendar
    google_credentials_file: str  # Service account JSON key
    google_calendar_id: str
    calendar_timeout_seconds: float = 10.0
    timezone: str = "UTC"

    # Interaction log
    data_dir: str = "./data"
    context_messages: int = 10
    interaction_retention_days: int = 0  # 0 disables cleanup on startup

    # Server
    port: int = 8080
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def mask_token(token: str) -> str:
    """Mask a secret for logging, keeping the first and last four characters."""
    if len(token) <= 8:
        return "***"
    return token[:4] + "..." + token[-4:]


def log_settings(settings: Settings, logger) -> None:
    logger.info("Configuration loaded:")
    logger.info(f"  Telegram token: {mask_token(settings.telegram_bot_token)}")
    logger.info(f"  OpenAI key: {mask_token(settings.openai_api_key)}")
    logger.info(f"  Google credentials: {settings.google_credentials_file}")
    logger.info(f"  Calendar ID: {settings.google_calendar_id}")
    logger.info(f"  Mode: {settings.bot_mode}, port: {settings.port}")
