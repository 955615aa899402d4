"""
Logging configuration for the calendar assistant.

All components log under the "calendar_bot" logger to stdout.
"""

import logging
import sys

LOGGER_NAME = "calendar_bot"

# httpx logs full request URLs at INFO, and Bot API URLs carry the token
NOISY_LOGGERS = ("httpx", "httpcore", "googleapiclient.discovery", "telegram.ext")

LOG_FORMAT = '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s'


def setup_logging(level: str = "DEBUG") -> logging.Logger:
    """Attach a single stdout handler at the given level (name or number)."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(handler)
    logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(component: str) -> logging.Logger:
    """Child logger for a component, e.g. calendar_bot.agent."""
    return logging.getLogger(f"{LOGGER_NAME}.{component}")


bot_logger = setup_logging()
