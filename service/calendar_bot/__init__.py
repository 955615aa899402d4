"""Telegram calendar assistant: natural-language requests to Google Calendar."""

__version__ = "0.1.0"
