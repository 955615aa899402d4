"""
Error taxonomy for the calendar assistant.

Where each error stops:
- ClassificationError: terminal for the current message, user gets an apology
- CalendarError: caught per action, rendered inline in the reply
- PersistenceError: logged only, never shown to the user
- TransportError: the only error that escapes CalendarAgent.handle_message
"""


class CalendarBotError(Exception):
    """Base class for all calendar assistant errors."""


class ClassificationError(CalendarBotError):
    """LLM call failed or returned nothing usable."""


class CalendarError(CalendarBotError):
    """Google Calendar request failed."""


class InvalidDateFormat(CalendarError):
    """Date expression or time could not be parsed."""


class PersistenceError(CalendarBotError):
    """Interaction log could not be written to disk."""


class TransportError(CalendarBotError):
    """Reply could not be delivered to Telegram."""
