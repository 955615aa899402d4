"""
Shared fixtures and fakes.

Run with: pytest -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from calendar_bot.agents.schemas import CalendarEvent
from calendar_bot.config import get_settings
from calendar_bot.errors import CalendarError


REQUIRED_ENV = {
    "TELEGRAM_BOT_TOKEN": "123456:test-telegram-token",
    "OPENAI_API_KEY": "sk-test-openai-key",
    "GOOGLE_CREDENTIALS_FILE": "/tmp/credentials.json",
    "GOOGLE_CALENDAR_ID": "primary",
}


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    """Required settings present, cache cleared around every test."""
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_event(title: str, hour: int = 9, minute: int = 0, location: str = "", event_id: str = "") -> CalendarEvent:
    start = datetime(2025, 8, 5, hour, minute, tzinfo=timezone.utc)
    return CalendarEvent(
        id=event_id or f"evt-{title}",
        title=title,
        start=start,
        end=start + timedelta(hours=1),
        location=location,
    )


class FakeCalendar:
    """Records gateway calls. events maps date expression -> list or exception."""

    def __init__(self, events=None):
        self.events = events or {}
        self.calls = []

    async def get_events(self, date_expr):
        self.calls.append(("get_events", date_expr))
        result = self.events.get(date_expr, [])
        if isinstance(result, Exception):
            raise result
        return result

    async def create_event(self, title, date_expr, time_str, description="", location=""):
        self.calls.append(("create_event", title, date_expr, time_str, description, location))
        if isinstance(self.events.get("create"), Exception):
            raise self.events["create"]
        return {"id": "new-event"}

    async def update_event(self, event_id, title="", date_expr="", time_str="", description="", location=""):
        self.calls.append(("update_event", event_id, title, date_expr, time_str, description, location))
        if isinstance(self.events.get("update"), Exception):
            raise self.events["update"]
        return {"id": event_id}

    async def delete_event(self, event_id):
        self.calls.append(("delete_event", event_id))
        if isinstance(self.events.get("delete"), Exception):
            raise self.events["delete"]


class FakeClassifier:
    def __init__(self, intent=None, error=None):
        self.intent = intent
        self.error = error
        self.calls = []

    async def classify(self, context, message):
        self.calls.append((context, message))
        if self.error:
            raise self.error
        return self.intent


class FakeSender:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    async def __call__(self, chat_id, text):
        if self.error:
            raise self.error
        self.sent.append((chat_id, text))


@pytest.fixture
def calendar_error():
    return CalendarError("failed to get events: backend unavailable")
