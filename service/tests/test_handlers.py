"""
Tests for Telegram handlers, with the agent replaced by a stub.
"""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

from calendar_bot.errors import TransportError
from calendar_bot.services.conversation_store import UserStats
from calendar_bot.telegram_bot import handlers


class StubAgent:
    def __init__(self, error=None):
        self.error = error
        self.messages = []
        self.callbacks = []

    async def handle_message(self, user_id, chat_id, text):
        self.messages.append((user_id, chat_id, text))
        if self.error:
            raise self.error

    async def handle_calendar_callback(self, user_id, chat_id, data):
        self.callbacks.append((user_id, chat_id, data))


def text_update(text):
    return SimpleNamespace(
        effective_user=SimpleNamespace(id=7, first_name="Ann"),
        effective_chat=SimpleNamespace(id=70),
        message=SimpleNamespace(text=text),
    )


class TestTextMessage:

    def test_forwards_to_agent(self, monkeypatch):
        agent = StubAgent()
        monkeypatch.setattr(handlers, "get_calendar_agent", lambda: agent)

        asyncio.run(handlers.handle_text_message(text_update("what's today?"), None))

        assert agent.messages == [(7, 70, "what's today?")]

    def test_transport_error_is_logged(self, monkeypatch):
        agent = StubAgent(error=TransportError("failed to send message"))
        monkeypatch.setattr(handlers, "get_calendar_agent", lambda: agent)

        # Must not raise
        asyncio.run(handlers.handle_text_message(text_update("hi"), None))

        assert len(agent.messages) == 1


class TestCallbackQuery:

    def test_answers_and_forwards(self, monkeypatch):
        agent = StubAgent()
        answered = []

        async def fake_answer(callback_query_id, text=""):
            answered.append(callback_query_id)

        monkeypatch.setattr(handlers, "get_calendar_agent", lambda: agent)
        monkeypatch.setattr(handlers, "answer_callback_query", fake_answer)

        update = SimpleNamespace(
            callback_query=SimpleNamespace(id="cb-9", data="calendar_tomorrow"),
            effective_user=SimpleNamespace(id=7),
            effective_chat=SimpleNamespace(id=70),
        )
        asyncio.run(handlers.handle_callback_query(update, None))

        assert answered == ["cb-9"]
        assert agent.callbacks == [(7, 70, "calendar_tomorrow")]


class TestFormatStats:

    def test_no_history(self):
        assert handlers.format_stats(UserStats()) == "No interactions yet. Ask me about your calendar!"

    def test_with_history(self):
        stats = UserStats(
            total_interactions=3,
            first_interaction=datetime(2025, 8, 1, 9, 0, tzinfo=timezone.utc),
            last_interaction=datetime(2025, 8, 5, 18, 30, tzinfo=timezone.utc),
            actions_used={"makeEvent": 1, "getEvents": 2},
        )
        text = handlers.format_stats(stats)
        assert "• Interactions: 3" in text
        assert "• First: 2025-08-01 09:00 UTC" in text
        assert "• Last: 2025-08-05 18:30 UTC" in text
        assert text.index("getEvents: 2") < text.index("makeEvent: 1")
