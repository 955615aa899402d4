"""
Calendar agent: the message-to-action pipeline.

FLOW (one run per inbound message, no state between runs):
1. Load recent dialogue from the conversation store
2. Classify the message into an Intent
3. Persist the exchange (failures are logged, never shown)
4. Execute the intent against Google Calendar
5. Send the reply

Every calendar failure is turned into a line of reply text where it
happens. The only error that leaves handle_message is a TransportError
from the final send.

Concurrency: one task per update and no per-user serialization, so two
messages from the same user may read context and append interleaved.
"""

from datetime import timedelta
from typing import Awaitable, Callable, Optional

from calendar_bot.agents.schemas import (
    Action,
    BatchPlan,
    CalendarEvent,
    Intent,
    SubIntent,
)
from calendar_bot.config import get_settings
from calendar_bot.errors import CalendarError, ClassificationError, PersistenceError
from calendar_bot.logging_config import get_logger
from calendar_bot.services.calendar import GoogleCalendarService, get_calendar_service
from calendar_bot.services.classifier import IntentClassifier, get_intent_classifier
from calendar_bot.services.conversation_store import ConversationStore, UserStats

logger = get_logger("agent")

SendMessage = Callable[[int, str], Awaitable[None]]

CLASSIFICATION_FAILED_MESSAGE = "Sorry, I encountered an error processing your request. Please try again."

MAX_EVENTS_SINGLE = 20
MAX_EVENTS_BATCH = 15
MAX_EVENTS_CALLBACK = 15

CALLBACK_DAYS = {
    "calendar_today": "today",
    "calendar_tomorrow": "tomorrow",
}


def format_event_line(event: CalendarEvent) -> str:
    line = f"• {event.title} ({event.start.strftime('%H:%M')} - {event.end.strftime('%H:%M')})"
    if event.location:
        line += f" - {event.location}"
    return line + "\n"


def format_event_lines(events: list[CalendarEvent], max_events: int) -> str:
    return "".join(format_event_line(event) for event in events[:max_events])


class CalendarAgent:
    """Coordinates the classifier, the calendar and the conversation store."""

    def __init__(
        self,
        store: ConversationStore,
        classifier: IntentClassifier,
        calendar: GoogleCalendarService,
        send_message: SendMessage,
        context_messages: int = 10
    ):
        self.store = store
        self.classifier = classifier
        self.calendar = calendar
        self.send_message = send_message
        self.context_messages = context_messages

    async def handle_message(self, user_id: int, chat_id: int, text: str) -> None:
        """
        Run the full pipeline for one message.

        Raises:
            TransportError: the reply could not be sent
        """
        logger.info(f"Processing message from user {user_id}, text_len={len(text)}")

        user_context = self.store.get_context(user_id, self.context_messages)

        try:
            intent = await self.classifier.classify(user_context, text)
        except ClassificationError as e:
            logger.error(f"AI processing error for user {user_id}: {e}")
            await self.send_message(chat_id, CLASSIFICATION_FAILED_MESSAGE)
            return

        logger.info(
            f"AI response for user {user_id}: action={intent.action!r}, "
            f"event_date={intent.event_date!r}, steps={len(intent.actions)}"
        )

        try:
            self.store.append(user_id, text, intent.message, intent.action)
        except PersistenceError as e:
            logger.error(f"Failed to store interaction for user {user_id}: {e}")

        response = await self.execute(intent)

        await self.send_message(chat_id, response)
        logger.info(f"Sent response to user {user_id}, text_len={len(response)}")

    # =========================================================================
    # DISPATCH
    # =========================================================================

    async def execute(self, intent: Intent) -> str:
        """Turn an intent into reply text. Calendar errors become text, never exceptions."""
        plan = intent.plan()
        if isinstance(plan, BatchPlan):
            return await self._execute_batch(plan)

        kind = intent.kind
        if kind is Action.GET_EVENTS:
            return await self._get_events(intent.event_date or "today")
        if kind is Action.MAKE_EVENT:
            return await self._make_event(intent)
        if kind is Action.UPDATE_EVENT:
            return await self._update_event(intent)
        if kind is Action.DELETE_EVENT:
            return await self._delete_event(intent)

        # message, None and anything unrecognized
        if kind is None:
            logger.info(f"No specific action for {intent.action!r}, using AI message")
        return intent.message

    async def _execute_batch(self, plan: BatchPlan) -> str:
        logger.info(f"AI requested {len(plan.steps)} actions")
        response = plan.message + "\n\n"

        for i, step in enumerate(plan.steps, start=1):
            logger.info(f"Executing action {i}/{len(plan.steps)}: {step.action}")
            if step.kind is Action.GET_EVENTS:
                response += await self._get_events_block(step)
            else:
                response += f"Unknown action: {step.action}\n"

        return response

    async def _get_events_block(self, step: SubIntent) -> str:
        date_expr = step.event_date or "today"
        try:
            events = await self.calendar.get_events(date_expr)
        except CalendarError as e:
            logger.error(f"Error getting events for {date_expr}: {e}")
            return f"Error getting events for {date_expr}: {e}\n"

        if not events:
            return f"No events found for {date_expr}.\n"

        if len(events) > MAX_EVENTS_BATCH:
            block = f"Events for {date_expr} (showing first {MAX_EVENTS_BATCH} of {len(events)}):\n"
        else:
            block = f"Events for {date_expr}:\n"
        block += format_event_lines(events, MAX_EVENTS_BATCH)
        if len(events) > MAX_EVENTS_BATCH:
            block += f"... and {len(events) - MAX_EVENTS_BATCH} more events.\n"
        return block + "\n"

    # =========================================================================
    # SINGLE ACTIONS
    # =========================================================================

    async def _get_events(self, date_expr: str) -> str:
        try:
            events = await self.calendar.get_events(date_expr)
        except CalendarError as e:
            logger.error(f"Error getting events for {date_expr}: {e}")
            return f"Error getting events: {e}"

        if not events:
            return f"No events found for {date_expr}."

        logger.info(f"Found {len(events)} events for {date_expr}")
        if len(events) > MAX_EVENTS_SINGLE:
            response = f"Events for {date_expr} (showing first {MAX_EVENTS_SINGLE} of {len(events)}):\n"
        else:
            response = f"Events for {date_expr}:\n"
        response += format_event_lines(events, MAX_EVENTS_SINGLE)

        if len(events) > MAX_EVENTS_SINGLE:
            response += (
                f"\n... and {len(events) - MAX_EVENTS_SINGLE} more events. "
                "Use a more specific date range to see fewer events."
            )
        return response

    async def _make_event(self, intent: Intent) -> str:
        try:
            await self.calendar.create_event(
                intent.event_title,
                intent.event_date,
                intent.event_time,
                intent.event_description,
                intent.event_location
            )
        except CalendarError as e:
            logger.error(f"Error creating event: {e}")
            return f"Error creating event: {e}"

        return (
            f"Event '{intent.event_title}' created successfully "
            f"for {intent.event_date} at {intent.event_time}"
        )

    async def _update_event(self, intent: Intent) -> str:
        if not intent.event_id:
            return "Please specify an event ID to update. Use 'getEvents' first to see available events."

        try:
            await self.calendar.update_event(
                intent.event_id,
                intent.event_title,
                intent.event_date,
                intent.event_time,
                intent.event_description,
                intent.event_location
            )
        except CalendarError as e:
            logger.error(f"Error updating event {intent.event_id}: {e}")
            return f"Error updating event: {e}"

        return "Event updated successfully."

    async def _delete_event(self, intent: Intent) -> str:
        if not intent.event_id:
            return "Please specify an event ID to delete. Use 'getEvents' first to see available events."

        try:
            await self.calendar.delete_event(intent.event_id)
        except CalendarError as e:
            logger.error(f"Error deleting event {intent.event_id}: {e}")
            return f"Error deleting event: {e}"

        return "Event deleted successfully."

    # =========================================================================
    # KEYBOARD, STATS, MAINTENANCE
    # =========================================================================

    async def handle_calendar_callback(self, user_id: int, chat_id: int, callback_data: str) -> None:
        """
        Answer a Today/Tomorrow keyboard press with that day's events.

        Raises:
            TransportError: the reply could not be sent
        """
        logger.info(f"Handling calendar callback for user {user_id}: {callback_data}")

        day = CALLBACK_DAYS.get(callback_data)
        if day is None:
            response = "Calendar navigation not implemented yet."
        else:
            response = await self._day_overview(day)

        await self.send_message(chat_id, response)

    async def _day_overview(self, day: str) -> str:
        try:
            events = await self.calendar.get_events(day)
        except CalendarError as e:
            return f"Error getting events: {e}"

        if not events:
            return f"No events found for {day}."

        response = f"Here are your events for {day}:"
        if len(events) > MAX_EVENTS_CALLBACK:
            response += f"\n(showing first {MAX_EVENTS_CALLBACK} of {len(events)}):\n"
        else:
            response += "\n"
        response += format_event_lines(events, MAX_EVENTS_CALLBACK)
        if len(events) > MAX_EVENTS_CALLBACK:
            response += f"... and {len(events) - MAX_EVENTS_CALLBACK} more events."
        return response

    def get_user_stats(self, user_id: int) -> UserStats:
        return self.store.stats(user_id)

    def cleanup_old_interactions(self, days_old: int) -> int:
        return self.store.cleanup(timedelta(days=days_old))


_agent: Optional[CalendarAgent] = None


def get_calendar_agent() -> CalendarAgent:
    """Process-wide agent wired from settings."""
    global _agent
    if _agent is None:
        # Imported here: telegram_bot imports this module
        from calendar_bot.telegram_bot.telegram_api import send_message

        settings = get_settings()
        _agent = CalendarAgent(
            store=ConversationStore(settings.data_dir),
            classifier=get_intent_classifier(),
            calendar=get_calendar_service(),
            send_message=send_message,
            context_messages=settings.context_messages
        )
    return _agent
