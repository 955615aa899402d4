"""
Google Calendar gateway.

Thin async wrapper over the Calendar v3 API. Dates arrive as date
expressions ("today", "tomorrow", "yesterday" or YYYY-MM-DD) and are
resolved in the configured timezone. The API client is blocking, so every
request runs in a worker thread with its own HTTP connection and timeout.
"""

import asyncio
from datetime import date, datetime, time, timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo

import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from calendar_bot.agents.schemas import CalendarEvent
from calendar_bot.config import get_settings
from calendar_bot.errors import CalendarError, InvalidDateFormat
from calendar_bot.logging_config import get_logger

logger = get_logger("calendar")

CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]
DEFAULT_EVENT_DURATION = timedelta(hours=1)

_RELATIVE_DAYS = {"today": 0, "tomorrow": 1, "yesterday": -1}

_API_ERRORS = (HttpError, httplib2.HttpLib2Error, GoogleAuthError, OSError)


def resolve_date(date_expr: str, tz: ZoneInfo, now: Optional[datetime] = None) -> date:
    """Resolve a date expression to a calendar day in tz."""
    expr = (date_expr or "").strip()
    if expr.lower() in _RELATIVE_DAYS:
        today = (now or datetime.now(tz)).astimezone(tz).date()
        return today + timedelta(days=_RELATIVE_DAYS[expr.lower()])
    try:
        return datetime.strptime(expr, "%Y-%m-%d").date()
    except ValueError as e:
        raise InvalidDateFormat(f"invalid date format: {date_expr!r}") from e


def resolve_start(date_expr: str, time_str: str, tz: ZoneInfo, now: Optional[datetime] = None) -> datetime:
    """Combine a date expression and an HH:MM time into an aware datetime."""
    day = resolve_date(date_expr, tz, now)
    try:
        start = datetime.strptime((time_str or "").strip(), "%H:%M").time()
    except ValueError as e:
        raise InvalidDateFormat(f"invalid time format: {time_str!r}") from e
    return datetime.combine(day, start, tzinfo=tz)


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, start + timedelta(days=1)


def parse_event(item: dict[str, Any], tz: ZoneInfo) -> CalendarEvent:
    """Convert an API event resource into a CalendarEvent in tz."""
    return CalendarEvent(
        id=item.get("id", ""),
        title=item.get("summary", ""),
        description=item.get("description", ""),
        start=_parse_event_time(item.get("start", {}), tz),
        end=_parse_event_time(item.get("end", {}), tz),
        location=item.get("location", ""),
    )


def _parse_event_time(value: dict[str, Any], tz: ZoneInfo) -> datetime:
    if value.get("dateTime"):
        parsed = datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
        return parsed.astimezone(tz)
    # All-day events carry a bare date
    if value.get("date"):
        day = date.fromisoformat(value["date"])
        return datetime.combine(day, time.min, tzinfo=tz)
    return datetime.min.replace(tzinfo=tz)


def _event_time(value: datetime, tz_name: str) -> dict[str, str]:
    return {"dateTime": value.isoformat(), "timeZone": tz_name}


class GoogleCalendarService:
    """Calendar CRUD keyed by date expressions and event IDs."""

    def __init__(
        self,
        service,
        calendar_id: str,
        credentials=None,
        timeout: float = 10.0,
        timezone: str = "UTC"
    ):
        self.service = service
        self.calendar_id = calendar_id
        self.credentials = credentials
        self.timeout = timeout
        self.timezone = timezone
        self.tz = ZoneInfo(timezone)

    @classmethod
    def from_credentials_file(
        cls,
        credentials_file: str,
        calendar_id: str,
        timeout: float = 10.0,
        timezone: str = "UTC"
    ) -> "GoogleCalendarService":
        credentials = service_account.Credentials.from_service_account_file(
            credentials_file, scopes=CALENDAR_SCOPES
        )
        service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        logger.info(f"Google Calendar service created for calendar {calendar_id}")
        return cls(service, calendar_id, credentials=credentials, timeout=timeout, timezone=timezone)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def _execute(self, request):
        # httplib2 is not thread-safe: one connection per request
        if self.credentials is None:
            return request.execute()
        http = google_auth_httplib2.AuthorizedHttp(
            self.credentials, http=httplib2.Http(timeout=self.timeout)
        )
        return request.execute(http=http)

    async def _call(self, request, failure: str):
        try:
            return await asyncio.to_thread(self._execute, request)
        except _API_ERRORS as e:
            raise CalendarError(f"{failure}: {e}") from e

    async def _list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        request = self.service.events().list(
            calendarId=self.calendar_id,
            timeMin=start.isoformat(),
            timeMax=end.isoformat(),
            singleEvents=True,
            orderBy="startTime"
        )
        result = await self._call(request, "failed to get events")
        return [parse_event(item, self.tz) for item in result.get("items", [])]

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def get_events(self, date_expr: str) -> list[CalendarEvent]:
        """Events on one day, ordered by start time."""
        if not date_expr:
            date_expr = "today"
        start, end = day_bounds(resolve_date(date_expr, self.tz), self.tz)
        return await self._list_events(start, end)

    async def get_events_in_range(self, start_date: str, end_date: str) -> list[CalendarEvent]:
        """Events from the start of start_date through the end of end_date."""
        first = resolve_date(start_date, self.tz)
        last = resolve_date(end_date, self.tz)
        if last < first:
            raise InvalidDateFormat(f"end date {end_date} is before start date {start_date}")
        start, _ = day_bounds(first, self.tz)
        _, end = day_bounds(last, self.tz)
        return await self._list_events(start, end)

    async def create_event(
        self,
        title: str,
        date_expr: str,
        time_str: str,
        description: str = "",
        location: str = ""
    ) -> dict[str, Any]:
        """Create a one-hour event starting at date_expr time_str."""
        start = resolve_start(date_expr, time_str, self.tz)
        body = {
            "summary": title,
            "description": description,
            "location": location,
            "start": _event_time(start, self.timezone),
            "end": _event_time(start + DEFAULT_EVENT_DURATION, self.timezone),
        }
        request = self.service.events().insert(calendarId=self.calendar_id, body=body)
        created = await self._call(request, "failed to create event")
        logger.info(f"Created event {created.get('id')} at {start.isoformat()}")
        return created

    async def update_event(
        self,
        event_id: str,
        title: str = "",
        date_expr: str = "",
        time_str: str = "",
        description: str = "",
        location: str = ""
    ) -> dict[str, Any]:
        """
        Patch the given fields of an event.

        Rescheduling needs both date and time and resets the duration to one hour.
        """
        body: dict[str, Any] = {}
        if title:
            body["summary"] = title
        if description:
            body["description"] = description
        if location:
            body["location"] = location
        if date_expr or time_str:
            if not (date_expr and time_str):
                raise InvalidDateFormat("both date and time are needed to reschedule an event")
            start = resolve_start(date_expr, time_str, self.tz)
            body["start"] = _event_time(start, self.timezone)
            body["end"] = _event_time(start + DEFAULT_EVENT_DURATION, self.timezone)

        if not body:
            raise CalendarError("nothing to update")

        request = self.service.events().patch(
            calendarId=self.calendar_id, eventId=event_id, body=body
        )
        updated = await self._call(request, "failed to update event")
        logger.info(f"Updated event {event_id}: {sorted(body)}")
        return updated

    async def delete_event(self, event_id: str) -> None:
        request = self.service.events().delete(calendarId=self.calendar_id, eventId=event_id)
        await self._call(request, "failed to delete event")
        logger.info(f"Deleted event {event_id}")

    async def check_connection(self) -> bool:
        """Fetch today's events once; logs the outcome and never raises."""
        logger.info("Testing Google Calendar connection...")
        try:
            events = await self.get_events("today")
        except CalendarError as e:
            logger.warning(f"Google Calendar connection test failed: {e}")
            return False
        logger.info(f"Google Calendar connection test successful, found {len(events)} events for today")
        return True


_calendar_service: Optional[GoogleCalendarService] = None


def get_calendar_service() -> GoogleCalendarService:
    global _calendar_service
    if _calendar_service is None:
        settings = get_settings()
        _calendar_service = GoogleCalendarService.from_credentials_file(
            settings.google_credentials_file,
            settings.google_calendar_id,
            timeout=settings.calendar_timeout_seconds,
            timezone=settings.timezone
        )
    return _calendar_service
