"""iCalendar feed client returning today's events."""

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import List, Optional

import requests

from .dates import (
    all_day_is_today,
    format_clock,
    local_date,
    local_midnight,
    local_timezone,
    overlaps_today,
    utc_now,
)
from .http_client import HttpClient
from .ical import RawEvent, parse_feed
from .models import CalendarEvent, CalendarSection

logger = logging.getLogger(__name__)

UNTITLED_EVENT = "(Untitled event)"


def normalize_event_url(value: Optional[str]) -> Optional[str]:
    """Keep only http(s) links."""
    if not value:
        return None
    trimmed = value.strip()
    if trimmed.startswith("http://") or trimmed.startswith("https://"):
        return trimmed
    return None


def event_for_today(raw: RawEvent, now: datetime, tz: tzinfo) -> Optional[CalendarEvent]:
    """
    Turn a raw VEVENT into a CalendarEvent if it happens today.

    Returns None for events without a start and events outside the local
    day containing ``now``.
    """
    start = raw.starts_at
    if start is None:
        return None

    open_url = normalize_event_url(raw.conference_url) or normalize_event_url(raw.url)
    title = raw.summary or UNTITLED_EVENT
    event_id = raw.uid or f"{title}-{start.isoformat()}"
    end = raw.ends_at

    if not isinstance(start, datetime):
        # All-day event: DTEND is exclusive.
        if end is None:
            end_exclusive = start + timedelta(days=1)
        elif isinstance(end, datetime):
            end_exclusive = local_date(end, tz)
        else:
            end_exclusive = end

        if not all_day_is_today(start, end_exclusive, local_date(now, tz)):
            return None
        start_utc = local_midnight(start, tz)
        end_utc = local_midnight(end_exclusive, tz)
        if start_utc is None or end_utc is None:
            return None
        return CalendarEvent(
            event_id=event_id,
            title=title,
            start=start_utc,
            end=end_utc,
            display_time="All day",
            open_url=open_url,
        )

    if end is None:
        end_utc = start + timedelta(hours=1)
    elif isinstance(end, datetime):
        end_utc = end
    else:
        end_utc = local_midnight(end, tz)
        if end_utc is None:
            return None

    if not overlaps_today(start, end_utc, now, tz):
        return None

    if end_utc > start:
        display_time = f"{format_clock(start, tz)}-{format_clock(end_utc, tz)}"
    else:
        display_time = format_clock(start, tz)

    return CalendarEvent(
        event_id=event_id,
        title=title,
        start=start.astimezone(timezone.utc),
        end=end_utc.astimezone(timezone.utc),
        display_time=display_time,
        open_url=open_url,
    )


def _sort_key(event: CalendarEvent):
    if event.start is None:
        return (1, datetime.max.replace(tzinfo=timezone.utc), event.title.lower())
    return (0, event.start, event.title.lower())


def events_for_today(content: str, fallback_name: str, now: datetime, tz: tzinfo) -> CalendarSection:
    """Parse a feed and keep today's events, sorted by start time."""
    parsed = parse_feed(content, tz)
    section_name = parsed.calendar_name.strip() or fallback_name
    events: List[CalendarEvent] = []
    for raw in parsed.events:
        event = event_for_today(raw, now, tz)
        if event is not None:
            events.append(event)
    events.sort(key=_sort_key)
    return CalendarSection(account_name=section_name, events=tuple(events))


class CalendarClient(HttpClient):
    """Client for one private iCal feed URL."""

    def __init__(self, account_name: str, ical_url: str, tz: Optional[tzinfo] = None,
                 session: Optional[requests.Session] = None):
        super().__init__(account_name, session=session)
        self.account_name = account_name
        self.ical_url = ical_url
        self.tz = tz or local_timezone()

    def fetch_today_events(self, now: Optional[datetime] = None) -> CalendarSection:
        """Download the feed and return today's events."""
        now = now or utc_now()
        logger.info(f"Fetching calendar feed '{self.account_name}'")
        response = self.request("GET", self.ical_url)
        # iCalendar is UTF-8 unless the server says otherwise.
        if "charset" not in response.headers.get("Content-Type", "").lower():
            response.encoding = "utf-8"
        section = events_for_today(response.text, self.account_name, now, self.tz)
        logger.info(f"Found {len(section.events)} event(s) today in '{section.account_name}'")
        return section