"""Minimal iCalendar (RFC 5545) reader for VEVENT blocks."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Dict, List, Optional, Tuple, Union

from .dates import localize

EventTime = Union[date, datetime]

CONFERENCE_PROPERTY = "X-GOOGLE-CONFERENCE"


@dataclass
class RawEvent:
    """Fields of one VEVENT, before any filtering."""
    uid: Optional[str] = None
    summary: Optional[str] = None
    url: Optional[str] = None
    conference_url: Optional[str] = None
    starts_at: Optional[EventTime] = None  # date for all-day, aware UTC datetime otherwise
    ends_at: Optional[EventTime] = None


@dataclass
class ParsedFeed:
    calendar_name: str = ""
    events: List[RawEvent] = field(default_factory=list)


def unfold_lines(content: str) -> List[str]:
    """Join continuation lines (leading space or tab) onto the previous line."""
    unfolded: List[str] = []
    normalized = content.replace("\r\n", "\n").replace("\r", "\n")
    for raw_line in normalized.split("\n"):
        if raw_line[:1] in (" ", "\t"):
            if unfolded:
                unfolded[-1] += raw_line[1:]
            continue
        unfolded.append(raw_line)
    return unfolded


def parse_property_line(line: str) -> Optional[Tuple[str, Dict[str, str], str]]:
    """Split ``NAME;PARAM=X:VALUE`` into (name, params, value)."""
    left, sep, value = line.partition(":")
    if not sep:
        return None
    parts = left.split(";")
    name = parts[0].strip().upper()
    if not name:
        return None
    params: Dict[str, str] = {}
    for part in parts[1:]:
        key, eq, val = part.partition("=")
        if eq:
            params[key.strip().upper()] = val.strip()
    return name, params, value


def unescape_text(value: str) -> str:
    """Undo TEXT escaping: \\n, \\N, \\, \\; and \\\\."""
    out = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value):
            nxt = value[i + 1]
            if nxt in "nN":
                out.append("\n")
                i += 2
                continue
            if nxt in ",;\\":
                out.append(nxt)
                i += 2
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def _parse_naive_datetime(value: str) -> Optional[datetime]:
    for fmt in ("%Y%m%dT%H%M%S", "%Y%m%dT%H%M"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def parse_event_time(value: str, params: Dict[str, str], tz: tzinfo) -> Optional[EventTime]:
    """
    Parse a DTSTART/DTEND value.

    VALUE=DATE (or a bare 8-digit value) gives a date. A trailing 'Z' is
    UTC. Floating and TZID times are read as local wall-clock time.
    """
    value = value.strip()
    if params.get("VALUE", "").upper() == "DATE" or (len(value) == 8 and value.isdigit()):
        try:
            return datetime.strptime(value, "%Y%m%d").date()
        except ValueError:
            return None

    if value.endswith("Z"):
        naive = _parse_naive_datetime(value[:-1])
        return naive.replace(tzinfo=timezone.utc) if naive else None

    naive = _parse_naive_datetime(value)
    if naive is None:
        return None
    local = localize(naive, tz)
    return local.astimezone(timezone.utc) if local else None


def parse_feed(content: str, tz: tzinfo) -> ParsedFeed:
    """Read the calendar name and every VEVENT from an iCalendar document."""
    parsed = ParsedFeed()
    current: Optional[RawEvent] = None
    nested = 0  # depth of VALARM and other sub-components inside the event

    for line in unfold_lines(content):
        prop = parse_property_line(line)
        if prop is None:
            continue
        name, params, value = prop
        upper_value = value.strip().upper()

        if name == "BEGIN" and upper_value == "VEVENT":
            current = RawEvent()
            nested = 0
            continue
        if name == "END" and upper_value == "VEVENT":
            if current is not None:
                parsed.events.append(current)
            current = None
            continue

        if current is not None:
            if name == "BEGIN":
                nested += 1
                continue
            if name == "END":
                nested = max(nested - 1, 0)
                continue
            if nested:
                continue
            if name == "UID":
                current.uid = value
            elif name == "SUMMARY":
                current.summary = unescape_text(value)
            elif name == "URL":
                current.url = value
            elif name == CONFERENCE_PROPERTY:
                current.conference_url = value
            elif name == "DTSTART":
                current.starts_at = parse_event_time(value, params, tz)
            elif name == "DTEND":
                current.ends_at = parse_event_time(value, params, tz)
            continue

        if name == "X-WR-CALNAME" and not parsed.calendar_name:
            parsed.calendar_name = unescape_text(value)

    return parsed
