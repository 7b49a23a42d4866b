"""Date and time normalization.

Every source reports dates differently: Todoist sends date-only or naive
local datetimes, GitHub sends UTC with a 'Z' suffix, calendar feeds send
anything in between. Everything here converts to timezone-aware UTC
datetimes and classifies them against the local calendar day.

The local timezone and "now" are always passed in so callers can pin
them; ``local_timezone()`` and ``utc_now()`` supply the process defaults.
"""

import logging
import os
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DURATION_RE = re.compile(r"^(\d+)([mhd])$")
_DURATION_UNITS = {"m": "minutes", "h": "hours", "d": "days"}

# Deadline sources treat a bare date as "due by the end of that day".
END_OF_DAY = time(23, 59, 59)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def load_timezone(key: str) -> tzinfo:
    """
    Load an IANA timezone by name.

    Raises:
        ValueError: If the zone is unknown.
    """
    try:
        return ZoneInfo(key.strip().lstrip(":"))
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone '{key}'") from e


def local_timezone() -> tzinfo:
    """
    Resolve the process-local timezone.

    Order: TODO_TRAY_TIMEZONE, TZ, /etc/localtime, then the fixed offset
    the OS reports right now (no DST rules in that last case).
    """
    for env_key in ("TODO_TRAY_TIMEZONE", "TZ"):
        value = os.getenv(env_key, "").strip()
        if not value:
            continue
        try:
            return load_timezone(value)
        except ValueError:
            logger.warning(f"Ignoring {env_key}={value!r}: unknown timezone")

    if os.path.exists("/etc/localtime"):
        try:
            with open("/etc/localtime", "rb") as handle:
                return ZoneInfo.from_file(handle, key="localtime")
        except (OSError, ValueError) as e:
            logger.debug(f"Could not read /etc/localtime: {e}")

    return datetime.now().astimezone().tzinfo


def localize(naive: datetime, tz: tzinfo) -> Optional[datetime]:
    """
    Attach a local timezone to a wall-clock time.

    Ambiguous times (DST fall-back) resolve to the earliest instant.
    Times that do not exist (DST spring-forward gap) return None.
    """
    candidate = naive.replace(tzinfo=tz, fold=0)
    roundtrip = candidate.astimezone(timezone.utc).astimezone(tz)
    if roundtrip.replace(tzinfo=None) != naive.replace(tzinfo=None):
        return None
    return candidate


def local_midnight(day: date, tz: tzinfo) -> Optional[datetime]:
    """Local midnight of ``day`` as UTC, or None if midnight was skipped by DST."""
    local = localize(datetime.combine(day, time()), tz)
    if local is None:
        return None
    return local.astimezone(timezone.utc)


def local_date(instant: datetime, tz: tzinfo) -> date:
    return instant.astimezone(tz).date()


def day_bounds(day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """
    UTC bounds ``[start, end)`` of a local calendar day.

    When a zone skips midnight the day starts at the first instant after
    the gap.
    """
    bounds = []
    for boundary in (day, day + timedelta(days=1)):
        instant = local_midnight(boundary, tz)
        if instant is None:
            instant = datetime.combine(boundary, time(), tzinfo=tz).astimezone(timezone.utc)
        bounds.append(instant)
    return bounds[0], bounds[1]


def parse_due(value: Optional[str], tz: tzinfo) -> Optional[datetime]:
    """
    Parse a deadline string into a UTC instant.

    Accepts:
        - "YYYY-MM-DD": local 23:59:59 on that date.
        - "YYYY-MM-DDTHH:MM:SS": local wall-clock time.
        - "...Z" or an explicit offset: that exact instant.

    Returns:
        The instant in UTC, or None if the value is empty, malformed or
        falls into a DST gap.
    """
    value = (value or "").strip()
    if not value:
        return None

    if _DATE_ONLY_RE.match(value):
        try:
            day = date.fromisoformat(value)
        except ValueError:
            return None
        local = localize(datetime.combine(day, END_OF_DAY), tz)
        return local.astimezone(timezone.utc) if local else None

    if value[-1] in "Zz":
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.debug(f"Unparseable due date '{value}'")
        return None

    if parsed.tzinfo is None:
        local = localize(parsed, tz)
        if local is None:
            logger.debug(f"Due date '{value}' falls into a DST gap, dropping it")
            return None
        parsed = local
    return parsed.astimezone(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 event timestamp such as "2026-02-24T10:00:00Z".

    Unlike ``parse_due`` there is no deadline handling: a value without an
    offset is read as UTC. Returns None for empty or malformed values.
    """
    value = (value or "").strip()
    if not value:
        return None
    if value[-1] in "Zz":
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.debug(f"Unparseable timestamp '{value}'")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def classify(due: Optional[datetime], now: datetime, tz: tzinfo) -> Tuple[bool, bool, bool]:
    """
    Bucket flags for a due instant: ``(is_overdue, is_today, is_tomorrow)``.

    Overdue wins: an overdue item is never also today or tomorrow.
    """
    if due is None:
        return False, False, False
    if due < now:
        return True, False, False
    today = local_date(now, tz)
    due_day = local_date(due, tz)
    return False, due_day == today, due_day == today + timedelta(days=1)


def overlaps_today(start: datetime, end: datetime, now: datetime, tz: tzinfo) -> bool:
    """True if ``[start, end)`` intersects the local day containing ``now``."""
    day_start, day_end = day_bounds(local_date(now, tz), tz)
    return start < day_end and end > day_start


def all_day_is_today(start_date: date, end_exclusive: date, today: date) -> bool:
    return start_date <= today < end_exclusive


def format_clock(instant: datetime, tz: tzinfo) -> str:
    return instant.astimezone(tz).strftime("%H:%M")


def format_relative(instant: Optional[datetime], now: datetime, tz: tzinfo) -> str:
    """
    Short "time ago" label: "3d ago", "2h ago", "5m ago".

    Anything under a minute (or in the future) shows the local clock time.
    """
    if instant is None:
        return "recent"
    seconds = int((now - instant).total_seconds())
    if seconds >= 86400:
        return f"{seconds // 86400}d ago"
    if seconds >= 3600:
        return f"{seconds // 3600}h ago"
    if seconds >= 60:
        return f"{seconds // 60}m ago"
    return format_clock(instant, tz)


def format_due_display(due: Optional[datetime], is_overdue: bool, now: datetime, tz: tzinfo) -> str:
    """Display label for a task's due time."""
    if due is None:
        return "no due date"
    if not is_overdue:
        return format_clock(due, tz)
    seconds = int((now - due).total_seconds())
    if seconds >= 86400:
        return f"{seconds // 86400}d ago"
    if seconds >= 3600:
        return f"{seconds // 3600}h ago"
    return "overdue"


def parse_duration_label(label: str) -> timedelta:
    """
    Parse a snooze label such as "30m", "2h" or "1d".

    Raises:
        ValueError: If the label is not a positive integer followed by m, h or d.
    """
    value = (label or "").strip().lower()
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(
            f"Invalid snooze duration '{label}'. Use a positive number followed by m, h, or d."
        )
    amount = int(match.group(1))
    if amount <= 0:
        raise ValueError(f"Snooze duration must be positive: '{label}'")
    return timedelta(**{_DURATION_UNITS[match.group(2)]: amount})


def format_rfc3339_utc(instant: datetime) -> str:
    """Format as "YYYY-MM-DDTHH:MM:SSZ"."""
    return instant.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
