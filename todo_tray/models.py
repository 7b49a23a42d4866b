"""Data models shared by the source clients, aggregator and engine."""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterator, Optional, Tuple


class SourceKind(Enum):
    """Where an item came from."""
    TASK_TRACKER = "todoist"
    ISSUE_TRACKER = "linear"


@dataclass(frozen=True)
class Item:
    """A normalized task or issue."""
    id: str
    content: str
    source: SourceKind
    actionable: bool                 # completion may be issued from here
    due: Optional[datetime] = None   # UTC, timezone-aware
    is_overdue: bool = False
    is_today: bool = False
    is_tomorrow: bool = False
    display_time: str = "no due date"
    url: Optional[str] = None


@dataclass(frozen=True)
class CalendarEvent:
    """A calendar event occurring (at least partly) today."""
    event_id: str
    title: str
    start: Optional[datetime]  # UTC
    end: Optional[datetime]    # UTC
    display_time: str          # "All day" or "HH:MM-HH:MM"
    open_url: Optional[str] = None


@dataclass(frozen=True)
class Notification:
    """An unread GitHub notification thread."""
    thread_id: str
    title: str
    repository: str
    reason: str
    web_url: str
    updated_at: Optional[datetime] = None  # UTC
    display_time: str = "recent"


@dataclass(frozen=True)
class NotificationSection:
    """Unread notifications for one configured account."""
    account_name: str
    notifications: Tuple[Notification, ...] = ()

    @property
    def name(self) -> str:
        return self.account_name

    @property
    def entries(self) -> tuple:
        return self.notifications


@dataclass(frozen=True)
class CalendarSection:
    """Today's events for one configured feed."""
    account_name: str
    events: Tuple[CalendarEvent, ...] = ()

    @property
    def name(self) -> str:
        return self.account_name

    @property
    def entries(self) -> tuple:
        return self.events


@dataclass(frozen=True)
class TaskList:
    """Items grouped into display buckets, each sorted."""
    overdue: Tuple[Item, ...] = ()
    today: Tuple[Item, ...] = ()
    tomorrow: Tuple[Item, ...] = ()
    in_progress: Tuple[Item, ...] = ()

    def all_items(self) -> Iterator[Item]:
        yield from self.overdue
        yield from self.today
        yield from self.tomorrow
        yield from self.in_progress


@dataclass
class AppState:
    """
    The snapshot owned by the engine.

    Every nested value is immutable, so ``clone()`` only needs to copy
    the top-level fields for the copy to be fully independent.
    """
    overdue_count: int = 0
    today_count: int = 0
    tomorrow_count: int = 0
    in_progress_count: int = 0
    github_notification_count: int = 0
    calendar_event_count: int = 0
    tasks: TaskList = field(default_factory=TaskList)
    github_notifications: Tuple[NotificationSection, ...] = ()
    calendar_events: Tuple[CalendarSection, ...] = ()
    snooze_durations: Tuple[str, ...] = ()
    is_loading: bool = False
    error_message: Optional[str] = None
    autostart_enabled: bool = False
    last_refreshed_at: Optional[datetime] = None

    def clone(self) -> "AppState":
        return dataclasses.replace(self)

    def apply_tasks(self, tasks: TaskList) -> None:
        self.tasks = tasks
        self.overdue_count = len(tasks.overdue)
        self.today_count = len(tasks.today)
        self.tomorrow_count = len(tasks.tomorrow)
        self.in_progress_count = len(tasks.in_progress)

    def apply_notifications(self, sections: Tuple[NotificationSection, ...]) -> None:
        self.github_notifications = tuple(sections)
        self.github_notification_count = sum(len(s.notifications) for s in self.github_notifications)

    def apply_calendar(self, sections: Tuple[CalendarSection, ...]) -> None:
        self.calendar_events = tuple(sections)
        self.calendar_event_count = sum(len(s.events) for s in self.calendar_events)
