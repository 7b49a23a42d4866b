"""Todoist REST client for today's, tomorrow's and overdue tasks."""

import logging
from datetime import datetime, tzinfo
from typing import Any, Dict, List, Optional

import requests

from .dates import classify, format_due_display, local_timezone, parse_due, utc_now
from .http_client import HttpClient
from .models import Item, SourceKind

logger = logging.getLogger(__name__)

TODOIST_API_URL = "https://api.todoist.com/api/v1"
TASK_FILTER = "today | overdue | tomorrow"


def task_from_api(raw: Dict[str, Any], now: datetime, tz: tzinfo) -> Item:
    """
    Convert one Todoist task payload into an Item.

    Args:
        raw: Task object from the API. Only ``id``, ``content`` and
            ``due.date`` are used.
        now: The fetch instant the bucket flags are computed against.
        tz: Local timezone for date-only and naive due values.
    """
    due_info = raw.get("due") or {}
    due = parse_due(due_info.get("date"), tz)
    is_overdue, is_today, is_tomorrow = classify(due, now, tz)
    return Item(
        id=str(raw["id"]),
        content=raw.get("content", ""),
        source=SourceKind.TASK_TRACKER,
        actionable=True,
        due=due,
        is_overdue=is_overdue,
        is_today=is_today,
        is_tomorrow=is_tomorrow,
        display_time=format_due_display(due, is_overdue, now, tz),
    )


class TodoistClient(HttpClient):
    """Todoist API client."""

    def __init__(self, api_token: str, tz: Optional[tzinfo] = None,
                 base_url: str = TODOIST_API_URL, session: Optional[requests.Session] = None):
        super().__init__(
            "Todoist",
            headers={"Authorization": f"Bearer {api_token}"},
            session=session,
        )
        self.base_url = base_url.rstrip("/")
        self.tz = tz or local_timezone()

    def fetch_tasks(self, now: Optional[datetime] = None) -> List[Item]:
        """
        Fetch every task matching today | overdue | tomorrow.

        Follows ``next_cursor`` until the server stops returning one.

        Returns:
            Actionable task-tracker items, in API order.
        """
        now = now or utc_now()
        url = f"{self.base_url}/tasks/filter"
        items: List[Item] = []
        cursor: Optional[str] = None
        pages = 0

        while True:
            params = {"query": TASK_FILTER}
            if cursor:
                params["cursor"] = cursor
            data = self.request_json("GET", url, params=params)
            pages += 1
            for raw in data.get("results") or []:
                items.append(task_from_api(raw, now, self.tz))
            cursor = data.get("next_cursor")
            if not cursor:
                break

        logger.info(f"Fetched {len(items)} Todoist tasks across {pages} page(s)")
        return items

    def complete_task(self, task_id: str) -> None:
        """Close (complete) a task."""
        self.request("POST", f"{self.base_url}/tasks/{task_id}/close")
        logger.info(f"Completed Todoist task {task_id}")

    def update_due_datetime(self, task_id: str, due_datetime: str) -> None:
        """
        Move a task's due time.

        Args:
            task_id: Todoist task id.
            due_datetime: UTC timestamp formatted "YYYY-MM-DDTHH:MM:SSZ".
        """
        self.request("POST", f"{self.base_url}/tasks/{task_id}", json={"due_datetime": due_datetime})
        logger.info(f"Moved Todoist task {task_id} to {due_datetime}")
