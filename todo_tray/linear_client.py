"""Linear GraphQL client for in-progress issues assigned to the viewer."""

import logging
from datetime import datetime, tzinfo
from typing import Any, Dict, List, Optional

import requests

from .dates import classify, format_due_display, local_timezone, parse_due, utc_now
from .errors import FetchError
from .http_client import HttpClient
from .models import Item, SourceKind

logger = logging.getLogger(__name__)

LINEAR_API_URL = "https://api.linear.app/graphql"
ASSIGNED_ISSUES_QUERY = """
query AssignedIssues($after: String) {
  viewer {
    assignedIssues(first: 50, after: $after) {
      nodes {
        id
        identifier
        title
        url
        dueDate
        state {
          name
          type
        }
      }
      pageInfo {
        hasNextPage
        endCursor
      }
    }
  }
}
"""


def is_in_progress(issue: Dict[str, Any]) -> bool:
    """
    Match the started workflow state.

    Checks both the state type code and the display name since teams
    rename their states.
    """
    state = issue.get("state") or {}
    kind = (state.get("type") or "").lower()
    name = (state.get("name") or "").lower()
    return kind == "started" or name == "in progress"


def issue_from_api(raw: Dict[str, Any], now: datetime, tz: tzinfo) -> Item:
    """Convert one issue node into a read-only Item."""
    due = parse_due(raw.get("dueDate"), tz)
    is_overdue, is_today, is_tomorrow = classify(due, now, tz)
    identifier = raw.get("identifier") or ""
    title = raw.get("title") or ""
    return Item(
        id=str(raw["id"]),
        content=f"{identifier} {title}".strip(),
        source=SourceKind.ISSUE_TRACKER,
        actionable=False,
        due=due,
        is_overdue=is_overdue,
        is_today=is_today,
        is_tomorrow=is_tomorrow,
        display_time=format_due_display(due, is_overdue, now, tz),
        url=raw.get("url"),
    )


class LinearClient(HttpClient):
    """Linear API client."""

    def __init__(self, api_token: str, tz: Optional[tzinfo] = None,
                 api_url: str = LINEAR_API_URL, session: Optional[requests.Session] = None):
        # Linear personal API keys go in the header as-is, without "Bearer".
        super().__init__("Linear", headers={"Authorization": api_token}, session=session)
        self.api_url = api_url
        self.tz = tz or local_timezone()

    def fetch_in_progress_issues(self, now: Optional[datetime] = None) -> List[Item]:
        """
        Fetch assigned issues in the started state.

        Returns:
            Non-actionable issue-tracker items.

        Raises:
            FetchError: On HTTP failure, GraphQL errors or a missing payload.
        """
        now = now or utc_now()
        items: List[Item] = []
        after: Optional[str] = None

        while True:
            payload = {"query": ASSIGNED_ISSUES_QUERY, "variables": {"after": after}}
            data = self.request_json("POST", self.api_url, json=payload)

            errors = data.get("errors")
            if errors:
                message = "; ".join(str(e.get("message", e)) for e in errors)
                raise FetchError(self.source_name, f"GraphQL error: {message}")
            if not data.get("data"):
                raise FetchError(self.source_name, "response was missing data payload")

            try:
                connection = data["data"]["viewer"]["assignedIssues"]
                nodes = connection["nodes"]
                page_info = connection["pageInfo"]
            except (KeyError, TypeError) as e:
                raise FetchError(self.source_name, f"unexpected response shape: missing {e}") from e

            items.extend(issue_from_api(node, now, self.tz) for node in nodes if is_in_progress(node))

            if not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")
            if not after:
                break

        logger.info(f"Fetched {len(items)} in-progress Linear issues")
        return items
