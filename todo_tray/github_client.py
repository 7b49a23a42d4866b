"""GitHub notifications client, one instance per configured account."""

import logging
from datetime import datetime, tzinfo
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from .dates import format_relative, local_timezone, parse_timestamp, utc_now
from .http_client import HttpClient
from .models import Notification, NotificationSection

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_WEB_URL = "https://github.com"
GITHUB_API_VERSION = "2022-11-28"
USER_AGENT = "todo-tray"
PAGE_SIZE = 50
MAX_PAGES = 10


def subject_web_url(api_url: Optional[str]) -> Optional[str]:
    """
    Map a notification subject's API URL to its page on github.com.

    Handles issues, pull requests and releases. Returns None for anything
    else (commits, discussions, check suites...).
    """
    if not api_url:
        return None
    parts = [p for p in urlparse(api_url).path.split("/") if p]
    try:
        repos_index = parts.index("repos")
    except ValueError:
        return None
    rest = parts[repos_index + 1:]
    if len(rest) < 3:
        return None

    owner, repo, kind = rest[0], rest[1], rest[2]
    number = rest[3] if len(rest) > 3 else None
    base = f"{GITHUB_WEB_URL}/{owner}/{repo}"
    if kind == "issues" and number:
        return f"{base}/issues/{number}"
    if kind == "pulls" and number:
        return f"{base}/pull/{number}"
    if kind == "releases":
        return f"{base}/releases"
    return None


def inbox_thread_url(thread_id: str) -> str:
    return f"{GITHUB_WEB_URL}/notifications?query=thread%3A{thread_id}"


def humanize_reason(reason: str) -> str:
    """'review_requested' -> 'Review_requested'; empty -> 'notification'."""
    if not reason:
        return "notification"
    return reason[0].upper() + reason[1:]


def notification_from_api(raw: Dict[str, Any], now: datetime, tz: tzinfo) -> Notification:
    subject = raw.get("subject") or {}
    repository = raw.get("repository") or {}
    thread_id = str(raw["id"])
    updated_at = parse_timestamp(raw.get("updated_at"))
    return Notification(
        thread_id=thread_id,
        title=subject.get("title", ""),
        repository=repository.get("full_name", ""),
        reason=humanize_reason(raw.get("reason", "")),
        web_url=subject_web_url(subject.get("url")) or inbox_thread_url(thread_id),
        updated_at=updated_at,
        display_time=format_relative(updated_at, now, tz),
    )


class GithubClient(HttpClient):
    """GitHub API client for one account."""

    def __init__(self, account_name: str, api_token: str, tz: Optional[tzinfo] = None,
                 api_url: str = GITHUB_API_URL, session: Optional[requests.Session] = None):
        super().__init__(
            account_name,
            headers={
                "Authorization": f"Bearer {api_token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "User-Agent": USER_AGENT,
            },
            session=session,
        )
        self.account_name = account_name
        self.api_url = api_url.rstrip("/")
        self.tz = tz or local_timezone()

    def fetch_notifications(self, now: Optional[datetime] = None) -> NotificationSection:
        """
        Fetch unread notifications for this account.

        Pages through ``/notifications`` until a short page comes back,
        stopping after MAX_PAGES regardless.
        """
        now = now or utc_now()
        url = f"{self.api_url}/notifications"
        notifications: List[Notification] = []

        for page in range(1, MAX_PAGES + 1):
            params = {
                "all": "false",
                "participating": "false",
                "per_page": str(PAGE_SIZE),
                "page": str(page),
            }
            page_items = self.request_json("GET", url, params=params)
            notifications.extend(
                notification_from_api(raw, now, self.tz)
                for raw in page_items
                if raw.get("unread")
            )
            if len(page_items) < PAGE_SIZE:
                break
        else:
            logger.warning(f"GitHub account '{self.account_name}' hit the {MAX_PAGES}-page limit")

        logger.info(f"Fetched {len(notifications)} unread GitHub notifications for '{self.account_name}'")
        return NotificationSection(account_name=self.account_name, notifications=tuple(notifications))

    def mark_read(self, thread_id: str) -> None:
        """Mark one notification thread as read."""
        self.request("PATCH", f"{self.api_url}/notifications/threads/{thread_id}")
        logger.info(f"Marked GitHub thread {thread_id} read for '{self.account_name}'")
