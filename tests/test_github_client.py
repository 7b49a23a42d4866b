from datetime import datetime, timezone

import pytest

from todo_tray.errors import FetchError
from todo_tray.github_client import (
    MAX_PAGES,
    PAGE_SIZE,
    GithubClient,
    humanize_reason,
    notification_from_api,
    subject_web_url,
)

UTC = timezone.utc
NOW = datetime(2026, 2, 24, 12, 0, tzinfo=UTC)


def _thread(thread_id, unread=True, subject_url=None):
    return {
        "id": str(thread_id),
        "unread": unread,
        "reason": "review_requested",
        "updated_at": "2026-02-24T10:00:00Z",
        "subject": {"title": f"Thread {thread_id}", "url": subject_url},
        "repository": {"full_name": "octo/repo"},
    }


def test_subject_web_url():
    api = "https://api.github.com/repos/octo/repo"
    assert subject_web_url(f"{api}/pulls/456") == "https://github.com/octo/repo/pull/456"
    assert subject_web_url(f"{api}/issues/12") == "https://github.com/octo/repo/issues/12"
    assert subject_web_url(f"{api}/releases/7") == "https://github.com/octo/repo/releases"
    assert subject_web_url(f"{api}/commits/abc123") is None
    assert subject_web_url(None) is None


def test_notification_falls_back_to_inbox_link():
    raw = _thread(99, subject_url="https://api.github.com/repos/octo/repo/commits/abc123")
    notification = notification_from_api(raw, NOW, UTC)

    assert notification.web_url == "https://github.com/notifications?query=thread%3A99"
    assert notification.reason == "Review_requested"
    assert notification.repository == "octo/repo"
    assert notification.display_time == "2h ago"


def test_humanize_reason():
    assert humanize_reason("mention") == "Mention"
    assert humanize_reason("") == "notification"


def test_pagination_stops_on_short_page(fake_session, fake_response):
    pages = [
        [_thread(i) for i in range(PAGE_SIZE)],
        [_thread(PAGE_SIZE + i) for i in range(PAGE_SIZE)],
        [_thread(2 * PAGE_SIZE + i) for i in range(10)],
    ]
    session = fake_session(*(fake_response(json_data=page) for page in pages))
    client = GithubClient("work", "ghp_token", tz=UTC, session=session)

    section = client.fetch_notifications(NOW)

    assert session.request.call_count == 3
    assert len(section.notifications) == 2 * PAGE_SIZE + 10
    assert section.account_name == "work"
    assert [c[1]["params"]["page"] for c in session.request.call_args_list] == ["1", "2", "3"]


def test_pagination_capped(fake_session, fake_response):
    full_page = [_thread(i) for i in range(PAGE_SIZE)]
    session = fake_session(*(fake_response(json_data=full_page) for _ in range(MAX_PAGES + 1)))
    client = GithubClient("work", "ghp_token", tz=UTC, session=session)

    client.fetch_notifications(NOW)

    assert session.request.call_count == MAX_PAGES


def test_read_threads_are_skipped(fake_session, fake_response):
    session = fake_session(fake_response(json_data=[_thread(1), _thread(2, unread=False)]))
    client = GithubClient("work", "ghp_token", tz=UTC, session=session)

    section = client.fetch_notifications(NOW)

    assert [n.thread_id for n in section.notifications] == ["1"]


def test_request_headers(fake_session, fake_response):
    session = fake_session(fake_response(json_data=[]))
    client = GithubClient("work", "ghp_token", tz=UTC, session=session)

    client.fetch_notifications(NOW)

    assert session.headers["Authorization"] == "Bearer ghp_token"
    assert session.headers["Accept"] == "application/vnd.github+json"
    assert session.headers["X-GitHub-Api-Version"] == "2022-11-28"
    assert session.headers["User-Agent"] == "todo-tray"


def test_mark_read(fake_session, fake_response):
    session = fake_session(fake_response(status=205))
    client = GithubClient("work", "ghp_token", tz=UTC, session=session)

    client.mark_read("77")

    assert session.request.call_args[0] == ("PATCH", "https://api.github.com/notifications/threads/77")


def test_unauthorized_is_fetch_error(fake_session, fake_response):
    session = fake_session(fake_response(status=401, text='{"message": "Bad credentials"}'))
    client = GithubClient("work", "bad", tz=UTC, session=session)

    with pytest.raises(FetchError) as excinfo:
        client.fetch_notifications(NOW)

    assert excinfo.value.status == 401
    assert excinfo.value.source == "work"


def test_updated_at_is_a_plain_timestamp():
    raw = _thread(5)
    raw["updated_at"] = "2026-02-24"

    notification = notification_from_api(raw, NOW, UTC)

    assert notification.updated_at == datetime(2026, 2, 24, 0, 0, tzinfo=UTC)
    assert notification.display_time == "12h ago"
