from datetime import datetime, timezone

import pytest
import requests

from todo_tray.errors import FetchError
from todo_tray.models import SourceKind
from todo_tray.todoist_client import TASK_FILTER, TodoistClient, task_from_api

UTC = timezone.utc


def test_task_from_api_date_only_due():
    raw = {"id": 123, "content": "Pay rent", "due": {"date": "2026-02-24"}}

    before = task_from_api(raw, datetime(2026, 2, 24, 12, 0, tzinfo=UTC), UTC)
    after = task_from_api(raw, datetime(2026, 2, 25, 0, 0, 1, tzinfo=UTC), UTC)

    assert before.id == "123"
    assert before.source is SourceKind.TASK_TRACKER
    assert before.actionable
    assert before.due == datetime(2026, 2, 24, 23, 59, 59, tzinfo=UTC)
    assert (before.is_overdue, before.is_today) == (False, True)
    assert after.is_overdue
    assert not after.is_today


def test_task_without_due_has_no_flags():
    item = task_from_api({"id": "9", "content": "Someday"}, datetime(2026, 2, 24, tzinfo=UTC), UTC)
    assert item.due is None
    assert (item.is_overdue, item.is_today, item.is_tomorrow) == (False, False, False)
    assert item.display_time == "no due date"


def test_fetch_tasks_follows_cursor(fake_session, fake_response):
    session = fake_session(
        fake_response(json_data={
            "results": [{"id": "1", "content": "First", "due": {"date": "2026-02-24"}}],
            "next_cursor": "abc",
        }),
        fake_response(json_data={
            "results": [{"id": "2", "content": "Second", "due": {"date": "2026-02-25"}}],
            "next_cursor": None,
        }),
    )
    client = TodoistClient("secret", tz=UTC, session=session)

    items = client.fetch_tasks(datetime(2026, 2, 24, 12, 0, tzinfo=UTC))

    assert [i.content for i in items] == ["First", "Second"]
    assert items[1].is_tomorrow
    assert session.request.call_count == 2
    first_call, second_call = session.request.call_args_list
    assert first_call[0] == ("GET", "https://api.todoist.com/api/v1/tasks/filter")
    assert first_call[1]["params"] == {"query": TASK_FILTER}
    assert second_call[1]["params"] == {"query": TASK_FILTER, "cursor": "abc"}
    assert session.headers["Authorization"] == "Bearer secret"


def test_complete_task(fake_session, fake_response):
    session = fake_session(fake_response(status=204))
    client = TodoistClient("secret", tz=UTC, session=session)

    client.complete_task("42")

    assert session.request.call_args[0] == ("POST", "https://api.todoist.com/api/v1/tasks/42/close")


def test_update_due_datetime(fake_session, fake_response):
    session = fake_session(fake_response(json_data={"id": "42"}))
    client = TodoistClient("secret", tz=UTC, session=session)

    client.update_due_datetime("42", "2026-02-25T09:00:00Z")

    args, kwargs = session.request.call_args
    assert args == ("POST", "https://api.todoist.com/api/v1/tasks/42")
    assert kwargs["json"] == {"due_datetime": "2026-02-25T09:00:00Z"}


def test_http_error_is_fetch_error(fake_session, fake_response):
    session = fake_session(fake_response(status=500, text="Internal error"))
    client = TodoistClient("secret", tz=UTC, session=session)

    with pytest.raises(FetchError) as excinfo:
        client.fetch_tasks()

    assert excinfo.value.status == 500
    assert excinfo.value.body == "Internal error"
    assert "Todoist" in str(excinfo.value)


def test_timeout_is_fetch_error(fake_session):
    session = fake_session(requests.Timeout("read timed out"))
    client = TodoistClient("secret", tz=UTC, session=session)

    with pytest.raises(FetchError) as excinfo:
        client.fetch_tasks()

    assert excinfo.value.status is None
    assert "timed out" in str(excinfo.value)


def test_invalid_json_is_fetch_error(fake_session, fake_response):
    session = fake_session(fake_response(text="<html>"))
    client = TodoistClient("secret", tz=UTC, session=session)

    with pytest.raises(FetchError):
        client.fetch_tasks()
