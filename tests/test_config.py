import os
from zoneinfo import ZoneInfo

import pytest

from todo_tray.config import load_config
from todo_tray.errors import ConfigError

_PREFIXES = (
    "TODOIST_", "LINEAR_", "GITHUB_", "CALENDAR_", "SNOOZE_", "AUTOSTART",
    "REFRESH_INTERVAL", "TODO_TRAY_TIMEZONE", "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith(_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("TODOIST_API_TOKEN", "todoist-token")


def test_minimal_config_defaults():
    config = load_config()

    assert config.todoist_api_token == "todoist-token"
    assert config.linear_api_token is None
    assert config.github_accounts == []
    assert config.calendar_feeds == []
    assert config.snooze_durations == ["30m", "1d"]
    assert config.autostart is False
    assert config.refresh_interval == 300
    assert config.timezone is None
    assert not hasattr(config, "log_level")


def test_missing_todoist_token(monkeypatch):
    monkeypatch.delenv("TODOIST_API_TOKEN")
    with pytest.raises(ConfigError, match="TODOIST_API_TOKEN"):
        load_config()


def test_placeholder_todoist_token(monkeypatch):
    monkeypatch.setenv("TODOIST_API_TOKEN", "YOUR_TOKEN_HERE")
    with pytest.raises(ConfigError):
        load_config()


def test_github_list_format(monkeypatch):
    monkeypatch.setenv("GITHUB_ACCOUNTS", "work, personal")
    monkeypatch.setenv("GITHUB_TOKEN_work", "ghp_work")
    monkeypatch.setenv("GITHUB_TOKEN_PERSONAL", "ghp_personal")

    config = load_config()

    assert [(a.name, a.token) for a in config.github_accounts] == [
        ("work", "ghp_work"),
        ("personal", "ghp_personal"),
    ]


def test_github_list_format_missing_token(monkeypatch):
    monkeypatch.setenv("GITHUB_ACCOUNTS", "work")
    with pytest.raises(ConfigError, match="GITHUB_TOKEN_work"):
        load_config()


def test_calendar_numbered_format(monkeypatch):
    monkeypatch.setenv("CALENDAR_NAME_1", "Work")
    monkeypatch.setenv("CALENDAR_URL_1", "https://calendar.example.com/work.ics")
    monkeypatch.setenv("CALENDAR_NAME_2", "Home")
    monkeypatch.setenv("CALENDAR_URL_2", "https://calendar.example.com/home.ics")

    config = load_config()

    assert [f.name for f in config.calendar_feeds] == ["Work", "Home"]
    assert config.calendar_feeds[1].ical_url == "https://calendar.example.com/home.ics"


def test_numbered_entry_with_blank_url(monkeypatch):
    monkeypatch.setenv("CALENDAR_NAME_1", "Work")
    monkeypatch.setenv("CALENDAR_URL_1", "  ")
    with pytest.raises(ConfigError):
        load_config()


def test_duplicate_names_are_rejected(monkeypatch):
    monkeypatch.setenv("GITHUB_ACCOUNTS", "Work,work")
    monkeypatch.setenv("GITHUB_TOKEN_Work", "a")
    monkeypatch.setenv("GITHUB_TOKEN_work", "b")
    with pytest.raises(ConfigError, match="Duplicate"):
        load_config()


def test_snooze_durations(monkeypatch):
    monkeypatch.setenv("SNOOZE_DURATIONS", "15m, 2h,3d")
    assert load_config().snooze_durations == ["15m", "2h", "3d"]

    monkeypatch.setenv("SNOOZE_DURATIONS", "15m,later")
    with pytest.raises(ConfigError, match="later"):
        load_config()


def test_refresh_interval_validation(monkeypatch):
    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "60")
    assert load_config().refresh_interval == 60

    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "soon")
    with pytest.raises(ConfigError):
        load_config()

    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "0")
    with pytest.raises(ConfigError):
        load_config()


def test_timezone_and_flags(monkeypatch):
    monkeypatch.setenv("TODO_TRAY_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("AUTOSTART", "TRUE")
    monkeypatch.setenv("LINEAR_API_TOKEN", "lin_key")

    config = load_config()

    assert config.timezone == ZoneInfo("Europe/Berlin")
    assert config.autostart is True
    assert config.linear_api_token == "lin_key"

    monkeypatch.setenv("TODO_TRAY_TIMEZONE", "Nowhere/Special")
    with pytest.raises(ConfigError):
        load_config()
