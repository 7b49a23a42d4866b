"""Configuration management."""

import os
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from .dates import load_timezone, parse_duration_label
from .errors import ConfigError
from .scheduler import DEFAULT_REFRESH_INTERVAL

load_dotenv()

PLACEHOLDER_TOKEN = "YOUR_TOKEN_HERE"
DEFAULT_SNOOZE_DURATIONS = ["30m", "1d"]


@dataclass
class GithubAccountConfig:
    """One GitHub account whose notifications are shown."""
    name: str
    token: str


@dataclass
class CalendarFeedConfig:
    """One iCalendar feed URL (usually a private Google Calendar link)."""
    name: str
    ical_url: str


@dataclass
class AppConfig:
    """Complete application configuration."""
    todoist_api_token: str
    linear_api_token: Optional[str] = None
    github_accounts: List[GithubAccountConfig] = field(default_factory=list)
    calendar_feeds: List[CalendarFeedConfig] = field(default_factory=list)
    snooze_durations: List[str] = field(default_factory=lambda: list(DEFAULT_SNOOZE_DURATIONS))
    autostart: bool = False
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    timezone: Optional[tzinfo] = None


def _parse_list_env(key: str, default: List[str]) -> List[str]:
    """Parse comma-separated list from environment variable."""
    value = os.getenv(key, "")
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


def _named_secret(prefix: str, name: str) -> Optional[str]:
    """Look up PREFIX_<name>, then PREFIX_<NAME>."""
    return os.getenv(f"{prefix}_{name}") or os.getenv(f"{prefix}_{name.upper()}")


def _load_named_pairs(list_key: str, value_prefix: str, name_prefix: str) -> List[Tuple[str, str]]:
    """
    Read (name, value) pairs in either supported format.

    1. List format: GITHUB_ACCOUNTS=work,personal with GITHUB_TOKEN_work, ...
    2. Numbered format: GITHUB_NAME_1 / GITHUB_TOKEN_1, GITHUB_NAME_2 / ...

    Raises:
        ConfigError: A listed name has no value.
    """
    pairs = []
    names = _parse_list_env(list_key, [])
    if names:
        for name in names:
            value = _named_secret(value_prefix, name)
            if not value or not value.strip():
                raise ConfigError(f"Missing {value_prefix}_{name} for entry '{name}' in {list_key}")
            pairs.append((name, value.strip()))
        return pairs

    number = 1
    while True:
        name = os.getenv(f"{name_prefix}_{number}")
        value = os.getenv(f"{value_prefix}_{number}")
        if name is None and value is None:
            break
        if not (name or "").strip():
            raise ConfigError(f"{name_prefix}_{number} must not be empty")
        if not (value or "").strip():
            raise ConfigError(f"{value_prefix}_{number} must not be empty")
        pairs.append((name.strip(), value.strip()))
        number += 1
    return pairs


def _check_unique(kind: str, names: List[str]) -> None:
    seen = set()
    for name in names:
        key = name.lower()
        if key in seen:
            raise ConfigError(f"Duplicate {kind} name: {name}")
        seen.add(key)


def load_config() -> AppConfig:
    """
    Load configuration from environment variables (and a .env file).

    Raises:
        ConfigError: If required values are missing or any value is invalid.
    """
    todoist_api_token = (os.getenv("TODOIST_API_TOKEN") or "").strip()
    if not todoist_api_token:
        raise ConfigError("Missing required environment variable: TODOIST_API_TOKEN")
    if todoist_api_token == PLACEHOLDER_TOKEN:
        raise ConfigError("TODOIST_API_TOKEN is still the placeholder value; set your real API token")

    linear_api_token = (os.getenv("LINEAR_API_TOKEN") or "").strip() or None

    github_accounts = [
        GithubAccountConfig(name=name, token=token)
        for name, token in _load_named_pairs("GITHUB_ACCOUNTS", "GITHUB_TOKEN", "GITHUB_NAME")
    ]
    _check_unique("GitHub account", [a.name for a in github_accounts])

    calendar_feeds = [
        CalendarFeedConfig(name=name, ical_url=url)
        for name, url in _load_named_pairs("CALENDAR_FEEDS", "CALENDAR_URL", "CALENDAR_NAME")
    ]
    _check_unique("calendar feed", [f.name for f in calendar_feeds])

    snooze_durations = _parse_list_env("SNOOZE_DURATIONS", list(DEFAULT_SNOOZE_DURATIONS))
    for label in snooze_durations:
        try:
            parse_duration_label(label)
        except ValueError as e:
            raise ConfigError(f"Invalid SNOOZE_DURATIONS entry: {e}") from e
    _check_unique("snooze duration", snooze_durations)

    autostart = os.getenv("AUTOSTART", "false").strip().lower() == "true"

    interval_raw = os.getenv("REFRESH_INTERVAL_SECONDS", str(DEFAULT_REFRESH_INTERVAL))
    try:
        refresh_interval = int(interval_raw)
    except ValueError:
        raise ConfigError(f"REFRESH_INTERVAL_SECONDS must be an integer, got '{interval_raw}'")
    if refresh_interval <= 0:
        raise ConfigError(f"REFRESH_INTERVAL_SECONDS must be positive, got {refresh_interval}")

    timezone = None
    timezone_key = (os.getenv("TODO_TRAY_TIMEZONE") or "").strip()
    if timezone_key:
        try:
            timezone = load_timezone(timezone_key)
        except ValueError as e:
            raise ConfigError(f"Invalid TODO_TRAY_TIMEZONE: {e}") from e

    return AppConfig(
        todoist_api_token=todoist_api_token,
        linear_api_token=linear_api_token,
        github_accounts=github_accounts,
        calendar_feeds=calendar_feeds,
        snooze_durations=snooze_durations,
        autostart=autostart,
        refresh_interval=refresh_interval,
        timezone=timezone,
    )
