"""Refresh/command engine.

Owns the single ``AppState`` snapshot. Network fetches run concurrently on
a worker pool; the state lock is only held to read a copy or to apply
already-computed results, never across network I/O. Observers get a
private clone after the lock is released.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from datetime import datetime, timedelta, tzinfo
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional, Sequence

from .aggregator import find_item, group_items, merge_single_section, non_empty
from .autostart import Autostart
from .calendar_client import CalendarClient
from .dates import format_rfc3339_utc, local_timezone, parse_duration_label, utc_now
from .errors import ConfigError, NotFoundError, TodoTrayError, UnexpectedError
from .github_client import GithubClient
from .linear_client import LinearClient
from .models import AppState, Item, NotificationSection, SourceKind
from .observer import Observer
from .scheduler import DEFAULT_REFRESH_INTERVAL, RefreshScheduler
from .todoist_client import TodoistClient

if TYPE_CHECKING:
    from .config import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_SNOOZE_DURATIONS = ("30m", "1d")
TASKS_KEY = "tasks"


def _github_key(account_name: str) -> str:
    return f"github:{account_name}"


class Engine:
    """
    Aggregates every configured source into one snapshot and serves commands.

    Create one per process with ``Engine.from_config`` (or directly with
    clients), call ``start()`` to begin periodic refreshes and
    ``shutdown()`` on exit.
    """

    def __init__(
        self,
        todoist: TodoistClient,
        observer: Observer,
        linear: Optional[LinearClient] = None,
        github_clients: Sequence[GithubClient] = (),
        calendar_clients: Sequence[CalendarClient] = (),
        autostart: Optional[Autostart] = None,
        snooze_durations: Sequence[str] = DEFAULT_SNOOZE_DURATIONS,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        max_workers: Optional[int] = None,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.todoist = todoist
        self.linear = linear
        self.github_clients = list(github_clients)
        self.calendar_clients = list(calendar_clients)
        self.observer = observer
        self.autostart = autostart
        self.tz = tz or local_timezone()
        self._clock = clock

        self._snooze: Dict[str, timedelta] = {}
        for raw_label in snooze_durations or DEFAULT_SNOOZE_DURATIONS:
            label = raw_label.strip()
            try:
                self._snooze[label] = parse_duration_label(label)
            except ValueError as e:
                raise ConfigError(str(e)) from e

        self._lock = threading.Lock()
        # Bumped on every commit of a section; see _commit_full_refresh.
        self._versions: Dict[str, int] = {}
        self._state = AppState(
            is_loading=True,
            snooze_durations=tuple(self._snooze),
            autostart_enabled=self._autostart_enabled(),
        )
        # One worker per adapter: every fetch of a refresh is in flight at once.
        workers = max_workers or (2 + len(self.github_clients) + len(self.calendar_clients))
        self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="todo-tray-fetch")
        self._scheduler = RefreshScheduler(self.refresh, refresh_interval)

    @classmethod
    def from_config(cls, config: "AppConfig", observer: Observer,
                    autostart: Optional[Autostart] = None) -> "Engine":
        """Build every client the configuration asks for."""
        tz = config.timezone or local_timezone()
        linear = LinearClient(config.linear_api_token, tz=tz) if config.linear_api_token else None
        return cls(
            todoist=TodoistClient(config.todoist_api_token, tz=tz),
            observer=observer,
            linear=linear,
            github_clients=[GithubClient(a.name, a.token, tz=tz) for a in config.github_accounts],
            calendar_clients=[CalendarClient(f.name, f.ical_url, tz=tz) for f in config.calendar_feeds],
            autostart=autostart,
            snooze_durations=config.snooze_durations,
            refresh_interval=config.refresh_interval,
            tz=tz,
        )

    # ---------- lifecycle ----------

    def start(self) -> None:
        """Refresh now, then every refresh interval, in the background."""
        self._scheduler.start()

    def shutdown(self) -> None:
        self._scheduler.stop()
        self._pool.shutdown(wait=True)
        for client in [self.todoist, self.linear, *self.github_clients, *self.calendar_clients]:
            if client is not None:
                client.close()
        logger.info("Engine shut down")

    # ---------- queries ----------

    def get_state(self) -> AppState:
        with self._lock:
            return self._state.clone()

    def is_autostart_enabled(self) -> bool:
        return self._autostart_enabled()

    # ---------- full refresh ----------

    def refresh(self) -> None:
        """
        Fetch every source concurrently and replace the snapshot.

        If any source fails nothing is merged: cached data stays, the error
        goes into ``error_message`` and is raised to the caller.
        """
        with self._lock:
            started_versions = dict(self._versions)
        now = self._clock()
        logger.info("Starting full refresh")

        todoist_future = self._pool.submit(self.todoist.fetch_tasks, now)
        linear_future = self._pool.submit(self.linear.fetch_in_progress_issues, now) if self.linear else None
        github_futures = [self._pool.submit(c.fetch_notifications, now) for c in self.github_clients]
        calendar_futures = [self._pool.submit(c.fetch_today_events, now) for c in self.calendar_clients]

        ordered: List[Future] = [todoist_future]
        if linear_future is not None:
            ordered.append(linear_future)
        ordered.extend(github_futures)
        ordered.extend(calendar_futures)
        wait(ordered)

        try:
            for future in ordered:
                future.result()
        except TodoTrayError as e:
            self._record_failure(e)
            raise
        except Exception as e:
            error = UnexpectedError(f"Refresh failed: {e}")
            self._record_failure(error)
            raise error from e

        items: List[Item] = list(todoist_future.result())
        if linear_future is not None:
            items.extend(linear_future.result())

        snapshot = self._commit_full_refresh(
            started_versions,
            items,
            [f.result() for f in github_futures],
            [f.result() for f in calendar_futures],
            now,
        )
        logger.info(
            f"Full refresh complete: {snapshot.overdue_count} overdue, {snapshot.today_count} today, "
            f"{snapshot.tomorrow_count} tomorrow, {snapshot.in_progress_count} in progress"
        )
        self._notify_state(snapshot)

    def _commit_full_refresh(self, started_versions: Dict[str, int], items: List[Item],
                             github_sections: List[NotificationSection], calendar_sections: list,
                             now: datetime) -> AppState:
        grouped = group_items(items)
        with self._lock:
            state = self._state

            # A narrow refresh that committed while we were fetching has
            # newer data for its section than we do: keep it.
            if self._version_moved(TASKS_KEY, started_versions):
                logger.info("Keeping Todoist buckets from a newer narrow refresh")
                tasks = state.tasks
                state.apply_tasks(group_items([
                    *tasks.overdue, *tasks.today, *tasks.tomorrow, *grouped.in_progress,
                ]))
            else:
                state.apply_tasks(grouped)
            self._bump(TASKS_KEY)

            current_by_name = {s.account_name: s for s in state.github_notifications}
            merged: List[NotificationSection] = []
            for client, section in zip(self.github_clients, github_sections):
                key = _github_key(client.account_name)
                if self._version_moved(key, started_versions):
                    kept = current_by_name.get(client.account_name)
                    if kept is not None:
                        merged.append(kept)
                    continue
                merged.append(section)
                self._bump(key)
            state.apply_notifications(non_empty(merged))
            state.apply_calendar(non_empty(calendar_sections))

            state.is_loading = False
            state.error_message = None
            state.last_refreshed_at = now
            return state.clone()

    # ---------- commands ----------

    def complete(self, item_id: str) -> None:
        """
        Complete a task upstream, then refresh the task buckets.

        Raises:
            NotFoundError: No item with this id in the snapshot.
            UnexpectedError: The item comes from a read-only source.
            NetworkError: The completion call or the follow-up refresh failed.
        """
        with self._reporting_errors("Complete"):
            with self._lock:
                item = find_item(self._state.tasks, item_id)
            if item is None:
                raise NotFoundError(f"Task not found: {item_id}")
            if not item.actionable:
                raise UnexpectedError("This task is read-only and cannot be completed from Todo Tray.")

            self.todoist.complete_task(item.id)
            self._notify_completed(item.content)
            self._refresh_tasks()

    def snooze(self, item_id: str, duration_label: str) -> None:
        """
        Push a task's due time back by one of the configured durations.

        Raises:
            UnexpectedError: Unknown duration label or unusable due date.
            NotFoundError: No task-tracker item with a due date has this id.
            NetworkError: The update call or the follow-up refresh failed.
        """
        with self._reporting_errors("Snooze"):
            delta = self._snooze.get((duration_label or "").strip())
            if delta is None:
                raise UnexpectedError(f"Unknown snooze duration: {duration_label}")

            with self._lock:
                tasks = self._state.tasks
                item = next(
                    (
                        i for i in (*tasks.overdue, *tasks.today, *tasks.tomorrow)
                        if i.id == item_id and i.source is SourceKind.TASK_TRACKER
                    ),
                    None,
                )
            if item is None or item.due is None:
                raise NotFoundError("Todoist task with due date not found")
            if item.due.tzinfo is None:
                raise UnexpectedError(f"Invalid due datetime on task {item_id}")

            new_due = item.due + delta
            self.todoist.update_due_datetime(item.id, format_rfc3339_utc(new_due))
            self._refresh_tasks()

    def resolve_notification(self, account_name: str, thread_id: str) -> None:
        """
        Mark a GitHub thread read and refresh only that account's section.

        Raises:
            NotFoundError: No GitHub account with this name is configured.
            NetworkError: The API call or the follow-up refresh failed.
        """
        with self._reporting_errors("Resolve notification"):
            client = self._github_client(account_name)
            client.mark_read(thread_id)
            self._refresh_github_account(client)

    def toggle_autostart(self) -> bool:
        """
        Flip launch-at-login.

        Returns:
            The new setting.
        """
        with self._reporting_errors("Toggle autostart"):
            if self.autostart is None:
                raise UnexpectedError("Autostart is not available on this platform")
            try:
                if self.autostart.is_enabled():
                    self.autostart.disable()
                    enabled = False
                else:
                    self.autostart.enable()
                    enabled = True
            except OSError as e:
                raise UnexpectedError(f"Could not change autostart: {e}") from e

            with self._lock:
                self._state.autostart_enabled = enabled
                snapshot = self._state.clone()
            self._notify_state(snapshot)
            return enabled

    # ---------- narrow refreshes ----------

    def _refresh_tasks(self) -> None:
        """Re-fetch Todoist only; cached in-progress issues are kept as they are."""
        now = self._clock()
        todoist_items = self.todoist.fetch_tasks(now)
        with self._lock:
            state = self._state
            state.apply_tasks(group_items([*todoist_items, *state.tasks.in_progress]))
            self._bump(TASKS_KEY)
            state.is_loading = False
            state.error_message = None
            snapshot = state.clone()
        logger.info(f"Task refresh complete: {snapshot.overdue_count + snapshot.today_count + snapshot.tomorrow_count} Todoist task(s)")
        self._notify_state(snapshot)

    def _refresh_github_account(self, client: GithubClient) -> None:
        section = client.fetch_notifications(self._clock())
        with self._lock:
            state = self._state
            state.apply_notifications(merge_single_section(state.github_notifications, section))
            self._bump(_github_key(client.account_name))
            state.is_loading = False
            state.error_message = None
            snapshot = state.clone()
        self._notify_state(snapshot)

    # ---------- helpers ----------

    def _github_client(self, account_name: str) -> GithubClient:
        for client in self.github_clients:
            if client.account_name == account_name:
                return client
        raise NotFoundError(f"GitHub account not found: {account_name}")

    def _autostart_enabled(self) -> bool:
        if self.autostart is None:
            return False
        try:
            return self.autostart.is_enabled()
        except OSError as e:
            logger.warning(f"Could not read autostart registration: {e}")
            return False

    def _bump(self, key: str) -> None:
        # Caller holds self._lock.
        self._versions[key] = self._versions.get(key, 0) + 1

    def _version_moved(self, key: str, started_versions: Dict[str, int]) -> bool:
        return self._versions.get(key, 0) != started_versions.get(key, 0)

    def _record_failure(self, error: TodoTrayError) -> None:
        logger.error(f"Refresh failed, keeping cached data: {error}")
        with self._lock:
            self._state.is_loading = False
            self._state.error_message = str(error)
            snapshot = self._state.clone()
        self._notify_state(snapshot)

    @contextmanager
    def _reporting_errors(self, action: str) -> Iterator[None]:
        """Log command failures, tell the observer, and re-raise them typed."""
        try:
            yield
        except TodoTrayError as e:
            logger.error(f"{action} failed: {e}")
            self._notify_error(str(e))
            raise
        except Exception as e:
            logger.exception(f"{action} failed unexpectedly")
            error = UnexpectedError(str(e))
            self._notify_error(str(error))
            raise error from e

    def _notify_state(self, snapshot: AppState) -> None:
        try:
            self.observer.on_state_changed(snapshot)
        except Exception:
            logger.exception("Observer failed handling state change")

    def _notify_completed(self, task_name: str) -> None:
        try:
            self.observer.on_task_completed(task_name)
        except Exception:
            logger.exception("Observer failed handling task completion")

    def _notify_error(self, message: str) -> None:
        try:
            self.observer.on_error(message)
        except Exception:
            logger.exception("Observer failed handling error")
