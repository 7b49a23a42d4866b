"""Main entry point for the todo tray agent."""

import argparse
import logging
import os
import sys
import threading
from typing import List, Optional

from .autostart import LaunchAgentAutostart, sync_autostart
from .config import AppConfig, load_config
from .engine import Engine
from .errors import TodoTrayError
from .models import AppState
from .observer import LoggingObserver

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


def _render_items(title: str, items: tuple, lines: List[str]) -> None:
    if not items:
        return
    lines.append(f"{title} ({len(items)})")
    for item in items:
        marker = "" if item.actionable else " [read-only]"
        lines.append(f"  [{item.id}] {item.content} - {item.display_time}{marker}")


def render_state(state: AppState) -> str:
    """Plain-text rendering of a snapshot, one section per block."""
    lines: List[str] = []
    if state.error_message:
        lines.append(f"Error: {state.error_message}")
    if state.is_loading:
        lines.append("Loading...")

    _render_items("Overdue", state.tasks.overdue, lines)
    _render_items("Today", state.tasks.today, lines)
    _render_items("Tomorrow", state.tasks.tomorrow, lines)
    _render_items("In progress", state.tasks.in_progress, lines)

    for section in state.calendar_events:
        lines.append(f"Calendar: {section.account_name} ({len(section.events)})")
        for event in section.events:
            lines.append(f"  {event.display_time}  {event.title}")

    for section in state.github_notifications:
        lines.append(f"GitHub: {section.account_name} ({len(section.notifications)})")
        for notification in section.notifications:
            lines.append(
                f"  [{notification.thread_id}] {notification.repository}: {notification.title} "
                f"({notification.reason}, {notification.display_time})"
            )

    total = state.overdue_count + state.today_count + state.tomorrow_count + state.in_progress_count
    if total == 0 and not state.github_notifications and not state.calendar_events and not state.is_loading:
        lines.append("Nothing due. All clear.")
    if state.snooze_durations:
        lines.append(f"Snooze options: {', '.join(state.snooze_durations)}")
    return "\n".join(lines)


def _create_engine(config: AppConfig) -> Engine:
    """Create the engine and align launch-at-login with configuration."""
    autostart = None
    if sys.platform == "darwin":
        autostart = LaunchAgentAutostart()
        sync_autostart(autostart, config.autostart)
    return Engine.from_config(config, LoggingObserver(), autostart=autostart)


def run_once(args: argparse.Namespace) -> int:
    """Refresh once, run the requested command if any, and print the result."""
    engine = _create_engine(load_config())
    try:
        engine.refresh()
        if args.complete:
            engine.complete(args.complete)
        elif args.snooze:
            engine.snooze(args.snooze[0], args.snooze[1])
        elif args.resolve:
            engine.resolve_notification(args.resolve[0], args.resolve[1])
        print(render_state(engine.get_state()))
        return 0
    except TodoTrayError as e:
        logger.error(f"Run failed: {e}")
        print(render_state(engine.get_state()))
        return 1
    finally:
        engine.shutdown()


def run_forever(stop: Optional[threading.Event] = None) -> None:
    """Run periodic refreshes until interrupted."""
    config = load_config()
    engine = _create_engine(config)
    stop = stop or threading.Event()
    engine.start()
    logger.info(f"Todo tray running, refreshing every {config.refresh_interval}s. Press Ctrl+C to stop.")
    try:
        while not stop.wait(1):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        engine.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command-line argument parsing."""
    parser = argparse.ArgumentParser(
        description="Aggregate Todoist, Linear, GitHub and calendar items into one view"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one full refresh, print the result and exit"
    )
    command = parser.add_mutually_exclusive_group()
    command.add_argument(
        "--complete",
        metavar="ID",
        help="Complete a Todoist task by id (implies --once)"
    )
    command.add_argument(
        "--snooze",
        nargs=2,
        metavar=("ID", "LABEL"),
        help="Snooze a Todoist task by a configured duration such as 30m or 1d (implies --once)"
    )
    command.add_argument(
        "--resolve",
        nargs=2,
        metavar=("ACCOUNT", "THREAD"),
        help="Mark a GitHub notification thread read (implies --once)"
    )

    args = parser.parse_args(argv)

    try:
        if args.once or args.complete or args.snooze or args.resolve:
            return run_once(args)
        run_forever()
        return 0
    except TodoTrayError as e:
        logger.error(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
