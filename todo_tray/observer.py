"""Observer interface the presentation layer implements."""

import logging
from abc import ABC, abstractmethod

from .models import AppState

logger = logging.getLogger(__name__)


class Observer(ABC):
    """
    Receives engine events.

    Calls come from engine threads, never while the engine holds its
    state lock. Implementations should hand work off quickly.
    """

    @abstractmethod
    def on_state_changed(self, state: AppState) -> None:
        """
        Called after every committed state change.

        Args:
            state: A private copy of the snapshot.
        """
        pass

    @abstractmethod
    def on_task_completed(self, task_name: str) -> None:
        """Called after a task was completed upstream."""
        pass

    @abstractmethod
    def on_error(self, message: str) -> None:
        """Called when a command fails."""
        pass


class LoggingObserver(Observer):
    """Headless observer that writes events to the log."""

    def on_state_changed(self, state: AppState) -> None:
        if state.error_message:
            logger.warning(f"State updated with error: {state.error_message}")
        logger.info(
            f"State: {state.overdue_count} overdue, {state.today_count} today, "
            f"{state.tomorrow_count} tomorrow, {state.in_progress_count} in progress, "
            f"{state.github_notification_count} notifications, "
            f"{state.calendar_event_count} events"
        )

    def on_task_completed(self, task_name: str) -> None:
        logger.info(f"Task completed: {task_name}")

    def on_error(self, message: str) -> None:
        logger.error(message)
