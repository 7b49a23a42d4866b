"""Background loop that triggers full refreshes on a fixed interval."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 300  # seconds


class RefreshScheduler:
    """
    Runs ``job`` once immediately, then every ``interval`` seconds.

    A failing job is logged and the loop keeps going: the next tick is the
    retry. ``stop()`` wakes the loop and waits for the thread to exit.
    """

    def __init__(self, job: Callable[[], None], interval: float = DEFAULT_REFRESH_INTERVAL,
                 name: str = "todo-tray-refresh"):
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got {interval}")
        self.job = job
        self.interval = interval
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"Refresh scheduler started (every {self.interval:g}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.job()
            except Exception as e:
                logger.error(f"Scheduled refresh failed: {e}")
            if self._stop.wait(self.interval):
                break
        logger.info("Refresh scheduler stopped")
