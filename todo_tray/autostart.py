"""Launch-at-login registration."""

import logging
import plistlib
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

BUNDLE_ID = "com.todo-tray.app"


class Autostart(ABC):
    """OS registration collaborator."""

    @abstractmethod
    def is_enabled(self) -> bool:
        pass

    @abstractmethod
    def enable(self) -> None:
        pass

    @abstractmethod
    def disable(self) -> None:
        pass


class LaunchAgentAutostart(Autostart):
    """macOS LaunchAgent plist in ~/Library/LaunchAgents."""

    def __init__(self, program_arguments: Optional[List[str]] = None, home: Optional[Path] = None):
        self.program_arguments = program_arguments or [sys.executable, "-m", "todo_tray.main"]
        self.plist_path = (home or Path.home()) / "Library" / "LaunchAgents" / f"{BUNDLE_ID}.plist"

    def is_enabled(self) -> bool:
        return self.plist_path.exists()

    def enable(self) -> None:
        self.plist_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "Label": BUNDLE_ID,
            "ProgramArguments": self.program_arguments,
            "RunAtLoad": True,
        }
        with self.plist_path.open("wb") as handle:
            plistlib.dump(payload, handle)
        logger.info(f"Autostart enabled: created LaunchAgent at {self.plist_path}")

    def disable(self) -> None:
        if self.plist_path.exists():
            self.plist_path.unlink()
            logger.info(f"Autostart disabled: removed LaunchAgent at {self.plist_path}")


def sync_autostart(autostart: Autostart, wanted: bool) -> bool:
    """
    Align the registration with the configured preference.

    Failures are logged, not raised: a broken LaunchAgents directory
    should not stop the app from starting.

    Returns:
        Whether autostart is enabled afterwards.
    """
    try:
        enabled = autostart.is_enabled()
        if wanted and not enabled:
            autostart.enable()
        elif not wanted and enabled:
            autostart.disable()
    except OSError as e:
        logger.warning(f"Could not update autostart registration: {e}")
    return autostart.is_enabled()
