"""Error types raised by the aggregation core."""

from typing import Optional


class TodoTrayError(Exception):
    """Base class for all todo-tray errors."""

    label = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class ConfigError(TodoTrayError):
    """Missing or malformed configuration. Fatal at startup."""

    label = "Configuration error"


class NetworkError(TodoTrayError):
    """Transport failure or non-success HTTP status from a source."""

    label = "Network error"


class FetchError(NetworkError):
    """
    A single failed call against one source.

    Carries the account/feed name, the HTTP status (None for transport
    failures) and the response body, if any.
    """

    def __init__(self, source: str, message: str, status: Optional[int] = None, body: str = ""):
        detail = f"{source}: {message}"
        if status is not None:
            detail += f" ({status})"
        if body:
            detail += f": {body}"
        super().__init__(detail)
        self.source = source
        self.status = status
        self.body = body


class NotFoundError(TodoTrayError):
    """A command referenced an unknown item, account or thread."""

    label = "Not found"


class UnexpectedError(TodoTrayError):
    """Anything else: read-only completion attempts, bad snooze labels, bad stored data."""

    label = "Unexpected error"
