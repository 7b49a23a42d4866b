"""Shared HTTP plumbing for the source clients."""

import logging
from typing import Any, Dict, Optional

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)

# Every outbound call carries this timeout; expiry is a FetchError, not a retry.
REQUEST_TIMEOUT = 30


class HttpClient:
    """
    Base class for clients talking to one remote account or feed.

    Wraps a ``requests.Session`` so every request gets the same headers and
    timeout, and so every failure surfaces as a single ``FetchError``
    naming the account.
    """

    def __init__(self, source_name: str, headers: Optional[Dict[str, str]] = None,
                 session: Optional[requests.Session] = None):
        self.source_name = source_name
        self.session = session or requests.Session()
        if headers:
            self.session.headers.update(headers)

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """
        Send a request and return the successful response.

        Raises:
            FetchError: On transport failure, timeout or non-2xx status.
        """
        kwargs.setdefault("timeout", REQUEST_TIMEOUT)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.Timeout as e:
            logger.error(f"{self.source_name}: request to {url} timed out: {e}")
            raise FetchError(self.source_name, f"request timed out after {kwargs['timeout']}s") from e
        except requests.RequestException as e:
            logger.error(f"{self.source_name}: request to {url} failed: {e}")
            raise FetchError(self.source_name, f"failed to connect: {e}") from e

        if not response.ok:
            body = response.text or ""
            logger.error(f"{self.source_name}: {method} {url} returned {response.status_code}")
            raise FetchError(self.source_name, "request failed", status=response.status_code, body=body)
        return response

    def request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Like ``request`` but decodes the JSON body."""
        response = self.request(method, url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(self.source_name, f"could not parse response: {e}",
                             status=response.status_code) from e

    def close(self) -> None:
        self.session.close()
