"""
HTTP Client

Thin wrapper over a ``requests`` session used by the client side of the
protocol. Connection failures and timeouts surface as ``HttpError`` with no
status code; the core never retries on its own.
"""

from __future__ import annotations

import json as jsonlib
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests


logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """
    Response from an HTTP request.
    """
    status_code: int
    content: bytes

    @property
    def ok(self) -> bool:
        """Check if request was successful (2xx status)."""
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Parse response as JSON."""
        return jsonlib.loads(self.content)


class HttpError(Exception):
    """Raised when an HTTP request could not be completed."""


class HttpClient:
    """
    HTTP client over a pooled ``requests.Session``.

    Usage:
        with HttpClient(timeout=10) as client:
            response = client.get("http://127.0.0.1:2345/batches")
            if response.ok:
                data = response.json()
    """

    def __init__(self, *, timeout: float = 30.0) -> None:
        """
        Initialize HTTP client.

        Args:
            timeout: Request timeout in seconds
        """
        self.timeout = timeout
        self._session: Optional[requests.Session] = None

    def _get_session(self) -> requests.Session:
        """Lazily create the requests session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def request(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Any] = None,
    ) -> HttpResponse:
        """
        Make an HTTP request.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Request URL
            json: Request body (JSON)

        Returns:
            HttpResponse with status and content. Non-2xx responses are
            returned, not raised.

        Raises:
            HttpError: If the request could not be completed at all
        """
        session = self._get_session()

        logger.debug(f"{method} {url}")
        try:
            response = session.request(
                method=method,
                url=url,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise HttpError(str(e)) from e

        return HttpResponse(
            status_code=response.status_code,
            content=response.content,
        )

    def get(self, url: str) -> HttpResponse:
        """Make a GET request."""
        return self.request("GET", url)

    def post(self, url: str, *, json: Optional[Any] = None) -> HttpResponse:
        """Make a POST request."""
        return self.request("POST", url, json=json)

    def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()
