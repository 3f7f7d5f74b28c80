# src/kraken_exporter/connection/fetcher.py

import logging
from typing import Any, Dict, Optional

import requests

from kraken_exporter import APP_VERSION
from kraken_exporter.logging_config import structured_log_extra
from .exceptions import (
    ForbiddenError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
    UnknownStatusError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0


class HttpFetcher:
    """
    Thin GET-only wrapper around a shared ``requests.Session``.

    Every call is bounded by ``timeout`` and validates TLS certificates. The
    session is created once and may be shared by any number of cycles.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        if timeout <= 0:
            raise ValueError("Timeout must be positive")
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update(
            {"User-Agent": f"KrakenExporter/{APP_VERSION}"}
        )

    def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> bytes:
        """Fetch ``url`` and return the fully buffered body of a 200 response."""
        try:
            response = self.session.get(
                url, params=params, timeout=self.timeout, verify=True
            )
        except requests.exceptions.Timeout as e:
            raise TransportError(f"Request timed out after {self.timeout}s: {e}") from e
        except requests.exceptions.SSLError as e:
            raise TransportError(f"TLS error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Network Error: {e}") from e

        status_code = response.status_code
        if status_code == 200:
            return response.content
        if status_code == 404:
            raise NotFoundError(f"Not found: {url}")
        if status_code == 403:
            raise ForbiddenError(f"Forbidden: {url}")
        if status_code == 401:
            raise UnauthorizedError(f"Unauthorized: {url}")

        logger.error(
            "Got bad status code fetching %s: %s",
            url,
            status_code,
            extra=structured_log_extra(event="upstream_bad_status", url=url, status=status_code),
        )
        raise UnknownStatusError(status_code, url)

    def close(self) -> None:
        self.session.close()
