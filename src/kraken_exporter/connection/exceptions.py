# src/kraken_exporter/connection/exceptions.py

from typing import List, Optional


class FetchError(Exception):
    """Base exception for all upstream fetch and decode failures."""
    pass

class NotFoundError(FetchError):
    """Raised when the upstream answers HTTP 404."""
    pass

class ForbiddenError(FetchError):
    """Raised when the upstream answers HTTP 403."""
    pass

class UnauthorizedError(FetchError):
    """Raised when the upstream answers HTTP 401."""
    pass

class UnknownStatusError(FetchError):
    """Raised for any other non-200 status code."""
    def __init__(self, status_code: int, url: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        super().__init__(f"Unexpected HTTP status {status_code} from {url or 'upstream'}")

class TransportError(FetchError):
    """Raised on DNS, TLS, connection or timeout failures."""
    pass

class DecodeError(FetchError):
    """Raised when a response is not valid JSON or misses a required field."""
    pass

class KrakenAPIError(FetchError):
    """Raised when the response envelope carries a non-empty ``error`` list."""
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))

class CycleTimeoutError(FetchError):
    """Raised when a generation cycle runs past its own deadline."""
    def __init__(self, elapsed: float, deadline: float):
        self.elapsed = elapsed
        self.deadline = deadline
        super().__init__(f"Cycle exceeded its deadline: {elapsed:.2f}s elapsed (deadline: {deadline}s).")
