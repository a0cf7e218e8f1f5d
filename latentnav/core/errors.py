"""
Error taxonomy for the navigation engine.

Nothing here is fatal to the process: every failure degrades a single
user action. Service failures abort the action and leave session state
untouched, validation failures are rejected before any request is sent.
"""

from typing import Optional


class LatentNavError(Exception):
    """Base class for all engine errors."""


class ServiceError(LatentNavError):
    """External generation service failed."""


class ServiceUnavailableError(ServiceError):
    """Connection failure, timeout, or unusable response body."""


class NonOkResponseError(ServiceError):
    """Service answered with an HTTP error status."""

    def __init__(self, status_code: int, body: str = "", endpoint: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.endpoint = endpoint
        where = f" from {endpoint}" if endpoint else ""
        super().__init__(f"Server responded with {status_code}{where}: {body}")


class ValidationError(LatentNavError, ValueError):
    """Action rejected before any request was issued."""


class BusyError(ValidationError):
    """A busy-gated action was triggered while another one is in flight."""


class StaleResponseError(LatentNavError):
    """A superseded request resolved after a newer one was dispatched."""

    def __init__(self, token: int, latest: int):
        self.token = token
        self.latest = latest
        super().__init__(f"Response for request #{token} superseded by #{latest}")
