"""Error taxonomy for the availability and booking engine."""

from typing import Optional


class SchedulerError(Exception):
    """Base class for every error raised by the scheduler."""


class InvalidRangeError(SchedulerError):
    """A time range is empty or inverted. Raised before any I/O."""


class TimezoneParseError(SchedulerError):
    """Unknown timezone name, malformed wall-clock fields or a naive datetime."""


class ExternalGatewayError(SchedulerError):
    """The calendar provider failed, timed out or was unreachable."""

    def __init__(self, message: str, retryable: bool = True, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.status_code = status_code


class ConflictError(SchedulerError):
    """The requested slot is no longer free at commit time."""


class PersistenceError(SchedulerError):
    """The booking log could not be written. Never fails a booking."""
