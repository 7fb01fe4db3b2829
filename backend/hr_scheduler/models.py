from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional, Tuple
import re

from pydantic import BaseModel, Field, model_validator

from .errors import ConflictError, ExternalGatewayError, TimezoneParseError


WALL_CLOCK_PATTERN = re.compile(r'^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2})(?::(\d{2}))?')


class WallClockTime(NamedTuple):
    """Local calendar fields with no timezone attached."""
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0

    @classmethod
    def parse(cls, text: str) -> "WallClockTime":
        """
        Parse a provider wall-clock string.

        Accepts "2025-10-14T09:00:00", "2025-10-14T09:00:00.0000000" and
        "2025-10-14 09:00". Fractional seconds are dropped.
        """
        match = WALL_CLOCK_PATTERN.match(text or "")
        if not match:
            raise TimezoneParseError(f"Invalid datetime format: {text!r}")

        year, month, day, hour, minute, second = match.groups()
        fields = cls(int(year), int(month), int(day), int(hour), int(minute), int(second or 0))
        fields.to_naive()
        return fields

    @classmethod
    def from_datetime(cls, value: datetime) -> "WallClockTime":
        return cls(value.year, value.month, value.day, value.hour, value.minute, value.second)

    def to_naive(self) -> datetime:
        try:
            return datetime(self.year, self.month, self.day, self.hour, self.minute, self.second)
        except (TypeError, ValueError) as e:
            raise TimezoneParseError(f"Invalid wall-clock fields {tuple(self)}: {e}") from e

    def weekday(self) -> int:
        return self.to_naive().weekday()

    def isoformat(self) -> str:
        return self.to_naive().strftime('%Y-%m-%dT%H:%M:%S')


class AvailabilityConfig(BaseModel):
    work_start_hour: int = Field(default=9, ge=0, le=23)
    work_end_hour: int = Field(default=17, ge=1, le=24)
    slot_duration_minutes: int = Field(default=30, gt=0)
    step_minutes: int = Field(default=30, gt=0)
    # Python weekday numbers, Monday == 0
    workdays: Tuple[int, ...] = (0, 1, 2, 3, 4)

    @model_validator(mode="after")
    def _check_hours(self) -> "AvailabilityConfig":
        if self.work_start_hour >= self.work_end_hour:
            raise ValueError("work_start_hour must be before work_end_hour")
        if any(day < 0 or day > 6 for day in self.workdays):
            raise ValueError("workdays must be weekday numbers 0-6")
        return self


class BusyInterval(BaseModel):
    start: datetime
    end: datetime
    label: str = ""


class TimeSlot(BaseModel):
    start: datetime
    end: datetime
    timezone: str
    display: str

    @model_validator(mode="after")
    def _check_order(self) -> "TimeSlot":
        if self.start >= self.end:
            raise ValueError("slot start must be before slot end")
        return self

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


class ProviderEvent(BaseModel):
    event_id: Optional[str] = None
    summary: str = ""
    start: datetime
    end: datetime
    timezone: Optional[str] = None
    blocking: bool = True


class CalendarEventDraft(BaseModel):
    subject: str
    description: str
    start_local: str
    end_local: str
    timezone: str
    reminder_minutes: int = 15


class BookingRequest(BaseModel):
    employee_name: str
    employee_phone: Optional[str] = None
    topic: str
    start: datetime
    end: datetime
    reminder_minutes: Optional[int] = None


class BookingStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


class BookingResult(BaseModel):
    success: bool
    event_id: Optional[str] = None
    booking_id: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None  # "conflict" or "gateway"

    @classmethod
    def from_error(cls, error: Exception) -> "BookingResult":
        if isinstance(error, ConflictError):
            return cls(success=False, error=str(error), error_type="conflict")
        if isinstance(error, ExternalGatewayError):
            return cls(success=False, error=error.message or "Failed to book calendar event.", error_type="gateway")
        raise TypeError(f"No booking result for {type(error).__name__}")

    @property
    def user_message(self) -> str:
        if self.success:
            return "Your call has been scheduled."
        if self.error_type == "conflict":
            return "That time is no longer available. Please choose another slot."
        if self.error:
            return f"{self.error} Please try again."
        return "Failed to book calendar event. Please try again."
