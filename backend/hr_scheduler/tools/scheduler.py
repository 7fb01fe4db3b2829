from datetime import datetime, timedelta
from typing import Callable, List, Optional

import pytz

from ..errors import InvalidRangeError
from ..models import AvailabilityConfig, BookingRequest, BookingResult, TimeSlot
from ..utils.config import settings
from ..utils.logger import logger
from .availability import AvailabilityCalculator, to_busy_intervals
from .booking import BookingService
from .ranking import SlotRanker
from .timezone import TimezoneConverter


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def config_from_settings() -> AvailabilityConfig:
    return AvailabilityConfig(
        work_start_hour=settings.work_start_hour,
        work_end_hour=settings.work_end_hour,
        slot_duration_minutes=settings.slot_duration_minutes,
        step_minutes=settings.step_minutes
    )


class CalendarScheduler:
    """Operations the dialogue orchestrator calls: availability, recommendation, booking."""

    def __init__(
        self,
        gateway,
        store,
        config: Optional[AvailabilityConfig] = None,
        ranker: Optional[SlotRanker] = None,
        clock: Callable[[], datetime] = utc_now,
        default_timezone: str = settings.default_timezone
    ):
        self.gateway = gateway
        self.calculator = AvailabilityCalculator(config or config_from_settings())
        self.ranker = ranker or SlotRanker(
            morning_bonus=settings.morning_bonus,
            early_week_bonus=settings.early_week_bonus,
            day_penalty=settings.day_penalty
        )
        self.booking = BookingService(gateway, store)
        self.clock = clock
        self.default_timezone = default_timezone

    def get_available_slots(
        self,
        account_id: str,
        days_ahead: int = settings.days_ahead,
        timezone: Optional[str] = None
    ) -> List[TimeSlot]:
        """
        Free slots for the next `days_ahead` days, starting at the next business hour.

        Raises:
            InvalidRangeError: days_ahead is not positive
            TimezoneParseError: unknown timezone
            ExternalGatewayError: calendar could not be read
        """
        if days_ahead <= 0:
            raise InvalidRangeError(f"days_ahead must be positive, got {days_ahead}")

        timezone = TimezoneConverter.normalize(timezone or self.default_timezone)
        range_start = self.calculator.next_business_start(self.clock(), timezone)
        range_end = range_start + timedelta(days=days_ahead)

        logger.info(f"📅 Fetching calendar availability for {account_id}")
        logger.info(f"   Timezone: {timezone}")
        logger.info(f"   Date range: {range_start.isoformat()} to {range_end.isoformat()}")

        events = self.gateway.get_events(account_id, range_start, range_end, timezone)
        busy_intervals = to_busy_intervals(events)
        logger.info(f"   Busy slots after filtering: {len(busy_intervals)} of {len(events)} events")

        slots = self.calculator.get_available_slots(range_start, range_end, timezone, busy_intervals)
        for slot in slots[:5]:
            logger.info(f"     - {slot.display}")

        return slots

    def recommend(self, slots: List[TimeSlot], count: int = settings.recommendation_count) -> List[TimeSlot]:
        return self.ranker.recommend(slots, count, now=self.clock())

    def book_event(self, account_id: str, request: BookingRequest, timezone: Optional[str] = None) -> BookingResult:
        return self.booking.book_event(account_id, request, timezone or self.default_timezone)

    def cancel_event(self, account_id: str, event_id: str, booking_id: Optional[str] = None) -> bool:
        return self.booking.cancel_event(account_id, event_id, booking_id)

    def get_upcoming_bookings(self, account_id: str, limit: int = 10):
        return self.booking.get_upcoming_bookings(account_id, self.clock(), limit)
