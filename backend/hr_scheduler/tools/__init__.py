"""Timezone conversion, availability, ranking, booking and the calendar gateway."""

from .timezone import TimezoneConverter, wall_clock_to_instant, instant_to_wall_clock
from .availability import AvailabilityCalculator, overlaps, to_busy_intervals
from .ranking import SlotRanker
from .booking import BookingService
from .calendar import CalendarGateway, GoogleCalendarGateway
from .scheduler import CalendarScheduler

__all__ = [
    "TimezoneConverter",
    "wall_clock_to_instant",
    "instant_to_wall_clock",
    "AvailabilityCalculator",
    "overlaps",
    "to_busy_intervals",
    "SlotRanker",
    "BookingService",
    "CalendarGateway",
    "GoogleCalendarGateway",
    "CalendarScheduler"
]
