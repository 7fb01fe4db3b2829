from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from ..errors import InvalidRangeError
from ..models import AvailabilityConfig, BusyInterval, ProviderEvent, TimeSlot, WallClockTime
from ..utils.logger import logger
from .timezone import TimezoneConverter


def overlaps(start: datetime, end: datetime, busy_intervals: Iterable[BusyInterval]) -> Optional[BusyInterval]:
    """
    Return the first busy interval that overlaps [start, end), or None.

    Half-open: a slot ending exactly when a meeting starts is free.
    """
    for busy in busy_intervals:
        if start < busy.end and busy.start < end:
            return busy
    return None


def to_busy_intervals(events: Iterable[ProviderEvent]) -> List[BusyInterval]:
    busy_intervals = []

    for event in events:
        if not event.blocking:
            logger.info(f"Ignoring non-blocking event: {event.summary or 'No title'}")
            continue

        start = TimezoneConverter.to_instant(event.start)
        end = TimezoneConverter.to_instant(event.end)
        if start >= end:
            logger.warning(f"Dropping event with empty range: {event.summary or 'No title'} ({start.isoformat()})")
            continue

        busy_intervals.append(BusyInterval(start=start, end=end, label=event.summary))

    busy_intervals.sort(key=lambda busy: (busy.start, busy.end))
    return busy_intervals


class AvailabilityCalculator:
    def __init__(self, config: Optional[AvailabilityConfig] = None):
        self.config = config or AvailabilityConfig()

    def get_available_slots(
        self,
        range_start: datetime,
        range_end: datetime,
        timezone: str,
        busy_intervals: Sequence[BusyInterval],
        config: Optional[AvailabilityConfig] = None
    ) -> List[TimeSlot]:
        """
        Walk [range_start, range_end) and return the free slots inside business hours.

        Args:
            range_start: First candidate start (instant)
            range_end: Candidates must start before this instant
            timezone: IANA zone the business hours are measured in
            busy_intervals: Blocking intervals to avoid
            config: Overrides the calculator's configuration

        Returns:
            Chronologically ordered, non-overlapping slots
        """
        config = config or self.config
        range_start = TimezoneConverter.to_instant(range_start)
        range_end = TimezoneConverter.to_instant(range_end)

        if range_start >= range_end:
            raise InvalidRangeError(
                f"Range start {range_start.isoformat()} must be before range end {range_end.isoformat()}"
            )

        zone_name = TimezoneConverter.normalize(timezone)
        step = timedelta(minutes=config.step_minutes)
        duration = timedelta(minutes=config.slot_duration_minutes)

        logger.info(f"Finding slots between {range_start.isoformat()} and {range_end.isoformat()}")
        logger.info(f"Working hours: {config.work_start_hour} - {config.work_end_hour} (in {zone_name})")

        available_slots: List[TimeSlot] = []
        blocked_count = 0
        current = range_start

        while current < range_end:
            local = TimezoneConverter.instant_to_wall_clock(current, zone_name)

            if local.weekday() not in config.workdays:
                current += step
                continue

            if local.hour < config.work_start_hour or local.hour >= config.work_end_hour:
                current += step
                continue

            slot_end = current + duration
            if slot_end > self._end_of_working_day(local, zone_name, config):
                current += step
                continue

            blocking = overlaps(current, slot_end, busy_intervals)
            if blocking is not None:
                blocked_count += 1
                logger.debug(
                    f"Slot {current.isoformat()} blocked by '{blocking.label}' "
                    f"({blocking.start.isoformat()} - {blocking.end.isoformat()})"
                )
                current += step
                continue

            available_slots.append(TimeSlot(
                start=current,
                end=slot_end,
                timezone=zone_name,
                display=TimezoneConverter.format_slot(current, slot_end, zone_name)
            ))
            current += step

        logger.info(f"Generated {len(available_slots)} available slots ({blocked_count} blocked by calendar events)")
        return available_slots

    def next_business_start(
        self,
        now: datetime,
        timezone: str,
        config: Optional[AvailabilityConfig] = None
    ) -> datetime:
        """
        First instant at or after `now` that is inside business hours on a workday.

        Within business hours the result is rounded up to the next step
        boundary of the local hour (9:10 -> 9:30 with 30-minute steps).
        """
        config = config or self.config
        current = TimezoneConverter.to_instant(now)

        # A week always contains a workday; the extra day covers DST shifts
        for _ in range(8):
            local = TimezoneConverter.instant_to_wall_clock(current, timezone)
            day = local.to_naive()

            if local.weekday() in config.workdays:
                if local.hour < config.work_start_hour:
                    return TimezoneConverter.wall_clock_to_instant(
                        WallClockTime(day.year, day.month, day.day, config.work_start_hour), timezone
                    )

                if local.hour < config.work_end_hour:
                    step = timedelta(minutes=config.step_minutes)
                    into_hour = timedelta(minutes=local.minute, seconds=local.second, microseconds=current.microsecond)
                    remainder = into_hour % step
                    if remainder:
                        current = current + (step - remainder)
                    return current

            next_day = day + timedelta(days=1)
            current = TimezoneConverter.wall_clock_to_instant(
                WallClockTime(next_day.year, next_day.month, next_day.day), timezone
            )

        raise InvalidRangeError(f"No workday configured in {tuple(config.workdays)}")

    def _end_of_working_day(self, local: WallClockTime, timezone: str, config: AvailabilityConfig) -> datetime:
        day = local.to_naive()
        if config.work_end_hour == 24:
            day = day + timedelta(days=1)
            return TimezoneConverter.wall_clock_to_instant(WallClockTime(day.year, day.month, day.day), timezone)

        return TimezoneConverter.wall_clock_to_instant(
            WallClockTime(day.year, day.month, day.day, config.work_end_hour), timezone
        )
