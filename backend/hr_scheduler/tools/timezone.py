"""
Conversions between absolute instants and wall-clock time in IANA zones.

This is the only module that does offset arithmetic. Everything else compares
UTC instants and asks this module what the clock on the wall says.
"""

import pytz
from typing import Optional, Tuple
from datetime import datetime, timedelta

from ..errors import TimezoneParseError
from ..models import WallClockTime
from ..utils.logger import logger
from ..utils.time_utils import format_slot_display


EXACT = "exact"
REPEATED = "repeated"
SKIPPED = "skipped"

ONE_DAY = timedelta(days=1)


class TimezoneConverter:
    # Only consulted for names pytz does not know; EST and MST are fixed-offset zones there
    TIMEZONE_ABBREV = {
        'PST': 'America/Los_Angeles',
        'PDT': 'America/Los_Angeles',
        'EDT': 'America/New_York',
        'CST': 'America/Chicago',
        'CDT': 'America/Chicago',
        'MDT': 'America/Denver',
        'IST': 'Asia/Kolkata',
    }

    @staticmethod
    def get_zone(timezone: str):
        if not timezone or not isinstance(timezone, str):
            raise TimezoneParseError(f"Timezone must be a non-empty IANA name, got {timezone!r}")

        name = timezone.strip()

        try:
            return pytz.timezone(name)
        except pytz.UnknownTimeZoneError:
            alias = TimezoneConverter.TIMEZONE_ABBREV.get(name.upper())

        if alias is None:
            raise TimezoneParseError(f"Unknown timezone: {timezone!r}")
        return pytz.timezone(alias)

    @staticmethod
    def normalize(timezone: str) -> str:
        """Return the canonical IANA name for a zone name or known abbreviation."""
        return TimezoneConverter.get_zone(timezone).zone

    @staticmethod
    def to_instant(value: datetime) -> datetime:
        if not isinstance(value, datetime):
            raise TimezoneParseError(f"Expected a datetime, got {type(value).__name__}")
        if value.tzinfo is None or value.utcoffset() is None:
            raise TimezoneParseError(f"Naive datetime {value.isoformat()} is not an instant")
        return value.astimezone(pytz.UTC)

    @staticmethod
    def instant_to_wall_clock(instant: datetime, timezone: str) -> WallClockTime:
        zone = TimezoneConverter.get_zone(timezone)
        local = TimezoneConverter.to_instant(instant).astimezone(zone)
        return WallClockTime.from_datetime(local)

    @staticmethod
    def resolve_wall_clock(fields: WallClockTime, timezone: str) -> Tuple[datetime, str]:
        """
        Convert wall-clock fields to an instant and report how it was resolved.

        Round trip: read the fields as if they were UTC, render that trial
        instant in the zone, and correct the trial by the difference. The
        corrected instant is verified by rendering it again. Offsets one day
        either side of the trial are probed too, so DST windows are found
        explicitly instead of by accident.

        Returns (instant, kind) where kind is:
            "exact"    - exactly one instant shows these fields
            "repeated" - fall-back duplicate, the earlier instant is returned
            "skipped"  - spring-forward gap, shifted forward by the gap
        """
        zone = TimezoneConverter.get_zone(timezone)
        desired = fields.to_naive()

        trial = pytz.UTC.localize(desired)
        corrected = trial + (desired - _render(trial, zone))

        candidates = {corrected}
        for probe in (trial - ONE_DAY, trial, trial + ONE_DAY):
            candidates.add(trial - probe.astimezone(zone).utcoffset())

        valid = sorted(c for c in candidates if _render(c, zone) == desired)

        if len(valid) > 1:
            logger.warning(f"Wall clock {fields.isoformat()} occurs twice in {zone.zone}; using the earlier instant")
            return valid[0], REPEATED

        if valid:
            return valid[0], EXACT

        # Offset in force before the transition moves the time past the gap
        before = (trial - ONE_DAY).astimezone(zone).utcoffset()
        instant = trial - before
        logger.warning(
            f"Wall clock {fields.isoformat()} does not exist in {zone.zone}; "
            f"shifted forward to {_render(instant, zone).strftime('%H:%M:%S')}"
        )
        return instant, SKIPPED

    @staticmethod
    def wall_clock_to_instant(fields: WallClockTime, timezone: str) -> datetime:
        instant, _ = TimezoneConverter.resolve_wall_clock(fields, timezone)
        return instant

    @staticmethod
    def format_for_provider(instant: datetime, timezone: str) -> str:
        return TimezoneConverter.instant_to_wall_clock(instant, timezone).isoformat()

    @staticmethod
    def format_slot(start: datetime, end: datetime, timezone: str) -> str:
        return format_slot_display(
            TimezoneConverter.instant_to_wall_clock(start, timezone),
            TimezoneConverter.instant_to_wall_clock(end, timezone)
        )

    @staticmethod
    def format_time_with_timezone(instant: datetime, timezone: str) -> str:
        zone = TimezoneConverter.get_zone(timezone)
        local_time = TimezoneConverter.to_instant(instant).astimezone(zone)
        tz_abbrev = local_time.strftime('%Z')
        return local_time.strftime(f'%I:%M %p {tz_abbrev}')


def _render(instant: datetime, zone) -> datetime:
    return instant.astimezone(zone).replace(tzinfo=None)


# Convenience functions for common use cases

def wall_clock_to_instant(fields: WallClockTime, timezone: str) -> datetime:
    """Shorthand for TimezoneConverter.wall_clock_to_instant()"""
    return TimezoneConverter.wall_clock_to_instant(fields, timezone)


def instant_to_wall_clock(instant: datetime, timezone: str) -> WallClockTime:
    """Shorthand for TimezoneConverter.instant_to_wall_clock()"""
    return TimezoneConverter.instant_to_wall_clock(instant, timezone)


def parse_local_datetime(text: str, timezone: Optional[str]) -> datetime:
    """Parse an offset-less provider string that is local to `timezone`."""
    return TimezoneConverter.wall_clock_to_instant(WallClockTime.parse(text), timezone)
