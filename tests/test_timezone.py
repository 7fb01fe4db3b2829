"""Tests for wall-clock / instant conversion."""

from datetime import datetime, timedelta

import pytest
import pytz

from hr_scheduler.errors import TimezoneParseError
from hr_scheduler.models import WallClockTime
from hr_scheduler.tools.timezone import TimezoneConverter, EXACT, REPEATED, SKIPPED, parse_local_datetime

from conftest import utc


def test_chicago_morning_to_utc():
    """8:00 AM Chicago in October (CDT, UTC-5) is 13:00 UTC."""
    instant = TimezoneConverter.wall_clock_to_instant(WallClockTime(2025, 10, 21, 8, 0), "America/Chicago")
    assert instant == utc(2025, 10, 21, 13, 0)


def test_pacific_morning_to_utc():
    instant = TimezoneConverter.wall_clock_to_instant(WallClockTime(2025, 10, 21, 10, 0), "America/Los_Angeles")
    assert instant == utc(2025, 10, 21, 17, 0)


def test_zone_east_of_utc_crosses_date_line():
    instant = TimezoneConverter.wall_clock_to_instant(WallClockTime(2025, 10, 21, 3, 0), "Asia/Kolkata")
    assert instant == utc(2025, 10, 20, 21, 30)


def test_winter_offset_differs_from_summer():
    winter = TimezoneConverter.wall_clock_to_instant(WallClockTime(2025, 1, 15, 9, 0), "America/Chicago")
    assert winter == utc(2025, 1, 15, 15, 0)


@pytest.mark.parametrize("timezone", ["America/Chicago", "Europe/Berlin", "Australia/Sydney", "Asia/Kolkata", "UTC"])
def test_round_trip_outside_dst_windows(timezone):
    fields = WallClockTime(2025, 6, 18, 14, 45, 30)
    instant = TimezoneConverter.wall_clock_to_instant(fields, timezone)
    assert TimezoneConverter.instant_to_wall_clock(instant, timezone) == fields


def test_instant_to_wall_clock_ignores_process_timezone(monkeypatch):
    monkeypatch.setenv("TZ", "Asia/Tokyo")
    fields = TimezoneConverter.instant_to_wall_clock(utc(2025, 10, 21, 14, 0), "America/Chicago")
    assert fields == WallClockTime(2025, 10, 21, 9, 0, 0)


def test_repeated_wall_clock_uses_earlier_instant():
    """1:30 AM happens twice on Nov 2 2025 in Chicago; the CDT one comes first."""
    instant, kind = TimezoneConverter.resolve_wall_clock(WallClockTime(2025, 11, 2, 1, 30), "America/Chicago")
    assert kind == REPEATED
    assert instant == utc(2025, 11, 2, 6, 30)


def test_skipped_wall_clock_shifts_forward_by_gap():
    """2:30 AM does not exist on Mar 9 2025 in Chicago; it becomes 3:30 AM CDT."""
    instant, kind = TimezoneConverter.resolve_wall_clock(WallClockTime(2025, 3, 9, 2, 30), "America/Chicago")
    assert kind == SKIPPED
    assert instant == utc(2025, 3, 9, 8, 30)
    assert TimezoneConverter.instant_to_wall_clock(instant, "America/Chicago") == WallClockTime(2025, 3, 9, 3, 30, 0)


def test_skipped_wall_clock_east_of_utc():
    instant, kind = TimezoneConverter.resolve_wall_clock(WallClockTime(2025, 3, 30, 2, 30), "Europe/Berlin")
    assert kind == SKIPPED
    assert TimezoneConverter.instant_to_wall_clock(instant, "Europe/Berlin") == WallClockTime(2025, 3, 30, 3, 30, 0)


def test_ordinary_wall_clock_is_exact():
    _, kind = TimezoneConverter.resolve_wall_clock(WallClockTime(2025, 11, 2, 3, 0), "America/Chicago")
    assert kind == EXACT


def test_abbreviation_resolves_to_iana_zone():
    assert TimezoneConverter.normalize("CST") == "America/Chicago"
    assert TimezoneConverter.normalize(" America/Denver ") == "America/Denver"



def test_fixed_offset_zone_names_are_not_aliased():
    """EST is a fixed UTC-5 zone; it must not pick up New York daylight time."""
    assert TimezoneConverter.normalize("EST") == "EST"
    assert TimezoneConverter.normalize("MST") == "MST"

    summer = TimezoneConverter.wall_clock_to_instant(WallClockTime(2025, 7, 1, 9, 0), "EST")
    assert summer == utc(2025, 7, 1, 14, 0)


def test_daylight_abbreviation_still_follows_region():
    summer = TimezoneConverter.wall_clock_to_instant(WallClockTime(2025, 7, 1, 9, 0), "CST")
    assert summer == utc(2025, 7, 1, 14, 0)
    assert TimezoneConverter.normalize("pdt") == "America/Los_Angeles"

@pytest.mark.parametrize("timezone", ["Mars/Olympus", "UTC+5", "", None])
def test_unknown_timezone_rejected(timezone):
    with pytest.raises(TimezoneParseError):
        TimezoneConverter.wall_clock_to_instant(WallClockTime(2025, 10, 21, 9, 0), timezone)


def test_invalid_fields_rejected():
    with pytest.raises(TimezoneParseError):
        TimezoneConverter.wall_clock_to_instant(WallClockTime(2025, 2, 30, 9, 0), "America/Chicago")


def test_naive_datetime_is_not_an_instant():
    with pytest.raises(TimezoneParseError):
        TimezoneConverter.instant_to_wall_clock(datetime(2025, 10, 21, 9, 0), "America/Chicago")


def test_parse_provider_string_with_fractional_seconds():
    instant = parse_local_datetime("2025-10-21T08:00:00.0000000", "America/Chicago")
    assert instant == utc(2025, 10, 21, 13, 0)


def test_parse_rejects_garbage():
    with pytest.raises(TimezoneParseError):
        WallClockTime.parse("next tuesday")


def test_format_for_provider_uses_requested_zone():
    start = utc(2025, 10, 21, 14, 0)
    assert TimezoneConverter.format_for_provider(start, "America/Chicago") == "2025-10-21T09:00:00"
    assert TimezoneConverter.format_for_provider(start, "America/New_York") == "2025-10-21T10:00:00"


def test_slot_display_format():
    start = utc(2025, 10, 21, 14, 0)
    display = TimezoneConverter.format_slot(start, start + timedelta(minutes=30), "America/Chicago")
    assert display == "Tue, Oct 21, 9:00 AM - 9:30 AM"


def test_slot_display_afternoon_and_noon():
    start = utc(2025, 10, 21, 17, 30)
    display = TimezoneConverter.format_slot(start, start + timedelta(minutes=30), "America/Chicago")
    assert display == "Tue, Oct 21, 12:30 PM - 1:00 PM"


def test_to_instant_normalizes_to_utc():
    eastern = pytz.timezone("America/New_York").localize(datetime(2025, 10, 21, 9, 0))
    assert TimezoneConverter.to_instant(eastern) == utc(2025, 10, 21, 13, 0)
    assert TimezoneConverter.to_instant(eastern).utcoffset() == timedelta(0)
