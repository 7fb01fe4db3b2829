"""
Time display helpers.

Slots are stored and compared as UTC instants; people read them as
12-hour wall-clock time in the manager's timezone:
- Display: "Tue, Oct 21, 9:00 AM - 9:30 AM"
- Provider payloads: 24-hour "YYYY-MM-DDTHH:MM:SS"

These helpers only format fields that were already converted to local
time by the timezone converter. They never look at the process timezone.
"""

WEEKDAY_ABBREV = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_ABBREV = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class TimeFormat:
    """
    Utility class for time format conversions.
    Month and weekday names are fixed English abbreviations, not locale dependent.
    """

    @staticmethod
    def to_12hr_clock(hour: int, minute: int) -> str:
        """
        Convert 24-hour fields to 12-hour display, always showing minutes.

        Examples:
            (15, 0) → "3:00 PM"
            (9, 30) → "9:30 AM"
            (0, 0) → "12:00 AM"
        """
        am_pm = "AM" if hour < 12 else "PM"

        hour_12 = hour % 12
        if hour_12 == 0:
            hour_12 = 12

        return f"{hour_12}:{minute:02d} {am_pm}"

    @staticmethod
    def date_label(fields) -> str:
        """(2025, 10, 21, ...) → "Tue, Oct 21" """
        return f"{WEEKDAY_ABBREV[fields.weekday()]}, {MONTH_ABBREV[fields.month - 1]} {fields.day}"


def format_slot_display(start_fields, end_fields) -> str:
    """Render local start/end fields as "<Wkd>, <Mon> <day>, <h:mm AM/PM> - <h:mm AM/PM>"."""
    start_time = TimeFormat.to_12hr_clock(start_fields.hour, start_fields.minute)
    end_time = TimeFormat.to_12hr_clock(end_fields.hour, end_fields.minute)
    return f"{TimeFormat.date_label(start_fields)}, {start_time} - {end_time}"

