"""Pytest fixtures for the scheduler tests."""

import logging
from datetime import datetime
from typing import List, Optional

import pytest
import pytz

from hr_scheduler.errors import ExternalGatewayError
from hr_scheduler.models import AvailabilityConfig, CalendarEventDraft, ProviderEvent, WallClockTime
from hr_scheduler.storage import BookingRecordStore, init_db, make_engine
from hr_scheduler.tools.scheduler import CalendarScheduler
from hr_scheduler.tools.timezone import TimezoneConverter, parse_local_datetime

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CHICAGO = "America/Chicago"


def utc(year, month, day, hour=0, minute=0):
    return pytz.UTC.localize(datetime(year, month, day, hour, minute))


def local(timezone, year, month, day, hour=0, minute=0):
    return TimezoneConverter.wall_clock_to_instant(WallClockTime(year, month, day, hour, minute), timezone)


def chicago(year, month, day, hour=0, minute=0):
    return local(CHICAGO, year, month, day, hour, minute)


def busy_event(start, end, summary="Meeting", blocking=True, event_id=None):
    return ProviderEvent(event_id=event_id, summary=summary, start=start, end=end, timezone=CHICAGO, blocking=blocking)


class FakeCalendarGateway:
    """In-memory calendar provider. Created events become busy immediately."""

    def __init__(self, events: Optional[List[ProviderEvent]] = None):
        self.events: List[ProviderEvent] = list(events or [])
        self.created: List[CalendarEventDraft] = []
        self.deleted: List[str] = []
        self.get_calls = []
        self.fail_on = set()
        self._next_id = 1

    def _maybe_fail(self, operation: str):
        if operation in self.fail_on:
            raise ExternalGatewayError("Service unavailable", retryable=True, status_code=503)

    def get_events(self, account_id, range_start, range_end, timezone_hint):
        self._maybe_fail("get")
        self.get_calls.append((account_id, range_start, range_end, timezone_hint))
        return [e for e in self.events if e.start < range_end and range_start < e.end]

    def create_event(self, account_id, draft):
        self._maybe_fail("create")
        event_id = f"evt{self._next_id}"
        self._next_id += 1
        self.created.append(draft)
        self.events.append(ProviderEvent(
            event_id=event_id,
            summary=draft.subject,
            start=parse_local_datetime(draft.start_local, draft.timezone),
            end=parse_local_datetime(draft.end_local, draft.timezone),
            timezone=draft.timezone
        ))
        return event_id

    def delete_event(self, account_id, event_id):
        self._maybe_fail("delete")
        self.deleted.append(event_id)
        self.events = [e for e in self.events if e.event_id != event_id]


@pytest.fixture
def config():
    return AvailabilityConfig()


@pytest.fixture
def gateway():
    return FakeCalendarGateway()


@pytest.fixture
def db_engine():
    engine = make_engine("sqlite://")
    init_db(engine)
    return engine


@pytest.fixture
def store(db_engine):
    return BookingRecordStore(db_engine)


@pytest.fixture
def now():
    """Monday, Oct 20 2025, 8:00 AM in Chicago."""
    return chicago(2025, 10, 20, 8, 0)


@pytest.fixture
def scheduler(gateway, store, config, now):
    return CalendarScheduler(gateway, store, config=config, clock=lambda: now, default_timezone=CHICAGO)
