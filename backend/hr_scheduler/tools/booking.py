from datetime import datetime, timedelta
from html import escape
from typing import Optional

from ..errors import ConflictError, ExternalGatewayError, InvalidRangeError, PersistenceError
from ..models import BookingRequest, BookingResult, BookingStatus, CalendarEventDraft
from ..storage.models import BookingRecord
from ..utils.config import settings
from ..utils.logger import logger
from .availability import overlaps, to_busy_intervals
from .timezone import TimezoneConverter


class BookingService:
    """
    Validates a chosen slot, re-checks it against the live calendar and commits it.

    Each call is one validate/commit transaction. The slot list the caller got
    earlier may be stale, so the calendar is always re-read before creating
    the event.
    """

    def __init__(
        self,
        gateway,
        store,
        default_reminder_minutes: int = settings.default_reminder_minutes,
        created_by: str = settings.booking_created_by
    ):
        self.gateway = gateway
        self.store = store
        self.default_reminder_minutes = default_reminder_minutes
        self.created_by = created_by

    def book_event(self, account_id: str, request: BookingRequest, timezone: str) -> BookingResult:
        start = TimezoneConverter.to_instant(request.start)
        end = TimezoneConverter.to_instant(request.end)
        if start >= end:
            raise InvalidRangeError(f"Booking start {start.isoformat()} must be before end {end.isoformat()}")
        timezone = TimezoneConverter.normalize(timezone)

        logger.info(f"📅 Booking calendar event for {account_id} in timezone: {timezone}")
        logger.info(f"   Start UTC: {start.isoformat()} ({TimezoneConverter.format_time_with_timezone(start, timezone)})")

        try:
            events = self.gateway.get_events(account_id, start, end, timezone)
        except ExternalGatewayError as e:
            logger.error(f"Could not re-check availability before booking: {e.message}")
            return BookingResult.from_error(e)

        try:
            self._ensure_free(start, end, events)
        except ConflictError as e:
            return BookingResult.from_error(e)

        draft = CalendarEventDraft(
            subject=f"Call: {request.employee_name} - {request.topic}",
            description=self.create_event_description(request),
            start_local=TimezoneConverter.format_for_provider(start, timezone),
            end_local=TimezoneConverter.format_for_provider(end, timezone),
            timezone=timezone,
            reminder_minutes=(
                self.default_reminder_minutes if request.reminder_minutes is None else request.reminder_minutes
            )
        )
        logger.info(f"   Start {timezone}: {draft.start_local}")
        logger.info(f"   End {timezone}: {draft.end_local}")

        try:
            event_id = self.gateway.create_event(account_id, draft)
        except ExternalGatewayError as e:
            logger.error(f"Error booking event: {e.message}")
            return BookingResult.from_error(e)

        booking_id = self._log_booking(account_id, event_id, request, start, end)

        logger.info(
            f"✅ Booked event {event_id} for {account_id}",
            extra={"account_id": account_id, "event_id": event_id, "booking_id": booking_id}
        )
        return BookingResult(success=True, event_id=event_id, booking_id=booking_id)

    def cancel_event(self, account_id: str, event_id: str, booking_id: Optional[str] = None) -> bool:
        try:
            self.gateway.delete_event(account_id, event_id)
        except ExternalGatewayError as e:
            logger.error(f"Error canceling event {event_id}: {e.message}")
            return False

        if booking_id:
            self._mark_cancelled(account_id, event_id, booking_id)

        logger.info(f"Cancelled event {event_id}", extra={"account_id": account_id, "event_id": event_id})
        return True

    def _mark_cancelled(self, account_id: str, event_id: str, booking_id: str) -> None:
        try:
            record = self.store.get_booking(booking_id)
            if record is None or record.account_id != account_id or record.external_event_id != event_id:
                logger.warning(
                    f"Booking {booking_id} does not belong to event {event_id} of {account_id}; left unchanged"
                )
                return
            self.store.update_booking_status(booking_id, BookingStatus.CANCELLED)
        except PersistenceError as e:
            logger.error(f"Event {event_id} deleted but booking log not updated: {e}")

    def get_upcoming_bookings(self, account_id: str, now: datetime, limit: int = 10):
        try:
            return self.store.list_upcoming(account_id, now, limit)
        except PersistenceError as e:
            logger.error(f"Error fetching upcoming bookings: {e}")
            return []

    def _ensure_free(self, start: datetime, end: datetime, events) -> None:
        blocking = overlaps(start, end, to_busy_intervals(events))
        if blocking is not None:
            logger.warning(
                f"❌ Slot {start.isoformat()} is no longer free: overlaps '{blocking.label}' "
                f"({blocking.start.isoformat()} - {blocking.end.isoformat()})"
            )
            raise ConflictError("The selected time is no longer available.")

    def create_event_description(self, request: BookingRequest) -> str:
        description = f"<p><strong>Employee:</strong> {escape(request.employee_name)}</p>"

        if request.employee_phone:
            description += f"<p><strong>Phone:</strong> {escape(request.employee_phone)}</p>"

        description += f"<p><strong>Topic:</strong> {escape(request.topic)}</p>"
        description += "<hr><p><em>Scheduled by the HR Assistant</em></p>"

        return description

    def _log_booking(
        self,
        account_id: str,
        event_id: str,
        request: BookingRequest,
        start: datetime,
        end: datetime
    ) -> Optional[str]:
        # The event already exists; a failed log entry does not undo it
        record = BookingRecord(
            account_id=account_id,
            external_event_id=event_id,
            employee_name=request.employee_name,
            employee_phone=request.employee_phone,
            topic=request.topic,
            starts_at=start,
            ends_at=end,
            duration_minutes=int((end - start) / timedelta(minutes=1)),
            status=BookingStatus.SCHEDULED.value,
            created_by=self.created_by
        )

        try:
            return self.store.insert_booking_record(record)
        except PersistenceError as e:
            logger.error(f"Error creating booking log for event {event_id}: {e}")
            return None
