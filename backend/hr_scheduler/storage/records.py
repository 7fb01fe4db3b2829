from datetime import datetime, timezone
from typing import List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..errors import PersistenceError
from ..models import BookingStatus
from ..utils.logger import logger
from .models import BookingRecord


def _to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


class BookingStore(Protocol):
    def insert_booking_record(self, record: BookingRecord) -> str:
        ...

    def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        ...

    def update_booking_status(self, booking_id: str, status: BookingStatus) -> None:
        ...

    def list_upcoming(self, account_id: str, now: datetime, limit: int = 10) -> List[BookingRecord]:
        ...


class BookingRecordStore:
    """Best-effort booking log. The external calendar stays the source of truth."""

    def __init__(self, engine):
        self.engine = engine

    def insert_booking_record(self, record: BookingRecord) -> str:
        record.starts_at = _to_naive_utc(record.starts_at)
        record.ends_at = _to_naive_utc(record.ends_at)

        try:
            with Session(self.engine) as session:
                session.add(record)
                session.commit()
                session.refresh(record)
                return record.id
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not insert booking record: {e}") from e

    def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        try:
            with Session(self.engine) as session:
                return session.get(BookingRecord, booking_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not read booking record {booking_id}: {e}") from e

    def update_booking_status(self, booking_id: str, status: BookingStatus) -> None:
        status = BookingStatus(status)
        try:
            with Session(self.engine) as session:
                record = session.get(BookingRecord, booking_id)
                if record is None:
                    raise PersistenceError(f"Booking record {booking_id} not found")
                if record.status != BookingStatus.SCHEDULED.value:
                    raise PersistenceError(f"Booking record {booking_id} is already {record.status}")

                record.status = status.value
                session.add(record)
                session.commit()
                logger.info(f"Booking {booking_id} marked {status.value}")
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not update booking record {booking_id}: {e}") from e

    def list_upcoming(self, account_id: str, now: datetime, limit: int = 10) -> List[BookingRecord]:
        try:
            with Session(self.engine) as session:
                q = (
                    select(BookingRecord)
                    .where(
                        BookingRecord.account_id == account_id,
                        BookingRecord.status == BookingStatus.SCHEDULED.value,
                        BookingRecord.starts_at >= _to_naive_utc(now),
                    )
                    .order_by(BookingRecord.starts_at)
                    .limit(limit)
                )
                return list(session.exec(q).all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not list bookings for {account_id}: {e}") from e
