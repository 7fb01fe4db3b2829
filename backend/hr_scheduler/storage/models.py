from datetime import datetime, timezone
from typing import Optional
import uuid

from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BookingRecord(SQLModel, table=True):
    __tablename__ = "calendar_bookings"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    account_id: str = Field(index=True)
    external_event_id: str
    employee_name: str
    employee_phone: Optional[str] = None
    topic: str
    starts_at: datetime = Field(index=True)  # naive UTC
    ends_at: datetime  # naive UTC
    duration_minutes: int = 30
    status: str = Field(default="scheduled", index=True)
    created_by: str
    created_at: datetime = Field(default_factory=_utc_naive_now)
