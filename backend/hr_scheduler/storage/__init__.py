"""Booking log persistence."""

from .database import engine, init_db, make_engine
from .models import BookingRecord
from .records import BookingRecordStore, BookingStore

__all__ = ["engine", "init_db", "make_engine", "BookingRecord", "BookingRecordStore", "BookingStore"]
