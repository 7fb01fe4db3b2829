from datetime import datetime
from typing import List, Optional, Sequence

import pytz

from ..models import TimeSlot
from ..utils.logger import logger
from .timezone import TimezoneConverter


class SlotRanker:
    """
    Weighted slot recommendation.

    score = morning bonus (local 9:00-12:00)
          + early-week bonus (Monday, Tuesday)
          - day penalty per day between now and the slot
    Ties keep chronological order, so the ranking does not depend on input order.
    """
    MORNING_HOURS = (9, 12)
    EARLY_WEEKDAYS = (0, 1)

    def __init__(self, morning_bonus: float = 2.0, early_week_bonus: float = 1.0, day_penalty: float = 0.5):
        self.morning_bonus = morning_bonus
        self.early_week_bonus = early_week_bonus
        self.day_penalty = day_penalty

    def score(self, slot: TimeSlot, now: datetime) -> float:
        local = TimezoneConverter.instant_to_wall_clock(slot.start, slot.timezone)
        score = 0.0

        if self.MORNING_HOURS[0] <= local.hour < self.MORNING_HOURS[1]:
            score += self.morning_bonus

        if local.weekday() in self.EARLY_WEEKDAYS:
            score += self.early_week_bonus

        days_from_now = max(0.0, (slot.start - now).total_seconds() / 86400)
        score -= self.day_penalty * days_from_now
        return score

    def recommend(self, slots: Sequence[TimeSlot], count: int = 3, now: Optional[datetime] = None) -> List[TimeSlot]:
        if not slots or count <= 0:
            return []

        now = TimezoneConverter.to_instant(now) if now is not None else datetime.now(pytz.UTC)

        ranked = sorted(slots, key=lambda slot: (-self.score(slot, now), slot.start, slot.end))
        top_slots = ranked[:count]

        logger.info(f"Recommended {len(top_slots)} top slots out of {len(slots)}")
        return top_slots
