from datetime import date, datetime, time, timedelta
from typing import List, NamedTuple, Optional
import re

from ..core.config import settings
from ..core.exceptions import InvalidInput

SLOT_LABEL_FORMAT = "%I:%M %p"
_SLOT_LABEL_RE = re.compile(r"^(0[1-9]|1[0-2]):[0-5]\d (AM|PM)$")


class WorkingHours(NamedTuple):
    """Daily bounds for slot generation, as "HH:MM" strings on a 24h clock."""
    start: str
    end: str


def parse_clock(value: str) -> time:
    """Parse an "HH:MM" 24h clock string."""
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid time '{value}'. Expected HH:MM on a 24-hour clock.")


def format_slot(instant: datetime) -> str:
    return instant.strftime(SLOT_LABEL_FORMAT)


def is_slot_label(value: str) -> bool:
    """Check that a value looks like "09:00 AM"."""
    return bool(value) and _SLOT_LABEL_RE.match(value) is not None


class SlotGenerator:
    """Builds the bookable time grid for one doctor on one date.

    Instants start at the working-hours start and advance by a fixed
    interval until the end (exclusive). Instants inside the daily break
    window [break_start, break_end) are skipped.
    """

    def __init__(
        self,
        interval_minutes: Optional[int] = None,
        break_start: Optional[str] = None,
        break_end: Optional[str] = None,
    ):
        if interval_minutes is None:
            interval_minutes = settings.SLOT_INTERVAL_MINUTES
        if interval_minutes <= 0:
            raise ValueError(f"Slot interval must be a positive number of minutes, got {interval_minutes}")

        self.interval = timedelta(minutes=interval_minutes)
        self.break_start = parse_clock(settings.BREAK_START if break_start is None else break_start)
        self.break_end = parse_clock(settings.BREAK_END if break_end is None else break_end)

    def generate(self, working_hours: WorkingHours, on_date: date) -> List[str]:
        """Return the ordered slot labels for ``on_date``.

        An empty list is returned when the start is not before the end.
        """
        start = datetime.combine(on_date, parse_clock(working_hours.start))
        end = datetime.combine(on_date, parse_clock(working_hours.end))
        lunch_start = datetime.combine(on_date, self.break_start)
        lunch_end = datetime.combine(on_date, self.break_end)

        slots = []
        current = start
        while current < end:
            if not (lunch_start <= current < lunch_end):
                slots.append(format_slot(current))
            current += self.interval

        return slots
