"""
Slot generation.

Turns merged availability windows into fixed-length candidate slots. The
generator only decides what fits inside a window; whether a candidate can
actually be booked is decided by the conflict resolver.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from backend.core import config
from backend.scheduling.availability import Window
from backend.scheduling.errors import ValidationError
from backend.scheduling.time_utils import MINUTES_PER_DAY, format_minutes


@dataclass(frozen=True)
class TimeSlot:
    start: int
    end: int
    availability_id: int | None = None
    is_available: bool = True

    @property
    def start_time(self) -> str:
        return format_minutes(self.start)

    @property
    def end_time(self) -> str:
        return format_minutes(self.end)


def generate_candidates(
    windows: Iterable[Window],
    service_duration: int,
    interval_minutes: int | None = None,
) -> list[TimeSlot]:
    """Emit ``[cursor, cursor + duration)`` slots stepping by the interval.

    The step is ``interval_minutes`` when given, else the window's own
    interval, else ``DEFAULT_INTERVAL_MINUTES``. With a step shorter than the
    duration consecutive candidates overlap each other.
    """
    if service_duration <= 0:
        raise ValidationError('Service duration must be a positive number of minutes.')
    if interval_minutes is not None and interval_minutes <= 0:
        raise ValidationError('Slot interval must be a positive number of minutes.')

    candidates: list[TimeSlot] = []
    for window in sorted(windows, key=lambda window: (window.start, window.end)):
        step = interval_minutes or window.interval_minutes or config.DEFAULT_INTERVAL_MINUTES
        if step <= 0:
            raise ValidationError('Slot interval must be a positive number of minutes.')

        cursor = window.start
        while cursor + service_duration <= window.end:
            slot_end = cursor + service_duration
            # Slots never wrap past midnight.
            if slot_end > MINUTES_PER_DAY:
                break
            candidates.append(TimeSlot(start=cursor, end=slot_end, availability_id=window.id))
            cursor += step

    candidates.sort(key=lambda slot: slot.start)
    return candidates


def drop_past_slots(
    slots: list[TimeSlot],
    target_date: date,
    now: datetime,
    lead_minutes: int = 0,
) -> list[TimeSlot]:
    today = now.date()
    if target_date > today:
        return slots
    if target_date < today:
        return []

    cutoff = now.hour * 60 + now.minute + lead_minutes
    return [slot for slot in slots if slot.start >= cutoff]
