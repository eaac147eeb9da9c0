"""
Conflict resolution.

Marks candidate slots unavailable when they overlap something the provider
is already committed to: blocking appointments, manual blocks and breaks.
Intervals are half-open, so a slot ending at 10:00 does not clash with an
appointment starting at 10:00.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from backend.scheduling.slots import TimeSlot
from backend.scheduling.status import AppointmentStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookedAppointment:
    id: int | None
    start: int
    end: int
    status: AppointmentStatus | None


@dataclass(frozen=True)
class BusyInterval:
    start: int
    end: int
    source: str


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and b_start < a_end


def appointment_busy_intervals(
    appointments: Iterable[BookedAppointment],
    buffer_minutes: int = 0,
) -> list[BusyInterval]:
    """Busy intervals for appointments whose status holds the slot.

    ``status=None`` means the stored value was not recognised; such rows
    keep blocking rather than risk offering a taken slot.
    """
    busy = []
    for appointment in appointments:
        if appointment.status is not None and not appointment.status.blocks_slots:
            continue
        busy.append(
            BusyInterval(
                start=appointment.start,
                end=appointment.end + buffer_minutes,
                source=f'appointment:{appointment.id}',
            )
        )
    return busy


def resolve_conflicts(
    candidates: Iterable[TimeSlot],
    busy: Iterable[BusyInterval],
) -> list[TimeSlot]:
    busy = sorted(busy, key=lambda interval: interval.start)
    resolved = []

    for slot in candidates:
        conflict = next(
            (interval for interval in busy if overlaps(slot.start, slot.end, interval.start, interval.end)),
            None,
        )
        if conflict is not None:
            logger.debug('Slot %s-%s unavailable (%s)', slot.start_time, slot.end_time, conflict.source)
        resolved.append(replace(slot, is_available=conflict is None))

    return resolved
