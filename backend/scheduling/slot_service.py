"""
Slot query.

Recomputes a provider's slots for one date from the stores on every call.
Nothing is cached, so a query always reflects the latest committed edits
and bookings, and concurrent queries share no state.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Sequence

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from backend.core import config
from backend.scheduling import store
from backend.scheduling.availability import merge_windows, resolve_windows, subtract_range
from backend.scheduling.conflicts import appointment_busy_intervals, resolve_conflicts
from backend.scheduling.errors import ValidationError
from backend.scheduling.slots import TimeSlot, drop_past_slots, generate_candidates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DateAvailability:
    date: date
    provider_id: int
    is_available: bool
    has_appointments: bool
    has_specific_availability: bool
    has_weekday_availability: bool
    is_fully_booked: bool


def _read(session_factory: Callable[[], Session], loader, *args):
    db = session_factory()
    try:
        return loader(db, *args)
    finally:
        db.close()


async def _read_day(session_factory: Callable[[], Session], provider_id: int, target_date: date):
    return await asyncio.gather(
        run_in_threadpool(_read, session_factory, store.list_windows_for_date, provider_id, target_date),
        run_in_threadpool(_read, session_factory, store.list_appointments_for_date, provider_id, target_date),
        run_in_threadpool(_read, session_factory, store.list_blocked_intervals, provider_id, target_date),
        run_in_threadpool(_read, session_factory, store.list_break_intervals, provider_id, target_date),
    )


async def get_available_slots(
    session_factory: Callable[[], Session],
    provider_id: int,
    target_date: date,
    service_id: int | None = None,
    *,
    service_ids: Sequence[int] | None = None,
    interval_minutes: int | None = None,
    now: datetime | None = None,
) -> list[TimeSlot]:
    """Ordered slots for ``provider_id`` on ``target_date``.

    Every candidate that fits the provider's availability is returned, with
    ``is_available`` false where it clashes with a booking, block or break.
    The result is a hint for the booking path, not a reservation. Passing
    ``now`` drops slots that already started (plus the configured lead time).

    ``service_ids`` asks for slots long enough for several services booked
    back to back; it cannot be combined with ``service_id``.

    Raises ``NotFoundError`` for an unknown provider or service and
    ``DataUnavailableError`` when any store read fails.
    """
    if service_ids is not None:
        if service_id is not None:
            raise ValidationError('Pass either a single service or a list of services, not both.')
        service_duration = await run_in_threadpool(
            _read, session_factory, store.get_combined_service_duration, provider_id, list(service_ids)
        )
    else:
        service_duration = await run_in_threadpool(
            _read, session_factory, store.get_service_duration, provider_id, service_id
        )

    windows, appointments, blocks, breaks = await _read_day(session_factory, provider_id, target_date)

    merged = merge_windows(resolve_windows(windows, target_date))
    candidates = generate_candidates(merged, service_duration, interval_minutes)
    busy = appointment_busy_intervals(appointments, config.APPOINTMENT_BUFFER_MINUTES) + blocks + breaks
    slots = resolve_conflicts(candidates, busy)

    if now is not None:
        slots = drop_past_slots(slots, target_date, now, config.SLOT_LEAD_TIME_MINUTES)

    logger.info(
        'Generated %d slots (%d available) for provider %s on %s',
        len(slots),
        sum(1 for slot in slots if slot.is_available),
        provider_id,
        target_date.isoformat(),
    )
    return slots


async def check_date(
    session_factory: Callable[[], Session],
    provider_id: int,
    target_date: date,
) -> DateAvailability:
    """Calendar summary of one date.

    The date is fully booked when appointments, blocks and breaks together
    cover every open minute of its merged availability.
    """
    await run_in_threadpool(_read, session_factory, store.get_provider, provider_id)
    windows, appointments, blocks, breaks = await _read_day(session_factory, provider_id, target_date)

    has_specific = any(window.is_available for window in windows if window.date == target_date)
    has_weekday = any(window.is_available for window in windows if window.date is None)

    open_ranges = merge_windows(resolve_windows(windows, target_date))
    busy = appointment_busy_intervals(appointments, config.APPOINTMENT_BUFFER_MINUTES) + blocks + breaks
    remaining = open_ranges
    for interval in busy:
        remaining = [piece for window in remaining for piece in subtract_range(window, interval.start, interval.end)]
    is_fully_booked = bool(open_ranges) and not remaining

    return DateAvailability(
        date=target_date,
        provider_id=provider_id,
        is_available=bool(open_ranges) and not is_fully_booked,
        has_appointments=any(
            appointment.status is None or appointment.status.blocks_slots for appointment in appointments
        ),
        has_specific_availability=has_specific,
        has_weekday_availability=has_weekday,
        is_fully_booked=is_fully_booked,
    )
