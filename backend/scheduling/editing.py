"""
Provider-side edits of availability windows, manual blocks and breaks.

Each public function is one unit of work: it commits once on success and
rolls back on any storage failure, so concurrent readers never observe a
half-applied edit. Removing a window never touches existing appointments.
"""

import logging
from datetime import date, time
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.availability import Availability
from backend.models.blocked_time_slot import BlockedTimeSlot
from backend.models.provider_break import ProviderBreak
from backend.scheduling import store
from backend.scheduling.availability import merge_windows, resolve_windows
from backend.scheduling.errors import DataUnavailableError, NotFoundError, ValidationError
from backend.scheduling.time_utils import format_minutes, to_minutes, validate_range

logger = logging.getLogger(__name__)


def _commit(db: Session, *rows):
    try:
        db.add_all(rows)
        db.commit()
        for row in rows:
            db.refresh(row)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to save scheduling changes')
        raise DataUnavailableError('Could not save changes; try again.') from exc
    return list(rows)


def _delete(db: Session, row) -> None:
    try:
        db.delete(row)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete %s %s', type(row).__name__, row.id)
        raise DataUnavailableError('Could not save changes; try again.') from exc


def _validate_day_of_week(value: int) -> None:
    if not 0 <= value <= 6:
        raise ValidationError('Day of week must be between 0 (Sunday) and 6 (Saturday).')


def add_availability_windows(
    db: Session,
    provider_id: int,
    target_date: date,
    ranges: Iterable[tuple[time, time]],
    is_available: bool = True,
    interval_minutes: int | None = None,
) -> list[Availability]:
    """Add date-specific windows for ``target_date`` in one transaction.

    A range that exactly repeats an existing window for the date, or another
    range of the same request, is rejected rather than merged.
    """
    store.get_provider(db, provider_id)

    if interval_minutes is not None and interval_minutes <= 0:
        raise ValidationError('Slot interval must be a positive number of minutes.')

    ranges = list(ranges)
    if not ranges:
        raise ValidationError('At least one time range is required.')

    try:
        existing = {
            (row.start_time, row.end_time)
            for row in db.query(Availability).filter(
                Availability.provider_id == provider_id,
                Availability.date == target_date,
            ).all()
        }
    except SQLAlchemyError as exc:
        raise DataUnavailableError('Scheduling data is temporarily unavailable.') from exc

    rows = []
    for start_time, end_time in ranges:
        validate_range(to_minutes(start_time), to_minutes(end_time))
        if (start_time, end_time) in existing:
            raise ValidationError(
                f'Availability {start_time:%H:%M}-{end_time:%H:%M} already exists on {target_date.isoformat()}.'
            )
        existing.add((start_time, end_time))
        rows.append(
            Availability(
                provider_id=provider_id,
                day_of_week=None,
                date=target_date,
                start_time=start_time,
                end_time=end_time,
                is_available=is_available,
                interval_minutes=interval_minutes,
            )
        )

    saved = _commit(db, *rows)
    logger.info('Provider %s added %d availability window(s) on %s', provider_id, len(saved), target_date)
    return saved


def add_availability_window(
    db: Session,
    provider_id: int,
    target_date: date,
    start_time: time,
    end_time: time,
    is_available: bool = True,
    interval_minutes: int | None = None,
) -> Availability:
    return add_availability_windows(
        db,
        provider_id,
        target_date,
        [(start_time, end_time)],
        is_available=is_available,
        interval_minutes=interval_minutes,
    )[0]


def add_recurring_window(
    db: Session,
    provider_id: int,
    day_of_week: int,
    start_time: time,
    end_time: time,
    is_available: bool = True,
    interval_minutes: int | None = None,
) -> Availability:
    store.get_provider(db, provider_id)
    _validate_day_of_week(day_of_week)
    validate_range(to_minutes(start_time), to_minutes(end_time))
    if interval_minutes is not None and interval_minutes <= 0:
        raise ValidationError('Slot interval must be a positive number of minutes.')

    try:
        duplicate = db.query(Availability).filter(
            Availability.provider_id == provider_id,
            Availability.date.is_(None),
            Availability.day_of_week == day_of_week,
            Availability.start_time == start_time,
            Availability.end_time == end_time,
        ).first()
    except SQLAlchemyError as exc:
        raise DataUnavailableError('Scheduling data is temporarily unavailable.') from exc
    if duplicate:
        raise ValidationError('This weekly availability already exists.')

    window = Availability(
        provider_id=provider_id,
        day_of_week=day_of_week,
        date=None,
        start_time=start_time,
        end_time=end_time,
        is_available=is_available,
        interval_minutes=interval_minutes,
    )
    return _commit(db, window)[0]


def remove_availability_window(db: Session, window_id: int, provider_id: int | None = None) -> None:
    try:
        query = db.query(Availability).filter(Availability.id == window_id)
        if provider_id is not None:
            query = query.filter(Availability.provider_id == provider_id)
        window = query.first()
    except SQLAlchemyError as exc:
        raise DataUnavailableError('Scheduling data is temporarily unavailable.') from exc

    if window is None:
        raise NotFoundError(f'Availability window {window_id} not found.')

    _delete(db, window)
    logger.info('Removed availability window %s of provider %s', window_id, window.provider_id)


def list_availability_windows(db: Session, provider_id: int, target_date: date):
    store.get_provider(db, provider_id)
    return resolve_windows(store.list_windows_for_date(db, provider_id, target_date), target_date)


def list_weekly_availability(db: Session, provider_id: int):
    store.get_provider(db, provider_id)
    return store.list_weekly_windows(db, provider_id)


def block_time_slot(
    db: Session,
    provider_id: int,
    target_date: date,
    start_time: time,
    end_time: time,
    reason: str | None = None,
) -> BlockedTimeSlot:
    """Close ``[start_time, end_time)`` on one date without editing windows."""
    store.get_provider(db, provider_id)
    start, end = to_minutes(start_time), to_minutes(end_time)
    validate_range(start, end)

    open_ranges = merge_windows(
        resolve_windows(store.list_windows_for_date(db, provider_id, target_date), target_date)
    )
    if not open_ranges:
        raise ValidationError(f'No availability configured on {target_date.isoformat()}.')

    containing = next(
        (window for window in open_ranges if window.start < end and start < window.end),
        open_ranges[0],
    )

    try:
        duplicate = db.query(BlockedTimeSlot).filter(
            BlockedTimeSlot.provider_id == provider_id,
            BlockedTimeSlot.date == target_date,
            BlockedTimeSlot.start_time == start_time,
            BlockedTimeSlot.end_time == end_time,
        ).first()
    except SQLAlchemyError as exc:
        raise DataUnavailableError('Scheduling data is temporarily unavailable.') from exc
    if duplicate:
        raise ValidationError(f'{format_minutes(start)}-{format_minutes(end)} is already blocked.')

    block = BlockedTimeSlot(
        provider_id=provider_id,
        availability_id=containing.id,
        date=target_date,
        start_time=start_time,
        end_time=end_time,
        reason=reason,
    )
    saved = _commit(db, block)[0]
    logger.info('Provider %s blocked %s-%s on %s', provider_id, format_minutes(start), format_minutes(end), target_date)
    return saved


def unblock_time_slot(db: Session, provider_id: int, block_id: int) -> None:
    try:
        block = db.query(BlockedTimeSlot).filter(
            BlockedTimeSlot.id == block_id,
            BlockedTimeSlot.provider_id == provider_id,
        ).first()
    except SQLAlchemyError as exc:
        raise DataUnavailableError('Scheduling data is temporarily unavailable.') from exc

    if block is None:
        raise NotFoundError(f'Blocked time slot {block_id} not found.')

    _delete(db, block)


def list_blocked_slots(db: Session, provider_id: int, target_date: date) -> list[BlockedTimeSlot]:
    store.get_provider(db, provider_id)
    try:
        return db.query(BlockedTimeSlot).filter(
            BlockedTimeSlot.provider_id == provider_id,
            BlockedTimeSlot.date == target_date,
        ).order_by(BlockedTimeSlot.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise DataUnavailableError('Scheduling data is temporarily unavailable.') from exc


def add_provider_break(
    db: Session,
    provider_id: int,
    name: str,
    start_time: time,
    end_time: time,
    day_of_week: int | None = None,
    target_date: date | None = None,
) -> ProviderBreak:
    store.get_provider(db, provider_id)
    if (day_of_week is None) == (target_date is None):
        raise ValidationError('A break needs either a day of week or a date, not both.')
    if day_of_week is not None:
        _validate_day_of_week(day_of_week)
    validate_range(to_minutes(start_time), to_minutes(end_time))

    normalized_name = name.strip()
    if not normalized_name:
        raise ValidationError('Break name is required.')

    provider_break = ProviderBreak(
        provider_id=provider_id,
        name=normalized_name,
        day_of_week=day_of_week,
        date=target_date,
        start_time=start_time,
        end_time=end_time,
    )
    return _commit(db, provider_break)[0]


def remove_provider_break(db: Session, provider_id: int, break_id: int) -> None:
    try:
        provider_break = db.query(ProviderBreak).filter(
            ProviderBreak.id == break_id,
            ProviderBreak.provider_id == provider_id,
        ).first()
    except SQLAlchemyError as exc:
        raise DataUnavailableError('Scheduling data is temporarily unavailable.') from exc

    if provider_break is None:
        raise NotFoundError(f'Break {break_id} not found.')

    _delete(db, provider_break)


def list_provider_breaks(db: Session, provider_id: int) -> list[ProviderBreak]:
    store.get_provider(db, provider_id)
    try:
        return db.query(ProviderBreak).filter(
            ProviderBreak.provider_id == provider_id,
        ).order_by(ProviderBreak.date.asc(), ProviderBreak.day_of_week.asc(), ProviderBreak.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise DataUnavailableError('Scheduling data is temporarily unavailable.') from exc
