"""
Booking path.

The slot query only hints at what is free; this module is where a slot is
actually taken. The insert runs as a check-and-insert under the configured
isolation level and the partial unique index on
``(provider_id, date, start_time, end_time)`` rejects a second live booking
of the same slot even when two writers pass the check at the same time.
"""

import logging
from datetime import date, time

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.models.appointment import Appointment
from backend.scheduling import store
from backend.scheduling.availability import merge_windows, resolve_windows
from backend.scheduling.conflicts import overlaps
from backend.scheduling.errors import DataUnavailableError, NotFoundError, SlotConflictError, ValidationError
from backend.scheduling.status import NON_BLOCKING_STATUSES, AppointmentStatus
from backend.scheduling.time_utils import MINUTES_PER_DAY, to_minutes, to_time

logger = logging.getLogger(__name__)

SERIALIZATION_FAILURE = '40001'


def _is_serialization_failure(exc: OperationalError) -> bool:
    return getattr(exc.orig, 'pgcode', None) == SERIALIZATION_FAILURE


def _holds_slot(appointment: Appointment) -> bool:
    try:
        return AppointmentStatus.normalize(appointment.status).blocks_slots
    except ValueError:
        return True


def find_conflicting_appointment(
    db: Session,
    provider_id: int,
    target_date: date,
    start_time: time,
    end_time: time,
    exclude_id: int | None = None,
) -> Appointment | None:
    """First live appointment that clashes with ``[start_time, end_time)``.

    Each appointment holds its slot plus ``APPOINTMENT_BUFFER_MINUTES`` after
    it, the same rule the slot query applies.
    """
    query = db.query(Appointment).filter(
        Appointment.provider_id == provider_id,
        Appointment.date == target_date,
        Appointment.start_time < end_time,
        Appointment.status.not_in([status.value for status in NON_BLOCKING_STATUSES]),
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)

    start, end = to_minutes(start_time), to_minutes(end_time)
    for appointment in query.order_by(Appointment.start_time.asc()).all():
        booked_end = to_minutes(appointment.end_time) + config.APPOINTMENT_BUFFER_MINUTES
        if overlaps(start, end, to_minutes(appointment.start_time), booked_end):
            return appointment
    return None


def create_appointment(
    db: Session,
    provider_id: int,
    client_id: int,
    service_id: int,
    target_date: date,
    start_time: time,
    notes: str | None = None,
) -> Appointment:
    if config.BOOKING_ISOLATION_LEVEL:
        db.connection(execution_options={'isolation_level': config.BOOKING_ISOLATION_LEVEL})

    duration = store.get_service_duration(db, provider_id, service_id)
    start = to_minutes(start_time)
    end = start + duration
    if end >= MINUTES_PER_DAY:
        raise ValidationError('Appointments cannot run past midnight.')
    end_time = to_time(end)

    open_ranges = merge_windows(
        resolve_windows(store.list_windows_for_date(db, provider_id, target_date), target_date)
    )
    if not any(window.start <= start and end <= window.end for window in open_ranges):
        raise ValidationError('Appointment is outside the provider availability.')

    closed = store.list_blocked_intervals(db, provider_id, target_date) + store.list_break_intervals(
        db, provider_id, target_date
    )
    if any(overlaps(start, end, interval.start, interval.end) for interval in closed):
        raise SlotConflictError('This time is blocked.')

    try:
        if find_conflicting_appointment(db, provider_id, target_date, start_time, end_time):
            raise SlotConflictError('This time is already booked.')

        appointment = Appointment(
            provider_id=provider_id,
            client_id=client_id,
            service_id=service_id,
            date=target_date,
            start_time=start_time,
            end_time=end_time,
            status=AppointmentStatus.PENDING.value,
            notes=notes,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
    except IntegrityError as exc:
        db.rollback()
        logger.warning(
            'Lost booking race for provider %s on %s at %s', provider_id, target_date, start_time.strftime('%H:%M')
        )
        raise SlotConflictError('This time was just booked by someone else.') from exc
    except OperationalError as exc:
        db.rollback()
        if _is_serialization_failure(exc):
            raise SlotConflictError('This time was just booked by someone else.') from exc
        logger.exception('Failed to create appointment')
        raise DataUnavailableError('Could not create the appointment; try again.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create appointment')
        raise DataUnavailableError('Could not create the appointment; try again.') from exc

    logger.info('Booked appointment %s for provider %s on %s', appointment.id, provider_id, target_date)
    return appointment


def update_appointment_status(db: Session, appointment_id: int, status: str | AppointmentStatus) -> Appointment:
    try:
        normalized = AppointmentStatus.normalize(status)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            raise NotFoundError(f'Appointment {appointment_id} not found.')

        if normalized.blocks_slots and not _holds_slot(appointment):
            conflict = find_conflicting_appointment(
                db,
                appointment.provider_id,
                appointment.date,
                appointment.start_time,
                appointment.end_time,
                exclude_id=appointment.id,
            )
            if conflict is not None:
                raise SlotConflictError('This time is already booked.')

        appointment.status = normalized.value
        db.commit()
        db.refresh(appointment)
    except IntegrityError as exc:
        # Reviving a cancelled booking whose slot was taken meanwhile.
        db.rollback()
        raise SlotConflictError('This time is already booked.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update appointment %s', appointment_id)
        raise DataUnavailableError('Could not update the appointment; try again.') from exc

    return appointment


def cancel_appointment(db: Session, appointment_id: int) -> Appointment:
    return update_appointment_status(db, appointment_id, AppointmentStatus.CANCELED)
