"""
Read access to the availability and appointment stores.

Rows are converted to the plain scheduling types at this boundary, so the
slot algorithm never sees ORM objects or raw status strings. Any
SQLAlchemy failure surfaces as ``DataUnavailableError``.
"""

import functools
import logging
from datetime import date
from typing import Sequence

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.models.appointment import Appointment
from backend.models.availability import Availability
from backend.models.blocked_time_slot import BlockedTimeSlot
from backend.models.provider_break import ProviderBreak
from backend.models.service import ProviderService, Service
from backend.models.user import User
from backend.scheduling.availability import Window
from backend.scheduling.conflicts import BookedAppointment, BusyInterval
from backend.scheduling.errors import DataUnavailableError, NotFoundError, ValidationError
from backend.scheduling.status import AppointmentStatus
from backend.scheduling.time_utils import day_of_week, to_minutes

logger = logging.getLogger(__name__)

PROVIDER_ROLE = 'provider'


def translate_storage_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.exception('Storage read failed in %s', func.__name__)
            raise DataUnavailableError('Scheduling data is temporarily unavailable.') from exc

    return wrapper


def to_window(row: Availability) -> Window:
    return Window(
        id=row.id,
        start=to_minutes(row.start_time),
        end=to_minutes(row.end_time),
        is_available=bool(row.is_available) if row.is_available is not None else True,
        interval_minutes=row.interval_minutes,
        day_of_week=row.day_of_week,
        date=row.date,
    )


def to_booked_appointment(row: Appointment) -> BookedAppointment:
    try:
        status = AppointmentStatus.normalize(row.status)
    except ValueError:
        logger.warning('Appointment %s has unknown status %r; treating it as blocking', row.id, row.status)
        status = None

    return BookedAppointment(
        id=row.id,
        start=to_minutes(row.start_time),
        end=to_minutes(row.end_time),
        status=status,
    )


@translate_storage_errors
def get_provider(db: Session, provider_id: int) -> User:
    provider = db.query(User).filter(User.id == provider_id, User.role == PROVIDER_ROLE).first()
    if provider is None:
        raise NotFoundError(f'Provider {provider_id} not found.')
    return provider


@translate_storage_errors
def get_service_duration(db: Session, provider_id: int, service_id: int | None) -> int:
    """Slot length for ``service_id`` as offered by ``provider_id``.

    The provider's own execution time wins over the service default.
    """
    get_provider(db, provider_id)

    if service_id is None:
        return config.DEFAULT_SERVICE_DURATION_MINUTES

    provider_service = db.query(ProviderService).filter(
        ProviderService.provider_id == provider_id,
        ProviderService.service_id == service_id,
        ProviderService.is_active.is_(True),
    ).first()
    if provider_service is not None and provider_service.execution_time:
        return provider_service.execution_time

    service = db.query(Service).filter(
        Service.id == service_id,
        Service.is_active.is_(True),
    ).first()
    if service is None or (service.provider_id != provider_id and provider_service is None):
        raise NotFoundError(f'Service {service_id} not found for provider {provider_id}.')

    return service.duration


@translate_storage_errors
def list_windows_for_date(db: Session, provider_id: int, target_date: date) -> list[Window]:
    rows = db.query(Availability).filter(
        Availability.provider_id == provider_id,
        or_(
            Availability.date == target_date,
            Availability.date.is_(None) & (Availability.day_of_week == day_of_week(target_date)),
        ),
    ).all()
    return [to_window(row) for row in rows]


@translate_storage_errors
def list_weekly_windows(db: Session, provider_id: int) -> list[Window]:
    rows = db.query(Availability).filter(
        Availability.provider_id == provider_id,
        Availability.date.is_(None),
    ).order_by(Availability.day_of_week.asc(), Availability.start_time.asc()).all()
    return [to_window(row) for row in rows]


@translate_storage_errors
def list_appointments_for_date(db: Session, provider_id: int, target_date: date) -> list[BookedAppointment]:
    rows = db.query(Appointment).filter(
        Appointment.provider_id == provider_id,
        Appointment.date == target_date,
    ).all()
    return [to_booked_appointment(row) for row in rows]


@translate_storage_errors
def list_blocked_intervals(db: Session, provider_id: int, target_date: date) -> list[BusyInterval]:
    rows = db.query(BlockedTimeSlot).filter(
        BlockedTimeSlot.provider_id == provider_id,
        BlockedTimeSlot.date == target_date,
    ).all()
    return [
        BusyInterval(start=to_minutes(row.start_time), end=to_minutes(row.end_time), source=f'block:{row.id}')
        for row in rows
    ]


@translate_storage_errors
def list_break_intervals(db: Session, provider_id: int, target_date: date) -> list[BusyInterval]:
    rows = db.query(ProviderBreak).filter(
        ProviderBreak.provider_id == provider_id,
        or_(
            ProviderBreak.date == target_date,
            ProviderBreak.date.is_(None) & (ProviderBreak.day_of_week == day_of_week(target_date)),
        ),
    ).all()
    return [
        BusyInterval(start=to_minutes(row.start_time), end=to_minutes(row.end_time), source=f'break:{row.name}')
        for row in rows
    ]


@translate_storage_errors
def get_combined_service_duration(db: Session, provider_id: int, service_ids: Sequence[int]) -> int:
    """Total length of several services booked back to back."""
    if not service_ids:
        raise ValidationError('At least one service is required.')
    return sum(get_service_duration(db, provider_id, service_id) for service_id in service_ids)
