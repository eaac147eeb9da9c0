import datetime as dt
from datetime import time

from fastapi import APIRouter, Depends, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from backend.database import get_db
from backend.routes.common import CamelModel, ensure_database_ready, format_clock, to_http_exception
from backend.scheduling import booking, errors
from backend.scheduling.time_utils import parse_time

router = APIRouter(tags=['appointments'])

MAX_APPOINTMENT_NOTES_LENGTH = 600


class CreateAppointmentRequest(CamelModel):
    provider_id: int
    client_id: int
    service_id: int
    date: dt.date
    start_time: time
    notes: str | None = None

    @field_validator('start_time', mode='before')
    @classmethod
    def parse_hh_mm(cls, value):
        if isinstance(value, str):
            try:
                return parse_time(value)
            except errors.ValidationError as exc:
                raise ValueError(exc.message) from exc
        return value

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class UpdateAppointmentStatusRequest(CamelModel):
    status: str


class AppointmentResponse(CamelModel):
    id: int
    provider_id: int
    client_id: int
    service_id: int | None = None
    date: dt.date
    start_time: str
    end_time: str
    status: str
    notes: str | None = None


def appointment_response(appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        provider_id=appointment.provider_id,
        client_id=appointment.client_id,
        service_id=appointment.service_id,
        date=appointment.date,
        start_time=format_clock(appointment.start_time),
        end_time=format_clock(appointment.end_time),
        status=appointment.status,
        notes=appointment.notes,
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(data: CreateAppointmentRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = booking.create_appointment(
            db,
            data.provider_id,
            data.client_id,
            data.service_id,
            data.date,
            data.start_time,
            notes=data.notes,
        )
        return appointment_response(appointment)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.update_appointment_status(db, appointment_id, data.status)
        return appointment_response(appointment)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
