import datetime as dt
from datetime import time

from fastapi import APIRouter, Depends, Query, status
from fastapi.concurrency import run_in_threadpool
from pydantic import field_validator, model_validator
from sqlalchemy.orm import Session, sessionmaker

from backend.database import get_db, get_session_factory
from backend.routes.common import CamelModel, ensure_database_ready, format_clock, to_http_exception
from backend.scheduling import editing, errors, slot_service
from backend.scheduling.availability import Window
from backend.scheduling.time_utils import format_minutes, parse_date, parse_time

router = APIRouter(tags=['availability'])

MAX_BREAK_NAME_LENGTH = 80
MAX_BLOCK_REASON_LENGTH = 300


class TimeRangeRequest(CamelModel):
    start_time: time
    end_time: time

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def parse_hh_mm(cls, value):
        if isinstance(value, str):
            try:
                return parse_time(value)
            except errors.ValidationError as exc:
                raise ValueError(exc.message) from exc
        return value


class CreateAvailabilityRequest(CamelModel):
    date: dt.date
    slots: list[TimeRangeRequest]
    is_available: bool = True
    interval_minutes: int | None = None

    @field_validator('slots')
    @classmethod
    def validate_slots(cls, value: list[TimeRangeRequest]) -> list[TimeRangeRequest]:
        if not value:
            raise ValueError('At least one time range is required.')
        return value


class CreateWeeklyAvailabilityRequest(TimeRangeRequest):
    day_of_week: int
    is_available: bool = True
    interval_minutes: int | None = None


class CreateBlockedSlotRequest(TimeRangeRequest):
    date: dt.date
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_BLOCK_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_BLOCK_REASON_LENGTH} characters or fewer.')

        return normalized


class CreateBreakRequest(TimeRangeRequest):
    name: str
    day_of_week: int | None = None
    date: dt.date | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Break name is required.')
        if len(normalized) > MAX_BREAK_NAME_LENGTH:
            raise ValueError(f'Break name must be {MAX_BREAK_NAME_LENGTH} characters or fewer.')
        return normalized

    @model_validator(mode='after')
    def validate_schedule(self):
        if (self.day_of_week is None) == (self.date is None):
            raise ValueError('Provide either dayOfWeek or date.')
        return self


class AvailabilityWindowResponse(CamelModel):
    id: int
    start_time: str
    end_time: str
    is_available: bool
    day_of_week: int | None = None
    date: dt.date | None = None
    interval_minutes: int | None = None


class BlockedSlotResponse(CamelModel):
    id: int
    date: dt.date
    start_time: str
    end_time: str
    reason: str | None = None
    availability_id: int | None = None


class BreakResponse(CamelModel):
    id: int
    name: str
    start_time: str
    end_time: str
    day_of_week: int | None = None
    date: dt.date | None = None


class DateAvailabilityResponse(CamelModel):
    date: dt.date
    provider_id: int
    is_available: bool
    has_appointments: bool
    has_specific_availability: bool
    has_weekday_availability: bool
    is_fully_booked: bool


def window_response(window: Window) -> AvailabilityWindowResponse:
    return AvailabilityWindowResponse(
        id=window.id,
        start_time=format_minutes(window.start),
        end_time=format_minutes(window.end),
        is_available=window.is_available,
        day_of_week=window.day_of_week,
        date=window.date,
        interval_minutes=window.interval_minutes,
    )


def row_response(row) -> AvailabilityWindowResponse:
    return AvailabilityWindowResponse(
        id=row.id,
        start_time=format_clock(row.start_time),
        end_time=format_clock(row.end_time),
        is_available=row.is_available,
        day_of_week=row.day_of_week,
        date=row.date,
        interval_minutes=row.interval_minutes,
    )


def blocked_slot_response(row) -> BlockedSlotResponse:
    return BlockedSlotResponse(
        id=row.id,
        date=row.date,
        start_time=format_clock(row.start_time),
        end_time=format_clock(row.end_time),
        reason=row.reason,
        availability_id=row.availability_id,
    )


def break_response(row) -> BreakResponse:
    return BreakResponse(
        id=row.id,
        name=row.name,
        start_time=format_clock(row.start_time),
        end_time=format_clock(row.end_time),
        day_of_week=row.day_of_week,
        date=row.date,
    )


@router.get('/{provider_id}/availability', response_model=list[AvailabilityWindowResponse])
def list_availability(
    provider_id: int,
    date: str = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        target_date = parse_date(date)
        windows = editing.list_availability_windows(db, provider_id, target_date)
        return [window_response(window) for window in windows]
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    '/{provider_id}/availability',
    response_model=list[AvailabilityWindowResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_availability(provider_id: int, data: CreateAvailabilityRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        rows = editing.add_availability_windows(
            db,
            provider_id,
            data.date,
            [(slot.start_time, slot.end_time) for slot in data.slots],
            is_available=data.is_available,
            interval_minutes=data.interval_minutes,
        )
        return [row_response(row) for row in rows]
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/{provider_id}/availability/{availability_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_availability(provider_id: int, availability_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        editing.remove_availability_window(db, availability_id, provider_id=provider_id)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{provider_id}/availability/check-date', response_model=DateAvailabilityResponse)
async def check_date(
    provider_id: int,
    date: str = Query(...),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    await run_in_threadpool(ensure_database_ready)

    try:
        summary = await slot_service.check_date(session_factory, provider_id, parse_date(date))
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return DateAvailabilityResponse.model_validate(summary)


@router.get('/{provider_id}/availability/weekly', response_model=list[AvailabilityWindowResponse])
def list_weekly_availability(provider_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        windows = editing.list_weekly_availability(db, provider_id)
        return [window_response(window) for window in windows]
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    '/{provider_id}/availability/weekly',
    response_model=AvailabilityWindowResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_weekly_availability(
    provider_id: int,
    data: CreateWeeklyAvailabilityRequest,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        row = editing.add_recurring_window(
            db,
            provider_id,
            data.day_of_week,
            data.start_time,
            data.end_time,
            is_available=data.is_available,
            interval_minutes=data.interval_minutes,
        )
        return row_response(row)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{provider_id}/blocked-slots', response_model=list[BlockedSlotResponse])
def list_blocked_slots(
    provider_id: int,
    date: str = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        rows = editing.list_blocked_slots(db, provider_id, parse_date(date))
        return [blocked_slot_response(row) for row in rows]
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    '/{provider_id}/blocked-slots',
    response_model=BlockedSlotResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_blocked_slot(provider_id: int, data: CreateBlockedSlotRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        row = editing.block_time_slot(db, provider_id, data.date, data.start_time, data.end_time, reason=data.reason)
        return blocked_slot_response(row)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/{provider_id}/blocked-slots/{block_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_blocked_slot(provider_id: int, block_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        editing.unblock_time_slot(db, provider_id, block_id)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{provider_id}/breaks', response_model=list[BreakResponse])
def list_breaks(provider_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return [break_response(row) for row in editing.list_provider_breaks(db, provider_id)]
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/{provider_id}/breaks', response_model=BreakResponse, status_code=status.HTTP_201_CREATED)
def create_break(provider_id: int, data: CreateBreakRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        row = editing.add_provider_break(
            db,
            provider_id,
            data.name,
            data.start_time,
            data.end_time,
            day_of_week=data.day_of_week,
            target_date=data.date,
        )
        return break_response(row)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/{provider_id}/breaks/{break_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_break(provider_id: int, break_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        editing.remove_provider_break(db, provider_id, break_id)
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc
