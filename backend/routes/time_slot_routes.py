from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import sessionmaker

from backend.core import config
from backend.database import get_session_factory
from backend.routes.common import CamelModel, ensure_database_ready, to_http_exception
from backend.scheduling import errors, slot_service
from backend.scheduling.time_utils import parse_date

router = APIRouter(tags=['time-slots'])


class TimeSlotResponse(CamelModel):
    start_time: str
    end_time: str
    is_available: bool
    availability_id: int | None = None


def parse_service_ids(raw: str | None) -> list[int] | None:
    """``'1, 2,3'`` -> ``[1, 2, 3]``."""
    if raw is None:
        return None

    service_ids = []
    for item in raw.split(','):
        item = item.strip()
        if not item.isdigit():
            raise errors.ValidationError(f'Invalid service id: {item!r}.')
        service_ids.append(int(item))
    return service_ids


@router.get('/{provider_id}/time-slots', response_model=list[TimeSlotResponse])
async def list_time_slots(
    provider_id: int,
    date: str = Query(...),
    service_id: int | None = Query(default=None, alias='serviceId'),
    service_ids: str | None = Query(default=None, alias='serviceIds'),
    interval_minutes: int | None = Query(default=None, alias='intervalMinutes', ge=1),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    await run_in_threadpool(ensure_database_ready)

    try:
        target_date = parse_date(date)
        slots = await slot_service.get_available_slots(
            session_factory,
            provider_id,
            target_date,
            service_id,
            service_ids=parse_service_ids(service_ids),
            interval_minutes=interval_minutes,
            now=datetime.now() if config.FILTER_PAST_SLOTS else None,
        )
    except errors.SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return [
        TimeSlotResponse(
            start_time=slot.start_time,
            end_time=slot.end_time,
            is_available=slot.is_available,
            availability_id=slot.availability_id,
        )
        for slot in slots
    ]
