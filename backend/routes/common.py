from datetime import time

from fastapi import HTTPException, status
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError

from backend.database import ensure_appointment_schema, ensure_availability_schema
from backend.scheduling import errors


class CamelModel(BaseModel):
    """Wire models use camelCase keys; snake_case is accepted on input too."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def to_http_exception(exc: errors.SchedulingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc


def format_clock(value: time) -> str:
    return value.strftime('%H:%M')
