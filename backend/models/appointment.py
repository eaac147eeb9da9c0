"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Index, Integer, String, Time, text
from backend.database import Base
from backend.scheduling.status import AppointmentStatus


class Appointment(Base):
    """Represents a booking of a provider's service."""
    __tablename__ = "appointments"
    __table_args__ = (
        # Two live bookings can never share a slot; cancelled rows free it again.
        Index(
            "uq_appointments_active_slot",
            "provider_id",
            "date",
            "start_time",
            "end_time",
            unique=True,
            sqlite_where=text("status NOT IN ('canceled', 'no-show')"),
            postgresql_where=text("status NOT IN ('canceled', 'no-show')"),
        ),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, nullable=False, index=True)
    client_id = Column(Integer, nullable=False)
    service_id = Column(Integer, nullable=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String, default=AppointmentStatus.PENDING.value, nullable=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
