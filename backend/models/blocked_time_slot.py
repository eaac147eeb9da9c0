"""Blocked time slot model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Integer, String, Time
from backend.database import Base


class BlockedTimeSlot(Base):
    """A time range the provider closed by hand on a specific date."""
    __tablename__ = "blocked_time_slots"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, nullable=False, index=True)
    availability_id = Column(Integer, nullable=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
