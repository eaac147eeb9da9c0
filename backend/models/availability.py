"""Availability model definitions."""

from sqlalchemy import Boolean, Column, Date, Integer, SmallInteger, Time
from backend.database import Base


class Availability(Base):
    """Represents a recurring weekday window or a date-specific override."""
    __tablename__ = "availability"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, nullable=False, index=True)
    day_of_week = Column(SmallInteger, nullable=True)  # 0 = Sunday; NULL for date-specific rows
    date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    interval_minutes = Column(Integer, nullable=True)
