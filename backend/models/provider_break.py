"""Provider break model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Integer, SmallInteger, String, Time
from backend.database import Base


class ProviderBreak(Base):
    """A named pause (lunch, coffee) on a weekday or a single date."""
    __tablename__ = "provider_breaks"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    day_of_week = Column(SmallInteger, nullable=True)
    date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
