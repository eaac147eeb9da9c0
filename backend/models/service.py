"""Service model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from backend.database import Base


class Service(Base):
    """A service a provider offers, with its default duration."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)


class ProviderService(Base):
    """A provider's own execution time and price for a service."""
    __tablename__ = "provider_services"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, nullable=False, index=True)
    service_id = Column(Integer, nullable=False)
    execution_time = Column(Integer, nullable=False)  # minutes
    duration = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)
    break_time = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
