"""Shared database fixtures for the scheduling tests."""

import os
from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment  # noqa: E402
from backend.models.availability import Availability  # noqa: E402
from backend.models.blocked_time_slot import BlockedTimeSlot  # noqa: E402,F401
from backend.models.provider_break import ProviderBreak  # noqa: E402,F401
from backend.models.service import ProviderService, Service  # noqa: E402
from backend.models.user import User  # noqa: E402

PROVIDER_ID = 1
CLIENT_ID = 2
SERVICE_ID = 10


@pytest.fixture
def session_factory(tmp_path):
    # A file database so each worker thread gets its own connection.
    engine = create_engine(
        f"sqlite:///{tmp_path / 'scheduling.db'}",
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(session_factory):
    def _seed(*rows):
        session = session_factory()
        try:
            session.add_all(rows)
            session.commit()
        finally:
            session.close()
        return rows

    return _seed


@pytest.fixture
def provider(seed):
    seed(
        User(id=PROVIDER_ID, name='Ana', email='ana@example.com', role='provider'),
        User(id=CLIENT_ID, name='Bruno', email='bruno@example.com', role='client'),
        Service(id=SERVICE_ID, provider_id=PROVIDER_ID, name='Haircut', duration=30, price=5000),
    )
    return PROVIDER_ID


@pytest.fixture
def monday_schedule(seed, provider):
    """Recurring Monday 09:00-12:00 window with a 30 minute interval."""
    (window,) = seed(
        Availability(
            provider_id=provider,
            day_of_week=1,
            start_time=time(9, 0),
            end_time=time(12, 0),
            is_available=True,
            interval_minutes=30,
        )
    )
    return window


def make_appointment(start: time, end: time, status: str = 'confirmed', target_date=None) -> Appointment:
    return Appointment(
        provider_id=PROVIDER_ID,
        client_id=CLIENT_ID,
        service_id=SERVICE_ID,
        date=target_date or date(2026, 1, 5),
        start_time=start,
        end_time=end,
        status=status,
    )


def make_provider_service(execution_time: int) -> ProviderService:
    return ProviderService(
        provider_id=PROVIDER_ID,
        service_id=SERVICE_ID,
        execution_time=execution_time,
        duration=execution_time,
        price=6000,
    )
