import asyncio
from datetime import date, datetime, time

import pytest
from sqlalchemy import text

from backend.models.availability import Availability
from backend.models.blocked_time_slot import BlockedTimeSlot
from backend.models.provider_break import ProviderBreak
from backend.models.service import Service
from backend.scheduling import slot_service, store
from backend.scheduling.errors import DataUnavailableError, NotFoundError, ValidationError
from conftest import PROVIDER_ID, SERVICE_ID, make_appointment, make_provider_service

MONDAY = date(2026, 1, 5)


def _query(session_factory, target_date=MONDAY, service_id=SERVICE_ID, **kwargs):
    return asyncio.run(
        slot_service.get_available_slots(session_factory, PROVIDER_ID, target_date, service_id, **kwargs)
    )


def _summary(slots):
    return [(slot.start_time, slot.end_time, slot.is_available) for slot in slots]


def test_weekday_schedule_without_appointments(session_factory, monday_schedule) -> None:
    slots = _query(session_factory)

    assert _summary(slots) == [
        ('09:00', '09:30', True),
        ('09:30', '10:00', True),
        ('10:00', '10:30', True),
        ('10:30', '11:00', True),
        ('11:00', '11:30', True),
        ('11:30', '12:00', True),
    ]
    assert all(slot.availability_id == monday_schedule.id for slot in slots)


def test_confirmed_appointment_blocks_its_slot(session_factory, seed, monday_schedule) -> None:
    seed(make_appointment(time(10, 0), time(10, 30), status='confirmed'))

    slots = _query(session_factory)

    assert [slot.start_time for slot in slots if not slot.is_available] == ['10:00']
    assert len(slots) == 6


@pytest.mark.parametrize('status', ['canceled', 'cancelado', 'no-show'])
def test_cancelled_appointment_does_not_block(session_factory, seed, monday_schedule, status: str) -> None:
    seed(make_appointment(time(10, 0), time(10, 30), status=status))

    slots = _query(session_factory)

    assert all(slot.is_available for slot in slots)


def test_portuguese_confirmed_status_blocks(session_factory, seed, monday_schedule) -> None:
    seed(make_appointment(time(9, 0), time(9, 30), status='confirmado'))

    slots = _query(session_factory)

    assert slots[0].is_available is False


def test_unknown_status_is_treated_as_blocking(session_factory, seed, monday_schedule) -> None:
    seed(make_appointment(time(9, 0), time(9, 30), status='on-hold'))

    slots = _query(session_factory)

    assert slots[0].is_available is False


def test_closed_full_day_override_returns_no_slots(session_factory, seed, monday_schedule) -> None:
    seed(
        Availability(
            provider_id=PROVIDER_ID,
            date=MONDAY,
            start_time=time(0, 0),
            end_time=time(23, 59),
            is_available=False,
        )
    )

    assert _query(session_factory) == []
    assert len(_query(session_factory, target_date=date(2026, 1, 12))) == 6


def test_date_override_replaces_weekday_schedule(session_factory, seed, monday_schedule) -> None:
    (override,) = seed(
        Availability(
            provider_id=PROVIDER_ID,
            date=MONDAY,
            start_time=time(14, 0),
            end_time=time(15, 0),
            is_available=True,
            interval_minutes=30,
        )
    )

    slots = _query(session_factory)

    assert _summary(slots) == [('14:00', '14:30', True), ('14:30', '15:00', True)]
    assert all(slot.availability_id == override.id for slot in slots)


def test_day_without_availability_returns_empty_list(session_factory, monday_schedule) -> None:
    assert _query(session_factory, target_date=date(2026, 1, 6)) == []


def test_longer_service_only_fits_once(session_factory, seed, provider) -> None:
    seed(
        Availability(
            provider_id=PROVIDER_ID,
            day_of_week=1,
            start_time=time(9, 0),
            end_time=time(10, 0),
            interval_minutes=30,
        ),
        make_provider_service(execution_time=45),
    )

    slots = _query(session_factory)

    assert _summary(slots) == [('09:00', '09:45', True)]


def test_overlapping_windows_do_not_duplicate_slots(session_factory, seed, provider) -> None:
    seed(
        Availability(provider_id=PROVIDER_ID, day_of_week=1, start_time=time(9, 0), end_time=time(11, 0), interval_minutes=30),
        Availability(provider_id=PROVIDER_ID, day_of_week=1, start_time=time(10, 0), end_time=time(12, 0), interval_minutes=30),
    )

    slots = _query(session_factory)

    starts = [slot.start_time for slot in slots]
    assert starts == ['09:00', '09:30', '10:00', '10:30', '11:00', '11:30']


def test_blocked_slots_and_breaks_mark_candidates_unavailable(session_factory, seed, monday_schedule) -> None:
    seed(
        BlockedTimeSlot(provider_id=PROVIDER_ID, date=MONDAY, start_time=time(9, 0), end_time=time(9, 30)),
        ProviderBreak(provider_id=PROVIDER_ID, name='Coffee', day_of_week=1, start_time=time(11, 0), end_time=time(11, 15)),
    )

    slots = _query(session_factory)

    assert [slot.start_time for slot in slots if not slot.is_available] == ['09:00', '11:00']


def test_repeated_queries_return_identical_results(session_factory, seed, monday_schedule) -> None:
    seed(make_appointment(time(10, 30), time(11, 0)))

    assert _query(session_factory) == _query(session_factory)


def test_query_reflects_latest_write(session_factory, seed, monday_schedule) -> None:
    assert all(slot.is_available for slot in _query(session_factory))

    seed(make_appointment(time(11, 30), time(12, 0)))

    assert _query(session_factory)[-1].is_available is False


def test_missing_service_uses_default_duration(session_factory, monday_schedule) -> None:
    slots = _query(session_factory, service_id=None)

    assert len(slots) == 6


def test_explicit_interval_overrides_window_interval(session_factory, monday_schedule) -> None:
    slots = _query(session_factory, interval_minutes=60)

    assert [slot.start_time for slot in slots] == ['09:00', '10:00', '11:00']


def test_now_drops_past_slots(session_factory, monday_schedule) -> None:
    slots = _query(session_factory, now=datetime(2026, 1, 5, 10, 0))

    assert [slot.start_time for slot in slots] == ['10:30', '11:00', '11:30']


def test_unknown_provider_raises_not_found(session_factory, provider) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(slot_service.get_available_slots(session_factory, 999, MONDAY, None))


def test_service_of_another_provider_raises_not_found(session_factory, monday_schedule) -> None:
    with pytest.raises(NotFoundError):
        _query(session_factory, service_id=12345)


def test_appointment_read_failure_propagates(session_factory, monday_schedule, monkeypatch) -> None:
    def failing_read(db, provider_id, target_date):
        raise DataUnavailableError('Scheduling data is temporarily unavailable.')

    monkeypatch.setattr(store, 'list_appointments_for_date', failing_read)

    with pytest.raises(DataUnavailableError):
        _query(session_factory)


def test_storage_errors_surface_as_data_unavailable(session_factory, monday_schedule) -> None:
    session = session_factory()
    try:
        session.execute(text('DROP TABLE appointments'))
        session.commit()

        with pytest.raises(DataUnavailableError):
            store.list_appointments_for_date(session, PROVIDER_ID, MONDAY)
    finally:
        session.close()


def test_slot_query_can_be_cancelled(session_factory, monday_schedule) -> None:
    async def run_and_cancel():
        task = asyncio.ensure_future(
            slot_service.get_available_slots(session_factory, PROVIDER_ID, MONDAY, SERVICE_ID)
        )
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run_and_cancel())


def test_concurrent_queries_agree(session_factory, seed, monday_schedule) -> None:
    seed(make_appointment(time(9, 30), time(10, 0)))

    async def run_many():
        return await asyncio.gather(
            *(slot_service.get_available_slots(session_factory, PROVIDER_ID, MONDAY, SERVICE_ID) for _ in range(5))
        )

    results = asyncio.run(run_many())

    assert all(result == results[0] for result in results)


BEARD_TRIM_ID = 11


@pytest.fixture
def beard_trim(seed, provider):
    seed(Service(id=BEARD_TRIM_ID, provider_id=PROVIDER_ID, name='Beard trim', duration=15, price=2000))
    return BEARD_TRIM_ID


def test_several_services_use_combined_duration(session_factory, monday_schedule, beard_trim) -> None:
    slots = _query(session_factory, service_id=None, service_ids=[SERVICE_ID, beard_trim])

    assert _summary(slots) == [
        ('09:00', '09:45', True),
        ('09:30', '10:15', True),
        ('10:00', '10:45', True),
        ('10:30', '11:15', True),
        ('11:00', '11:45', True),
    ]


def test_combined_duration_prefers_provider_execution_time(
    session_factory, seed, monday_schedule, beard_trim
) -> None:
    seed(make_provider_service(20))

    slots = _query(session_factory, service_id=None, service_ids=[SERVICE_ID, beard_trim])

    assert slots[0].end_time == '09:35'
    assert slots[-1].start_time == '11:00'


def test_combined_slots_collide_with_appointments(session_factory, seed, monday_schedule, beard_trim) -> None:
    seed(make_appointment(time(10, 0), time(10, 30)))

    slots = _query(session_factory, service_id=None, service_ids=[SERVICE_ID, beard_trim])

    assert [slot.start_time for slot in slots if not slot.is_available] == ['09:30', '10:00']


def test_several_services_reject_unknown_service(session_factory, monday_schedule) -> None:
    with pytest.raises(NotFoundError):
        _query(session_factory, service_id=None, service_ids=[SERVICE_ID, 404])


@pytest.mark.parametrize(('service_id', 'service_ids'), [(None, []), (SERVICE_ID, [SERVICE_ID])])
def test_several_services_argument_errors(session_factory, monday_schedule, service_id, service_ids) -> None:
    with pytest.raises(ValidationError):
        _query(session_factory, service_id=service_id, service_ids=service_ids)


def _check(session_factory, target_date=MONDAY, provider_id=PROVIDER_ID):
    return asyncio.run(slot_service.check_date(session_factory, provider_id, target_date))


def test_check_date_with_weekday_schedule(session_factory, monday_schedule) -> None:
    summary = _check(session_factory)

    assert summary.is_available is True
    assert summary.has_weekday_availability is True
    assert summary.has_specific_availability is False
    assert summary.has_appointments is False
    assert summary.is_fully_booked is False


def test_check_date_without_schedule(session_factory, monday_schedule) -> None:
    summary = _check(session_factory, target_date=date(2026, 1, 6))

    assert summary.is_available is False
    assert summary.has_weekday_availability is False


def test_check_date_closed_by_date_override(session_factory, seed, monday_schedule) -> None:
    seed(
        Availability(
            provider_id=PROVIDER_ID,
            date=MONDAY,
            start_time=time(9, 0),
            end_time=time(12, 0),
            is_available=False,
        )
    )

    summary = _check(session_factory)

    assert summary.is_available is False
    assert summary.has_specific_availability is False
    assert summary.is_fully_booked is False


def test_check_date_fully_booked(session_factory, seed, monday_schedule) -> None:
    seed(
        make_appointment(time(9, 0), time(10, 30)),
        make_appointment(time(10, 30), time(11, 0), status='cancelled'),
        BlockedTimeSlot(provider_id=PROVIDER_ID, date=MONDAY, start_time=time(10, 30), end_time=time(12, 0)),
    )

    summary = _check(session_factory)

    assert summary.has_appointments is True
    assert summary.is_fully_booked is True
    assert summary.is_available is False


def test_check_date_ignores_cancelled_appointments(session_factory, seed, monday_schedule) -> None:
    seed(make_appointment(time(9, 0), time(9, 30), status='canceled'))

    summary = _check(session_factory)

    assert summary.has_appointments is False
    assert summary.is_available is True


def test_check_date_unknown_provider(session_factory, monday_schedule) -> None:
    with pytest.raises(NotFoundError):
        _check(session_factory, provider_id=999)
