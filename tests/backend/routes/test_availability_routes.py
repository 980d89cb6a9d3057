import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from backend.routes.availability_routes import (
    DayAvailabilityRequest,
    WeeklyAvailabilityRequest,
    get_weekly_availability,
    replace_weekly_availability,
)
from backend.routes.service_routes import CreateServiceRequest, create_service, list_services


def test_day_availability_request_normalizes_fields() -> None:
    request = DayAvailabilityRequest(weekday=' Monday ', morning=True, start_time='8:00', end_time=' ')

    assert request.weekday == 'monday'
    assert request.start_time == '08:00'
    assert request.end_time is None


@pytest.mark.parametrize(
    'payload',
    [
        {'weekday': 'funday'},
        {'weekday': 'monday', 'start_time': '9 o clock'},
        {'weekday': 'monday', 'start_time': '17:00', 'end_time': '09:00'},
    ],
)
def test_day_availability_request_rejects_invalid_fields(payload: dict) -> None:
    with pytest.raises(ValidationError):
        DayAvailabilityRequest(**payload)


def test_weekly_request_rejects_duplicate_weekdays() -> None:
    with pytest.raises(ValidationError):
        WeeklyAvailabilityRequest(days=[{'weekday': 'monday'}, {'weekday': 'MONDAY', 'evening': True}])


def test_replace_weekly_availability_upserts_and_removes_days(db_session, skip_schema_checks) -> None:
    replace_weekly_availability(
        provider_id='pro-1',
        data=WeeklyAvailabilityRequest(days=[
            {'weekday': 'tuesday', 'morning': True},
            {'weekday': 'monday', 'afternoon': True},
        ]),
        db=db_session,
    )

    rows = replace_weekly_availability(
        provider_id='pro-1',
        data=WeeklyAvailabilityRequest(days=[
            {'weekday': 'monday', 'morning': True, 'start_time': '10:00', 'end_time': '18:00'},
            {'weekday': 'friday', 'evening': True},
        ]),
        db=db_session,
    )

    assert [(row.weekday, row.morning, row.afternoon, row.evening) for row in rows] == [
        ('monday', True, False, False),
        ('friday', False, False, True),
    ]
    assert rows[0].start_time == '10:00'
    assert [row.weekday for row in get_weekly_availability(provider_id='pro-1', db=db_session)] == [
        'monday',
        'friday',
    ]


def test_weekly_availability_is_scoped_per_provider(db_session, skip_schema_checks) -> None:
    replace_weekly_availability(
        provider_id='pro-1',
        data=WeeklyAvailabilityRequest(days=[{'weekday': 'monday', 'morning': True}]),
        db=db_session,
    )

    assert get_weekly_availability(provider_id='pro-2', db=db_session) == []


def test_replace_weekly_availability_requires_provider(db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        replace_weekly_availability(provider_id='  ', data=WeeklyAvailabilityRequest(days=[]), db=db_session)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Provider id is required.'


def test_create_service_request_rejects_invalid_fields() -> None:
    with pytest.raises(ValidationError):
        CreateServiceRequest(provider_id='pro-1', name='Consultation', duration=0)
    with pytest.raises(ValidationError):
        CreateServiceRequest(provider_id='pro-1', name='Consultation', duration=60, location_type='moon')


def test_create_and_list_services(db_session, skip_schema_checks) -> None:
    create_service(
        CreateServiceRequest(provider_id='pro-1', name=' Strategy Session ', duration=90, price=250),
        db=db_session,
    )
    create_service(
        CreateServiceRequest(provider_id='pro-1', name='Follow-up', duration=30, location_type='Online'),
        db=db_session,
    )

    services = list_services(provider_id='pro-1', db=db_session)

    assert [(service.name, service.duration, service.location_type) for service in services] == [
        ('Follow-up', 30, 'online'),
        ('Strategy Session', 90, 'office'),
    ]
