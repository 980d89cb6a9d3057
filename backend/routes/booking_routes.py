from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.core.exceptions import InvalidInputError, SchedulingError
from backend.models.availability import WeeklyAvailability
from backend.models.booking import BLOCKING_STATUSES, BOOKING_STATUSES, Booking
from backend.models.service import Service
from backend.routes.dependencies import (
    database_unavailable,
    ensure_database_ready,
    get_db,
    to_http_exception,
)
from backend.services import bookings as booking_service
from backend.services.availability import (
    availability_from_rows,
    compute_available_slots,
    parse_clock_time,
    parse_target_date,
)

router = APIRouter(tags=['bookings'])

CREATABLE_STATUSES = ('pending', 'confirmed', 'emergency')
MAX_BOOKING_NOTES_LENGTH = 600


def _normalize_status(value: str, allowed: tuple[str, ...]) -> str:
    normalized = value.strip().lower()
    if normalized not in allowed:
        raise ValueError('Invalid booking status.')
    return normalized


def _normalize_clock(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return parse_clock_time(value).strftime('%H:%M')
    except InvalidInputError as exc:
        raise ValueError(str(exc)) from None


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    if len(normalized) > MAX_BOOKING_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_BOOKING_NOTES_LENGTH} characters or fewer.')
    return normalized


class TimeSlotResponse(BaseModel):
    time: str
    formatted: str


class CreateBookingRequest(BaseModel):
    professional_id: str
    date: date
    time: str
    duration: int | None = None
    status: str = 'confirmed'
    client_id: int | None = None
    service_id: int | None = None
    service_name: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    external_id: str | None = None
    notes: str | None = None

    @field_validator('professional_id')
    @classmethod
    def validate_professional_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Professional id is required.')
        return normalized

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _normalize_clock(value)

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError('Duration must be a positive number of minutes.')
        return value

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        return _normalize_status(value, CREATABLE_STATUSES)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class UpdateBookingRequest(BaseModel):
    status: str
    notes: str | None = None
    new_date: date | None = None
    new_time: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        return _normalize_status(value, BOOKING_STATUSES)

    @field_validator('new_time')
    @classmethod
    def validate_new_time(cls, value: str | None) -> str | None:
        return _normalize_clock(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class BookingResponse(BaseModel):
    id: int
    professional_id: str
    date: date
    time: str
    duration: int
    status: str
    client_id: int | None = None
    service_id: int | None = None
    service_name: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    external_id: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


def resolve_service_duration(
    service_id: int | None,
    duration: int | None,
    professional_id: str,
    db: Session,
) -> int | None:
    if service_id is None:
        return duration

    service = db.query(Service).filter(
        Service.id == service_id,
        Service.provider_id == professional_id,
    ).first()
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Service not found.',
        )
    return service.duration


@router.get('/available-slots', response_model=list[TimeSlotResponse])
def list_available_slots(
    slot_date: str = Query(..., alias='date'),
    professional_id: str = Query(...),
    service_id: int | None = Query(default=None),
    duration: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        target_date = parse_target_date(slot_date)
    except InvalidInputError as exc:
        raise to_http_exception(exc) from exc

    ensure_database_ready()

    try:
        service_duration = resolve_service_duration(service_id, duration, professional_id, db)

        rows = db.query(WeeklyAvailability).filter(
            WeeklyAvailability.provider_id == professional_id,
        ).all()
        existing = booking_service.list_bookings(db, professional_id, target_date, BLOCKING_STATUSES)

        slots = compute_available_slots(
            availability_from_rows(rows),
            target_date,
            existing,
            service_duration,
            now=datetime.now(),
            mode=config.SLOT_ANCHOR_MODE,
            interval_minutes=config.SLOT_INTERVAL_MINUTES,
        )
        return [TimeSlotResponse(time=slot.time, formatted=slot.formatted) for slot in slots]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('', response_model=list[BookingResponse])
def list_bookings(
    professional_id: str = Query(...),
    booking_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return booking_service.list_bookings(db, professional_id.strip(), booking_date)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{booking_id}', response_model=BookingResponse)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return booking_service.get_booking(db, booking_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(data: CreateBookingRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        fields = data.model_dump()
        if fields['duration'] is None:
            fields['duration'] = resolve_service_duration(data.service_id, None, data.professional_id, db)
        return booking_service.create_booking(db, **fields)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{booking_id}', response_model=BookingResponse)
def update_booking(booking_id: int, data: UpdateBookingRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        # Blank or null notes clear them; omitted notes are kept.
        changes = {'notes': data.notes} if 'notes' in data.model_fields_set else {}
        booking: Booking = booking_service.update_booking(
            db,
            booking_id,
            status=data.status,
            new_date=data.new_date,
            new_time=data.new_time,
            **changes,
        )
        return booking
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
