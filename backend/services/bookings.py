import logging
from datetime import date

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from backend.models.booking import BLOCKING_STATUSES, BOOKING_STATUSES, Booking
from backend.models.client import Client
from backend.models.service import Service
from backend.services.availability import intervals_overlap, parse_clock_time, to_minutes

logger = logging.getLogger(__name__)

ACTIVE_SLOT_INDEX = 'uq_bookings_active_slot'
# SQLite names the columns rather than the index in its error message.
ACTIVE_SLOT_COLUMNS = 'bookings.professional_id, bookings.date, bookings.time'

_UNSET = object()


def normalize_clock_time(value: str) -> str:
    return parse_clock_time(value).strftime('%H:%M')


def list_bookings(
    db: Session,
    professional_id: str,
    booking_date: date | None = None,
    statuses: tuple[str, ...] | None = None,
) -> list[Booking]:
    query = db.query(Booking).filter(Booking.professional_id == professional_id)
    if booking_date is not None:
        query = query.filter(Booking.date == booking_date)
    if statuses:
        query = query.filter(Booking.status.in_(statuses))
    return query.order_by(Booking.date.asc(), Booking.time.asc()).all()


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if booking is None:
        raise NotFoundError('Booking not found.')
    return booking


def find_conflicting_booking(
    db: Session,
    professional_id: str,
    booking_date: date,
    start: str,
    duration: int,
    exclude_id: int | None = None,
) -> Booking | None:
    start_minutes = to_minutes(parse_clock_time(start))
    end_minutes = start_minutes + duration

    candidates = list_bookings(db, professional_id, booking_date, BLOCKING_STATUSES)
    for candidate in candidates:
        if exclude_id is not None and candidate.id == exclude_id:
            continue
        try:
            taken_start = to_minutes(parse_clock_time(candidate.time))
        except InvalidInputError:
            continue
        taken_end = taken_start + (candidate.duration or config.DEFAULT_BOOKING_DURATION_MINUTES)
        if intervals_overlap(start_minutes, end_minutes, taken_start, taken_end):
            return candidate
    return None


def _is_slot_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return ACTIVE_SLOT_INDEX in message or ACTIVE_SLOT_COLUMNS in message


def _commit(db: Session, booking: Booking) -> Booking:
    professional_id, slot_date, slot_time = booking.professional_id, booking.date, booking.time
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_slot_collision(exc):
            logger.warning('Rejected concurrent booking for %s on %s at %s', professional_id, slot_date, slot_time)
            raise ConflictError('This time is already booked.') from exc
        logger.warning('Booking for %s rejected by the database: %s', professional_id, exc.orig)
        raise InvalidInputError('Booking references missing or invalid data.') from exc
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(booking)
    return booking


def _require_references(db: Session, professional_id: str, client_id: int | None, service_id: int | None) -> None:
    if client_id is not None and db.query(Client.id).filter(Client.id == client_id).first() is None:
        raise NotFoundError('Client not found.')
    if service_id is not None:
        service = db.query(Service.id).filter(
            Service.id == service_id,
            Service.provider_id == professional_id,
        ).first()
        if service is None:
            raise NotFoundError('Service not found.')


def create_booking(db: Session, **fields) -> Booking:
    status = fields.get('status') or 'confirmed'
    if status not in BOOKING_STATUSES:
        raise InvalidInputError(f'Invalid booking status: {status!r}.')

    duration = fields.get('duration') or config.DEFAULT_BOOKING_DURATION_MINUTES
    if duration <= 0:
        raise InvalidInputError('Duration must be a positive number of minutes.')

    start = normalize_clock_time(fields['time'])
    professional_id = fields['professional_id']
    booking_date = fields['date']

    _require_references(db, professional_id, fields.get('client_id'), fields.get('service_id'))

    if status in BLOCKING_STATUSES:
        conflict = find_conflicting_booking(db, professional_id, booking_date, start, duration)
        if conflict is not None:
            logger.warning(
                'Booking for %s on %s at %s overlaps booking %s',
                professional_id,
                booking_date,
                start,
                conflict.id,
            )
            raise ConflictError('This time is already booked.')

    booking = Booking(**{**fields, 'time': start, 'duration': duration, 'status': status})
    db.add(booking)
    booking = _commit(db, booking)

    logger.info('Created booking %s for %s on %s at %s', booking.id, professional_id, booking_date, start)
    return booking


def update_booking(
    db: Session,
    booking_id: int,
    status: str,
    notes=_UNSET,
    new_date: date | None = None,
    new_time: str | None = None,
) -> Booking:
    """Accept, decline, cancel or reschedule a booking.

    ``notes`` is left untouched unless passed; ``None`` clears it.
    """
    if status not in BOOKING_STATUSES:
        raise InvalidInputError(f'Invalid booking status: {status!r}.')

    booking = get_booking(db, booking_id)

    target_date = booking.date
    target_time = booking.time
    if status == 'rescheduled':
        if new_date is None or new_time is None:
            raise InvalidInputError('Rescheduling requires a new date and time.')
        target_date = new_date
        target_time = normalize_clock_time(new_time)
    elif new_date is not None or new_time is not None:
        target_date = new_date or booking.date
        target_time = normalize_clock_time(new_time) if new_time else booking.time

    if status in BLOCKING_STATUSES:
        conflict = find_conflicting_booking(
            db,
            booking.professional_id,
            target_date,
            target_time,
            booking.duration or config.DEFAULT_BOOKING_DURATION_MINUTES,
            exclude_id=booking.id,
        )
        if conflict is not None:
            logger.warning('Booking %s cannot move onto booking %s', booking.id, conflict.id)
            raise ConflictError('This time is already booked.')

    previous_status = booking.status
    booking.status = status
    booking.date = target_date
    booking.time = target_time
    if notes is not _UNSET:
        booking.notes = notes

    booking = _commit(db, booking)
    logger.info('Booking %s changed from %s to %s', booking.id, previous_status, status)
    return booking
