from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.exceptions import InvalidInputError
from backend.models.availability import WEEKDAYS, WeeklyAvailability
from backend.routes.dependencies import database_unavailable, ensure_database_ready, get_db
from backend.services.availability import parse_clock_time

router = APIRouter(tags=['availability'])


class DayAvailabilityRequest(BaseModel):
    weekday: str
    morning: bool = False
    afternoon: bool = False
    evening: bool = False
    start_time: str | None = None
    end_time: str | None = None

    @field_validator('weekday')
    @classmethod
    def validate_weekday(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in WEEKDAYS:
            raise ValueError('Invalid weekday.')
        return normalized

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_clock(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        try:
            return parse_clock_time(value).strftime('%H:%M')
        except InvalidInputError as exc:
            raise ValueError(str(exc)) from None

    @model_validator(mode='after')
    def validate_hours(self) -> 'DayAvailabilityRequest':
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValueError('Start time must be before end time.')
        return self


class WeeklyAvailabilityRequest(BaseModel):
    days: list[DayAvailabilityRequest]

    @field_validator('days')
    @classmethod
    def validate_unique_days(cls, value: list[DayAvailabilityRequest]) -> list[DayAvailabilityRequest]:
        weekdays = [day.weekday for day in value]
        if len(weekdays) != len(set(weekdays)):
            raise ValueError('Each weekday can only appear once.')
        return value


class DayAvailabilityResponse(BaseModel):
    weekday: str
    morning: bool
    afternoon: bool
    evening: bool
    start_time: str | None = None
    end_time: str | None = None

    class Config:
        from_attributes = True


def _sorted_days(rows: list[WeeklyAvailability]) -> list[WeeklyAvailability]:
    return sorted(rows, key=lambda row: WEEKDAYS.index(row.weekday) if row.weekday in WEEKDAYS else len(WEEKDAYS))


@router.get('/{provider_id}', response_model=list[DayAvailabilityResponse])
def get_weekly_availability(provider_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        rows = db.query(WeeklyAvailability).filter(WeeklyAvailability.provider_id == provider_id).all()
        return _sorted_days(rows)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{provider_id}', response_model=list[DayAvailabilityResponse])
def replace_weekly_availability(
    provider_id: str,
    data: WeeklyAvailabilityRequest,
    db: Session = Depends(get_db),
):
    normalized_provider = provider_id.strip()
    if not normalized_provider:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Provider id is required.',
        )

    ensure_database_ready()

    try:
        existing = {
            row.weekday: row
            for row in db.query(WeeklyAvailability).filter(
                WeeklyAvailability.provider_id == normalized_provider,
            ).all()
        }
        requested = {day.weekday for day in data.days}

        for weekday, row in existing.items():
            if weekday not in requested:
                db.delete(row)

        for day in data.days:
            row = existing.get(day.weekday)
            if row is None:
                row = WeeklyAvailability(provider_id=normalized_provider, weekday=day.weekday)
                db.add(row)
            row.morning = day.morning
            row.afternoon = day.afternoon
            row.evening = day.evening
            row.start_time = day.start_time
            row.end_time = day.end_time

        db.commit()

        rows = db.query(WeeklyAvailability).filter(WeeklyAvailability.provider_id == normalized_provider).all()
        return _sorted_days(rows)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
