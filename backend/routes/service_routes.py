from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.service import SERVICE_LOCATION_TYPES, Service
from backend.routes.dependencies import database_unavailable, ensure_database_ready, get_db

router = APIRouter(tags=['services'])


class CreateServiceRequest(BaseModel):
    provider_id: str
    name: str
    description: str | None = None
    duration: int
    price: float = 0.0
    location_type: str = 'office'

    @field_validator('provider_id', 'name')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Value is required.')
        return normalized

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Duration must be a positive number of minutes.')
        return value

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: float) -> float:
        if value < 0:
            raise ValueError('Price cannot be negative.')
        return value

    @field_validator('location_type')
    @classmethod
    def validate_location_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in SERVICE_LOCATION_TYPES:
            raise ValueError('Invalid location type.')
        return normalized


class ServiceResponse(BaseModel):
    id: int
    provider_id: str
    name: str
    description: str | None = None
    duration: int
    price: float
    location_type: str

    class Config:
        from_attributes = True


@router.get('', response_model=list[ServiceResponse])
def list_services(provider_id: str = Query(...), db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return db.query(Service).filter(
            Service.provider_id == provider_id.strip(),
        ).order_by(Service.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(data: CreateServiceRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        service = Service(**data.model_dump())
        db.add(service)
        db.commit()
        db.refresh(service)
        return service
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
