from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.exceptions import SchedulingError
from backend.models.auto_response import MESSAGE_TYPES
from backend.routes.dependencies import (
    database_unavailable,
    ensure_database_ready,
    get_db,
    to_http_exception,
)
from backend.services import auto_responses as auto_response_service

router = APIRouter(tags=['auto-responses'])

MAX_TEMPLATE_NAME_LENGTH = 120
MAX_TEMPLATE_CONTENT_LENGTH = 1600


def _normalize_type(value: str) -> str:
    normalized = value.strip().lower()
    if normalized not in MESSAGE_TYPES:
        raise ValueError('Invalid message type.')
    return normalized


def _normalize_name(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError('Template name is required.')
    if len(normalized) > MAX_TEMPLATE_NAME_LENGTH:
        raise ValueError(f'Template name must be {MAX_TEMPLATE_NAME_LENGTH} characters or fewer.')
    return normalized


def _normalize_content(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError('Template content is required.')
    if len(normalized) > MAX_TEMPLATE_CONTENT_LENGTH:
        raise ValueError(f'Template content must be {MAX_TEMPLATE_CONTENT_LENGTH} characters or fewer.')
    return normalized


def _require_user_id(user_id: str) -> str:
    normalized = user_id.strip()
    if not normalized:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='User id is required.',
        )
    return normalized


def _require_type(response_type: str) -> str:
    try:
        return _normalize_type(response_type)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


class CreateAutoResponseRequest(BaseModel):
    user_id: str
    name: str
    type: str = 'general'
    content: str
    is_default: bool = False

    @field_validator('user_id')
    @classmethod
    def validate_user_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('User id is required.')
        return normalized

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _normalize_name(value)

    @field_validator('type')
    @classmethod
    def validate_type(cls, value: str) -> str:
        return _normalize_type(value)

    @field_validator('content')
    @classmethod
    def validate_content(cls, value: str) -> str:
        return _normalize_content(value)


class UpdateAutoResponseRequest(BaseModel):
    name: str | None = None
    type: str | None = None
    content: str | None = None
    is_default: bool | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        return None if value is None else _normalize_name(value)

    @field_validator('type')
    @classmethod
    def validate_type(cls, value: str | None) -> str | None:
        return None if value is None else _normalize_type(value)

    @field_validator('content')
    @classmethod
    def validate_content(cls, value: str | None) -> str | None:
        return None if value is None else _normalize_content(value)


class AutoResponseResponse(BaseModel):
    id: int
    user_id: str
    name: str
    type: str
    content: str
    is_default: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


@router.get('', response_model=list[AutoResponseResponse])
def list_auto_responses(
    user_id: str = Query(...),
    response_type: str | None = Query(default=None, alias='type'),
    db: Session = Depends(get_db),
):
    normalized_user = _require_user_id(user_id)
    normalized_type = _require_type(response_type) if response_type is not None else None

    ensure_database_ready()

    try:
        return auto_response_service.list_auto_responses(db, normalized_user, normalized_type)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/default', response_model=AutoResponseResponse)
def get_default_auto_response(
    user_id: str = Query(...),
    response_type: str = Query(..., alias='type'),
    db: Session = Depends(get_db),
):
    normalized_user = _require_user_id(user_id)
    normalized_type = _require_type(response_type)

    ensure_database_ready()

    try:
        response = auto_response_service.get_default_response(db, normalized_user, normalized_type)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if response is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='No default auto-response for this message type.',
        )
    return response


@router.post('', response_model=AutoResponseResponse, status_code=status.HTTP_201_CREATED)
def create_auto_response(data: CreateAutoResponseRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return auto_response_service.create_auto_response(
            db,
            data.user_id,
            name=data.name,
            response_type=data.type,
            content=data.content,
            is_default=data.is_default,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.patch('/{response_id}', response_model=AutoResponseResponse)
def update_auto_response(
    response_id: int,
    data: UpdateAutoResponseRequest,
    user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    normalized_user = _require_user_id(user_id)

    ensure_database_ready()

    try:
        return auto_response_service.update_auto_response(
            db,
            normalized_user,
            response_id,
            **data.model_dump(exclude_unset=True),
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/{response_id}/default', response_model=AutoResponseResponse)
def set_default_auto_response(
    response_id: int,
    user_id: str = Query(...),
    response_type: str = Query(..., alias='type'),
    db: Session = Depends(get_db),
):
    normalized_user = _require_user_id(user_id)
    normalized_type = _require_type(response_type)

    ensure_database_ready()

    try:
        return auto_response_service.set_default_response(db, normalized_user, response_id, normalized_type)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/{response_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_auto_response(
    response_id: int,
    user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    normalized_user = _require_user_id(user_id)

    ensure_database_ready()

    try:
        auto_response_service.delete_auto_response(db, normalized_user, response_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
