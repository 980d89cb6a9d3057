from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from backend.core.exceptions import ConflictError, InvalidInputError, NotFoundError, SchedulingError
from backend.database import SessionLocal, ensure_auto_response_schema, ensure_booking_schema

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

_ERROR_STATUS_CODES = {
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
}


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
        ensure_auto_response_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def to_http_exception(exc: SchedulingError) -> HTTPException:
    status_code = _ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=str(exc))


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )
