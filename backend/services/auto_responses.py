"""Auto-response templates and the one-default-per-category rule.

Every write path that can leave a template marked as default demotes the
other defaults of the same (user, type) category inside the same transaction,
so a failure anywhere rolls back both the demotion and the promotion.
"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from backend.models.auto_response import MESSAGE_TYPES, AutoResponse

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('name', 'type', 'content', 'is_default')


def _validate_type(response_type: str) -> None:
    if response_type not in MESSAGE_TYPES:
        raise InvalidInputError(f'Invalid message type: {response_type!r}.')


def list_auto_responses(db: Session, user_id: str, response_type: str | None = None) -> list[AutoResponse]:
    query = db.query(AutoResponse).filter(AutoResponse.user_id == user_id)
    if response_type is not None:
        query = query.filter(AutoResponse.type == response_type)
    return query.order_by(AutoResponse.type.asc(), AutoResponse.id.asc()).all()


def get_default_response(db: Session, user_id: str, response_type: str) -> AutoResponse | None:
    return db.query(AutoResponse).filter(
        AutoResponse.user_id == user_id,
        AutoResponse.type == response_type,
        AutoResponse.is_default.is_(True),
    ).first()


def _get_owned(db: Session, user_id: str, response_id: int) -> AutoResponse:
    response = db.query(AutoResponse).filter(
        AutoResponse.id == response_id,
        AutoResponse.user_id == user_id,
    ).first()
    if response is None:
        raise NotFoundError('Auto-response not found.')
    return response


def _demote_defaults(db: Session, user_id: str, response_type: str, keep_id: int | None = None) -> list[int]:
    query = db.query(AutoResponse).filter(
        AutoResponse.user_id == user_id,
        AutoResponse.type == response_type,
        AutoResponse.is_default.is_(True),
    )
    if keep_id is not None:
        query = query.filter(AutoResponse.id != keep_id)

    demoted = query.with_for_update().all()
    for response in demoted:
        response.is_default = False
    # Demotions must reach the store before any promotion in this transaction.
    db.flush()
    return [response.id for response in demoted]


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Another default was set for this message type at the same time.') from exc
    except SQLAlchemyError:
        db.rollback()
        raise


def set_default_response(db: Session, user_id: str, response_id: int, response_type: str) -> AutoResponse:
    _validate_type(response_type)

    target = db.query(AutoResponse).filter(
        AutoResponse.id == response_id,
        AutoResponse.user_id == user_id,
        AutoResponse.type == response_type,
    ).first()
    if target is None:
        raise NotFoundError('Auto-response not found for this message type.')

    try:
        demoted = _demote_defaults(db, user_id, response_type, keep_id=target.id)
        target.is_default = True
    except SQLAlchemyError:
        db.rollback()
        raise
    _commit(db)
    db.refresh(target)

    logger.info(
        'Auto-response %s is now the %s default for %s (demoted %s)',
        target.id,
        response_type,
        user_id,
        demoted or 'none',
    )
    return target


def create_auto_response(
    db: Session,
    user_id: str,
    name: str,
    response_type: str,
    content: str,
    is_default: bool = False,
) -> AutoResponse:
    _validate_type(response_type)

    response = AutoResponse(
        user_id=user_id,
        name=name,
        type=response_type,
        content=content,
        is_default=is_default,
    )
    try:
        if is_default:
            _demote_defaults(db, user_id, response_type)
        db.add(response)
    except SQLAlchemyError:
        db.rollback()
        raise
    _commit(db)
    db.refresh(response)

    logger.info('Created %s auto-response %s for %s', response_type, response.id, user_id)
    return response


def update_auto_response(db: Session, user_id: str, response_id: int, **changes) -> AutoResponse:
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidInputError(f'Unknown auto-response fields: {sorted(unknown)}.')

    response = _get_owned(db, user_id, response_id)

    response_type = changes.get('type') or response.type
    _validate_type(response_type)
    will_be_default = changes['is_default'] if changes.get('is_default') is not None else response.is_default

    try:
        if will_be_default:
            _demote_defaults(db, user_id, response_type, keep_id=response.id)
        for field, value in changes.items():
            if value is not None:
                setattr(response, field, value)
    except SQLAlchemyError:
        db.rollback()
        raise
    _commit(db)
    db.refresh(response)
    return response


def delete_auto_response(db: Session, user_id: str, response_id: int) -> None:
    """Remove a template. A deleted default leaves its category without one."""
    response = _get_owned(db, user_id, response_id)
    was_default = response.is_default
    response_type = response.type

    try:
        db.delete(response)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    if was_default:
        logger.info('Deleted %s default auto-response %s for %s; no default remains', response_type, response_id, user_id)
