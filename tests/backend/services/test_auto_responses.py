import pytest
from sqlalchemy.exc import IntegrityError

from backend.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from backend.models.auto_response import AutoResponse
from backend.services import auto_responses as service

USER = 'user-1'


def _defaults(db, response_type: str, user_id: str = USER) -> list[AutoResponse]:
    return db.query(AutoResponse).filter(
        AutoResponse.user_id == user_id,
        AutoResponse.type == response_type,
        AutoResponse.is_default.is_(True),
    ).all()


def _create(db, name: str, response_type: str = 'missed_call', is_default: bool = False, user_id: str = USER):
    return service.create_auto_response(
        db,
        user_id,
        name=name,
        response_type=response_type,
        content=f'Hi {{client}}, {name}',
        is_default=is_default,
    )


def test_set_default_moves_default_to_sibling(db_session) -> None:
    first = _create(db_session, 'A', is_default=True)
    second = _create(db_session, 'B')

    promoted = service.set_default_response(db_session, USER, second.id, 'missed_call')

    db_session.refresh(first)
    assert promoted.id == second.id
    assert promoted.is_default is True
    assert first.is_default is False
    assert service.get_default_response(db_session, USER, 'missed_call').id == second.id


def test_set_default_unknown_id_raises_not_found_without_mutation(db_session) -> None:
    first = _create(db_session, 'A', is_default=True)

    with pytest.raises(NotFoundError):
        service.set_default_response(db_session, USER, 999, 'missed_call')

    db_session.refresh(first)
    assert first.is_default is True


def test_set_default_rejects_template_from_other_category(db_session) -> None:
    general = _create(db_session, 'General', response_type='general')
    missed = _create(db_session, 'Missed', is_default=True)

    with pytest.raises(NotFoundError):
        service.set_default_response(db_session, USER, general.id, 'missed_call')

    assert [response.id for response in _defaults(db_session, 'missed_call')] == [missed.id]
    assert _defaults(db_session, 'general') == []


def test_set_default_rejects_unknown_type(db_session) -> None:
    response = _create(db_session, 'A')

    with pytest.raises(InvalidInputError):
        service.set_default_response(db_session, USER, response.id, 'voicemail')


def test_set_default_is_idempotent(db_session) -> None:
    response = _create(db_session, 'A', is_default=True)

    service.set_default_response(db_session, USER, response.id, 'missed_call')
    service.set_default_response(db_session, USER, response.id, 'missed_call')

    assert [row.id for row in _defaults(db_session, 'missed_call')] == [response.id]


def test_create_with_default_demotes_existing_default(db_session) -> None:
    first = _create(db_session, 'A', is_default=True)
    second = _create(db_session, 'B', is_default=True)

    db_session.refresh(first)
    assert first.is_default is False
    assert [row.id for row in _defaults(db_session, 'missed_call')] == [second.id]


def test_defaults_are_scoped_per_user_and_type(db_session) -> None:
    mine = _create(db_session, 'Mine', is_default=True)
    theirs = _create(db_session, 'Theirs', is_default=True, user_id='user-2')
    other_type = _create(db_session, 'Confirm', response_type='confirmation', is_default=True)

    for response in (mine, theirs, other_type):
        db_session.refresh(response)
        assert response.is_default is True


def test_update_setting_default_demotes_sibling(db_session) -> None:
    first = _create(db_session, 'A', is_default=True)
    second = _create(db_session, 'B')

    service.update_auto_response(db_session, USER, second.id, is_default=True)

    db_session.refresh(first)
    assert first.is_default is False
    assert [row.id for row in _defaults(db_session, 'missed_call')] == [second.id]


def test_content_edit_of_default_keeps_single_default(db_session) -> None:
    first = _create(db_session, 'A', is_default=True)

    updated = service.update_auto_response(db_session, USER, first.id, content='Sorry I missed you, {client}!')

    assert updated.is_default is True
    assert updated.content == 'Sorry I missed you, {client}!'
    assert len(_defaults(db_session, 'missed_call')) == 1


def test_moving_default_to_another_type_demotes_target_category(db_session) -> None:
    reschedule_default = _create(db_session, 'Reschedule', response_type='reschedule', is_default=True)
    moving = _create(db_session, 'Moving', is_default=True)

    service.update_auto_response(db_session, USER, moving.id, type='reschedule')

    db_session.refresh(reschedule_default)
    assert reschedule_default.is_default is False
    assert [row.id for row in _defaults(db_session, 'reschedule')] == [moving.id]
    assert _defaults(db_session, 'missed_call') == []


def test_update_unknown_field_is_invalid(db_session) -> None:
    response = _create(db_session, 'A')

    with pytest.raises(InvalidInputError):
        service.update_auto_response(db_session, USER, response.id, owner='user-2')


def test_update_by_other_user_is_not_found(db_session) -> None:
    response = _create(db_session, 'A')

    with pytest.raises(NotFoundError):
        service.update_auto_response(db_session, 'user-2', response.id, name='Stolen')


def test_deleting_default_does_not_promote_sibling(db_session) -> None:
    first = _create(db_session, 'A', is_default=True)
    second = _create(db_session, 'B')

    service.delete_auto_response(db_session, USER, first.id)

    db_session.refresh(second)
    assert second.is_default is False
    assert service.get_default_response(db_session, USER, 'missed_call') is None


def test_delete_missing_template_is_not_found(db_session) -> None:
    with pytest.raises(NotFoundError):
        service.delete_auto_response(db_session, USER, 42)


def test_list_filters_by_type(db_session) -> None:
    _create(db_session, 'A')
    _create(db_session, 'B', response_type='general')
    _create(db_session, 'C', user_id='user-2')

    assert [row.name for row in service.list_auto_responses(db_session, USER)] == ['B', 'A']
    assert [row.name for row in service.list_auto_responses(db_session, USER, 'missed_call')] == ['A']


def test_sequence_of_writes_never_leaves_two_defaults(db_session) -> None:
    a = _create(db_session, 'A', is_default=True)
    b = _create(db_session, 'B')
    c = _create(db_session, 'C', is_default=True)
    assert len(_defaults(db_session, 'missed_call')) == 1

    service.set_default_response(db_session, USER, b.id, 'missed_call')
    assert len(_defaults(db_session, 'missed_call')) == 1

    service.update_auto_response(db_session, USER, a.id, is_default=True)
    assert len(_defaults(db_session, 'missed_call')) == 1

    service.update_auto_response(db_session, USER, c.id, is_default=True, name='C2')
    assert [row.id for row in _defaults(db_session, 'missed_call')] == [c.id]


def test_storage_rejects_second_default(db_session) -> None:
    db_session.add(AutoResponse(user_id=USER, name='A', type='general', content='x', is_default=True))
    db_session.add(AutoResponse(user_id=USER, name='B', type='general', content='y', is_default=True))

    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_concurrent_promotion_is_conflict_and_rolls_back(db_session, monkeypatch: pytest.MonkeyPatch) -> None:
    first = _create(db_session, 'A', is_default=True)
    second = _create(db_session, 'B')

    # Another writer promoted a sibling between our read and our write.
    monkeypatch.setattr(service, '_demote_defaults', lambda *args, **kwargs: [])

    with pytest.raises(ConflictError):
        service.set_default_response(db_session, USER, second.id, 'missed_call')

    db_session.refresh(first)
    db_session.refresh(second)
    assert first.is_default is True
    assert second.is_default is False
