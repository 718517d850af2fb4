from types import SimpleNamespace

import bcrypt
import pytest
from pymongo.errors import PyMongoError

from backend.signup.db import DatabaseError
from backend.signup.services.auth import registration_service as svc
from backend.signup.services.auth.errors import ConflictError, PersistenceError, ValidationError
from backend.signup.validation.rules import RuleSet

ROUNDS = 4


def test_register_persists_one_sanitized_user(users_repo, valid_record):
    user = svc.register_user(valid_record, rounds=ROUNDS)

    assert len(users_repo.docs) == 1
    stored = users_repo.docs[0]
    assert stored['passwordHash'] != valid_record['password']
    assert bcrypt.checkpw(valid_record['password'].encode(), stored['passwordHash'].encode())
    assert 'password' not in stored

    assert not any('password' in key.lower() for key in user)
    assert user['id'] == str(stored['_id'])
    assert user['age'] == 36
    assert user['email'] == 'ada@example.com'
    assert user['createdAt']


def test_register_normalizes_values(users_repo, valid_record):
    valid_record.update(email='  Ada@Example.COM ', name=' Ada Lovelace ', age=40)
    user = svc.register_user(valid_record, rounds=ROUNDS)
    assert user['email'] == 'ada@example.com'
    assert user['name'] == 'Ada Lovelace'
    assert users_repo.docs[0]['age'] == 40


def test_missing_fields_short_circuit(users_repo, valid_record):
    valid_record['address'] = ''
    del valid_record['password']
    with pytest.raises(ValidationError) as exc:
        svc.register_user(valid_record, rounds=ROUNDS)
    assert exc.value.code == 'missing_fields'
    assert exc.value.message == 'All fields are required.'
    assert exc.value.missing == ['address', 'password']
    assert users_repo.lookups == []
    assert users_repo.docs == []


def test_rule_violations_are_rejected_before_lookup(users_repo, valid_record):
    valid_record['age'] = '17'
    valid_record['password'] = 'abc12345'
    with pytest.raises(ValidationError) as exc:
        svc.register_user(valid_record, rounds=ROUNDS)
    assert exc.value.code == 'invalid_fields'
    assert exc.value.errors == {
        'age': 'Age must be between 18 and 120',
        'password': 'Password must contain an uppercase letter',
    }
    assert users_repo.lookups == []


def test_ruleset_is_honoured(users_repo, valid_record):
    with pytest.raises(ValidationError):
        svc.register_user(valid_record, ruleset=RuleSet(require_symbol=True), rounds=ROUNDS)
    valid_record['password'] = 'Analytical1!'
    assert svc.register_user(valid_record, ruleset=RuleSet(require_symbol=True), rounds=ROUNDS)


def test_second_registration_with_same_email_conflicts(users_repo, valid_record):
    svc.register_user(valid_record, rounds=ROUNDS)
    valid_record['username'] = 'someone_else'
    with pytest.raises(ConflictError) as exc:
        svc.register_user(valid_record, rounds=ROUNDS)
    assert exc.value.message == 'Email already in use'
    assert exc.value.field == 'email'
    assert len(users_repo.docs) == 1


def test_email_conflict_is_case_insensitive(users_repo, valid_record):
    svc.register_user(valid_record, rounds=ROUNDS)
    valid_record.update(username='other', email='ADA@example.com')
    with pytest.raises(ConflictError):
        svc.register_user(valid_record, rounds=ROUNDS)


def test_username_conflict_checked_after_email(users_repo, valid_record):
    svc.register_user(valid_record, rounds=ROUNDS)
    valid_record['email'] = 'other@example.com'
    with pytest.raises(ConflictError) as exc:
        svc.register_user(valid_record, rounds=ROUNDS)
    assert exc.value.message == 'Username already in use'
    assert users_repo.lookups[-2:] == [('email', 'other@example.com'), ('username', 'ada_l')]
    assert len(users_repo.docs) == 1


def test_unique_index_catches_race(users_repo, valid_record):
    svc.register_user(valid_record, rounds=ROUNDS)
    # both pre-checks pass, as they would for a concurrent request
    users_repo.blind_lookups = True
    with pytest.raises(ConflictError) as exc:
        svc.register_user(valid_record, rounds=ROUNDS)
    assert exc.value.message == 'Email already in use'
    assert len(users_repo.docs) == 1


def test_lookup_failure_is_persistence_error(monkeypatch, valid_record):
    def boom(_value):
        raise DatabaseError('Database connection failed: timeout')

    monkeypatch.setattr(svc, 'users_repo', SimpleNamespace(find_by_email=boom, find_by_username=boom))
    with pytest.raises(PersistenceError) as exc:
        svc.register_user(valid_record, rounds=ROUNDS)
    assert exc.value.status == 500
    assert exc.value.message == 'Database unavailable'


def test_insert_failure_is_persistence_error(monkeypatch, valid_record):
    def fail_insert(_doc):
        raise PyMongoError('write concern error')

    monkeypatch.setattr(svc, 'users_repo', SimpleNamespace(
        find_by_email=lambda e: None,
        find_by_username=lambda u: None,
        create_user=fail_insert,
    ))
    with pytest.raises(PersistenceError) as exc:
        svc.register_user(valid_record, rounds=ROUNDS)
    assert exc.value.code == 'insert_failed'


def test_serialize_user_whitelists_fields():
    doc = {'_id': 'abc', 'name': 'N', 'passwordHash': 'x', 'password': 'y', 'role': 'admin'}
    out = svc.serialize_user(doc)
    assert 'passwordHash' not in out and 'password' not in out and 'role' not in out
    assert out['id'] == 'abc'
    assert svc.serialize_user(None) is None


def test_overlong_password_is_a_validation_error(users_repo, valid_record):
    valid_record['password'] = 'Aa1' + 'x' * 80
    with pytest.raises(ValidationError) as exc:
        svc.register_user(valid_record, rounds=ROUNDS)
    assert exc.value.errors == {'password': 'Password must be at most 72 bytes'}
    assert users_repo.docs == []


def test_hash_password_refuses_more_than_72_bytes():
    with pytest.raises(ValidationError) as exc:
        svc.hash_password('é' * 37, rounds=ROUNDS)
    assert exc.value.errors == {'password': svc.PASSWORD_TOO_LONG_MESSAGE}
    assert bcrypt.checkpw(b'x' * 72, svc.hash_password('x' * 72, rounds=ROUNDS).encode())


def test_non_string_values_never_reach_storage(users_repo, valid_record):
    valid_record['email'] = ['ada@example.com']
    valid_record['password'] = {'p': 'Abc12345'}
    with pytest.raises(ValidationError) as exc:
        svc.register_user(valid_record, rounds=ROUNDS)
    assert exc.value.errors == {'email': 'This field must be text', 'password': 'This field must be text'}
    assert users_repo.lookups == []
