"""Registration service: server-side validation, uniqueness and persistence.

The handler never trusts the client. Each step is a hard gate and the first
failure short-circuits before anything is written:

1. presence of all seven fields
2. the shared field rules (same table the form client uses)
3. email not already registered
4. username not already registered
5. bcrypt hash of the password
6. insert, with the unique indexes as the final word on duplicates
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import bcrypt
from pymongo.errors import DuplicateKeyError, PyMongoError

from backend.signup.db import DatabaseError
from backend.signup.repositories import users_repo
from backend.signup.services.auth.errors import ConflictError, PersistenceError, ValidationError
from backend.signup.validation.rules import (
    PASSWORD_MAX_BYTES,
    REQUIRED_FIELDS,
    RuleSet,
    missing_fields,
    normalize,
    parse_int,
    validate_all,
)

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 10

MISSING_FIELDS_MESSAGE = 'All fields are required.'
INVALID_FIELDS_MESSAGE = 'Invalid field values.'
EMAIL_IN_USE_MESSAGE = 'Email already in use'
USERNAME_IN_USE_MESSAGE = 'Username already in use'
PASSWORD_TOO_LONG_MESSAGE = f'Password must be at most {PASSWORD_MAX_BYTES} bytes'

# Fields that may appear in an outward representation of a user.
PUBLIC_FIELDS = ('name', 'username', 'email', 'age', 'gender', 'address')


def serialize_user(user_doc: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Sanitize a user document for responses; the password hash never leaves."""
    if not user_doc:
        return None
    created = user_doc.get('createdAt')
    if isinstance(created, datetime):
        created = created.isoformat()
    out: Dict[str, Any] = {'id': str(user_doc['_id']) if user_doc.get('_id') else None}
    for key in PUBLIC_FIELDS:
        out[key] = user_doc.get(key)
    out['createdAt'] = created
    return out


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    encoded = password.encode('utf-8')
    if len(encoded) > PASSWORD_MAX_BYTES:
        raise ValidationError('invalid_fields', INVALID_FIELDS_MESSAGE,
                              errors={'password': PASSWORD_TOO_LONG_MESSAGE})
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode('utf-8')


def _clean(payload: Mapping[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for field_id in REQUIRED_FIELDS:
        value = normalize(field_id, payload.get(field_id))
        if field_id == 'age':
            cleaned[field_id] = parse_int(value)
        else:
            cleaned[field_id] = value
    cleaned['email'] = cleaned['email'].lower()
    return cleaned


def _conflict_from_duplicate_key(exc: DuplicateKeyError) -> ConflictError:
    details = getattr(exc, 'details', None) or {}
    keys = set((details.get('keyValue') or {}).keys()) | set((details.get('keyPattern') or {}).keys())
    if 'email' in keys:
        return ConflictError('email_in_use', EMAIL_IN_USE_MESSAGE, field='email')
    if 'username' in keys:
        return ConflictError('username_in_use', USERNAME_IN_USE_MESSAGE, field='username')
    return ConflictError('conflict', 'Email or username already in use', field='')


def register_user(payload: Mapping[str, Any], ruleset: Optional[RuleSet] = None,
                  rounds: int = DEFAULT_BCRYPT_ROUNDS) -> Dict[str, Any]:
    """Create a user from a candidate record and return its sanitized form.

    Raises:
        ValidationError: a field is missing or breaks a rule
        ConflictError: email or username is taken
        PersistenceError: the users collection could not be read or written
    """
    missing = missing_fields(payload)
    if missing:
        raise ValidationError('missing_fields', MISSING_FIELDS_MESSAGE, missing=missing)

    errors = validate_all(payload, ruleset)
    if errors:
        raise ValidationError('invalid_fields', INVALID_FIELDS_MESSAGE, errors=errors)

    data = _clean(payload)

    try:
        if users_repo.find_by_email(data['email']):
            logger.warning("Registration rejected: email already in use")
            raise ConflictError('email_in_use', EMAIL_IN_USE_MESSAGE, field='email')
        if users_repo.find_by_username(data['username']):
            logger.warning("Registration rejected: username %s already in use", data['username'])
            raise ConflictError('username_in_use', USERNAME_IN_USE_MESSAGE, field='username')
    except (DatabaseError, PyMongoError) as e:
        logger.error(f"User lookup failed during registration: {e}")
        raise PersistenceError('lookup_failed', 'Database unavailable')

    password = data.pop('password')
    now = datetime.now(timezone.utc)
    user_doc = {
        **data,
        'passwordHash': hash_password(password, rounds),
        'createdAt': now,
        'updatedAt': now,
    }

    try:
        inserted_id = users_repo.create_user(user_doc)
    except DuplicateKeyError as e:
        # Another request inserted the same email/username after our lookups.
        conflict = _conflict_from_duplicate_key(e)
        logger.warning("Registration rejected by unique index: %s", conflict.code)
        raise conflict
    except (DatabaseError, PyMongoError) as e:
        logger.error(f"User insert failed during registration: {e}")
        raise PersistenceError('insert_failed', 'Could not save user')

    user_doc['_id'] = inserted_id
    logger.info("User %s registered (id=%s)", user_doc['username'], inserted_id)
    return serialize_user(user_doc)
