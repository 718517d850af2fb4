"""MongoDB $jsonSchema validator for the users collection.

Mirrors the server-side contract of a user document so the database itself
refuses records the registration service would never write.
"""
from __future__ import annotations

from typing import Any, Dict

from backend.signup.validation.rules import DEFAULT_AGE_MAX, DEFAULT_AGE_MIN, GENDER_CHOICES


def users_validator(age_min: int = DEFAULT_AGE_MIN, age_max: int = DEFAULT_AGE_MAX) -> Dict[str, Any]:
    return {
        '$jsonSchema': {
            'bsonType': 'object',
            'required': ['name', 'username', 'email', 'age', 'gender', 'address', 'passwordHash'],
            'properties': {
                'name': {'bsonType': 'string', 'minLength': 2},
                'username': {'bsonType': 'string', 'minLength': 3},
                'email': {'bsonType': 'string'},
                'age': {'bsonType': ['int', 'long'], 'minimum': age_min, 'maximum': age_max},
                'gender': {'enum': list(GENDER_CHOICES)},
                'address': {'bsonType': 'string', 'minLength': 10},
                'passwordHash': {'bsonType': 'string'},
                'createdAt': {'bsonType': 'date'},
                'updatedAt': {'bsonType': 'date'},
            },
        }
    }
