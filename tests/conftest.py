"""Shared fixtures: a testing app and an in-memory users repository."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from backend.signup import create_app
from backend.signup.config import TestingConfig
from backend.signup.services.auth import registration_service as svc


class FakeUsersRepo:
    """Stands in for UsersRepository; enforces the same unique keys as the indexes."""

    def __init__(self) -> None:
        self.docs: List[Dict[str, Any]] = []
        self.lookups: List[tuple] = []
        # When set, lookups report "not found" to simulate a racing request
        self.blind_lookups = False

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        self.lookups.append(('email', email))
        if self.blind_lookups:
            return None
        return next((d for d in self.docs if d['email'] == email.lower()), None)

    def find_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        self.lookups.append(('username', username))
        if self.blind_lookups:
            return None
        return next((d for d in self.docs if d['username'] == username), None)

    def create_user(self, user_data: Dict[str, Any]) -> ObjectId:
        for key in ('email', 'username'):
            if any(d[key] == user_data[key] for d in self.docs):
                raise DuplicateKeyError(
                    f'E11000 duplicate key error collection: users index: uq_{key}',
                    11000,
                    {'keyPattern': {key: 1}, 'keyValue': {key: user_data[key]}},
                )
        doc = dict(user_data)
        doc['_id'] = ObjectId()
        self.docs.append(doc)
        return doc['_id']


@pytest.fixture
def users_repo(monkeypatch) -> FakeUsersRepo:
    repo = FakeUsersRepo()
    monkeypatch.setattr(svc, 'users_repo', repo)
    return repo


@pytest.fixture(name="app")
def fixture_app():
    return create_app(TestingConfig)


@pytest.fixture(name="client")
def fixture_client(app):
    return app.test_client()


@pytest.fixture
def valid_record() -> Dict[str, Any]:
    return {
        'name': 'Ada Lovelace',
        'username': 'ada_l',
        'email': 'ada@example.com',
        'age': '36',
        'gender': 'female',
        'address': '12 St James Square, London',
        'password': 'Analytical1',
    }
