"""Repository pattern for database operations.

Abstracts the users collection behind a small interface so the
registration service never touches PyMongo directly.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from flask import current_app
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError
from bson import ObjectId

from . import db

logger = logging.getLogger(__name__)


class BaseRepository:
    """Base repository class with common database operations."""

    def __init__(self, collection_name: str):
        """Initialize repository with collection name.

        Args:
            collection_name: Name of the MongoDB collection
        """
        self.collection_name = collection_name

    @property
    def collection(self) -> Collection:
        database = db.get_db()
        return database[self.collection_name]

    def find_one(self, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            return self.collection.find_one(filter_dict)
        except PyMongoError as e:
            logger.error(f"Error finding document in {self.collection_name}: {e}")
            raise

    def insert_one(self, document: Dict[str, Any]) -> ObjectId:
        try:
            result = self.collection.insert_one(document)
            return result.inserted_id
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            logger.error(f"Error inserting document in {self.collection_name}: {e}")
            raise

    def count_documents(self, filter_dict: Dict[str, Any]) -> int:
        try:
            return self.collection.count_documents(filter_dict)
        except PyMongoError as e:
            logger.error(f"Error counting documents in {self.collection_name}: {e}")
            raise


class UsersRepository(BaseRepository):
    def __init__(self, collection_name: Optional[str] = None) -> None:
        super().__init__(collection_name or 'users')

    @property
    def collection(self) -> Collection:
        name = current_app.config.get('MONGO_USERS_COLLECTION') or self.collection_name
        return db.get_db()[name]

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.find_one({'email': email.lower()})

    def find_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        return self.find_one({'username': username})

    def create_user(self, user_data: Dict[str, Any]) -> ObjectId:
        user_data['email'] = user_data['email'].lower()
        try:
            return self.insert_one(user_data)
        except DuplicateKeyError as e:
            logger.warning(f"Duplicate user creation attempt: {e}")
            raise


# Repository instances for easy import
users_repo = UsersRepository()
