"""Database connection and utility functions for MongoDB.

This module provides a centralized MongoDB client with connection management,
error handling, and the index setup the registration flow relies on.
"""

from __future__ import annotations

import logging
from typing import Optional
from pymongo import ASCENDING, MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError
from flask import current_app, g

logger = logging.getLogger(__name__)

class DatabaseError(Exception):
    """Custom exception for database-related errors."""
    pass

def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client instance.

    Returns:
        MongoClient: Configured MongoDB client instance

    Raises:
        DatabaseError: If connection cannot be established
    """
    if 'mongo_client' not in g:
        try:
            mongo_uri = current_app.config['MONGO_URI']
            client = MongoClient(
                mongo_uri,
                serverSelectionTimeoutMS=5000,  # 5 second timeout
                connectTimeoutMS=10000,         # 10 second connection timeout
                socketTimeoutMS=20000,          # 20 second socket timeout
                maxPoolSize=50,                 # Maximum connection pool size
                retryWrites=True
            )

            # Test the connection
            client.admin.command('ping')
            g.mongo_client = client
            logger.info("MongoDB connection established successfully")

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise DatabaseError(f"Database connection failed: {e}")
        except PyMongoError as e:
            logger.error(f"Unexpected error connecting to MongoDB: {e}")
            raise DatabaseError(f"Unexpected database error: {e}")

    return g.mongo_client


def get_db():
    """Get database instance for the current application.

    Raises:
        DatabaseError: If database connection fails
    """
    client = get_mongo_client()
    db_name = current_app.config['MONGO_DB']
    return client[db_name]


def close_db(error: Optional[BaseException] = None) -> None:
    """Close database connection if it exists."""
    mongo_client = g.pop('mongo_client', None)

    if mongo_client is not None:
        try:
            mongo_client.close()
            if error:
                logger.warning(f"Database connection closed due to error: {error}")
            else:
                logger.debug("Database connection closed successfully")
        except PyMongoError as e:
            logger.error(f"Error closing database connection: {e}")


def init_app(app) -> None:
    """Initialize database connection handling with Flask app.

    Args:
        app: Flask application instance
    """
    # Register teardown handler to close connections
    app.teardown_appcontext(close_db)

    if app.testing:
        return

    # Test initial connection during app startup
    with app.app_context():
        try:
            db = get_db()
            collections = db.list_collection_names()
            logger.info(f"Database initialization successful. Found {len(collections)} collections.")

        except DatabaseError as e:
            logger.error(f"Database initialization failed: {e}")
            # Don't raise here - allow app to start even if DB is temporarily unavailable
        except PyMongoError as e:
            logger.error(f"Unexpected error during database initialization: {e}")


def health_check() -> dict:
    """Perform database health check.

    Returns:
        dict: Health check results with status and details
    """
    try:
        client = get_mongo_client()
        client.admin.command('ping')
        server_info = client.server_info()
        users = get_db()[current_app.config['MONGO_USERS_COLLECTION']]

        return {
            'status': 'healthy',
            'database': current_app.config['MONGO_DB'],
            'server_version': server_info.get('version', 'unknown'),
            'users': users.estimated_document_count(),
            'message': 'Database connection is operational'
        }

    except DatabaseError as e:
        return {
            'status': 'unhealthy',
            'error': str(e),
            'message': 'Database connection failed'
        }
    except PyMongoError as e:
        logger.error(f"Health check failed with unexpected error: {e}")
        return {
            'status': 'unhealthy',
            'error': f"Unexpected error: {str(e)}",
            'message': 'Database health check failed'
        }


def ensure_user_indexes(users_collection) -> None:
    """Create the unique indexes that back registration uniqueness.

    The pre-insert lookups in the registration service are only a fast path;
    these indexes are what actually reject a duplicate email or username
    when two registrations race.
    """
    users_collection.create_index([('email', ASCENDING)], name='uq_email', unique=True)
    users_collection.create_index([('username', ASCENDING)], name='uq_username', unique=True)


def ensure_indexes() -> bool:
    """Ensure all required indexes are created.

    Returns:
        bool: True if all indexes were created/verified successfully
    """
    try:
        db = get_db()
        ensure_user_indexes(db[current_app.config['MONGO_USERS_COLLECTION']])
        logger.info("Database indexes created/verified successfully")
        return True

    except (DatabaseError, PyMongoError) as e:
        logger.error(f"Failed to create indexes: {e}")
        return False
