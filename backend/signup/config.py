"""Configuration settings and environment variables.

This module loads values from environment variables (including a .env file)
and provides small helpers to safely parse integers and booleans while
stripping inline comments. This avoids crashes when a .env value contains
an inline comment like:

    BCRYPT_ROUNDS=12 # slower hashing in production

The helpers fall back to defaults and emit warnings when parsing fails.
"""

import os
import logging
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

_logger = logging.getLogger(__name__)


def _strip_inline_comment(val: str) -> str:
    """Strip an inline comment from a string and trim whitespace/quotes.

    Example: "12 # slower hashing" -> "12"
    """
    if val is None:
        return ''
    # Split on first '#' to remove inline comments
    val = val.split('#', 1)[0]
    val = val.strip()
    # Remove surrounding single/double quotes if present
    if (val.startswith('"') and val.endswith('"')) or (
        val.startswith("'") and val.endswith("'")
    ):
        val = val[1:-1]
    return val


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    stripped = _strip_inline_comment(raw)
    return stripped if stripped != '' else default


def _get_int_env(name: str, default: int) -> int:
    raw = _get_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (ValueError, TypeError):
        _logger.warning("Invalid integer for %s: %r, falling back to %s", name, raw, default)
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw = _get_env(name)
    if raw is None:
        return default
    return raw.lower() in ['true', '1', 'on', 'yes']


class Config:
    """Base configuration class with default settings."""

    # Flask settings
    SECRET_KEY = _get_env('SECRET_KEY') or 'dev-secret-key-change-in-production'
    LOG_LEVEL = _get_env('LOG_LEVEL', 'INFO')

    # MongoDB settings
    MONGO_URI = _get_env('MONGO_URI') or 'mongodb://localhost:27017/'
    MONGO_DB = _get_env('MONGO_DB') or 'registration'
    MONGO_USERS_COLLECTION = _get_env('MONGO_USERS_COLLECTION') or 'users'

    # Password hashing cost (bcrypt log2 rounds)
    BCRYPT_ROUNDS = _get_int_env('BCRYPT_ROUNDS', 10)

    # Field rules shared by the form client and the registration handler
    AGE_MIN = _get_int_env('AGE_MIN', 18)
    AGE_MAX = _get_int_env('AGE_MAX', 120)
    PASSWORD_REQUIRE_SYMBOL = _get_bool_env('PASSWORD_REQUIRE_SYMBOL', False)

    # Rate limiting
    RATELIMIT_ENABLED = _get_bool_env('RATELIMIT_ENABLED', True)
    RATELIMIT_STORAGE_URI = _get_env('RATELIMIT_STORAGE_URI') or 'memory://'
    REGISTRATION_RATE_LIMIT = _get_env('REGISTRATION_RATE_LIMIT') or '5 per minute'

    # Origin of the registration frontend allowed by CORS
    CORS_ORIGIN = _get_env('CORS_ORIGIN') or 'http://localhost:5173'

    # Include raw exception text in 500 responses. Never enable in production.
    EXPOSE_ERROR_DETAILS = _get_bool_env('EXPOSE_ERROR_DETAILS', False)

    # Create unique indexes on users.email / users.username at startup
    ENSURE_INDEXES_ON_STARTUP = _get_bool_env('ENSURE_INDEXES_ON_STARTUP', True)


class DevelopmentConfig(Config):
    """Development configuration with debug mode enabled."""
    DEBUG = True
    TESTING = False
    EXPOSE_ERROR_DETAILS = True


class ProductionConfig(Config):
    """Production configuration with security settings."""
    DEBUG = False
    TESTING = False
    EXPOSE_ERROR_DETAILS = False


class TestingConfig(Config):
    """Testing configuration with test database."""
    TESTING = True
    MONGO_DB = 'registration_test'
    # bcrypt's minimum cost keeps the suite fast
    BCRYPT_ROUNDS = 4
    RATELIMIT_ENABLED = False
    ENSURE_INDEXES_ON_STARTUP = False


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
