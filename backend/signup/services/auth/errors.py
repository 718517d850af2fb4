"""Typed failures raised by the registration service.

Routes map each type to its own response so the client can tell a
field-level problem from a record-level one.
"""
from __future__ import annotations

from typing import Dict, List, Optional


class RegistrationError(Exception):
    status = 400

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class ValidationError(RegistrationError):
    """Client-correctable problem with one or more fields."""

    def __init__(self, code: str, message: str, missing: Optional[List[str]] = None,
                 errors: Optional[Dict[str, str]] = None):
        super().__init__(code, message)
        self.missing = missing or []
        self.errors = errors or {}


class ConflictError(RegistrationError):
    """Email or username already belongs to another user."""

    def __init__(self, code: str, message: str, field: str):
        super().__init__(code, message)
        self.field = field


class PersistenceError(RegistrationError):
    """Storage unavailable or write failed."""
    status = 500
