"""
Python client for the registration API.

Validates the whole form locally with the shared rule table and only talks
to the server when every field passes. Server-side rejections (missing
fields, rule violations, taken email/username) come back as a
``SubmissionResult`` instead of an exception; transport problems raise
``RegistrationClientError``.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import requests

from backend.signup.validation.form_state import SUCCESS_MESSAGE, Notification, error_notification
from backend.signup.validation.rules import RuleSet, validate_all


class RegistrationClientError(Exception):
    """Raised when the registration API cannot be reached or answers garbage."""
    pass


@dataclass
class SubmissionResult:
    ok: bool
    status: Optional[int] = None  # None when the request never left the client
    user: Optional[Dict[str, Any]] = None
    message: str = ''
    errors: Dict[str, str] = field(default_factory=dict)
    notification: Optional[Notification] = None

    @property
    def sent(self) -> bool:
        return self.status is not None


class RegistrationClient:
    """
    Client for the registration endpoint.

    Mirrors the browser client: JSON over HTTP, 5 second timeout, cookies
    kept on the session.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5000/api",
        timeout: float = 5,
        ruleset: Optional[RuleSet] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. ``https://example.org/api``
            timeout: Request timeout in seconds
            ruleset: Field rules to apply before sending
            session: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.ruleset = ruleset
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        url = self._url(endpoint)
        try:
            self.logger.debug(f"{method} {url}")
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            raise RegistrationClientError(f"Request timeout after {self.timeout} seconds")
        except requests.exceptions.ConnectionError as e:
            raise RegistrationClientError(f"Connection error: {e}")

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise RegistrationClientError(f"Invalid JSON response: {e}")
        if not isinstance(data, dict):
            raise RegistrationClientError("Unexpected response body")
        return data

    def submit(self, record: Mapping[str, Any]) -> SubmissionResult:
        """Validate ``record`` and, when it is clean, register it.

        No request is made while any field fails the local rules.
        """
        errors = validate_all(record, self.ruleset)
        if errors:
            note = error_notification(len(errors))
            self.logger.info(f"Submission blocked locally: {sorted(errors)}")
            return SubmissionResult(ok=False, message='Please fix the errors below', errors=errors,
                                    notification=note)

        response = self._request('POST', 'form', json=dict(record))
        if response.status_code == 429:
            message = 'Too many registration attempts, try again later'
            return SubmissionResult(ok=False, status=429, message=message,
                                    notification=Notification('error', message))
        if response.status_code in (201, 400):
            data = self._json(response)
        else:
            # Proxies and load balancers answer 5xx with HTML.
            try:
                data = self._json(response)
            except RegistrationClientError:
                data = {}
        message = data.get('message', '')

        if response.status_code == 201:
            return SubmissionResult(ok=True, status=201, user=data.get('user'), message=message,
                                    notification=Notification('success', SUCCESS_MESSAGE))

        if response.status_code == 400:
            errors = dict(data.get('errors') or {})
            for field_id in data.get('fields') or []:
                errors.setdefault(field_id, 'This field is required')
            if message == 'Email already in use':
                errors.setdefault('email', message)
            elif message == 'Username already in use':
                errors.setdefault('username', message)
            return SubmissionResult(ok=False, status=400, message=message, errors=errors,
                                    notification=Notification('error', message))

        self.logger.warning(f"Registration failed with HTTP {response.status_code}: {data.get('error')}")
        return SubmissionResult(ok=False, status=response.status_code, message=message or 'Error creating user',
                                notification=Notification('error', message or 'Error creating user'))

    def fetch_rules(self) -> Dict[str, Any]:
        """Download the server's rule table."""
        response = self._request('GET', 'form/rules')
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise RegistrationClientError(f"HTTP error: {e}")
        return self._json(response)
