"""Registration blueprint: form submission and the shared rule table.

Routes:
- POST /api/form
- GET /api/form/rules
"""
from __future__ import annotations

import logging
from flask import Blueprint, request, jsonify, current_app

from backend.signup.extensions import limiter
from backend.signup.services.auth import registration_service as svc
from backend.signup.services.auth.errors import (
    ConflictError,
    PersistenceError,
    ValidationError,
)
from backend.signup.validation.rules import RuleSet, describe_rules

logger = logging.getLogger(__name__)

registration_bp = Blueprint('registration', __name__)

ERROR_MESSAGE = 'Error creating user'


def _registration_limit() -> str:
    return current_app.config.get('REGISTRATION_RATE_LIMIT', '5 per minute')


@registration_bp.route('/form', methods=['POST'])
@limiter.limit(_registration_limit, methods=['POST'])
def submit_form():
    """Register a new user from the submitted form."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}

    ruleset = RuleSet.from_config(current_app.config)
    rounds = current_app.config.get('BCRYPT_ROUNDS', svc.DEFAULT_BCRYPT_ROUNDS)

    try:
        user = svc.register_user(payload, ruleset=ruleset, rounds=rounds)
        return jsonify({"message": "User created successfully", "user": user}), 201
    except ValidationError as e:
        body = {"message": e.message}
        if e.missing:
            body["fields"] = e.missing
        if e.errors:
            body["errors"] = e.errors
        return jsonify(body), 400
    except ConflictError as e:
        return jsonify({"message": e.message}), 400
    except PersistenceError as e:
        return jsonify({"message": ERROR_MESSAGE, "error": e.message}), 500
    except Exception as e:
        logger.exception('Unexpected error creating user')
        detail = str(e) if current_app.config.get('EXPOSE_ERROR_DETAILS') else 'Internal server error'
        return jsonify({"message": ERROR_MESSAGE, "error": detail}), 500


@registration_bp.route('/form/rules', methods=['GET'])
@limiter.exempt
def form_rules():
    """Publish the field rules so browser forms validate with the same table."""
    return jsonify(describe_rules(RuleSet.from_config(current_app.config))), 200
