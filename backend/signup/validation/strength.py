"""Password strength meter shown next to the password input.

Purely informational: the score never changes whether a password passes the
rule table.
"""
from __future__ import annotations

import re
from typing import Dict

from .rules import PASSWORD_SYMBOLS

STRENGTH_LABELS = {0: 'Weak', 1: 'Weak', 2: 'Weak', 3: 'Fair', 4: 'Good', 5: 'Strong'}


def strength_checks(password: str) -> Dict[str, bool]:
    password = password or ''
    return {
        'length': len(password) >= 8,
        'lowercase': re.search(r'[a-z]', password) is not None,
        'uppercase': re.search(r'[A-Z]', password) is not None,
        'digit': re.search(r'[0-9]', password) is not None,
        'symbol': any(ch in PASSWORD_SYMBOLS for ch in password),
    }


def score_password(password: str) -> int:
    """One point per satisfied check, 0 to 5."""
    return sum(1 for ok in strength_checks(password).values() if ok)


def strength_label(score: int) -> str:
    return STRENGTH_LABELS[max(0, min(5, score))]


def password_strength(password: str) -> dict:
    checks = strength_checks(password)
    score = sum(1 for ok in checks.values() if ok)
    return {'score': score, 'label': strength_label(score), 'checks': checks}
