"""Declarative rule table for the registration form.

The same table drives the form session on the client side and the
registration handler on the server. Each rule is plain data (``kind``,
``param``, ``message``) evaluated by a small registry of checks, which lets
the table be serialized to JSON and evaluated the same way in a browser.

Rules for a field are evaluated in order and evaluation stops at the first
failure. ``validate`` returns an empty string when the value is valid.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

REQUIRED_FIELDS: Tuple[str, ...] = ('name', 'username', 'email', 'age', 'gender', 'address', 'password')
GENDER_CHOICES: Tuple[str, ...] = ('male', 'female', 'other')
PASSWORD_SYMBOLS = '!@#$%^&*(),.?":{}|<>'

DEFAULT_AGE_MIN = 18
DEFAULT_AGE_MAX = 120

REQUIRED_MESSAGE = 'This field is required'
TEXT_MESSAGE = 'This field must be text'

# bcrypt only looks at the first 72 bytes of a password and newer releases
# refuse anything longer.
PASSWORD_MAX_BYTES = 72

# Patterns are kept JS-compatible so the table can be evaluated client-side.
NAME_PATTERN = r"^[A-Za-zÀ-ÖØ-öø-ÿ\s]+$"
USERNAME_PATTERN = r'^[A-Za-z0-9_]+$'
EMAIL_PATTERN = r'^[^\s@]+@[^\s@]+\.[^\s@]+$'
INTEGER_PATTERN = r"^[+-]?[0-9]+$"

# Fields whose raw value is never trimmed before evaluation.
UNTRIMMED_FIELDS = frozenset({'password'})


@dataclass(frozen=True)
class Rule:
    kind: str
    message: str
    param: Any = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {'kind': self.kind, 'message': self.message}
        if self.param is not None:
            out['param'] = list(self.param) if isinstance(self.param, tuple) else self.param
        return out


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    return False


def parse_int(value: Any) -> Optional[int]:
    """Coerce a raw age value to ``int``; ``None`` when it is not a whole number.

    Accepts ints, integral floats and numeric strings. Booleans are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if re.match(INTEGER_PATTERN, text):
            return int(text)
    return None


def _check_required(value: Any, _param: Any) -> bool:
    return not _is_blank(value)


def _check_string(value: Any, _param: Any) -> bool:
    return isinstance(value, str)


def _check_min_length(value: Any, param: int) -> bool:
    return len(str(value)) >= param


def _check_pattern(value: Any, param: str) -> bool:
    return re.search(param, str(value)) is not None


def _check_integer(value: Any, _param: Any) -> bool:
    return parse_int(value) is not None


def _check_range(value: Any, param: Tuple[int, int]) -> bool:
    number = parse_int(value)
    if number is None:
        return False
    low, high = param
    return low <= number <= high


def _check_one_of(value: Any, param: Tuple[str, ...]) -> bool:
    return isinstance(value, str) and value in param


def _check_max_bytes(value: Any, param: int) -> bool:
    return len(str(value).encode('utf-8')) <= param


def _check_contains_any(value: Any, param: str) -> bool:
    return any(ch in param for ch in str(value))


CHECKS: Dict[str, Callable[[Any, Any], bool]] = {
    'required': _check_required,
    'string': _check_string,
    'min_length': _check_min_length,
    'max_bytes': _check_max_bytes,
    'pattern': _check_pattern,
    'integer': _check_integer,
    'range': _check_range,
    'one_of': _check_one_of,
    'contains_any': _check_contains_any,
}


@dataclass(frozen=True)
class RuleSet:
    """Tunable parameters of the rule table.

    The defaults are the authoritative rules: age 18 to 120 inclusive and
    no symbol requirement on passwords. ``require_symbol`` enables the
    stricter password variant.
    """
    age_min: int = DEFAULT_AGE_MIN
    age_max: int = DEFAULT_AGE_MAX
    require_symbol: bool = False

    def __post_init__(self):
        if self.age_min > self.age_max:
            raise ValueError(f'AGE_MIN ({self.age_min}) must not exceed AGE_MAX ({self.age_max})')

    def table(self) -> Dict[str, Tuple[Rule, ...]]:
        return _build_table(self.age_min, self.age_max, self.require_symbol)

    def rules_for(self, field_id: str) -> Tuple[Rule, ...]:
        table = self.table()
        if field_id not in table:
            raise ValueError(f'unknown field: {field_id!r}')
        return table[field_id]

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'RuleSet':
        return cls(
            age_min=int(config.get('AGE_MIN', DEFAULT_AGE_MIN)),
            age_max=int(config.get('AGE_MAX', DEFAULT_AGE_MAX)),
            require_symbol=bool(config.get('PASSWORD_REQUIRE_SYMBOL', False)),
        )


@lru_cache(maxsize=None)
def _build_table(age_min: int, age_max: int, require_symbol: bool) -> Dict[str, Tuple[Rule, ...]]:
    required = Rule('required', REQUIRED_MESSAGE)
    text = Rule('string', TEXT_MESSAGE)
    password_rules = [
        required,
        text,
        Rule('min_length', 'Password must be at least 8 characters', 8),
        Rule('max_bytes', f'Password must be at most {PASSWORD_MAX_BYTES} bytes', PASSWORD_MAX_BYTES),
        Rule('pattern', 'Password must contain a lowercase letter', '[a-z]'),
        Rule('pattern', 'Password must contain an uppercase letter', '[A-Z]'),
        Rule('pattern', 'Password must contain a number', '[0-9]'),
    ]
    if require_symbol:
        password_rules.append(Rule('contains_any', 'Password must contain a special character', PASSWORD_SYMBOLS))

    return {
        'name': (
            required,
            text,
            Rule('min_length', 'Name must be at least 2 characters', 2),
            Rule('pattern', 'Name can only contain letters and spaces', NAME_PATTERN),
        ),
        'username': (
            required,
            text,
            Rule('min_length', 'Username must be at least 3 characters', 3),
            Rule('pattern', 'Username can only contain letters, numbers and underscores', USERNAME_PATTERN),
        ),
        'email': (
            required,
            text,
            Rule('pattern', 'Please enter a valid email', EMAIL_PATTERN),
        ),
        'age': (
            required,
            Rule('integer', 'Age must be a whole number'),
            Rule('range', f'Age must be between {age_min} and {age_max}', (age_min, age_max)),
        ),
        'gender': (
            required,
            text,
            Rule('one_of', 'Please select a valid gender', GENDER_CHOICES),
        ),
        'address': (
            required,
            text,
            Rule('min_length', 'Address must be at least 10 characters', 10),
        ),
        'password': tuple(password_rules),
    }


DEFAULT_RULESET = RuleSet()


def normalize(field_id: str, raw_value: Any) -> Any:
    """Trim string input; passwords are taken verbatim."""
    if isinstance(raw_value, str) and field_id not in UNTRIMMED_FIELDS:
        return raw_value.strip()
    return raw_value


def validate(field_id: str, raw_value: Any, ruleset: Optional[RuleSet] = None) -> str:
    """Return the first failing rule's message for a field, or ``''`` when valid."""
    rules = (ruleset or DEFAULT_RULESET).rules_for(field_id)
    value = normalize(field_id, raw_value)
    for rule in rules:
        if not CHECKS[rule.kind](value, rule.param):
            return rule.message
    return ''


def validate_all(record: Mapping[str, Any], ruleset: Optional[RuleSet] = None,
                 fields: Iterable[str] = REQUIRED_FIELDS) -> Dict[str, str]:
    """Run every rule for every field; return only the failing fields."""
    errors: Dict[str, str] = {}
    for field_id in fields:
        message = validate(field_id, record.get(field_id), ruleset)
        if message:
            errors[field_id] = message
    return errors


def missing_fields(record: Mapping[str, Any], fields: Iterable[str] = REQUIRED_FIELDS) -> list[str]:
    return [f for f in fields if _is_blank(record.get(f))]


def describe_rules(ruleset: Optional[RuleSet] = None) -> Dict[str, Any]:
    """JSON-serializable rule table for browser clients."""
    rs = ruleset or DEFAULT_RULESET
    return {
        'fields': list(REQUIRED_FIELDS),
        'trimmed': [f for f in REQUIRED_FIELDS if f not in UNTRIMMED_FIELDS],
        'rules': {field_id: [rule.to_dict() for rule in rules] for field_id, rules in rs.table().items()},
    }
