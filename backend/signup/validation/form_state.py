"""Form session state for the registration form.

One ``FormState`` per form session holds every field's value, touched flag
and current error. Transitions are pure: each returns a new state and never
mutates its input, so any UI layer can drive the form by feeding actions to
``reduce``.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from .rules import REQUIRED_FIELDS, RuleSet, validate, validate_all
from .strength import password_strength

SUCCESS_MESSAGE = 'Registration successful!'


@dataclass(frozen=True)
class FieldState:
    value: Any = ''
    touched: bool = False
    error: str = ''


@dataclass(frozen=True)
class Notification:
    kind: str  # 'success' or 'error'
    message: str


@dataclass(frozen=True)
class FormState:
    fields: Mapping[str, FieldState] = field(default_factory=lambda: {f: FieldState() for f in REQUIRED_FIELDS})
    submitted: bool = False
    notification: Optional[Notification] = None
    ruleset: Optional[RuleSet] = None


def error_notification(count: int) -> Notification:
    return Notification('error', f"Please fix {count} error{'s' if count != 1 else ''}")


def initial_state(ruleset: Optional[RuleSet] = None) -> FormState:
    return FormState(ruleset=ruleset)


def _with_field(state: FormState, field_id: str, new_field: FieldState, **changes) -> FormState:
    if field_id not in state.fields:
        raise ValueError(f'unknown field: {field_id!r}')
    fields = dict(state.fields)
    fields[field_id] = new_field
    return replace(state, fields=fields, **changes)


def change(state: FormState, field_id: str, value: Any) -> FormState:
    """Store a new value and revalidate just that field."""
    error = validate(field_id, value, state.ruleset)
    return _with_field(state, field_id, FieldState(value=value, touched=True, error=error))


def blur(state: FormState, field_id: str) -> FormState:
    current = state.fields.get(field_id) or FieldState()
    error = validate(field_id, current.value, state.ruleset)
    return _with_field(state, field_id, replace(current, touched=True, error=error))


def submit(state: FormState) -> FormState:
    """Validate every field from scratch, ignoring per-keystroke results."""
    errors = validate_all(values(state), state.ruleset)
    fields = {
        field_id: replace(fs, touched=True, error=errors.get(field_id, ''))
        for field_id, fs in state.fields.items()
    }
    if errors:
        return replace(state, fields=fields, submitted=False, notification=error_notification(len(errors)))
    return replace(state, fields=fields, submitted=True, notification=Notification('success', SUCCESS_MESSAGE))


def reset(state: FormState) -> FormState:
    return initial_state(state.ruleset)


def dismiss_notification(state: FormState) -> FormState:
    return replace(state, notification=None)


def reduce(state: FormState, action: Mapping[str, Any]) -> FormState:
    kind = action.get('type')
    if kind == 'change':
        return change(state, action['field'], action.get('value', ''))
    if kind == 'blur':
        return blur(state, action['field'])
    if kind == 'submit':
        return submit(state)
    if kind == 'reset':
        return reset(state)
    if kind == 'dismiss':
        return dismiss_notification(state)
    raise ValueError(f'unknown action: {kind!r}')


def values(state: FormState) -> Dict[str, Any]:
    return {field_id: fs.value for field_id, fs in state.fields.items()}


def errors(state: FormState) -> Dict[str, str]:
    return {field_id: fs.error for field_id, fs in state.fields.items() if fs.error}


def is_submittable(state: FormState) -> bool:
    return not validate_all(values(state), state.ruleset)


def strength(state: FormState) -> dict:
    """Strength meter for the current password; display only."""
    return password_strength(state.fields['password'].value or '')
