"""Validation engine: evaluate a field's declarative rules against a value.

Every rule is checked independently and all failures are returned, so a
UI can show every problem at once. Rules other than ``required`` skip
empty values; requiredness is the ``required`` rule's job.

The engine is a pure function of ``(field, value, today)``.
"""

import logging
import re
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from formflow.schemas.form import FormField, ValidationKind, ValidationRule
from formflow.schemas.issues import FieldValidationError
from formflow.utils.coercion import is_empty, to_date, to_number

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
_PHONE_STRIP = re.compile(r"[\s\-\(\)]")

TODAY_TOKEN = "today"

DEFAULT_MESSAGES: Dict[ValidationKind, str] = {
    ValidationKind.REQUIRED: "This field is required",
    ValidationKind.MIN_LENGTH: "Must be at least {value} characters",
    ValidationKind.MAX_LENGTH: "Must be at most {value} characters",
    ValidationKind.MIN: "Must be at least {value}",
    ValidationKind.MAX: "Must be at most {value}",
    ValidationKind.PATTERN: "Invalid format",
    ValidationKind.EMAIL_FORMAT: "Please enter a valid email address",
    ValidationKind.PHONE_FORMAT: "Please enter a valid phone number",
    ValidationKind.MAX_DATE: "Date must be on or before {value}",
}

# Length messages for list answers (multi-select)
_LIST_LENGTH_MESSAGES = {
    ValidationKind.MIN_LENGTH: "Select at least {value} options",
    ValidationKind.MAX_LENGTH: "Select at most {value} options",
}


def _length(field: FormField, value: Any) -> int:
    if field.is_multi_value or isinstance(value, (list, tuple)):
        return len(value) if isinstance(value, (list, tuple)) else 1
    return len(str(value))


def _check_required(field: FormField, rule: ValidationRule, value: Any, today: date) -> bool:
    return not is_empty(value)


def _check_min_length(field: FormField, rule: ValidationRule, value: Any, today: date) -> bool:
    bound = to_number(rule.value)
    return bound is None or _length(field, value) >= bound


def _check_max_length(field: FormField, rule: ValidationRule, value: Any, today: date) -> bool:
    bound = to_number(rule.value)
    return bound is None or _length(field, value) <= bound


def _check_min(field: FormField, rule: ValidationRule, value: Any, today: date) -> bool:
    number = to_number(value)
    bound = to_number(rule.value)
    if number is None:
        return False
    return bound is None or number >= bound


def _check_max(field: FormField, rule: ValidationRule, value: Any, today: date) -> bool:
    number = to_number(value)
    bound = to_number(rule.value)
    if number is None:
        return False
    return bound is None or number <= bound


def _check_pattern(field: FormField, rule: ValidationRule, value: Any, today: date) -> bool:
    if not rule.value:
        return True
    try:
        return re.search(str(rule.value), str(value)) is not None
    except re.error as e:
        logger.warning(f"Invalid pattern on field '{field.id}': {rule.value!r} ({e})")
        return False


def _check_email(field: FormField, rule: ValidationRule, value: Any, today: date) -> bool:
    return EMAIL_PATTERN.match(str(value).strip()) is not None


def _check_phone(field: FormField, rule: ValidationRule, value: Any, today: date) -> bool:
    cleaned = _PHONE_STRIP.sub("", str(value))
    return PHONE_PATTERN.match(cleaned) is not None


def resolve_date_bound(raw: Any, today: date) -> Optional[date]:
    """Resolve a max_date parameter, mapping the literal 'today'."""
    if isinstance(raw, str) and raw.strip().lower() == TODAY_TOKEN:
        return today
    return to_date(raw)


def _check_max_date(field: FormField, rule: ValidationRule, value: Any, today: date) -> bool:
    candidate = to_date(value)
    if candidate is None:
        return False
    bound = resolve_date_bound(rule.value, today)
    return bound is None or candidate <= bound


_CHECKS: Dict[ValidationKind, Callable[[FormField, ValidationRule, Any, date], bool]] = {
    ValidationKind.REQUIRED: _check_required,
    ValidationKind.MIN_LENGTH: _check_min_length,
    ValidationKind.MAX_LENGTH: _check_max_length,
    ValidationKind.MIN: _check_min,
    ValidationKind.MAX: _check_max,
    ValidationKind.PATTERN: _check_pattern,
    ValidationKind.EMAIL_FORMAT: _check_email,
    ValidationKind.PHONE_FORMAT: _check_phone,
    ValidationKind.MAX_DATE: _check_max_date,
}


def _message(field: FormField, rule: ValidationRule, value: Any) -> str:
    if rule.message:
        return rule.message
    template = DEFAULT_MESSAGES[rule.kind]
    if rule.kind in _LIST_LENGTH_MESSAGES and (
        field.is_multi_value or isinstance(value, (list, tuple))
    ):
        template = _LIST_LENGTH_MESSAGES[rule.kind]
    return template.format(value=rule.value)


def validate(
    field: FormField,
    value: Any,
    *,
    required: Optional[bool] = None,
    today: Optional[date] = None,
) -> List[FieldValidationError]:
    """Validate a candidate value against a field's rules.

    Args:
        field: Field definition carrying the validation rules
        value: Candidate answer (scalar or list)
        required: Effective requiredness (e.g. from a require_field effect).
            Defaults to ``field.required``. When true and the field has no
            explicit ``required`` rule, an implicit one is checked.
        today: Evaluation date used to resolve ``max_date: today``

    Returns:
        One FieldValidationError per failing rule (empty if valid)
    """
    if not field.is_input:
        return []

    today = today or date.today()
    effective_required = field.required if required is None else required

    rules = list(field.validation_rules)
    has_required_rule = any(r.kind == ValidationKind.REQUIRED for r in rules)
    if effective_required and not has_required_rule:
        rules.insert(0, ValidationRule(kind=ValidationKind.REQUIRED))

    empty = is_empty(value)
    errors: List[FieldValidationError] = []
    for rule in rules:
        if rule.kind != ValidationKind.REQUIRED and empty:
            continue
        if _CHECKS[rule.kind](field, rule, value, today):
            continue
        errors.append(
            FieldValidationError(
                field_id=field.id,
                field_label=field.label,
                rule=rule.kind.value,
                message=_message(field, rule, value),
            )
        )

    if errors:
        logger.debug(
            f"Field '{field.id}' failed {len(errors)} rule(s): "
            f"{', '.join(e.rule for e in errors)}"
        )
    return errors


def is_valid(field: FormField, value: Any, **kwargs: Any) -> bool:
    """Convenience wrapper: True when ``validate`` returns no errors."""
    return not validate(field, value, **kwargs)
