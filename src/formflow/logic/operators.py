"""Condition operators shared by conditional rules and completion alerts."""

from typing import Any, Callable, Dict, Mapping

from formflow.schemas.form import ConditionOperator, RuleTrigger
from formflow.utils.coercion import as_text, is_empty, to_number


def _equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    if isinstance(actual, (list, tuple)) or isinstance(expected, (list, tuple)):
        return False
    if actual is None or expected is None:
        return False
    # Text inputs hand over strings; compare "3" and 3 as equal
    return as_text(actual) == as_text(expected)


def _includes(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple, set)):
        wanted = as_text(expected)
        return any(as_text(item) == wanted for item in actual)
    if isinstance(actual, str):
        return as_text(expected).lower() in actual.lower()
    return False


def _compare(actual: Any, expected: Any, op: Callable[[float, float], bool]) -> bool:
    left = to_number(actual)
    right = to_number(expected)
    if left is None or right is None:
        return False
    return op(left, right)


OPERATORS: Dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: _equals,
    ConditionOperator.NOT_EQUALS: lambda a, e: not _equals(a, e),
    ConditionOperator.INCLUDES: _includes,
    ConditionOperator.NOT_INCLUDES: lambda a, e: not _includes(a, e),
    ConditionOperator.GREATER_THAN: lambda a, e: _compare(a, e, lambda x, y: x > y),
    ConditionOperator.LESS_THAN: lambda a, e: _compare(a, e, lambda x, y: x < y),
    ConditionOperator.IS_EMPTY: lambda a, e: is_empty(a),
    ConditionOperator.IS_NOT_EMPTY: lambda a, e: not is_empty(a),
}


def apply_operator(operator: ConditionOperator, actual: Any, expected: Any) -> bool:
    """Apply an operator to an answer and a rule value.

    Numeric operators fail (return False) when either side cannot be
    coerced; the failure belongs to the rule, never to the field.
    """
    return OPERATORS[ConditionOperator(operator)](actual, expected)


def evaluate_condition(trigger: RuleTrigger, values: Mapping[str, Any]) -> bool:
    """Evaluate a trigger against an answer (or answer + result) mapping."""
    return apply_operator(trigger.operator, values.get(trigger.field_id), trigger.value)
