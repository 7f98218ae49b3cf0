"""Tests for the field validation engine."""

from datetime import date

import pytest

from formflow.schemas.form import (
    FieldOption,
    FieldType,
    FormField,
    ValidationKind,
    ValidationRule,
)
from formflow.validation.engine import is_valid, validate


def _field(field_type=FieldType.SHORT_TEXT, required=False, rules=(), **kwargs):
    return FormField(
        id="f", type=field_type, label="Field", required=required,
        validation_rules=[ValidationRule(kind=k, value=v) for k, v in rules], **kwargs,
    )


class TestRequired:
    """Requiredness, explicit and implicit."""

    @pytest.mark.parametrize("value", [None, "", "   ", []])
    def test_empty_values_fail_required(self, value):
        errors = validate(_field(required=True), value)
        assert [e.rule for e in errors] == ["required"]
        assert errors[0].message == "This field is required"

    def test_effective_requiredness_overrides_field(self):
        assert validate(_field(required=False), "", required=True)
        assert validate(_field(required=True), "", required=False) == []

    def test_explicit_required_rule_not_duplicated(self):
        field = _field(required=True, rules=[(ValidationKind.REQUIRED, None)])
        assert len(validate(field, "")) == 1

    def test_optional_empty_value_skips_other_rules(self):
        field = _field(rules=[(ValidationKind.MIN_LENGTH, 3), (ValidationKind.EMAIL_FORMAT, None)])
        assert validate(field, "") == []


class TestRuleKinds:
    """One check per validation kind."""

    def test_length_bounds(self):
        field = _field(rules=[(ValidationKind.MIN_LENGTH, 2), (ValidationKind.MAX_LENGTH, 4)])
        assert [e.rule for e in validate(field, "a")] == ["min_length"]
        assert [e.rule for e in validate(field, "abcde")] == ["max_length"]
        assert is_valid(field, "abc")

    def test_list_length_counts_selections(self):
        field = _field(
            FieldType.MULTI_CHOICE,
            rules=[(ValidationKind.MIN_LENGTH, 2)],
            options=[FieldOption(id=v, value=v, label=v) for v in ("a", "b", "c")],
        )
        errors = validate(field, ["a"])
        assert errors[0].message == "Select at least 2 options"
        assert is_valid(field, ["a", "b"])

    def test_numeric_bounds(self):
        field = _field(FieldType.NUMBER, rules=[(ValidationKind.MIN, 0), (ValidationKind.MAX, 120)])
        assert is_valid(field, "42")
        assert [e.rule for e in validate(field, -1)] == ["min"]
        assert [e.rule for e in validate(field, "121")] == ["max"]

    def test_non_numeric_input_fails_numeric_rules(self):
        field = _field(FieldType.NUMBER, rules=[(ValidationKind.MIN, 0), (ValidationKind.MAX, 10)])
        assert [e.rule for e in validate(field, "abc")] == ["min", "max"]

    def test_pattern(self):
        field = _field(rules=[(ValidationKind.PATTERN, r"^\d{5}$")])
        assert is_valid(field, "02139")
        assert not is_valid(field, "2139")

    @pytest.mark.parametrize("value,ok", [
        ("jane@example.com", True),
        ("jane@example", False),
        ("jane doe@example.com", False),
    ])
    def test_email_format(self, value, ok):
        assert is_valid(_field(rules=[(ValidationKind.EMAIL_FORMAT, None)]), value) is ok

    @pytest.mark.parametrize("value,ok", [
        ("(555) 123-4567", True),
        ("+44 20 7946 0958", True),
        ("0123456", False),
        ("phone", False),
    ])
    def test_phone_format(self, value, ok):
        assert is_valid(_field(rules=[(ValidationKind.PHONE_FORMAT, None)]), value) is ok

    def test_max_date_today(self, today):
        field = _field(FieldType.DATE, rules=[(ValidationKind.MAX_DATE, "today")])
        assert is_valid(field, "2026-03-15", today=today)
        assert is_valid(field, "03/14/2026", today=today)
        assert not is_valid(field, "2026-03-16", today=today)

    def test_unparseable_date_fails_max_date(self, today):
        field = _field(FieldType.DATE, rules=[(ValidationKind.MAX_DATE, "today")])
        assert [e.rule for e in validate(field, "not a date", today=today)] == ["max_date"]

    def test_explicit_max_date(self):
        field = _field(FieldType.DATE, rules=[(ValidationKind.MAX_DATE, "2000-01-01")])
        assert is_valid(field, date(1999, 12, 31))
        assert not is_valid(field, date(2000, 1, 2))


class TestTotality:
    """Every failing rule is reported."""

    def test_all_failures_returned(self):
        field = _field(
            required=True,
            rules=[
                (ValidationKind.MIN_LENGTH, 10),
                (ValidationKind.PATTERN, r"^\d+$"),
                (ValidationKind.EMAIL_FORMAT, None),
            ],
        )
        errors = validate(field, "abc")
        assert [e.rule for e in errors] == ["min_length", "pattern", "email_format"]
        assert all(e.field_id == "f" for e in errors)

    def test_custom_message_used(self):
        field = FormField(
            id="f", type=FieldType.SHORT_TEXT, label="F",
            validation_rules=[ValidationRule(kind=ValidationKind.MIN_LENGTH, value=5, message="Too short")],
        )
        assert validate(field, "abc")[0].message == "Too short"

    def test_static_message_never_validated(self):
        field = FormField(
            id="notice", type=FieldType.STATIC_MESSAGE, label="Read me", required=True,
        )
        assert validate(field, None) == []
