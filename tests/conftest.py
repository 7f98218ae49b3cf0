"""Shared fixtures for formflow tests."""

import json
from datetime import date
from pathlib import Path

import pytest

from formflow.codec.importer import import_schema
from formflow.schemas.form import (
    ConditionalRule,
    ConditionOperator,
    FieldType,
    FormField,
    FormPage,
    FormSchema,
    RuleTrigger,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> dict:
    with open(FIXTURES_DIR / name, "r", encoding="utf-8") as f:
        return json.load(f)


def _rule(rule_id: str, field_id: str, operator: str, value, kind: str, target: str, **extra) -> ConditionalRule:
    return ConditionalRule(
        id=rule_id,
        trigger=RuleTrigger(field_id=field_id, operator=ConditionOperator(operator), value=value),
        action={"kind": kind, "target_id": target, **extra},
    )


@pytest.fixture
def make_rule():
    """Factory: make_rule(id, field, operator, value, kind, target, **extra)."""
    return _rule


@pytest.fixture
def today():
    return date(2026, 3, 15)


@pytest.fixture
def intake_raw():
    return load_fixture("intake_simple.json")


@pytest.fixture
def phq9_raw():
    return load_fixture("phq9.json")


@pytest.fixture
def intake_schema(intake_raw) -> FormSchema:
    result = import_schema(intake_raw)
    assert result.ok, result.errors
    return result.form_schema


@pytest.fixture
def phq9_schema(phq9_raw) -> FormSchema:
    result = import_schema(phq9_raw)
    assert result.ok, result.errors
    return result.form_schema


@pytest.fixture
def two_page_schema() -> FormSchema:
    """Page 1 has one required text field, page 2 one optional number."""
    return FormSchema(
        id="two_pages",
        title="Two pages",
        pages=[
            FormPage(id="p1", title="First", fields=[
                FormField(id="name", type=FieldType.SHORT_TEXT, label="Name", required=True),
            ]),
            FormPage(id="p2", title="Second", fields=[
                FormField(id="age", type=FieldType.NUMBER, label="Age"),
            ]),
        ],
    )


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR
