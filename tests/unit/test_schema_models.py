"""Tests for the schema pydantic models."""

import pytest
from pydantic import ValidationError

from formflow.schemas.form import (
    CalculateScoreAction,
    ConditionalRule,
    FieldOption,
    FieldType,
    FormField,
    FormPage,
    FormSchema,
    ShowMessageAction,
)
from formflow.schemas.submission import Submission


class TestFormField:
    """Tests for field-level invariants."""

    def test_choice_field_requires_options(self):
        with pytest.raises(ValidationError, match="requires at least one option"):
            FormField(id="color", type=FieldType.SELECT, label="Color")

    def test_choice_field_rejects_duplicate_option_values(self):
        with pytest.raises(ValidationError, match="duplicate option values"):
            FormField(
                id="color", type=FieldType.SINGLE_CHOICE, label="Color",
                options=[
                    FieldOption(id="a", value="red", label="Red"),
                    FieldOption(id="b", value="red", label="Also red"),
                ],
            )

    def test_numeric_option_values_become_strings(self):
        option = FieldOption(id="o", value=3, label="Three")
        assert option.value == "3"

    def test_static_message_is_not_input(self):
        field = FormField(id="notice", type=FieldType.STATIC_MESSAGE, label="Read this")
        assert not field.is_input

    def test_multi_value_types(self):
        options = [FieldOption(id="a", value="a", label="A")]
        assert FormField(id="f", type=FieldType.MULTI_CHOICE, label="F", options=options).is_multi_value
        assert not FormField(id="g", type=FieldType.SELECT, label="G", options=options).is_multi_value

    def test_fields_are_frozen(self):
        field = FormField(id="f", type=FieldType.SHORT_TEXT, label="F")
        with pytest.raises(ValidationError):
            field.label = "changed"


class TestFormSchema:
    """Tests for schema-level helpers and invariants."""

    def test_duplicate_field_ids_across_pages_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate field id"):
            FormSchema(id="s", pages=[
                FormPage(id="p1", title="1", fields=[FormField(id="x", type=FieldType.NUMBER, label="X")]),
                FormPage(id="p2", title="2", fields=[FormField(id="x", type=FieldType.NUMBER, label="X")]),
            ])

    def test_duplicate_page_ids_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate page id"):
            FormSchema(id="s", pages=[FormPage(id="p", title="1"), FormPage(id="p", title="2")])

    def test_duplicate_rule_ids_rejected(self, make_rule):
        rule = make_rule("r", "x", "is_empty", None, "show_field", "x")
        with pytest.raises(ValidationError, match="Duplicate rule id"):
            FormSchema(id="s", conditional_rules=[rule, rule])

    def test_lookup_helpers(self, two_page_schema):
        assert two_page_schema.field_ids() == ["name", "age"]
        assert two_page_schema.get_field("age").type == FieldType.NUMBER
        assert two_page_schema.get_field("missing") is None
        assert two_page_schema.page_index("p2") == 1
        assert two_page_schema.page_index("nope") == -1
        assert two_page_schema.locate_field("age") == (1, 0)
        assert two_page_schema.locate_field("nope") is None

    def test_rules_referencing(self, two_page_schema, make_rule):
        r1 = make_rule("r1", "name", "is_not_empty", None, "show_field", "age")
        r2 = make_rule("r2", "age", "greater_than", 60, "require_field", "name")
        schema = two_page_schema.model_copy(update={"conditional_rules": [r1, r2]})
        assert [r.id for r in schema.rules_referencing("age")] == ["r1", "r2"]


class TestTaggedVariants:
    """Rule actions and completion actions are discriminated on kind."""

    def test_rule_action_parsed_by_kind(self):
        rule = ConditionalRule.model_validate({
            "id": "r",
            "trigger": {"field_id": "a", "operator": "equals", "value": "yes"},
            "action": {"kind": "show_message", "target_id": "b", "message": "Hi"},
        })
        assert isinstance(rule.action, ShowMessageAction)

    def test_unknown_action_kind_rejected(self):
        with pytest.raises(ValidationError):
            ConditionalRule.model_validate({
                "id": "r",
                "trigger": {"field_id": "a", "operator": "equals"},
                "action": {"kind": "explode", "target_id": "b"},
            })

    def test_completion_action_parsed_by_kind(self):
        schema = FormSchema.model_validate({
            "id": "s",
            "completion_actions": [{
                "kind": "calculate_score", "source_field_ids": ["a"], "result_field_id": "total",
            }],
        })
        assert isinstance(schema.completion_actions[0], CalculateScoreAction)


class TestSubmission:
    def test_submitted_at_is_timezone_aware(self):
        submission = Submission(schema_id="s", schema_version="1.0.0", answers={"a": 1})
        assert submission.submitted_at.tzinfo is not None
