"""Tests for schema integrity checks."""

from formflow.schemas.form import (
    CalculateScoreAction,
    ConditionalAlertAction,
    ConditionOperator,
    FieldType,
    FormField,
    FormPage,
    FormSchema,
    RuleTrigger,
    ValidationKind,
    ValidationRule,
)
from formflow.schemas.integrity import check_schema, find_rule_cycles, is_publishable
from formflow.schemas.issues import IssueCode, IssueSeverity


def _codes(issues):
    return [i.code for i in issues]


class TestStructureChecks:
    """Title, pages and patterns."""

    def test_valid_fixture_schemas_have_no_issues(self, intake_schema, phq9_schema):
        assert check_schema(intake_schema) == []
        assert check_schema(phq9_schema) == []

    def test_empty_title_and_no_pages(self):
        issues = check_schema(FormSchema(id="s", title="  "))
        assert _codes(issues) == [IssueCode.EMPTY_TITLE, IssueCode.NO_PAGES]
        assert all(i.is_blocking for i in issues)

    def test_empty_page_is_only_a_warning(self):
        schema = FormSchema(id="s", title="T", pages=[FormPage(id="p", title="Empty")])
        issues = check_schema(schema)
        assert _codes(issues) == [IssueCode.EMPTY_PAGE]
        assert issues[0].severity == IssueSeverity.WARNING
        assert is_publishable(schema)

    def test_invalid_pattern_reported(self):
        field = FormField(
            id="zip", type=FieldType.SHORT_TEXT, label="ZIP",
            validation_rules=[ValidationRule(kind=ValidationKind.PATTERN, value="([0-9")],
        )
        schema = FormSchema(id="s", title="T", pages=[FormPage(id="p", title="P", fields=[field])])
        issues = check_schema(schema)
        assert _codes(issues) == [IssueCode.INVALID_PATTERN]
        assert issues[0].path == "pages[0].fields[0].validation_rules[0]"


class TestReferenceChecks:
    """Rule and completion-action references."""

    def test_dangling_rule_trigger_and_target(self, two_page_schema, make_rule):
        schema = two_page_schema.model_copy(update={"conditional_rules": [
            make_rule("r1", "ghost", "is_empty", None, "show_field", "phantom"),
        ]})
        issues = check_schema(schema)
        assert _codes(issues) == [IssueCode.DANGLING_REFERENCE, IssueCode.DANGLING_REFERENCE]
        assert issues[0].path == "conditional_rules[0].trigger.field_id"
        assert issues[1].path == "conditional_rules[0].action.target_id"
        assert not is_publishable(schema)

    def test_earlier_score_result_counts_as_known(self, two_page_schema):
        schema = two_page_schema.model_copy(update={"completion_actions": [
            CalculateScoreAction(source_field_ids=["age"], result_field_id="total"),
            ConditionalAlertAction(
                condition=RuleTrigger(field_id="total", operator=ConditionOperator.GREATER_THAN, value=5),
                message="High",
            ),
        ]})
        assert check_schema(schema) == []

    def test_alert_before_score_is_dangling(self, two_page_schema):
        schema = two_page_schema.model_copy(update={"completion_actions": [
            ConditionalAlertAction(
                condition=RuleTrigger(field_id="total", operator=ConditionOperator.GREATER_THAN, value=5),
                message="High",
            ),
            CalculateScoreAction(source_field_ids=["age"], result_field_id="total"),
        ]})
        assert _codes(check_schema(schema)) == [IssueCode.DANGLING_REFERENCE]

    def test_result_field_collision(self, two_page_schema):
        schema = two_page_schema.model_copy(update={"completion_actions": [
            CalculateScoreAction(source_field_ids=["age"], result_field_id="name"),
        ]})
        assert _codes(check_schema(schema)) == [IssueCode.RESULT_FIELD_COLLISION]


class TestCycleDetection:
    """Static detection of cyclic rule graphs."""

    def test_two_rule_cycle(self, two_page_schema, make_rule):
        schema = two_page_schema.model_copy(update={"conditional_rules": [
            make_rule("r1", "name", "is_not_empty", None, "show_field", "age"),
            make_rule("r2", "age", "is_not_empty", None, "hide_field", "name"),
        ]})
        assert find_rule_cycles(schema) == [["r1", "r2"]]
        assert IssueCode.CYCLIC_RULES in _codes(check_schema(schema))
        assert not is_publishable(schema)

    def test_self_loop(self, two_page_schema, make_rule):
        schema = two_page_schema.model_copy(update={"conditional_rules": [
            make_rule("r1", "name", "is_not_empty", None, "hide_field", "name"),
        ]})
        assert find_rule_cycles(schema) == [["r1"]]

    def test_message_rules_do_not_form_cycles(self, two_page_schema, make_rule):
        schema = two_page_schema.model_copy(update={"conditional_rules": [
            make_rule("r1", "name", "is_not_empty", None, "show_message", "name", message="Hi"),
        ]})
        assert find_rule_cycles(schema) == []

    def test_chain_is_not_a_cycle(self, intake_schema):
        assert find_rule_cycles(intake_schema) == []
