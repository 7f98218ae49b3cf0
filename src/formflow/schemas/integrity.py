"""Semantic integrity checks for form schemas.

Runs every check and returns every problem (never fail-fast) so an author
sees the whole list at once. A schema is publishable when no
``error``-severity issue remains.
"""

import logging
import re
from typing import Dict, List, Set

from formflow.schemas.form import (
    FIELD_STATE_ACTION_KINDS,
    CalculateScoreAction,
    ConditionalAlertAction,
    FormSchema,
    ValidationKind,
)
from formflow.schemas.issues import IssueCode, IssueSeverity, SchemaValidationError

logger = logging.getLogger(__name__)


def _check_structure(schema: FormSchema) -> List[SchemaValidationError]:
    issues: List[SchemaValidationError] = []

    if not schema.title.strip():
        issues.append(SchemaValidationError(
            path="title", code=IssueCode.EMPTY_TITLE,
            message="Form title is required",
        ))

    if not schema.pages:
        issues.append(SchemaValidationError(
            path="pages", code=IssueCode.NO_PAGES,
            message="Form must have at least one page",
        ))

    for page_index, page in enumerate(schema.pages):
        if not page.fields:
            issues.append(SchemaValidationError(
                path=f"pages[{page_index}]", code=IssueCode.EMPTY_PAGE,
                severity=IssueSeverity.WARNING,
                message=f"Page '{page.title or page.id}' has no fields",
                related_ids=[page.id],
            ))
        for field_index, field in enumerate(page.fields):
            path = f"pages[{page_index}].fields[{field_index}]"
            for rule_index, rule in enumerate(field.validation_rules):
                if rule.kind != ValidationKind.PATTERN or not rule.value:
                    continue
                try:
                    re.compile(str(rule.value))
                except re.error as e:
                    issues.append(SchemaValidationError(
                        path=f"{path}.validation_rules[{rule_index}]",
                        code=IssueCode.INVALID_PATTERN,
                        message=f"Invalid regular expression {rule.value!r}: {e}",
                        related_ids=[field.id],
                    ))

    return issues


def _check_rule_references(schema: FormSchema) -> List[SchemaValidationError]:
    issues: List[SchemaValidationError] = []
    field_ids = set(schema.field_ids())

    for index, rule in enumerate(schema.conditional_rules):
        path = f"conditional_rules[{index}]"
        if rule.trigger.field_id not in field_ids:
            issues.append(SchemaValidationError(
                path=f"{path}.trigger.field_id", code=IssueCode.DANGLING_REFERENCE,
                message=f"Rule '{rule.id}' is triggered by unknown field '{rule.trigger.field_id}'",
                related_ids=[rule.id, rule.trigger.field_id],
            ))
        if rule.action.target_id not in field_ids:
            issues.append(SchemaValidationError(
                path=f"{path}.action.target_id", code=IssueCode.DANGLING_REFERENCE,
                message=f"Rule '{rule.id}' targets unknown field '{rule.action.target_id}'",
                related_ids=[rule.id, rule.action.target_id],
            ))

    return issues


def _check_completion_actions(schema: FormSchema) -> List[SchemaValidationError]:
    issues: List[SchemaValidationError] = []
    field_ids = set(schema.field_ids())
    known = set(field_ids)

    for index, action in enumerate(schema.completion_actions):
        path = f"completion_actions[{index}]"
        if isinstance(action, CalculateScoreAction):
            for source_id in action.source_field_ids:
                if source_id not in known:
                    issues.append(SchemaValidationError(
                        path=f"{path}.source_field_ids", code=IssueCode.DANGLING_REFERENCE,
                        message=f"Score source '{source_id}' is not a field or earlier result",
                        related_ids=[source_id],
                    ))
            if action.result_field_id in field_ids:
                issues.append(SchemaValidationError(
                    path=f"{path}.result_field_id", code=IssueCode.RESULT_FIELD_COLLISION,
                    message=f"Result field '{action.result_field_id}' collides with a form field",
                    related_ids=[action.result_field_id],
                ))
            known.add(action.result_field_id)
        elif isinstance(action, ConditionalAlertAction):
            if action.condition.field_id not in known:
                issues.append(SchemaValidationError(
                    path=f"{path}.condition.field_id", code=IssueCode.DANGLING_REFERENCE,
                    message=(
                        f"Alert condition references '{action.condition.field_id}', "
                        "which is neither a field nor an earlier result"
                    ),
                    related_ids=[action.condition.field_id],
                ))

    return issues


def find_rule_cycles(schema: FormSchema) -> List[List[str]]:
    """Find cycles in the trigger -> target graph of field-state rules.

    Returns:
        List of cycles, each as the ordered list of rule ids forming it
    """
    # field id -> list of (target field id, rule id)
    graph: Dict[str, List[tuple]] = {}
    for rule in schema.conditional_rules:
        if rule.action.kind not in FIELD_STATE_ACTION_KINDS:
            continue
        graph.setdefault(rule.trigger.field_id, []).append(
            (rule.action.target_id, rule.id)
        )

    cycles: List[List[str]] = []
    seen_cycles: Set[frozenset] = set()
    done: Set[str] = set()

    def visit(node: str, path_nodes: List[str], path_rules: List[str]) -> None:
        for target, rule_id in graph.get(node, []):
            if target in path_nodes:
                start = path_nodes.index(target)
                cycle = path_rules[start:] + [rule_id]
                key = frozenset(cycle)
                if key not in seen_cycles:
                    seen_cycles.add(key)
                    cycles.append(cycle)
                continue
            if target in done:
                continue
            visit(target, path_nodes + [target], path_rules + [rule_id])
        done.add(node)

    for start_node in list(graph):
        if start_node not in done:
            visit(start_node, [start_node], [])

    return cycles


def _check_cycles(schema: FormSchema) -> List[SchemaValidationError]:
    issues = []
    for cycle in find_rule_cycles(schema):
        issues.append(SchemaValidationError(
            path="conditional_rules", code=IssueCode.CYCLIC_RULES,
            message=f"Conditional rules form a cycle: {' -> '.join(cycle)}",
            related_ids=cycle,
        ))
    return issues


def check_schema(schema: FormSchema) -> List[SchemaValidationError]:
    """Run every integrity check on a schema.

    Args:
        schema: Schema to check

    Returns:
        All issues found, errors and warnings, in check order
    """
    issues: List[SchemaValidationError] = []
    issues.extend(_check_structure(schema))
    issues.extend(_check_rule_references(schema))
    issues.extend(_check_completion_actions(schema))
    issues.extend(_check_cycles(schema))

    if issues:
        blocking = sum(1 for i in issues if i.is_blocking)
        logger.debug(
            f"Schema '{schema.id}': {blocking} error(s), {len(issues) - blocking} warning(s)"
        )
    return issues


def is_publishable(schema: FormSchema) -> bool:
    """True when the schema has no blocking integrity issue."""
    return not any(issue.is_blocking for issue in check_schema(schema))
