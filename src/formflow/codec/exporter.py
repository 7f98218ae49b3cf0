"""Export a schema to the canonical (advanced) exchange shape.

Canonical shape::

    {
      "flowConfig": {"id", "title", "description", "form_type", "status",
                     "version", "completionMessage", "estimatedTime"},
      "pages": [{"id", "title", "order", "description"?, "elements": [...]}],
      "conditionals": [{"id", "condition": {...}, "action": {...}}],
      "validation": {"<field id>": [{"type", "value"?, "message"?}]},
      "completionActions": [...]
    }

All conditional rules are written to the top-level ``conditionals`` list
(never per element) so their declaration order survives a round trip.
"""

import json
from typing import Any, Dict, List

from formflow.codec.field_types import to_external
from formflow.schemas.form import (
    CalculateScoreAction,
    CompletionAction,
    ConditionalAlertAction,
    ConditionalRule,
    FormField,
    FormPage,
    FormSchema,
    LayoutWidth,
    RuleActionKind,
    RuleTrigger,
    ValidationRule,
)


def _condition(trigger: RuleTrigger) -> Dict[str, Any]:
    return {
        "field": trigger.field_id,
        "operator": trigger.operator.value,
        "value": trigger.value,
    }


def _element(field: FormField) -> Dict[str, Any]:
    external_type, subtype = to_external(field.type)
    element: Dict[str, Any] = {
        "id": field.id,
        "type": external_type,
        "label": field.label,
        "required": field.required,
    }
    if subtype:
        element["subtype"] = subtype
    if field.placeholder is not None:
        element["placeholder"] = field.placeholder
    if field.help_text is not None:
        element["helpText"] = field.help_text
    if field.options:
        element["options"] = [
            {"id": o.id, "value": o.value, "label": o.label} for o in field.options
        ]
    if field.default_value is not None:
        element["defaultValue"] = field.default_value
    if field.layout_width != LayoutWidth.FULL:
        element["width"] = field.layout_width.value
    return element


def _page(page: FormPage) -> Dict[str, Any]:
    exported: Dict[str, Any] = {"id": page.id, "title": page.title, "order": page.order}
    if page.description is not None:
        exported["description"] = page.description
    exported["elements"] = [_element(f) for f in page.fields]
    return exported


def _rule(rule: ConditionalRule) -> Dict[str, Any]:
    action: Dict[str, Any] = {
        "type": rule.action.kind,
        "target": rule.action.target_id,
    }
    if rule.action.kind == RuleActionKind.SHOW_MESSAGE:
        action["message"] = rule.action.message
    return {"id": rule.id, "condition": _condition(rule.trigger), "action": action}


def _validation_rule(rule: ValidationRule) -> Dict[str, Any]:
    exported: Dict[str, Any] = {"type": rule.kind.value}
    if rule.value is not None:
        exported["value"] = rule.value
    if rule.message is not None:
        exported["message"] = rule.message
    return exported


def _completion_action(action: CompletionAction) -> Dict[str, Any]:
    if isinstance(action, CalculateScoreAction):
        return {
            "type": action.kind,
            "fields": list(action.source_field_ids),
            "action": action.aggregator.value,
            "result_field": action.result_field_id,
        }
    if isinstance(action, ConditionalAlertAction):
        return {
            "type": action.kind,
            "condition": _condition(action.condition),
            "alert_message": action.message,
        }
    raise ValueError(f"Unhandled completion action: {action!r}")


def export_schema(schema: FormSchema) -> Dict[str, Any]:
    """Serialize a schema to the canonical advanced shape."""
    validation: Dict[str, List[Dict[str, Any]]] = {}
    for field in schema.iter_fields():
        if field.validation_rules:
            validation[field.id] = [_validation_rule(r) for r in field.validation_rules]

    return {
        "flowConfig": {
            "id": schema.id,
            "title": schema.title,
            "description": schema.description,
            "form_type": schema.form_type,
            "status": schema.status.value,
            "version": schema.version,
            "completionMessage": schema.completion_message,
            "estimatedTime": schema.estimated_time,
        },
        "pages": [_page(p) for p in schema.pages],
        "conditionals": [_rule(r) for r in schema.conditional_rules],
        "validation": validation,
        "completionActions": [_completion_action(a) for a in schema.completion_actions],
    }


def export_json(schema: FormSchema, indent: int = 2) -> str:
    """Serialize a schema to canonical JSON text."""
    return json.dumps(export_schema(schema), indent=indent, ensure_ascii=False, default=str)
