"""Import external schema JSON into the internal schema model.

Two top-level shapes are accepted:

- simple:   ``{title, description, form_type, status, structure: {pages, conditionals}}``
- advanced: ``{flowConfig: {...}, pages, conditionals, validation, completionActions}``

The hand-written intake shape ``{title, description, pages, conditionals}``
(a simple shape with ``structure`` inlined) is accepted as ``simple``.

Structural problems are collected, not raised: a failed import returns
every path-qualified ``ParseError`` found. Referential problems (dangling
ids, cyclic rules) do not stop the import; they come back as ``issues``
next to the imported schema so the author can repair them.
"""

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from formflow.codec.field_types import to_internal
from formflow.schemas.form import (
    CHOICE_FIELD_TYPES,
    Aggregator,
    CalculateScoreAction,
    ConditionalAlertAction,
    ConditionalRule,
    ConditionOperator,
    FieldOption,
    FormField,
    FormPage,
    FormSchema,
    LayoutWidth,
    RuleActionKind,
    RuleTrigger,
    SchemaStatus,
    ValidationKind,
    ValidationRule,
)
from formflow.schemas.integrity import check_schema
from formflow.schemas.issues import IssueCode, ParseError, SchemaValidationError
from formflow.utils.coercion import to_number

logger = logging.getLogger(__name__)

SHAPE_SIMPLE = "simple"
SHAPE_ADVANCED = "advanced"

OPERATOR_ALIASES = {
    "contains": ConditionOperator.INCLUDES.value,
    "not_contains": ConditionOperator.NOT_INCLUDES.value,
}

ACTION_ALIASES = {
    "show": RuleActionKind.SHOW_FIELD.value,
    "hide": RuleActionKind.HIDE_FIELD.value,
    "require": RuleActionKind.REQUIRE_FIELD.value,
    "disable": RuleActionKind.DISABLE_FIELD.value,
    "message": RuleActionKind.SHOW_MESSAGE.value,
}

VALIDATION_ALIASES = {
    "email": ValidationKind.EMAIL_FORMAT.value,
    "phone": ValidationKind.PHONE_FORMAT.value,
}


class ImportResult(BaseModel):
    """Outcome of an import attempt."""

    model_config = ConfigDict(frozen=True)

    form_schema: Optional[FormSchema] = Field(default=None)
    shape: Optional[str] = Field(default=None, description="'simple' or 'advanced'")
    errors: List[ParseError] = Field(default_factory=list)
    issues: List[SchemaValidationError] = Field(
        default_factory=list, description="Integrity issues of the imported schema"
    )
    warnings: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.form_schema is not None and not self.errors


class _SchemaReader:
    """Walks a raw object, collecting errors instead of raising."""

    def __init__(self) -> None:
        self.errors: List[ParseError] = []
        self.warnings: List[str] = []
        self.rules: List[ConditionalRule] = []
        self.field_ids: Set[str] = set()
        self.rule_ids: Set[str] = set()

    # -- helpers -------------------------------------------------------

    def error(self, path: str, message: str, code: IssueCode = IssueCode.INVALID_VALUE) -> None:
        self.errors.append(ParseError(path=path, message=message, code=code))

    def require_str(
        self, node: Dict[str, Any], key: str, path: str, allow_blank: bool = False
    ) -> Optional[str]:
        value = node.get(key)
        if value is None or (not allow_blank and isinstance(value, str) and not value.strip()):
            self.error(f"{path}.{key}", f"Missing '{key}'", IssueCode.MISSING_KEY)
            return None
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            self.error(f"{path}.{key}", f"'{key}' must be a string", IssueCode.WRONG_TYPE)
            return None
        return str(value)

    def optional_str(self, node: Dict[str, Any], key: str, path: str) -> Optional[str]:
        value = node.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            self.error(f"{path}.{key}", f"'{key}' must be a string", IssueCode.WRONG_TYPE)
            return None
        return value

    def require_list(self, node: Dict[str, Any], key: str, path: str) -> Optional[List[Any]]:
        if key not in node:
            self.error(f"{path}.{key}" if path else key, f"Missing '{key}'", IssueCode.MISSING_KEY)
            return None
        return self.as_list(node[key], f"{path}.{key}" if path else key)

    def as_list(self, value: Any, path: str) -> Optional[List[Any]]:
        if value is None:
            return []
        if not isinstance(value, list):
            self.error(path, "Expected a list", IssueCode.WRONG_TYPE)
            return None
        return value

    def as_dict(self, value: Any, path: str) -> Optional[Dict[str, Any]]:
        if not isinstance(value, dict):
            self.error(path, "Expected an object", IssueCode.WRONG_TYPE)
            return None
        return value

    def unique_rule_id(self, preferred: str) -> str:
        candidate = preferred
        suffix = 2
        while candidate in self.rule_ids:
            candidate = f"{preferred}_{suffix}"
            suffix += 1
        self.rule_ids.add(candidate)
        return candidate

    # -- conditions ----------------------------------------------------

    def read_trigger(self, node: Any, path: str) -> Optional[RuleTrigger]:
        node = self.as_dict(node, path)
        if node is None:
            return None
        field_id = self.require_str(node, "field", path)
        raw_operator = node.get("operator")
        if not isinstance(raw_operator, str):
            self.error(f"{path}.operator", "Missing 'operator'", IssueCode.MISSING_KEY)
            return None
        raw_operator = OPERATOR_ALIASES.get(raw_operator, raw_operator)
        try:
            operator = ConditionOperator(raw_operator)
        except ValueError:
            self.error(
                f"{path}.operator", f"Unknown operator '{raw_operator}'", IssueCode.UNKNOWN_OPERATOR
            )
            return None
        if field_id is None:
            return None
        return RuleTrigger(field_id=field_id, operator=operator, value=node.get("value"))

    def read_rule(self, node: Any, path: str, index: int) -> None:
        node = self.as_dict(node, path)
        if node is None:
            return
        trigger = self.read_trigger(node.get("condition"), f"{path}.condition")
        action_node = self.as_dict(node.get("action"), f"{path}.action")
        if action_node is None or trigger is None:
            return

        raw_kind = action_node.get("type")
        raw_kind = ACTION_ALIASES.get(raw_kind, raw_kind)
        target = self.require_str(action_node, "target", f"{path}.action")
        try:
            kind = RuleActionKind(raw_kind)
        except ValueError:
            self.error(f"{path}.action.type", f"Unknown action '{raw_kind}'", IssueCode.UNKNOWN_ACTION)
            return
        if target is None:
            return

        action: Dict[str, Any] = {"kind": kind.value, "target_id": target}
        if kind == RuleActionKind.SHOW_MESSAGE:
            message = self.require_str(action_node, "message", f"{path}.action", allow_blank=True)
            if message is None:
                return
            action["message"] = message

        rule_id = node.get("id")
        if rule_id is not None and str(rule_id) in self.rule_ids:
            self.error(f"{path}.id", f"Duplicate rule id '{rule_id}'", IssueCode.DUPLICATE_RULE_ID)
            return
        self.add_rule(str(rule_id or f"rule_{index + 1}"), trigger, action, path)

    def add_rule(self, rule_id: str, trigger: RuleTrigger, action: Dict[str, Any], path: str) -> None:
        try:
            rule = ConditionalRule(id=self.unique_rule_id(rule_id), trigger=trigger, action=action)
        except ValidationError as e:
            self.error(path, _first_message(e))
            return
        self.rules.append(rule)

    # -- validation rules ----------------------------------------------

    def read_validation_rules(self, value: Any, path: str) -> List[ValidationRule]:
        nodes = self.as_list(value, path)
        rules: List[ValidationRule] = []
        for index, node in enumerate(nodes or []):
            rule_path = f"{path}[{index}]"
            node = self.as_dict(node, rule_path)
            if node is None:
                continue
            raw_kind = node.get("type")
            raw_kind = VALIDATION_ALIASES.get(raw_kind, raw_kind)
            try:
                kind = ValidationKind(raw_kind)
            except ValueError:
                self.error(
                    f"{rule_path}.type", f"Unknown validation rule '{raw_kind}'",
                    IssueCode.UNKNOWN_VALIDATION,
                )
                continue
            rules.append(ValidationRule(kind=kind, value=node.get("value"), message=node.get("message")))
        return rules

    # -- pages and elements --------------------------------------------

    def read_options(self, element: Dict[str, Any], field_id: str, path: str) -> List[FieldOption]:
        nodes = self.as_list(element.get("options"), f"{path}.options")
        options: List[FieldOption] = []
        seen_values: Set[str] = set()
        for index, node in enumerate(nodes or []):
            opt_path = f"{path}.options[{index}]"
            node = self.as_dict(node, opt_path)
            if node is None:
                continue
            value = self.require_str(node, "value", opt_path, allow_blank=True)
            label = self.require_str(node, "label", opt_path, allow_blank=True)
            if value is None or label is None:
                continue
            if value in seen_values:
                self.error(
                    f"{opt_path}.value", f"Duplicate option value '{value}'",
                    IssueCode.DUPLICATE_OPTION_VALUE,
                )
                continue
            seen_values.add(value)
            option_id = node.get("id") or f"{field_id}_{value}"
            options.append(FieldOption(id=str(option_id), value=value, label=label))
        return options

    def read_element(
        self, node: Any, path: str, validation_map: Dict[str, Any]
    ) -> Optional[FormField]:
        node = self.as_dict(node, path)
        if node is None:
            return None

        field_id = self.require_str(node, "id", path)
        raw_type = self.require_str(node, "type", path)
        label = node.get("label")
        if label is None:
            self.error(f"{path}.label", "Missing 'label'", IssueCode.MISSING_KEY)
        elif not isinstance(label, str):
            self.error(f"{path}.label", "'label' must be a string", IssueCode.WRONG_TYPE)
            label = None

        required = node.get("required", False)
        if not isinstance(required, bool):
            self.error(f"{path}.required", "'required' must be true or false", IssueCode.WRONG_TYPE)
            required = None

        field_type = None
        if raw_type is not None:
            field_type = to_internal(raw_type, node.get("subtype"))
            if field_type is None:
                shown = node.get("subtype") or raw_type
                self.error(f"{path}.type", f"Unknown field type '{shown}'", IssueCode.UNKNOWN_FIELD_TYPE)

        if field_id is not None:
            if field_id in self.field_ids:
                self.error(f"{path}.id", f"Duplicate field id '{field_id}'", IssueCode.DUPLICATE_FIELD_ID)
                field_id = None
            else:
                self.field_ids.add(field_id)

        if field_id is None or field_type is None or label is None or required is None:
            return None

        options = self.read_options(node, field_id, path)
        if field_type in CHOICE_FIELD_TYPES and not options:
            self.error(
                f"{path}.options", f"Field type '{raw_type}' requires at least one option",
                IssueCode.MISSING_OPTIONS,
            )
            return None

        rules = self.read_validation_rules(node.get("validation"), f"{path}.validation")
        if field_id in validation_map:
            rules.extend(
                self.read_validation_rules(validation_map[field_id], f"validation.{field_id}")
            )

        width = node.get("width", LayoutWidth.FULL.value)
        try:
            layout_width = LayoutWidth(width)
        except ValueError:
            self.error(f"{path}.width", f"Unknown width '{width}'")
            return None

        # Element-level conditionals gate this element's own visibility
        conditions = self.as_list(node.get("conditionals"), f"{path}.conditionals")
        for index, condition in enumerate(conditions or []):
            cond_path = f"{path}.conditionals[{index}]"
            trigger = self.read_trigger(condition, cond_path)
            if trigger is None:
                continue
            raw_kind = condition.get("action", RuleActionKind.SHOW_FIELD.value)
            raw_kind = ACTION_ALIASES.get(raw_kind, raw_kind)
            if raw_kind not in FIELD_ACTIONS:
                self.error(f"{cond_path}.action", f"Unknown action '{raw_kind}'", IssueCode.UNKNOWN_ACTION)
                continue
            self.add_rule(
                f"{field_id}_cond_{index + 1}",
                trigger,
                {"kind": raw_kind, "target_id": field_id},
                cond_path,
            )

        try:
            return FormField(
                id=field_id,
                type=field_type,
                label=label,
                required=required,
                options=options,
                validation_rules=rules,
                default_value=node.get("defaultValue"),
                layout_width=layout_width,
                placeholder=self.optional_str(node, "placeholder", path),
                help_text=self.optional_str(node, "helpText", path),
            )
        except ValidationError as e:
            self.error(path, _first_message(e))
            return None

    def read_pages(self, nodes: List[Any], validation_map: Dict[str, Any]) -> List[FormPage]:
        pages: List[FormPage] = []
        page_ids: Set[str] = set()
        for index, node in enumerate(nodes):
            path = f"pages[{index}]"
            node = self.as_dict(node, path)
            if node is None:
                continue
            page_id = self.require_str(node, "id", path)
            title = self.require_str(node, "title", path, allow_blank=True)
            elements = self.require_list(node, "elements", path)

            order = node.get("order", index)
            if not isinstance(order, int) or isinstance(order, bool) or order < 0:
                self.error(f"{path}.order", "'order' must be a non-negative integer", IssueCode.WRONG_TYPE)
                order = None

            if page_id is not None:
                if page_id in page_ids:
                    self.error(f"{path}.id", f"Duplicate page id '{page_id}'", IssueCode.DUPLICATE_PAGE_ID)
                page_ids.add(page_id)

            fields = []
            for el_index, element in enumerate(elements or []):
                field = self.read_element(element, f"{path}.elements[{el_index}]", validation_map)
                if field is not None:
                    fields.append(field)

            if page_id is None or title is None or elements is None or order is None:
                continue
            pages.append(FormPage(
                id=page_id,
                title=title,
                description=self.optional_str(node, "description", path),
                fields=fields,
                order=order,
            ))
        return pages

    # -- completion actions --------------------------------------------

    def read_completion_actions(self, nodes: List[Any]) -> List[Any]:
        actions: List[Any] = []
        for index, node in enumerate(nodes):
            path = f"completionActions[{index}]"
            node = self.as_dict(node, path)
            if node is None:
                continue
            kind = node.get("type")
            if kind == "calculate_score":
                sources = self.as_list(node.get("fields"), f"{path}.fields")
                if not sources:
                    self.error(f"{path}.fields", "Score needs at least one source field", IssueCode.MISSING_KEY)
                    continue
                result_field = self.require_str(node, "result_field", path)
                raw_aggregator = node.get("action", Aggregator.SUM.value)
                try:
                    aggregator = Aggregator(raw_aggregator)
                except ValueError:
                    self.error(f"{path}.action", f"Unknown aggregator '{raw_aggregator}'")
                    continue
                if result_field is None:
                    continue
                actions.append(CalculateScoreAction(
                    source_field_ids=[str(s) for s in sources],
                    aggregator=aggregator,
                    result_field_id=result_field,
                ))
            elif kind == "conditional_alert":
                trigger = self.read_trigger(node.get("condition"), f"{path}.condition")
                message = node.get("alert_message") or node.get("message")
                if not isinstance(message, str) or not message:
                    self.error(f"{path}.alert_message", "Missing 'alert_message'", IssueCode.MISSING_KEY)
                    continue
                if trigger is None:
                    continue
                actions.append(ConditionalAlertAction(condition=trigger, message=message))
            else:
                self.error(f"{path}.type", f"Unknown completion action '{kind}'", IssueCode.UNKNOWN_ACTION)
        return actions


FIELD_ACTIONS = {
    RuleActionKind.SHOW_FIELD.value,
    RuleActionKind.HIDE_FIELD.value,
    RuleActionKind.REQUIRE_FIELD.value,
    RuleActionKind.DISABLE_FIELD.value,
}


def _first_message(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    return str(details[0].get("msg", error))


def detect_shape(raw: Dict[str, Any]) -> Optional[str]:
    """Return 'advanced', 'simple', or None for unrecognized objects."""
    if "flowConfig" in raw:
        return SHAPE_ADVANCED
    if "structure" in raw or ("pages" in raw and "title" in raw):
        return SHAPE_SIMPLE
    return None


def import_schema(raw: Any) -> ImportResult:
    """Normalize an external schema object into a ``FormSchema``.

    Args:
        raw: Parsed JSON object in the simple or advanced shape

    Returns:
        ImportResult; ``form_schema`` is None when any ParseError occurred
    """
    if not isinstance(raw, dict):
        return ImportResult(errors=[ParseError(
            path="$", message="Schema must be a JSON object", code=IssueCode.WRONG_TYPE,
        )])

    shape = detect_shape(raw)
    if shape is None:
        return ImportResult(errors=[ParseError(
            path="$", code=IssueCode.UNKNOWN_SHAPE,
            message="Unrecognized schema shape: expected 'flowConfig' or 'structure'",
        )])

    reader = _SchemaReader()

    if shape == SHAPE_ADVANCED:
        config = reader.as_dict(raw["flowConfig"], "flowConfig") or {}
        config_path = "flowConfig"
        container = raw
        container_path = ""
        completion_nodes = raw.get("completionActions")
        validation_map = raw.get("validation") or {}
    else:
        config = raw
        config_path = "$"
        if "structure" in raw:
            container = reader.as_dict(raw["structure"], "structure") or {}
            container_path = "structure"
        else:
            container = raw
            container_path = ""
        completion_nodes = raw.get("completionActions", container.get("completionActions"))
        validation_map = container.get("validation") or raw.get("validation") or {}

    title = config.get("title")
    if not isinstance(title, str):
        reader.error(f"{config_path}.title", "Missing 'title'", IssueCode.MISSING_KEY)
        title = ""

    if not isinstance(validation_map, dict):
        reader.error("validation", "Expected an object keyed by field id", IssueCode.WRONG_TYPE)
        validation_map = {}

    # Rules declared at the top level keep their position ahead of element-level ones
    rule_nodes = reader.as_list(
        container.get("conditionals"),
        f"{container_path}.conditionals" if container_path else "conditionals",
    ) or []
    for index, node in enumerate(rule_nodes):
        path = f"{container_path}.conditionals[{index}]" if container_path else f"conditionals[{index}]"
        reader.read_rule(node, path, index)
    top_level_rules = reader.rules
    reader.rules = []

    page_nodes = reader.require_list(container, "pages", container_path) or []
    pages = reader.read_pages(page_nodes, validation_map)
    element_rules = reader.rules

    for field_id in validation_map:
        if field_id not in reader.field_ids:
            reader.error(
                f"validation.{field_id}", f"Validation rules for unknown field '{field_id}'",
                IssueCode.INVALID_VALUE,
            )

    actions = reader.read_completion_actions(reader.as_list(completion_nodes, "completionActions") or [])

    status = config.get("status") or SchemaStatus.DRAFT.value
    try:
        status = SchemaStatus(status)
    except ValueError:
        reader.error(f"{config_path}.status", f"Unknown status '{status}'")

    estimated_time = config.get("estimatedTime", config.get("estimated_time"))
    if estimated_time is not None:
        number = to_number(estimated_time)
        if number is None or number < 0:
            reader.warnings.append(f"Ignoring unparseable estimatedTime {estimated_time!r}")
            estimated_time = None
        else:
            estimated_time = int(number)

    if reader.errors:
        logger.info(f"Import failed with {len(reader.errors)} error(s)")
        return ImportResult(shape=shape, errors=reader.errors, warnings=reader.warnings)

    schema_id = config.get("id") or raw.get("id") or uuid.uuid4().hex[:12]
    try:
        schema = FormSchema(
            id=str(schema_id),
            title=title,
            description=config.get("description") or "",
            version=str(config.get("version") or "1.0.0"),
            form_type=config.get("form_type"),
            status=status,
            completion_message=config.get("completionMessage", config.get("completion_message")),
            estimated_time=estimated_time,
            pages=pages,
            conditional_rules=top_level_rules + element_rules,
            completion_actions=actions,
        )
    except ValidationError as e:
        errors = [
            ParseError(path=".".join(str(p) for p in d.get("loc", ())) or "$", message=d.get("msg", ""))
            for d in e.errors()
        ]
        return ImportResult(shape=shape, errors=errors, warnings=reader.warnings)

    issues = check_schema(schema)
    logger.debug(
        f"Imported {shape} schema '{schema.id}': {len(pages)} page(s), "
        f"{len(schema.conditional_rules)} rule(s), {len(issues)} issue(s)"
    )
    return ImportResult(form_schema=schema, shape=shape, issues=issues, warnings=reader.warnings)


def import_json(text: str) -> ImportResult:
    """Parse JSON text and import it."""
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        return ImportResult(errors=[ParseError(
            path="$", code=IssueCode.INVALID_JSON,
            message=f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}",
        )])
    return import_schema(raw)
