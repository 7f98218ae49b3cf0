"""Pure reducers for authoring edits.

``apply(schema, edit)`` never mutates its input: it returns an
``EditResult`` holding either the new schema or, for a rejected edit,
the original schema plus an error message. Edits that leave rules
pointing at moved or missing fields succeed with a
``DanglingReferenceWarning``; the rules themselves are not repaired.
"""

import logging
from typing import Callable, Dict, List, Optional, Set

from pydantic import ValidationError

from formflow.authoring.defaults import default_field, default_page, new_id
from formflow.authoring.edits import (
    AddCompletionAction,
    AddField,
    AddPage,
    AddRule,
    DuplicateField,
    Edit,
    EditResult,
    InsertTemplate,
    MoveField,
    MovePage,
    RemoveCompletionAction,
    RemoveField,
    RemovePage,
    RemoveRule,
    UpdateField,
    UpdateMetadata,
    UpdatePage,
)
from formflow.authoring.templates import TEMPLATE_BLOCKS
from formflow.config.settings import EngineSettings
from formflow.schemas.form import (
    CalculateScoreAction,
    ConditionalAlertAction,
    FormField,
    FormPage,
    FormSchema,
)
from formflow.schemas.issues import DanglingReferenceWarning

logger = logging.getLogger(__name__)

METADATA_KEYS = frozenset({
    "title",
    "description",
    "version",
    "form_type",
    "status",
    "completion_message",
    "estimated_time",
})


def _reject(schema: FormSchema, message: str) -> EditResult:
    return EditResult(ok=False, form_schema=schema, error=message)


def _accept(schema: FormSchema, warnings: Optional[List[DanglingReferenceWarning]] = None) -> EditResult:
    return EditResult(ok=True, form_schema=schema, warnings=warnings or [])


def _renumber(pages: List[FormPage]) -> List[FormPage]:
    return [p if p.order == i else p.model_copy(update={"order": i}) for i, p in enumerate(pages)]


def _with_pages(schema: FormSchema, pages: List[FormPage]) -> FormSchema:
    return schema.model_copy(update={"pages": _renumber(pages)})


def _replace_fields(page: FormPage, fields: List[FormField]) -> FormPage:
    return page.model_copy(update={"fields": fields})


def _clamp(index: Optional[int], length: int) -> int:
    if index is None:
        return length
    return max(0, min(index, length))


def _unique_field_id(taken: Set[str], preferred: str) -> str:
    candidate = preferred
    suffix = 2
    while candidate in taken:
        candidate = f"{preferred}_{suffix}"
        suffix += 1
    return candidate


def _rule_warning(schema: FormSchema, field_id: str, message: str) -> List[DanglingReferenceWarning]:
    rule_ids = [r.id for r in schema.rules_referencing(field_id)]
    if not rule_ids:
        return []
    return [DanglingReferenceWarning(
        field_id=field_id,
        rule_ids=rule_ids,
        message=f"{message} (rules: {', '.join(rule_ids)})",
    )]


# ── Pages ────────────────────────────────────────────────────────────

def _add_page(schema: FormSchema, edit: AddPage, settings: EngineSettings) -> EditResult:
    if edit.page_id and schema.get_page(edit.page_id) is not None:
        return _reject(schema, f"Page id already exists: {edit.page_id}")
    pages = list(schema.pages)
    index = _clamp(edit.index, len(pages))
    pages.insert(index, default_page(edit.title, order=len(pages), page_id=edit.page_id))
    return _accept(_with_pages(schema, pages))


def _remove_page(schema: FormSchema, edit: RemovePage, settings: EngineSettings) -> EditResult:
    index = schema.page_index(edit.page_id)
    if index < 0:
        return _reject(schema, f"Page not found: {edit.page_id}")
    pages = list(schema.pages)
    removed = pages.pop(index)

    warnings: List[DanglingReferenceWarning] = []
    for field in removed.fields:
        warnings.extend(_rule_warning(
            schema, field.id, f"Field '{field.id}' was removed with page '{removed.id}'"
        ))
    return _accept(_with_pages(schema, pages), warnings)


def _update_page(schema: FormSchema, edit: UpdatePage, settings: EngineSettings) -> EditResult:
    index = schema.page_index(edit.page_id)
    if index < 0:
        return _reject(schema, f"Page not found: {edit.page_id}")
    changes = {}
    if edit.title is not None:
        changes["title"] = edit.title
    if edit.description is not None:
        changes["description"] = edit.description
    pages = list(schema.pages)
    pages[index] = pages[index].model_copy(update=changes)
    return _accept(_with_pages(schema, pages))


def _move_page(schema: FormSchema, edit: MovePage, settings: EngineSettings) -> EditResult:
    index = schema.page_index(edit.page_id)
    if index < 0:
        return _reject(schema, f"Page not found: {edit.page_id}")
    if not 0 <= edit.target_index < len(schema.pages):
        return _reject(schema, f"Target index out of range: {edit.target_index}")
    pages = list(schema.pages)
    pages.insert(edit.target_index, pages.pop(index))
    return _accept(_with_pages(schema, pages))


# ── Fields ───────────────────────────────────────────────────────────

def _add_field(schema: FormSchema, edit: AddField, settings: EngineSettings) -> EditResult:
    page_index = schema.page_index(edit.page_id)
    if page_index < 0:
        return _reject(schema, f"Page not found: {edit.page_id}")

    field = edit.field or default_field(edit.field_type, layout_width=settings.default_layout_width)
    if field.id in schema.field_ids():
        return _reject(schema, f"Field id already exists: {field.id}")

    page = schema.pages[page_index]
    fields = list(page.fields)
    fields.insert(_clamp(edit.index, len(fields)), field)

    pages = list(schema.pages)
    pages[page_index] = _replace_fields(page, fields)
    return _accept(_with_pages(schema, pages))


def _update_field(schema: FormSchema, edit: UpdateField, settings: EngineSettings) -> EditResult:
    location = schema.locate_field(edit.field_id)
    if location is None:
        return _reject(schema, f"Field not found: {edit.field_id}")
    if "id" in edit.changes and edit.changes["id"] != edit.field_id:
        return _reject(schema, "Field ids cannot be changed; duplicate and remove instead")

    page_index, field_index = location
    page = schema.pages[page_index]
    current = page.fields[field_index]
    try:
        updated = FormField.model_validate({**current.model_dump(), **edit.changes})
    except ValidationError as e:
        return _reject(schema, f"Invalid field update: {e.errors()[0]['msg']}")

    fields = list(page.fields)
    fields[field_index] = updated
    pages = list(schema.pages)
    pages[page_index] = _replace_fields(page, fields)
    return _accept(_with_pages(schema, pages))


def _remove_field(schema: FormSchema, edit: RemoveField, settings: EngineSettings) -> EditResult:
    location = schema.locate_field(edit.field_id)
    if location is None:
        return _reject(schema, f"Field not found: {edit.field_id}")

    page_index, field_index = location
    page = schema.pages[page_index]
    fields = list(page.fields)
    fields.pop(field_index)
    pages = list(schema.pages)
    pages[page_index] = _replace_fields(page, fields)

    warnings = _rule_warning(schema, edit.field_id, f"Removed field '{edit.field_id}' is still referenced")
    return _accept(_with_pages(schema, pages), warnings)


def _move_field(schema: FormSchema, edit: MoveField, settings: EngineSettings) -> EditResult:
    location = schema.locate_field(edit.field_id)
    if location is None:
        return _reject(schema, f"Field not found: {edit.field_id}")
    target_page_index = schema.page_index(edit.target_page_id)
    if target_page_index < 0:
        return _reject(schema, f"Page not found: {edit.target_page_id}")

    source_page_index, field_index = location
    pages = list(schema.pages)

    source_fields = list(pages[source_page_index].fields)
    field = source_fields.pop(field_index)
    pages[source_page_index] = _replace_fields(pages[source_page_index], source_fields)

    target_fields = list(pages[target_page_index].fields)
    target_fields.insert(_clamp(edit.target_index, len(target_fields)), field)
    pages[target_page_index] = _replace_fields(pages[target_page_index], target_fields)

    warnings = _rule_warning(
        schema, edit.field_id, f"Moved field '{edit.field_id}' is referenced by conditional rules"
    )
    return _accept(_with_pages(schema, pages), warnings)


def _duplicate_field(schema: FormSchema, edit: DuplicateField, settings: EngineSettings) -> EditResult:
    location = schema.locate_field(edit.field_id)
    if location is None:
        return _reject(schema, f"Field not found: {edit.field_id}")
    if edit.new_id and edit.new_id in schema.field_ids():
        return _reject(schema, f"Field id already exists: {edit.new_id}")

    page_index, field_index = location
    page = schema.pages[page_index]
    original = page.fields[field_index]
    copy_id = edit.new_id or new_id("field")
    options = [
        o.model_copy(update={"id": f"{copy_id}_{o.value}"}) for o in original.options
    ]
    duplicate = original.model_copy(update={
        "id": copy_id,
        "label": f"{original.label} (Copy)",
        "options": options,
    })

    fields = list(page.fields)
    fields.insert(field_index + 1, duplicate)
    pages = list(schema.pages)
    pages[page_index] = _replace_fields(page, fields)
    return _accept(_with_pages(schema, pages))


# ── Rules and completion actions ─────────────────────────────────────

def _add_rule(schema: FormSchema, edit: AddRule, settings: EngineSettings) -> EditResult:
    rule = edit.rule
    if any(r.id == rule.id for r in schema.conditional_rules):
        return _reject(schema, f"Rule id already exists: {rule.id}")

    known = set(schema.field_ids())
    warnings = []
    for field_id in (rule.trigger.field_id, rule.action.target_id):
        if field_id not in known:
            warnings.append(DanglingReferenceWarning(
                field_id=field_id,
                rule_ids=[rule.id],
                message=f"Rule '{rule.id}' references unknown field '{field_id}'",
            ))
    updated = schema.model_copy(update={"conditional_rules": [*schema.conditional_rules, rule]})
    return _accept(updated, warnings)


def _remove_rule(schema: FormSchema, edit: RemoveRule, settings: EngineSettings) -> EditResult:
    rules = [r for r in schema.conditional_rules if r.id != edit.rule_id]
    if len(rules) == len(schema.conditional_rules):
        return _reject(schema, f"Rule not found: {edit.rule_id}")
    return _accept(schema.model_copy(update={"conditional_rules": rules}))


def _add_completion_action(
    schema: FormSchema, edit: AddCompletionAction, settings: EngineSettings
) -> EditResult:
    action = edit.action
    if isinstance(action, CalculateScoreAction) and action.result_field_id in schema.field_ids():
        return _reject(schema, f"Score result id collides with a field: {action.result_field_id}")
    actions = [*schema.completion_actions, action]
    return _accept(schema.model_copy(update={"completion_actions": actions}))


def _remove_completion_action(
    schema: FormSchema, edit: RemoveCompletionAction, settings: EngineSettings
) -> EditResult:
    if not 0 <= edit.index < len(schema.completion_actions):
        return _reject(schema, f"Completion action index out of range: {edit.index}")
    actions = list(schema.completion_actions)
    actions.pop(edit.index)
    return _accept(schema.model_copy(update={"completion_actions": actions}))


# ── Schema-level ─────────────────────────────────────────────────────

def _update_metadata(schema: FormSchema, edit: UpdateMetadata, settings: EngineSettings) -> EditResult:
    unknown = sorted(set(edit.changes) - METADATA_KEYS)
    if unknown:
        return _reject(schema, f"Not schema metadata: {', '.join(unknown)}")
    try:
        updated = FormSchema.model_validate({**schema.model_dump(), **edit.changes})
    except ValidationError as e:
        return _reject(schema, f"Invalid metadata: {e.errors()[0]['msg']}")
    return _accept(updated)


def _insert_template(schema: FormSchema, edit: InsertTemplate, settings: EngineSettings) -> EditResult:
    block = TEMPLATE_BLOCKS.get(edit.template)
    if block is None:
        return _reject(schema, f"Unknown template: {edit.template}")

    taken = set(schema.field_ids())
    for action in schema.completion_actions:
        if isinstance(action, CalculateScoreAction):
            taken.add(action.result_field_id)

    # Template ids are fixed; rename on collision and carry the mapping
    renamed: Dict[str, str] = {}
    fields = []
    for field in block.fields:
        field_id = _unique_field_id(taken, field.id)
        taken.add(field_id)
        renamed[field.id] = field_id
        if field_id != field.id:
            field = field.model_copy(update={
                "id": field_id,
                "options": [o.model_copy(update={"id": f"{field_id}_{o.value}"}) for o in field.options],
            })
        fields.append(field)

    actions = list(schema.completion_actions)
    for action in block.completion_actions:
        if isinstance(action, CalculateScoreAction):
            result_id = _unique_field_id(taken, action.result_field_id)
            taken.add(result_id)
            renamed[action.result_field_id] = result_id
            action = action.model_copy(update={
                "source_field_ids": [renamed.get(s, s) for s in action.source_field_ids],
                "result_field_id": result_id,
            })
        elif isinstance(action, ConditionalAlertAction):
            trigger = action.condition
            action = action.model_copy(update={
                "condition": trigger.model_copy(
                    update={"field_id": renamed.get(trigger.field_id, trigger.field_id)}
                ),
            })
        actions.append(action)

    page = FormPage(
        id=_unique_page_id(schema, edit.template),
        title=block.title,
        description=block.description,
        fields=fields,
    )
    pages = list(schema.pages)
    pages.insert(_clamp(edit.index, len(pages)), page)
    updated = _with_pages(schema, pages).model_copy(update={"completion_actions": actions})
    return _accept(updated)


def _unique_page_id(schema: FormSchema, preferred: str) -> str:
    return _unique_field_id({p.id for p in schema.pages}, preferred)


_REDUCERS: Dict[str, Callable[..., EditResult]] = {
    "add_page": _add_page,
    "remove_page": _remove_page,
    "update_page": _update_page,
    "move_page": _move_page,
    "add_field": _add_field,
    "update_field": _update_field,
    "remove_field": _remove_field,
    "move_field": _move_field,
    "duplicate_field": _duplicate_field,
    "add_rule": _add_rule,
    "remove_rule": _remove_rule,
    "add_completion_action": _add_completion_action,
    "remove_completion_action": _remove_completion_action,
    "update_metadata": _update_metadata,
    "insert_template": _insert_template,
}


def apply(schema: FormSchema, edit: Edit, settings: Optional[EngineSettings] = None) -> EditResult:
    """Apply one edit to a schema.

    Args:
        schema: Current schema (never modified)
        edit: Edit operation
        settings: Engine settings (default layout width for new fields)

    Returns:
        EditResult with the new schema, or the input schema and an error
    """
    result = _REDUCERS[edit.op](schema, edit, settings or EngineSettings())
    if result.ok:
        logger.debug(f"Applied {edit.op} to schema '{schema.id}'")
    else:
        logger.debug(f"Rejected {edit.op} on schema '{schema.id}': {result.error}")
    return result
