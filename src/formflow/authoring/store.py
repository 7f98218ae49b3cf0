"""Authoring session state.

One ``AuthoringStore`` belongs to one authoring session. It owns the
schema being edited, the current selection, a dirty flag and a bounded
history of schema snapshots. Every edit goes through the pure reducers
in ``formflow.authoring.reducers``; the store only decides what to keep.

History model: ``history[history_index]`` is always the live schema.
A successful edit truncates any redo tail, appends the new snapshot and
drops the oldest snapshot once ``history_limit`` is exceeded.
"""

import logging
from typing import List, Optional

from formflow.authoring import reducers
from formflow.authoring.defaults import default_page, new_id
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
from formflow.codec.exporter import export_json
from formflow.codec.importer import ImportResult, import_json
from formflow.config.settings import EngineSettings
from formflow.schemas.form import (
    CompletionAction,
    ConditionalRule,
    FieldType,
    FormField,
    FormSchema,
)
from formflow.schemas.integrity import check_schema
from formflow.schemas.issues import SchemaValidationError
from formflow.storage.protocol import SchemaStorage

logger = logging.getLogger(__name__)


class AuthoringStore:
    """Editable schema with undo/redo and selection."""

    def __init__(self, schema: Optional[FormSchema] = None, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self.selected_field_id: Optional[str] = None
        self.selected_page_id: Optional[str] = None
        self.is_dirty = False
        self._history: List[FormSchema] = []
        self._history_index = -1
        self._reset(schema or self._blank("Untitled Form"))

    # ── State ───────────────────────────────────────────────────────

    @property
    def schema(self) -> FormSchema:
        return self._history[self._history_index]

    @property
    def history_index(self) -> int:
        return self._history_index

    @property
    def history(self) -> List[FormSchema]:
        return list(self._history)

    @property
    def can_undo(self) -> bool:
        return self._history_index > 0

    @property
    def can_redo(self) -> bool:
        return self._history_index < len(self._history) - 1

    def _blank(self, title: str) -> FormSchema:
        page = default_page(order=0)
        return FormSchema(id=new_id("form"), title=title, pages=[page])

    def _reset(self, schema: FormSchema) -> None:
        self._history = [schema]
        self._history_index = 0
        self.selected_field_id = None
        self.selected_page_id = None
        self.is_dirty = False

    def _push(self, schema: FormSchema) -> None:
        del self._history[self._history_index + 1:]
        self._history.append(schema)
        overflow = len(self._history) - self.settings.history_limit
        if overflow > 0:
            del self._history[:overflow]
        self._history_index = len(self._history) - 1

    # ── Session lifecycle ───────────────────────────────────────────

    def new_schema(self, title: str = "Untitled Form") -> FormSchema:
        """Start a fresh schema with one empty page; history is reset."""
        self._reset(self._blank(title))
        return self.schema

    def load_schema(self, schema: FormSchema) -> None:
        """Replace the edited schema; history is reset."""
        self._reset(schema)
        logger.debug(f"Loaded schema '{schema.id}' into authoring store")

    # ── Edits ───────────────────────────────────────────────────────

    def apply_edit(self, edit: Edit) -> EditResult:
        """Apply an edit; on success push a history snapshot and mark dirty."""
        result = reducers.apply(self.schema, edit, self.settings)
        if not result.ok:
            return result

        self._push(result.form_schema)
        self.is_dirty = True
        for warning in result.warnings:
            logger.warning(str(warning))
        return result

    def add_page(self, title: Optional[str] = None, index: Optional[int] = None) -> EditResult:
        result = self.apply_edit(AddPage(title=title, index=index))
        if result.ok:
            added = {p.id for p in result.form_schema.pages} - {p.id for p in self._previous().pages}
            self.selected_page_id = next(iter(added), None)
            self.selected_field_id = None
        return result

    def remove_page(self, page_id: str) -> EditResult:
        result = self.apply_edit(RemovePage(page_id=page_id))
        if result.ok:
            if self.selected_page_id == page_id:
                self.selected_page_id = None
            if self.selected_field_id and self.schema.get_field(self.selected_field_id) is None:
                self.selected_field_id = None
        return result

    def update_page(self, page_id: str, title: Optional[str] = None, description: Optional[str] = None) -> EditResult:
        return self.apply_edit(UpdatePage(page_id=page_id, title=title, description=description))

    def move_page(self, page_id: str, target_index: int) -> EditResult:
        return self.apply_edit(MovePage(page_id=page_id, target_index=target_index))

    def add_field(
        self,
        page_id: str,
        field_type: FieldType,
        index: Optional[int] = None,
        field: Optional[FormField] = None,
    ) -> EditResult:
        """Add a field (defaults generated from the type) and select it."""
        result = self.apply_edit(AddField(page_id=page_id, field_type=field_type, index=index, field=field))
        if result.ok:
            before = set(self._previous().field_ids())
            added = [fid for fid in result.form_schema.field_ids() if fid not in before]
            self.select_field(added[0] if added else None)
        return result

    def update_field(self, field_id: str, **changes) -> EditResult:
        return self.apply_edit(UpdateField(field_id=field_id, changes=changes))

    def remove_field(self, field_id: str) -> EditResult:
        result = self.apply_edit(RemoveField(field_id=field_id))
        if result.ok and self.selected_field_id == field_id:
            self.selected_field_id = None
        return result

    def move_field(self, field_id: str, target_page_id: str, target_index: int) -> EditResult:
        return self.apply_edit(MoveField(
            field_id=field_id, target_page_id=target_page_id, target_index=target_index,
        ))

    def duplicate_field(self, field_id: str) -> EditResult:
        """Insert a copy right after the field and select the copy."""
        result = self.apply_edit(DuplicateField(field_id=field_id))
        if result.ok:
            page_index, field_index = result.form_schema.locate_field(field_id)
            copy = result.form_schema.pages[page_index].fields[field_index + 1]
            self.select_field(copy.id)
        return result

    def add_rule(self, rule: ConditionalRule) -> EditResult:
        return self.apply_edit(AddRule(rule=rule))

    def remove_rule(self, rule_id: str) -> EditResult:
        return self.apply_edit(RemoveRule(rule_id=rule_id))

    def add_completion_action(self, action: CompletionAction) -> EditResult:
        return self.apply_edit(AddCompletionAction(action=action))

    def remove_completion_action(self, index: int) -> EditResult:
        return self.apply_edit(RemoveCompletionAction(index=index))

    def update_metadata(self, **changes) -> EditResult:
        return self.apply_edit(UpdateMetadata(changes=changes))

    def insert_template(self, template: str, index: Optional[int] = None) -> EditResult:
        return self.apply_edit(InsertTemplate(template=template, index=index))

    def _previous(self) -> FormSchema:
        return self._history[max(self._history_index - 1, 0)]

    # ── History ─────────────────────────────────────────────────────

    def undo(self) -> bool:
        """Step back one snapshot. Returns False at the start of history."""
        if not self.can_undo:
            return False
        self._history_index -= 1
        self._after_history_move()
        return True

    def redo(self) -> bool:
        """Step forward one snapshot. Returns False at the end of history."""
        if not self.can_redo:
            return False
        self._history_index += 1
        self._after_history_move()
        return True

    def _after_history_move(self) -> None:
        self.selected_field_id = None
        self.selected_page_id = None
        self.is_dirty = True

    # ── Selection ───────────────────────────────────────────────────

    def select_field(self, field_id: Optional[str]) -> None:
        self.selected_field_id = field_id
        self.selected_page_id = None

    def select_page(self, page_id: Optional[str]) -> None:
        self.selected_page_id = page_id
        self.selected_field_id = None

    @property
    def selected_field(self) -> Optional[FormField]:
        if self.selected_field_id is None:
            return None
        return self.schema.get_field(self.selected_field_id)

    # ── Checks and exchange ─────────────────────────────────────────

    def validate(self) -> List[SchemaValidationError]:
        return check_schema(self.schema)

    def export_json(self) -> str:
        return export_json(self.schema)

    def import_json(self, text: str) -> ImportResult:
        """Import JSON text; the store is only replaced on success."""
        result = import_json(text)
        if result.ok:
            self.load_schema(result.form_schema)
            self.is_dirty = True
        return result

    async def save(self, storage: SchemaStorage) -> str:
        """Persist the live schema.

        A failing storage call propagates and leaves the store untouched,
        so the caller can retry.
        """
        schema = self.schema
        schema_id = await storage.save_schema(schema)
        if self.schema is schema:
            self.is_dirty = False
        logger.info(f"Saved schema '{schema_id}'")
        return schema_id

    async def load(self, storage: SchemaStorage, schema_id: str) -> FormSchema:
        schema = await storage.load_schema(schema_id)
        self.load_schema(schema)
        return schema
