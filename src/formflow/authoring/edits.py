"""Authoring edit operations.

Every structural change to a schema is described by one of these models
and applied by ``formflow.authoring.reducers.apply``. The ``op`` tag makes
the set closed: ``Edit`` is a discriminated union, so an edit log can be
serialized and replayed.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from formflow.schemas.form import CompletionAction, ConditionalRule, FieldType, FormField, FormSchema
from formflow.schemas.issues import DanglingReferenceWarning


class _Edit(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ── Pages ────────────────────────────────────────────────────────────

class AddPage(_Edit):
    op: Literal["add_page"] = "add_page"
    title: Optional[str] = None
    index: Optional[int] = Field(default=None, description="Insert position; append when None")
    page_id: Optional[str] = None


class RemovePage(_Edit):
    op: Literal["remove_page"] = "remove_page"
    page_id: str


class UpdatePage(_Edit):
    op: Literal["update_page"] = "update_page"
    page_id: str
    title: Optional[str] = None
    description: Optional[str] = None


class MovePage(_Edit):
    op: Literal["move_page"] = "move_page"
    page_id: str
    target_index: int


# ── Fields ───────────────────────────────────────────────────────────

class AddField(_Edit):
    op: Literal["add_field"] = "add_field"
    page_id: str
    field_type: FieldType
    index: Optional[int] = None
    field: Optional[FormField] = Field(
        default=None, description="Fully specified field; defaults are generated when None"
    )


class UpdateField(_Edit):
    op: Literal["update_field"] = "update_field"
    field_id: str
    changes: Dict[str, Any] = Field(
        ..., description="Attribute updates; 'id' changes are rejected"
    )


class RemoveField(_Edit):
    op: Literal["remove_field"] = "remove_field"
    field_id: str


class MoveField(_Edit):
    op: Literal["move_field"] = "move_field"
    field_id: str
    target_page_id: str
    target_index: int


class DuplicateField(_Edit):
    op: Literal["duplicate_field"] = "duplicate_field"
    field_id: str
    new_id: Optional[str] = None


# ── Rules and actions ────────────────────────────────────────────────

class AddRule(_Edit):
    op: Literal["add_rule"] = "add_rule"
    rule: ConditionalRule


class RemoveRule(_Edit):
    op: Literal["remove_rule"] = "remove_rule"
    rule_id: str


class AddCompletionAction(_Edit):
    op: Literal["add_completion_action"] = "add_completion_action"
    action: CompletionAction


class RemoveCompletionAction(_Edit):
    op: Literal["remove_completion_action"] = "remove_completion_action"
    index: int


# ── Schema-level ─────────────────────────────────────────────────────

class UpdateMetadata(_Edit):
    op: Literal["update_metadata"] = "update_metadata"
    changes: Dict[str, Any] = Field(
        ..., description="Updates to title, description, form_type, status, version, ..."
    )


class InsertTemplate(_Edit):
    op: Literal["insert_template"] = "insert_template"
    template: str = Field(..., description="Template block name, e.g. 'phq9'")
    index: Optional[int] = None


Edit = Annotated[
    Union[
        AddPage,
        RemovePage,
        UpdatePage,
        MovePage,
        AddField,
        UpdateField,
        RemoveField,
        MoveField,
        DuplicateField,
        AddRule,
        RemoveRule,
        AddCompletionAction,
        RemoveCompletionAction,
        UpdateMetadata,
        InsertTemplate,
    ],
    Field(discriminator="op"),
]


class EditResult(BaseModel):
    """Outcome of applying one edit.

    ``ok`` is False when the edit was rejected; the schema is then the
    unchanged input and ``error`` says why.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ok: bool
    form_schema: FormSchema
    error: Optional[str] = None
    warnings: List[DanglingReferenceWarning] = Field(default_factory=list)
