"""Pydantic models for dynamic form schemas.

A ``FormSchema`` is the root aggregate: it owns its pages, fields,
conditional rules and completion actions by value. Models are frozen so
that every authoring edit produces a new schema value and history
snapshots can never be changed behind the store's back.
"""

from enum import Enum
from typing import Annotated, Any, Iterator, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ── Enums ────────────────────────────────────────────────────────────

class FieldType(str, Enum):
    """Internal field vocabulary used by the authoring tool and runtime."""

    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    SELECT = "select"
    MULTISELECT = "multiselect"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    DATE = "date"
    FILE = "file"
    STATIC_MESSAGE = "static_message"
    SIGNATURE = "signature"
    RATING = "rating"


CHOICE_FIELD_TYPES = frozenset({
    FieldType.SELECT,
    FieldType.MULTISELECT,
    FieldType.SINGLE_CHOICE,
    FieldType.MULTI_CHOICE,
})

# Answers for these types are lists of option values
MULTI_VALUE_FIELD_TYPES = frozenset({
    FieldType.MULTISELECT,
    FieldType.MULTI_CHOICE,
})

# Display-only types: never answered, never validated, never counted
NON_INPUT_FIELD_TYPES = frozenset({
    FieldType.STATIC_MESSAGE,
})


class LayoutWidth(str, Enum):
    """Horizontal space a field occupies in the rendered grid."""

    FULL = "full"
    HALF = "half"
    THIRD = "third"
    QUARTER = "quarter"


class ValidationKind(str, Enum):
    """Declarative validation rule kinds."""

    REQUIRED = "required"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    MIN = "min"
    MAX = "max"
    PATTERN = "pattern"
    EMAIL_FORMAT = "email_format"
    PHONE_FORMAT = "phone_format"
    MAX_DATE = "max_date"


class ConditionOperator(str, Enum):
    """Operators shared by conditional rules and completion alerts."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    INCLUDES = "includes"
    NOT_INCLUDES = "not_includes"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class RuleActionKind(str, Enum):
    """What a conditional rule does to its target when it fires."""

    SHOW_FIELD = "show_field"
    HIDE_FIELD = "hide_field"
    REQUIRE_FIELD = "require_field"
    DISABLE_FIELD = "disable_field"
    SHOW_MESSAGE = "show_message"


class Aggregator(str, Enum):
    """Aggregation applied by a calculate_score completion action."""

    SUM = "sum"
    AVERAGE = "average"
    COUNT = "count"


class SchemaStatus(str, Enum):
    """Publication state of a schema."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# ── Field-level models ───────────────────────────────────────────────

class FieldOption(BaseModel):
    """One selectable option of a choice field."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str = Field(..., min_length=1, description="Option identifier")
    value: str = Field(..., description="Stored answer value")
    label: str = Field(..., description="Text shown to the respondent")


class ValidationRule(BaseModel):
    """A single declarative check evaluated against one field's value."""

    model_config = ConfigDict(frozen=True)

    kind: ValidationKind = Field(..., description="Rule kind")
    value: Any = Field(
        default=None,
        description="Rule parameter (length, bound, regex, or 'today' for max_date)",
    )
    message: Optional[str] = Field(
        default=None, description="Custom error message shown on failure"
    )


class FormField(BaseModel):
    """One answerable (or display-only) unit within a page."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique across the whole schema")
    type: FieldType = Field(..., description="Internal field type")
    label: str = Field(..., description="Question or caption text")
    required: bool = Field(default=False, description="Statically required")
    options: List[FieldOption] = Field(
        default_factory=list, description="Ordered options for choice types"
    )
    validation_rules: List[ValidationRule] = Field(
        default_factory=list, description="Declarative validation rules"
    )
    default_value: Any = Field(default=None, description="Initial answer value")
    layout_width: LayoutWidth = Field(default=LayoutWidth.FULL)
    placeholder: Optional[str] = Field(default=None)
    help_text: Optional[str] = Field(default=None)

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_FIELD_TYPES

    @property
    def is_multi_value(self) -> bool:
        return self.type in MULTI_VALUE_FIELD_TYPES

    @property
    def is_input(self) -> bool:
        return self.type not in NON_INPUT_FIELD_TYPES

    @model_validator(mode="after")
    def _check_options(self) -> "FormField":
        if self.is_choice:
            if not self.options:
                raise ValueError(
                    f"Choice field '{self.id}' ({self.type.value}) requires at least one option"
                )
            values = [o.value for o in self.options]
            duplicates = sorted({v for v in values if values.count(v) > 1})
            if duplicates:
                raise ValueError(
                    f"Choice field '{self.id}' has duplicate option values: {', '.join(duplicates)}"
                )
        return self

    def option_values(self) -> List[str]:
        return [o.value for o in self.options]


class FormPage(BaseModel):
    """An ordered group of fields shown together (a.k.a. section)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique page identifier")
    title: str = Field(..., description="Page heading")
    description: Optional[str] = Field(default=None)
    fields: List[FormField] = Field(default_factory=list)
    order: int = Field(default=0, ge=0, description="Position within the schema")


# ── Conditional rules ────────────────────────────────────────────────

class RuleTrigger(BaseModel):
    """Condition on one field's current answer."""

    model_config = ConfigDict(frozen=True)

    field_id: str = Field(..., min_length=1)
    operator: ConditionOperator
    value: Any = Field(default=None)


class ShowFieldAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["show_field"] = "show_field"
    target_id: str = Field(..., min_length=1)


class HideFieldAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["hide_field"] = "hide_field"
    target_id: str = Field(..., min_length=1)


class RequireFieldAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["require_field"] = "require_field"
    target_id: str = Field(..., min_length=1)


class DisableFieldAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["disable_field"] = "disable_field"
    target_id: str = Field(..., min_length=1)


class ShowMessageAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["show_message"] = "show_message"
    target_id: str = Field(..., min_length=1)
    message: str = Field(..., description="Message displayed next to the target")


RuleAction = Annotated[
    Union[
        ShowFieldAction,
        HideFieldAction,
        RequireFieldAction,
        DisableFieldAction,
        ShowMessageAction,
    ],
    Field(discriminator="kind"),
]

# Actions that change how a target field behaves (as opposed to messages)
FIELD_STATE_ACTION_KINDS = frozenset({
    RuleActionKind.SHOW_FIELD,
    RuleActionKind.HIDE_FIELD,
    RuleActionKind.REQUIRE_FIELD,
    RuleActionKind.DISABLE_FIELD,
})


class ConditionalRule(BaseModel):
    """Trigger/action pair altering another field based on an answer."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    trigger: RuleTrigger
    action: RuleAction


# ── Completion actions ───────────────────────────────────────────────

class CalculateScoreAction(BaseModel):
    """Aggregate numeric answers into a result field."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["calculate_score"] = "calculate_score"
    source_field_ids: List[str] = Field(..., min_length=1)
    aggregator: Aggregator = Aggregator.SUM
    result_field_id: str = Field(..., min_length=1)


class ConditionalAlertAction(BaseModel):
    """Raise an alert message when a condition holds on answers + results."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["conditional_alert"] = "conditional_alert"
    condition: RuleTrigger
    message: str = Field(..., min_length=1)


CompletionAction = Annotated[
    Union[CalculateScoreAction, ConditionalAlertAction],
    Field(discriminator="kind"),
]


# ── Root aggregate ───────────────────────────────────────────────────

class FormSchema(BaseModel):
    """Complete declarative definition of one form."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = Field(default="")
    description: str = Field(default="")
    version: str = Field(default="1.0.0")
    form_type: Optional[str] = Field(
        default=None, description="intake, assessment, screening, follow_up, consent..."
    )
    status: SchemaStatus = Field(default=SchemaStatus.DRAFT)
    completion_message: Optional[str] = Field(default=None)
    estimated_time: Optional[int] = Field(
        default=None, ge=0, description="Estimated completion time in minutes"
    )
    pages: List[FormPage] = Field(default_factory=list)
    conditional_rules: List[ConditionalRule] = Field(default_factory=list)
    completion_actions: List[CompletionAction] = Field(default_factory=list)

    @field_validator("pages")
    @classmethod
    def _unique_ids(cls, pages: List[FormPage]) -> List[FormPage]:
        seen_pages = set()
        seen_fields = set()
        for page in pages:
            if page.id in seen_pages:
                raise ValueError(f"Duplicate page id: {page.id}")
            seen_pages.add(page.id)
            for field in page.fields:
                if field.id in seen_fields:
                    raise ValueError(f"Duplicate field id: {field.id}")
                seen_fields.add(field.id)
        return pages

    @field_validator("conditional_rules")
    @classmethod
    def _unique_rule_ids(cls, rules: List[ConditionalRule]) -> List[ConditionalRule]:
        seen = set()
        for rule in rules:
            if rule.id in seen:
                raise ValueError(f"Duplicate rule id: {rule.id}")
            seen.add(rule.id)
        return rules

    def iter_fields(self) -> Iterator[FormField]:
        """Yield every field in page order."""
        for page in self.pages:
            yield from page.fields

    def field_ids(self) -> List[str]:
        return [f.id for f in self.iter_fields()]

    def get_field(self, field_id: str) -> Optional[FormField]:
        for field in self.iter_fields():
            if field.id == field_id:
                return field
        return None

    def get_page(self, page_id: str) -> Optional[FormPage]:
        for page in self.pages:
            if page.id == page_id:
                return page
        return None

    def page_index(self, page_id: str) -> int:
        """Return the index of a page, or -1 when absent."""
        for index, page in enumerate(self.pages):
            if page.id == page_id:
                return index
        return -1

    def locate_field(self, field_id: str) -> Optional[Tuple[int, int]]:
        """Return ``(page_index, field_index)`` for a field id."""
        for page_index, page in enumerate(self.pages):
            for field_index, field in enumerate(page.fields):
                if field.id == field_id:
                    return page_index, field_index
        return None

    def rules_referencing(self, field_id: str) -> List[ConditionalRule]:
        """Rules whose trigger or target is the given field."""
        return [
            rule for rule in self.conditional_rules
            if rule.trigger.field_id == field_id or rule.action.target_id == field_id
        ]
