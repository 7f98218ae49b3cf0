"""Error and warning values returned by the form engine.

Everything here is a value, not an exception: the codec, the integrity
checker, the validation engine and the authoring store all return lists
of these so that a UI can render every problem at once. The exceptions
that do propagate live in ``formflow.exceptions``.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class IssueSeverity(str, Enum):
    """How strongly an issue blocks publishing."""

    ERROR = "error"
    WARNING = "warning"


class IssueCode(str, Enum):
    """Stable codes for schema and import problems."""

    # Structural (ParseError)
    INVALID_JSON = "INVALID_JSON"
    UNKNOWN_SHAPE = "UNKNOWN_SHAPE"
    MISSING_KEY = "MISSING_KEY"
    WRONG_TYPE = "WRONG_TYPE"
    UNKNOWN_FIELD_TYPE = "UNKNOWN_FIELD_TYPE"
    UNKNOWN_OPERATOR = "UNKNOWN_OPERATOR"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    UNKNOWN_VALIDATION = "UNKNOWN_VALIDATION"
    INVALID_VALUE = "INVALID_VALUE"

    # Semantic (SchemaValidationError)
    EMPTY_TITLE = "EMPTY_TITLE"
    NO_PAGES = "NO_PAGES"
    EMPTY_PAGE = "EMPTY_PAGE"
    DUPLICATE_PAGE_ID = "DUPLICATE_PAGE_ID"
    DUPLICATE_FIELD_ID = "DUPLICATE_FIELD_ID"
    DUPLICATE_RULE_ID = "DUPLICATE_RULE_ID"
    MISSING_OPTIONS = "MISSING_OPTIONS"
    DUPLICATE_OPTION_VALUE = "DUPLICATE_OPTION_VALUE"
    DANGLING_REFERENCE = "DANGLING_REFERENCE"
    CYCLIC_RULES = "CYCLIC_RULES"
    RESULT_FIELD_COLLISION = "RESULT_FIELD_COLLISION"
    INVALID_PATTERN = "INVALID_PATTERN"


class ParseError(BaseModel):
    """Malformed input to the codec, qualified with the offending path."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Location, e.g. 'pages[0].elements[2].type'")
    message: str
    code: IssueCode = IssueCode.INVALID_VALUE

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class SchemaValidationError(BaseModel):
    """Structurally valid schema that is semantically broken."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Location within the schema")
    message: str
    code: IssueCode
    severity: IssueSeverity = IssueSeverity.ERROR
    related_ids: List[str] = Field(
        default_factory=list, description="Field, page or rule ids involved"
    )

    @property
    def is_blocking(self) -> bool:
        return self.severity == IssueSeverity.ERROR

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.path}: {self.message}"


class FieldValidationError(BaseModel):
    """One failed validation rule for one field; fixed by the respondent."""

    model_config = ConfigDict(frozen=True)

    field_id: str
    field_label: str = ""
    rule: str = Field(..., description="Validation kind that failed")
    message: str
    page_index: Optional[int] = Field(
        default=None, description="Page holding the field, when known"
    )

    def __str__(self) -> str:
        return f"{self.field_id}: {self.message}"


class DanglingReferenceWarning(UserWarning):
    """Non-fatal authoring warning: rules reference a moved or removed field.

    Returned as a value from authoring edits; the affected rules are left
    untouched for the author to repair.
    """

    def __init__(self, field_id: str, rule_ids: List[str], message: str):
        self.field_id = field_id
        self.rule_ids = list(rule_ids)
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"DanglingReferenceWarning(field_id={self.field_id!r}, rule_ids={self.rule_ids!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DanglingReferenceWarning):
            return NotImplemented
        return (self.field_id, self.rule_ids, self.message) == (
            other.field_id, other.rule_ids, other.message
        )

    def __hash__(self) -> int:
        return hash((self.field_id, tuple(self.rule_ids), self.message))
