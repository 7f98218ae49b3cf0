"""Pydantic models for form schemas, submissions and reported issues."""

from formflow.schemas.form import FormField, FormPage, FormSchema
from formflow.schemas.issues import (
    DanglingReferenceWarning,
    FieldValidationError,
    ParseError,
    SchemaValidationError,
)
from formflow.schemas.submission import Submission

__all__ = [
    "DanglingReferenceWarning",
    "FieldValidationError",
    "FormField",
    "FormPage",
    "FormSchema",
    "ParseError",
    "SchemaValidationError",
    "Submission",
]
