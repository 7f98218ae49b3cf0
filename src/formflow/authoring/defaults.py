"""Factories for newly authored fields and pages."""

import secrets
from typing import Dict, Optional

from formflow.schemas.form import (
    CHOICE_FIELD_TYPES,
    FieldOption,
    FieldType,
    FormField,
    FormPage,
    LayoutWidth,
    ValidationKind,
    ValidationRule,
)

DEFAULT_LABELS: Dict[FieldType, str] = {
    FieldType.SHORT_TEXT: "Text Input",
    FieldType.LONG_TEXT: "Text Area",
    FieldType.SELECT: "Dropdown",
    FieldType.MULTISELECT: "Multi-Select",
    FieldType.SINGLE_CHOICE: "Radio Buttons",
    FieldType.MULTI_CHOICE: "Checkboxes",
    FieldType.EMAIL: "Email Address",
    FieldType.PHONE: "Phone Number",
    FieldType.NUMBER: "Number",
    FieldType.DATE: "Date",
    FieldType.FILE: "File Upload",
    FieldType.STATIC_MESSAGE: "Message",
    FieldType.SIGNATURE: "Digital Signature",
    FieldType.RATING: "Rating",
}

DEFAULT_PLACEHOLDERS: Dict[FieldType, str] = {
    FieldType.SHORT_TEXT: "Enter text...",
    FieldType.LONG_TEXT: "Enter your message...",
    FieldType.EMAIL: "example@email.com",
    FieldType.PHONE: "+1 (555) 123-4567",
    FieldType.NUMBER: "0",
    FieldType.DATE: "mm/dd/yyyy",
}


def new_id(prefix: str = "") -> str:
    """Short random hex identifier, optionally prefixed."""
    token = secrets.token_hex(5)
    return f"{prefix}_{token}" if prefix else token


def default_field(
    field_type: FieldType,
    field_id: Optional[str] = None,
    layout_width: LayoutWidth = LayoutWidth.FULL,
) -> FormField:
    """Build a field with the per-type default label, placeholder and options."""
    field_id = field_id or new_id("field")
    options = []
    if field_type in CHOICE_FIELD_TYPES:
        options = [
            FieldOption(id=f"{field_id}_option1", value="option1", label="Option 1"),
            FieldOption(id=f"{field_id}_option2", value="option2", label="Option 2"),
        ]

    rules = []
    if field_type == FieldType.NUMBER:
        rules = [
            ValidationRule(kind=ValidationKind.MIN, value=0),
            ValidationRule(kind=ValidationKind.MAX, value=100),
        ]

    return FormField(
        id=field_id,
        type=field_type,
        label=DEFAULT_LABELS.get(field_type, "Field"),
        placeholder=DEFAULT_PLACEHOLDERS.get(field_type),
        options=options,
        validation_rules=rules,
        layout_width=layout_width,
    )


def default_page(title: Optional[str] = None, order: int = 0, page_id: Optional[str] = None) -> FormPage:
    return FormPage(
        id=page_id or new_id("page"),
        title=title or f"Page {order + 1}",
        order=order,
    )
