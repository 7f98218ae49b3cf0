"""Mapping between the internal field vocabulary and the exchange format.

The exchange format knows a coarser set of element types. Internal types
that share an external type are exported with a ``subtype`` key so the
round trip stays lossless.
"""

from typing import Dict, Optional, Tuple

from formflow.schemas.form import FieldType


class ExternalFieldType:
    """External element type vocabulary (string constants)."""

    TEXT_INPUT = "text_input"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    EMAIL = "email"
    TEL = "tel"
    DATE = "date"
    NUMBER = "number"
    FILE_UPLOAD = "file_upload"
    WARNING = "warning"


# Default internal type for each external type
EXTERNAL_TO_INTERNAL: Dict[str, FieldType] = {
    ExternalFieldType.TEXT_INPUT: FieldType.SHORT_TEXT,
    ExternalFieldType.TEXTAREA: FieldType.LONG_TEXT,
    ExternalFieldType.SELECT: FieldType.SELECT,
    ExternalFieldType.RADIO: FieldType.SINGLE_CHOICE,
    ExternalFieldType.CHECKBOX: FieldType.MULTI_CHOICE,
    ExternalFieldType.EMAIL: FieldType.EMAIL,
    ExternalFieldType.TEL: FieldType.PHONE,
    ExternalFieldType.DATE: FieldType.DATE,
    ExternalFieldType.NUMBER: FieldType.NUMBER,
    ExternalFieldType.FILE_UPLOAD: FieldType.FILE,
    ExternalFieldType.WARNING: FieldType.STATIC_MESSAGE,
}

# Aliases seen in hand-written simple-shape imports
EXTERNAL_ALIASES: Dict[str, str] = {
    "text": ExternalFieldType.TEXT_INPUT,
    "phone": ExternalFieldType.TEL,
    "file": ExternalFieldType.FILE_UPLOAD,
    "message": ExternalFieldType.WARNING,
}

INTERNAL_TO_EXTERNAL: Dict[FieldType, str] = {
    FieldType.SHORT_TEXT: ExternalFieldType.TEXT_INPUT,
    FieldType.LONG_TEXT: ExternalFieldType.TEXTAREA,
    FieldType.SELECT: ExternalFieldType.SELECT,
    FieldType.MULTISELECT: ExternalFieldType.SELECT,
    FieldType.SINGLE_CHOICE: ExternalFieldType.RADIO,
    FieldType.MULTI_CHOICE: ExternalFieldType.CHECKBOX,
    FieldType.EMAIL: ExternalFieldType.EMAIL,
    FieldType.PHONE: ExternalFieldType.TEL,
    FieldType.NUMBER: ExternalFieldType.NUMBER,
    FieldType.DATE: ExternalFieldType.DATE,
    FieldType.FILE: ExternalFieldType.FILE_UPLOAD,
    FieldType.STATIC_MESSAGE: ExternalFieldType.WARNING,
    FieldType.SIGNATURE: ExternalFieldType.FILE_UPLOAD,
    FieldType.RATING: ExternalFieldType.NUMBER,
}


def to_external(field_type: FieldType) -> Tuple[str, Optional[str]]:
    """Return ``(external_type, subtype)``; subtype is None when unambiguous."""
    external = INTERNAL_TO_EXTERNAL[field_type]
    if EXTERNAL_TO_INTERNAL[external] == field_type:
        return external, None
    return external, field_type.value


def to_internal(external_type: str, subtype: Optional[str] = None) -> Optional[FieldType]:
    """Resolve an external element type (plus optional subtype).

    Internal type names are accepted directly as well, so schemas
    exported by older authoring builds still import.

    Returns:
        FieldType, or None if the type is unknown
    """
    if subtype:
        try:
            return FieldType(subtype)
        except ValueError:
            return None

    key = EXTERNAL_ALIASES.get(external_type, external_type)
    if key in EXTERNAL_TO_INTERNAL:
        return EXTERNAL_TO_INTERNAL[key]

    try:
        return FieldType(external_type)
    except ValueError:
        return None
