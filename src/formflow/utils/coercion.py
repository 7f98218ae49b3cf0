"""Answer coercion helpers shared by validation, logic and scoring.

Form answers arrive as whatever the UI shell hands over: strings from text
inputs, option values, lists for multi-select fields, numbers from
sliders. These helpers normalize them without raising.
"""

import re
from datetime import date, datetime
from typing import Any, Optional, Union

# ISO: 2026-01-23 (optionally followed by T or space + time)
_RE_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T\s].*)?$")

# US numeric: MM/DD/YYYY (the date inputs this engine receives are US-formatted)
_RE_US = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

_RE_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def is_empty(value: Any) -> bool:
    """True for missing, blank-string, or empty-collection answers."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def to_number(value: Any) -> Optional[float]:
    """Coerce a scalar answer to float.

    Accepts ints, floats and numeric strings (thousand separators with
    commas are stripped). Booleans, lists and unparseable strings return
    None.

    Args:
        value: Raw answer value

    Returns:
        Parsed float or None if coercion fails
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return float(value)

    if not isinstance(value, str):
        return None

    text = value.strip().replace(",", "")
    if not text or not _RE_NUMBER.match(text):
        return None

    try:
        return float(text)
    except ValueError:
        return None


def normalize_number(value: float) -> Union[int, float]:
    """Return an int for integral floats so scores read naturally (27, not 27.0)."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def to_date(value: Any) -> Optional[date]:
    """Parse an ISO (YYYY-MM-DD) or US (MM/DD/YYYY) date answer.

    Args:
        value: date, datetime, or string

    Returns:
        date or None if unparseable
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    match = _RE_ISO.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
    else:
        match = _RE_US.match(text)
        if not match:
            return None
        month, day, year = (int(g) for g in match.groups())

    try:
        return date(year, month, day)
    except ValueError:
        return None


def as_text(value: Any) -> str:
    """Render a scalar answer as a comparable string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
