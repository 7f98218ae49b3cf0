"""Shared CLI utilities."""

import json
import logging
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

from formflow.cli._console import console, print_err
from formflow.codec.importer import ImportResult, import_json

logger = logging.getLogger(__name__)


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging with Rich handler."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def read_json_file(path: Path) -> Any:
    """Read a JSON file or exit with an error message."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        print_err(f"File not found: {path}")
        raise SystemExit(1)
    except json.JSONDecodeError as e:
        print_err(f"Invalid JSON in {path}: {e}")
        raise SystemExit(1)


def load_schema_file(path: Path) -> ImportResult:
    """Import a schema file without exiting; callers decide how to report."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print_err(f"File not found: {path}")
        raise SystemExit(1)
    return import_json(text)
