"""Import/export between external schema JSON and the internal model."""

from formflow.codec.exporter import export_json, export_schema
from formflow.codec.importer import ImportResult, detect_shape, import_json, import_schema

__all__ = [
    "ImportResult",
    "detect_shape",
    "export_json",
    "export_schema",
    "import_json",
    "import_schema",
]
