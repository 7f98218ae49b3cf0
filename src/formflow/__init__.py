"""
Formflow - a dynamic form engine for clinical intake and screening.

Schemas are declarative (pages, fields, conditional rules, completion
actions). The engine validates answers, evaluates conditional logic,
drives the page-by-page flow and runs scoring and alerts on submission.
"""

__version__ = "0.1.0"

from formflow.codec import export_schema, import_schema
from formflow.runtime.flow import FlowController
from formflow.schemas.form import FormSchema

__all__ = [
    "FlowController",
    "FormSchema",
    "export_schema",
    "import_schema",
]
