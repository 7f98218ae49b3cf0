"""Authoring: edit operations, reducers, templates and the session store."""

from formflow.authoring.edits import Edit, EditResult
from formflow.authoring.reducers import apply
from formflow.authoring.store import AuthoringStore
from formflow.authoring.templates import TEMPLATE_BLOCKS, template_names

__all__ = ["AuthoringStore", "Edit", "EditResult", "TEMPLATE_BLOCKS", "apply", "template_names"]
