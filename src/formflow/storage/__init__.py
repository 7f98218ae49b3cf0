"""Storage collaborators for schemas and submissions."""

from formflow.storage.filesystem import FileStorage
from formflow.storage.memory import InMemoryStorage
from formflow.storage.protocol import SchemaStorage

__all__ = ["SchemaStorage", "InMemoryStorage", "FileStorage"]
