"""Storage protocol for schemas and submissions.

The form engine never talks to a database directly. The surrounding
application supplies an object satisfying ``SchemaStorage``; all methods
are asynchronous because they cross the process boundary. This package
ships an in-memory and a filesystem implementation.
"""

from typing import Protocol, runtime_checkable

from formflow.schemas.form import FormSchema
from formflow.schemas.submission import Submission


@runtime_checkable
class SchemaStorage(Protocol):
    """Abstract storage collaborator.

    Implementations must be all-or-nothing: a failed call leaves nothing
    partially written, and callers may simply retry.
    """

    async def load_schema(self, schema_id: str) -> FormSchema:
        """Load a schema by id.

        Raises:
            SchemaNotFoundError: If no schema has that id.
        """
        ...

    async def save_schema(self, schema: FormSchema) -> str:
        """Persist a schema (insert or replace) and return its id."""
        ...

    async def record_submission(self, submission: Submission) -> str:
        """Persist a submission and return its generated id."""
        ...
