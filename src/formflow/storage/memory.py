"""In-memory SchemaStorage for tests and embedding."""

import logging
import uuid
from typing import Dict, List

from formflow.exceptions import SchemaNotFoundError
from formflow.schemas.form import FormSchema
from formflow.schemas.submission import Submission

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """Dict-backed storage. Schemas are frozen, so no copies are needed."""

    def __init__(self) -> None:
        self.schemas: Dict[str, FormSchema] = {}
        self.submissions: Dict[str, Submission] = {}

    async def load_schema(self, schema_id: str) -> FormSchema:
        try:
            return self.schemas[schema_id]
        except KeyError:
            raise SchemaNotFoundError(schema_id) from None

    async def save_schema(self, schema: FormSchema) -> str:
        self.schemas[schema.id] = schema
        logger.debug(f"Saved schema '{schema.id}' v{schema.version}")
        return schema.id

    async def record_submission(self, submission: Submission) -> str:
        submission_id = uuid.uuid4().hex
        self.submissions[submission_id] = submission
        logger.debug(f"Recorded submission {submission_id} for schema '{submission.schema_id}'")
        return submission_id

    def submissions_for(self, schema_id: str) -> List[Submission]:
        return [s for s in self.submissions.values() if s.schema_id == schema_id]
