"""Filesystem SchemaStorage.

Layout under the root directory::

    schemas/<schema_id>.json          canonical export shape
    submissions/<submission_id>.json  Submission model dump

Writes go to a ``.tmp`` sibling first and are moved into place, so a
failed write never leaves a partial file behind. File I/O runs in a worker
thread so the event loop is never blocked.
"""

import asyncio
import json
import logging
import re
import uuid
from pathlib import Path
from typing import Any, List

from formflow.codec.exporter import export_schema
from formflow.codec.importer import import_schema
from formflow.exceptions import SchemaNotFoundError
from formflow.schemas.form import FormSchema
from formflow.schemas.submission import Submission

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileStorage:
    """Stores schemas and submissions as JSON files."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.schemas_dir = self.root / "schemas"
        self.submissions_dir = self.root / "submissions"

    def _schema_path(self, schema_id: str) -> Path:
        if not _SAFE_ID.match(schema_id) or schema_id in (".", ".."):
            raise ValueError(f"Schema id not usable as a file name: {schema_id!r}")
        return self.schemas_dir / f"{schema_id}.json"

    @staticmethod
    def _write_json(path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            tmp_path.replace(path)
        except OSError:
            if tmp_path.exists():
                tmp_path.unlink()
            raise

    @staticmethod
    def _read_json(path: Path) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    async def load_schema(self, schema_id: str) -> FormSchema:
        path = self._schema_path(schema_id)
        if not path.exists():
            raise SchemaNotFoundError(schema_id)

        raw = await asyncio.to_thread(self._read_json, path)
        result = import_schema(raw)
        if not result.ok:
            details = "; ".join(f"{e.path}: {e.message}" for e in result.errors)
            raise ValueError(f"Stored schema '{schema_id}' is corrupt: {details}")
        return result.form_schema

    async def save_schema(self, schema: FormSchema) -> str:
        path = self._schema_path(schema.id)
        await asyncio.to_thread(self._write_json, path, export_schema(schema))
        logger.info(f"Saved schema '{schema.id}' to {path}")
        return schema.id

    async def record_submission(self, submission: Submission) -> str:
        submission_id = uuid.uuid4().hex
        path = self.submissions_dir / f"{submission_id}.json"
        await asyncio.to_thread(self._write_json, path, submission.model_dump(mode="json"))
        logger.info(f"Recorded submission {submission_id} for schema '{submission.schema_id}'")
        return submission_id

    def list_schema_ids(self) -> List[str]:
        if not self.schemas_dir.exists():
            return []
        return sorted(p.stem for p in self.schemas_dir.glob("*.json"))
