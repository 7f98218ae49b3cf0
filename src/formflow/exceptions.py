"""Exceptions raised by the form engine.

Expected problems (bad imports, broken schemas, invalid answers) are
returned as values from ``formflow.schemas.issues``. The exceptions below
cover schema defects found at evaluation time and programming errors
against the runtime API.
"""

from typing import List, Optional


class FormFlowError(Exception):
    """Base class for all formflow exceptions."""


class CycleDetected(FormFlowError):
    """Conditional rules did not reach a fixed point within the iteration cap."""

    def __init__(self, rule_ids: List[str], iterations: int):
        self.rule_ids = list(rule_ids)
        self.iterations = iterations
        joined = ", ".join(self.rule_ids) or "<unknown>"
        super().__init__(
            f"Conditional rules did not converge after {iterations} iterations "
            f"(still changing: {joined})"
        )


class FlowStateError(FormFlowError):
    """Raised when the flow controller is used outside its state machine."""


class SchemaNotFoundError(FormFlowError):
    """Raised by storage when a schema id does not exist."""

    def __init__(self, schema_id: str, message: Optional[str] = None):
        self.schema_id = schema_id
        super().__init__(message or f"Schema not found: {schema_id}")


class ConfigError(FormFlowError):
    """Raised when engine settings cannot be loaded."""
