"""Pydantic models for completed form submissions."""

from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class PipelineResult(BaseModel):
    """Output of the completion action pipeline."""

    model_config = ConfigDict(frozen=True)

    computed_results: Dict[str, Any] = Field(
        default_factory=dict, description="Result field id -> computed value"
    )
    fired_alerts: List[str] = Field(
        default_factory=list, description="Alert messages in firing order"
    )


class Submission(BaseModel):
    """Immutable record of one completed fill-out session.

    Created once by the flow controller at the terminal state. Answers for
    fields hidden by conditional logic are not included.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "schema_id": "phq9",
                "schema_version": "1.0.0",
                "answers": {"phq9_q1": "3", "phq9_q2": "2"},
                "computed_results": {"phq9_score": 5},
                "fired_alerts": [],
                "submitted_at": "2026-01-28T10:00:00Z",
            }
        },
    )

    schema_id: str
    schema_version: str
    answers: Dict[str, Any] = Field(default_factory=dict)
    computed_results: Dict[str, Any] = Field(default_factory=dict)
    fired_alerts: List[str] = Field(default_factory=list)
    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

