"""Renderer contract consumed by the UI shell.

``render(schema, answers)`` tells a UI which fields to draw, which are
required or disabled, which rule messages to show, and the completion
progress. It is stateless: the same inputs always produce the same view.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from formflow.config.settings import EngineSettings
from formflow.exceptions import CycleDetected
from formflow.logic.evaluator import ConditionalEvaluator, EffectSet
from formflow.runtime.flow import compute_progress
from formflow.schemas.form import FormSchema

logger = logging.getLogger(__name__)


class RenderedPage(BaseModel):
    """Visible fields of one page."""

    model_config = ConfigDict(frozen=True)

    page_id: str
    title: str
    visible_field_ids: List[str] = Field(default_factory=list)


class RenderResult(BaseModel):
    """View model for one schema + answers pair."""

    model_config = ConfigDict(frozen=True)

    pages: List[RenderedPage] = Field(default_factory=list)
    visible_field_ids: List[str] = Field(
        default_factory=list, description="Visible field ids across all pages, in order"
    )
    required_field_ids: List[str] = Field(default_factory=list)
    disabled_field_ids: List[str] = Field(default_factory=list)
    messages: Dict[str, List[str]] = Field(
        default_factory=dict, description="Field id -> rule messages for visible fields"
    )
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    logic_converged: bool = Field(
        default=True,
        description="False when the rules never settled; no rule effects were applied",
    )


def render(
    schema: FormSchema,
    answers: Mapping[str, Any],
    evaluator: Optional[ConditionalEvaluator] = None,
    settings: Optional[EngineSettings] = None,
) -> RenderResult:
    """Compute the visible field set and progress for a schema.

    A rule set that never converges is a schema defect: it is logged and
    the form renders with no rule effects and ``logic_converged=False``.
    """
    settings = settings or EngineSettings()
    evaluator = evaluator or ConditionalEvaluator(settings.max_logic_iterations)
    converged = True
    try:
        effects: EffectSet = evaluator.evaluate(schema.conditional_rules, answers)
    except CycleDetected as e:
        logger.error(f"Schema '{schema.id}': {e}")
        effects = EffectSet()
        converged = False

    pages: List[RenderedPage] = []
    visible: List[str] = []
    required: List[str] = []
    disabled: List[str] = []
    messages: Dict[str, List[str]] = {}

    for page in schema.pages:
        page_visible = [f.id for f in page.fields if not effects.is_hidden(f.id)]
        pages.append(RenderedPage(page_id=page.id, title=page.title, visible_field_ids=page_visible))
        for field in page.fields:
            if effects.is_hidden(field.id):
                continue
            visible.append(field.id)
            if field.is_input and (field.required or effects.is_required(field.id)):
                required.append(field.id)
            if effects.is_disabled(field.id):
                disabled.append(field.id)
            field_messages = effects.messages_for(field.id)
            if field_messages:
                messages[field.id] = field_messages

    return RenderResult(
        pages=pages,
        visible_field_ids=visible,
        required_field_ids=required,
        disabled_field_ids=disabled,
        messages=messages,
        progress=compute_progress(schema, answers, effects),
        logic_converged=converged,
    )
