"""Flow controller: runtime state machine for one form-fill session.

States are ``at_page`` (with a page index) and the terminal ``submitted``.
Transitions return ``NavigationResult`` values instead of raising, so a UI
can display the blocking errors. ``FlowStateError`` is reserved for
programming errors, such as answering an unknown field or changing
answers after submission.
"""

import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from formflow.config.settings import EngineSettings
from formflow.exceptions import CycleDetected, FlowStateError
from formflow.logic.evaluator import ConditionalEvaluator, EffectSet, mask_hidden
from formflow.runtime.completion import CompletionPipeline
from formflow.schemas.form import FormField, FormPage, FormSchema
from formflow.schemas.issues import FieldValidationError
from formflow.schemas.submission import Submission
from formflow.storage.protocol import SchemaStorage
from formflow.utils.coercion import is_empty
from formflow.validation.engine import validate

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    """Flow controller states."""

    AT_PAGE = "at_page"
    SUBMITTED = "submitted"


class NavigationResult(BaseModel):
    """Outcome of a navigation attempt."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    page_index: int = Field(..., description="Page index after the attempt")
    errors: List[FieldValidationError] = Field(default_factory=list)
    reason: Optional[str] = Field(default=None, description="Why it was rejected")
    submission: Optional[Submission] = Field(
        default=None, description="Set by an accepted submit()"
    )


class FlowController:
    """Sequences pages, gates navigation on validation, tracks progress.

    Owns the answers of exactly one session. The schema is treated as
    read-only for the lifetime of the controller.
    """

    def __init__(
        self,
        schema: FormSchema,
        answers: Optional[Mapping[str, Any]] = None,
        *,
        settings: Optional[EngineSettings] = None,
        evaluator: Optional[ConditionalEvaluator] = None,
        pipeline: Optional[CompletionPipeline] = None,
        today: Optional[date] = None,
    ):
        """Initialize a session.

        Args:
            schema: Schema to execute (must have at least one page)
            answers: Initial answers; field defaults fill the gaps
            settings: Engine settings (iteration cap, scoring policy)
            evaluator: Conditional evaluator override
            pipeline: Completion pipeline override
            today: Fixed evaluation date for ``max_date: today`` rules
        """
        if not schema.pages:
            raise FlowStateError(f"Schema '{schema.id}' has no pages to run")

        self.settings = settings or EngineSettings()
        self.schema = schema
        self.evaluator = evaluator or ConditionalEvaluator(self.settings.max_logic_iterations)
        self.pipeline = pipeline or CompletionPipeline(
            average_excludes_missing=self.settings.average_excludes_missing
        )
        self.today = today

        self._fields: Dict[str, FormField] = {f.id: f for f in schema.iter_fields()}
        self._page_of: Dict[str, int] = {
            field.id: index
            for index, page in enumerate(schema.pages)
            for field in page.fields
        }

        self._answers: Dict[str, Any] = {
            f.id: f.default_value for f in schema.iter_fields()
            if f.is_input and f.default_value is not None
        }
        for field_id, value in (answers or {}).items():
            self._require_field(field_id)
            self._answers[field_id] = value

        self._state = FlowState.AT_PAGE
        self._page_index = 0
        self._furthest_index = 0
        self._submission: Optional[Submission] = None
        self._effects = EffectSet()
        self._refresh_effects()

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def page_index(self) -> int:
        return self._page_index

    @property
    def furthest_page_index(self) -> int:
        return self._furthest_index

    @property
    def current_page(self) -> FormPage:
        return self.schema.pages[self._page_index]

    @property
    def is_last_page(self) -> bool:
        return self._page_index == len(self.schema.pages) - 1

    @property
    def is_submitted(self) -> bool:
        return self._state == FlowState.SUBMITTED

    @property
    def submission(self) -> Optional[Submission]:
        return self._submission

    @property
    def answers(self) -> Dict[str, Any]:
        """Copy of the raw answers, including stale values of hidden fields."""
        return dict(self._answers)

    @property
    def effects(self) -> EffectSet:
        return self._effects

    @property
    def progress(self) -> float:
        """Fraction (0.0-1.0) of visible input fields holding an answer."""
        return compute_progress(self.schema, self._answers, self._effects)

    def visible_answers(self) -> Dict[str, Any]:
        """Answers with hidden fields removed."""
        return mask_hidden(self._answers, self._effects.hidden_field_ids)

    def is_visible(self, field_id: str) -> bool:
        return not self._effects.is_hidden(field_id)

    def is_required(self, field_id: str) -> bool:
        field = self._require_field(field_id)
        return field.required or self._effects.is_required(field_id)

    def visible_fields(self, page_index: Optional[int] = None) -> List[FormField]:
        """Visible fields of a page (current page by default), in order."""
        index = self._page_index if page_index is None else page_index
        return [f for f in self.schema.pages[index].fields if self.is_visible(f.id)]

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    def set_answer(self, field_id: str, value: Any) -> float:
        """Record an answer and recompute effects.

        Returns:
            Updated progress
        """
        self._ensure_open()
        field = self._require_field(field_id)
        if not field.is_input:
            raise FlowStateError(f"Field '{field_id}' is display-only and cannot be answered")
        self._answers[field_id] = value
        self._refresh_effects()
        return self.progress

    def clear_answer(self, field_id: str) -> float:
        self._ensure_open()
        self._require_field(field_id)
        self._answers.pop(field_id, None)
        self._refresh_effects()
        return self.progress

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def page_errors(self, page_index: Optional[int] = None) -> List[FieldValidationError]:
        """Validation errors blocking a page (current page by default)."""
        index = self._page_index if page_index is None else page_index
        errors: List[FieldValidationError] = []
        for field in self.schema.pages[index].fields:
            if not field.is_input or not self.is_visible(field.id):
                continue
            if self._effects.is_disabled(field.id):
                continue
            field_errors = validate(
                field,
                self._answers.get(field.id),
                required=self.is_required(field.id),
                today=self.today,
            )
            errors.extend(e.model_copy(update={"page_index": index}) for e in field_errors)
        return errors

    def next(self) -> NavigationResult:
        """Advance one page if the current page validates."""
        if self.is_submitted:
            return self._reject("Form already submitted")
        if self.is_last_page:
            return self._reject("Already on the last page; use submit()")

        errors = self.page_errors()
        if errors:
            logger.debug(
                f"next() blocked on page {self._page_index} by {len(errors)} error(s)"
            )
            return self._reject("Current page has validation errors", errors)

        self._page_index += 1
        self._furthest_index = max(self._furthest_index, self._page_index)
        return self._accept()

    def back(self) -> NavigationResult:
        """Go back one page. Always permitted; never re-validates."""
        if self.is_submitted:
            return self._reject("Form already submitted")
        if self._page_index > 0:
            self._page_index -= 1
        return self._accept()

    def jump_to(self, page_index: int) -> NavigationResult:
        """Jump to any page already reached; forward skipping is refused."""
        if self.is_submitted:
            return self._reject("Form already submitted")
        if page_index < 0 or page_index >= len(self.schema.pages):
            return self._reject(f"Page index {page_index} out of range")
        if page_index > self._furthest_index:
            return self._reject(
                f"Cannot skip ahead to page {page_index}; furthest reached is {self._furthest_index}"
            )
        self._page_index = page_index
        return self._accept()

    def submit(self) -> NavigationResult:
        """Validate every page, freeze the answers, run completion actions once."""
        if self.is_submitted:
            return self._reject("Form already submitted")
        if not self.is_last_page:
            return self._reject("Submit is only allowed from the last page")

        errors: List[FieldValidationError] = []
        for index in range(len(self.schema.pages)):
            errors.extend(self.page_errors(index))
        if errors:
            logger.debug(f"submit() blocked by {len(errors)} error(s)")
            return self._reject("Form has validation errors", errors)

        final_answers = {
            k: v for k, v in self.visible_answers().items()
            if k in self._fields and self._fields[k].is_input
        }
        result = self.pipeline.run(self.schema.completion_actions, final_answers)

        self._submission = Submission(
            schema_id=self.schema.id,
            schema_version=self.schema.version,
            answers=final_answers,
            computed_results=result.computed_results,
            fired_alerts=result.fired_alerts,
        )
        self._state = FlowState.SUBMITTED
        logger.info(
            f"Form '{self.schema.id}' submitted: {len(final_answers)} answer(s), "
            f"{len(result.fired_alerts)} alert(s)"
        )
        return NavigationResult(
            accepted=True,
            page_index=self._page_index,
            submission=self._submission,
        )

    async def record_submission(self, storage: SchemaStorage) -> str:
        """Hand the frozen submission to the storage collaborator.

        Raises:
            FlowStateError: If the form has not been submitted
        """
        if self._submission is None:
            raise FlowStateError("Nothing to record: form not submitted")
        return await storage.record_submission(self._submission)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _refresh_effects(self) -> None:
        try:
            self._effects = self.evaluator.evaluate(self.schema.conditional_rules, self._answers)
        except CycleDetected as e:
            # Schema defect: keep the last stable effects rather than crash the session
            logger.error(f"Schema '{self.schema.id}': {e}")

    def _require_field(self, field_id: str) -> FormField:
        field = self._fields.get(field_id)
        if field is None:
            raise FlowStateError(f"Unknown field id: {field_id}")
        return field

    def _ensure_open(self) -> None:
        if self.is_submitted:
            raise FlowStateError("Answers are frozen after submission")

    def _accept(self) -> NavigationResult:
        return NavigationResult(accepted=True, page_index=self._page_index)

    def _reject(
        self, reason: str, errors: Optional[List[FieldValidationError]] = None
    ) -> NavigationResult:
        return NavigationResult(
            accepted=False,
            page_index=self._page_index,
            errors=errors or [],
            reason=reason,
        )


def compute_progress(
    schema: FormSchema,
    answers: Mapping[str, Any],
    effects: EffectSet,
) -> float:
    """Visible answered input fields divided by visible input fields.

    Hidden fields leave both numerator and denominator. Display-only fields
    never count. A form with no visible input field reports 0.0.
    """
    visible = [
        f for f in schema.iter_fields()
        if f.is_input and not effects.is_hidden(f.id)
    ]
    if not visible:
        return 0.0
    answered = sum(1 for f in visible if not is_empty(answers.get(f.id)))
    return answered / len(visible)
