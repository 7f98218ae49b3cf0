"""Completion action pipeline.

Runs the ordered post-submission actions of a schema over the final
answers. ``calculate_score`` writes into a results map that later actions
read as if it were part of the answers, so an alert can fire on a score
computed just before it.

Missing or non-numeric score sources count as zero. With
``average_excludes_missing`` the average divides by answered sources only.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from formflow.logic.operators import evaluate_condition
from formflow.schemas.form import (
    Aggregator,
    CalculateScoreAction,
    CompletionAction,
    ConditionalAlertAction,
)
from formflow.schemas.submission import PipelineResult
from formflow.utils.coercion import is_empty, normalize_number, to_number

logger = logging.getLogger(__name__)


def _score_value(value: Any) -> float:
    """Numeric contribution of one answer (lists sum their numeric members)."""
    if isinstance(value, (list, tuple)):
        return sum(to_number(item) or 0.0 for item in value)
    return to_number(value) or 0.0


class CompletionPipeline:
    """Executes completion actions strictly in declared order."""

    def __init__(self, average_excludes_missing: bool = False):
        self.average_excludes_missing = average_excludes_missing

    def run(
        self,
        actions: Sequence[CompletionAction],
        final_answers: Mapping[str, Any],
    ) -> PipelineResult:
        """Run all actions over the final answers.

        Args:
            actions: Completion actions in declared order
            final_answers: Answers with hidden fields already removed

        Returns:
            PipelineResult with computed results and fired alert messages
        """
        results: Dict[str, Any] = {}
        alerts: List[str] = []

        for index, action in enumerate(actions):
            if isinstance(action, CalculateScoreAction):
                merged = {**final_answers, **results}
                score = self._calculate(action, merged)
                results[action.result_field_id] = score
                logger.debug(
                    f"Action {index}: {action.aggregator.value} of "
                    f"{len(action.source_field_ids)} source(s) -> "
                    f"{action.result_field_id} = {score}"
                )
            elif isinstance(action, ConditionalAlertAction):
                merged = {**final_answers, **results}
                if evaluate_condition(action.condition, merged):
                    alerts.append(action.message)
                    logger.info(f"Completion alert fired: {action.message}")
            else:
                raise ValueError(f"Unhandled completion action: {action!r}")

        return PipelineResult(computed_results=results, fired_alerts=alerts)

    def _calculate(self, action: CalculateScoreAction, values: Mapping[str, Any]) -> Any:
        sources = [values.get(field_id) for field_id in action.source_field_ids]
        answered = [v for v in sources if not is_empty(v)]

        if action.aggregator == Aggregator.COUNT:
            return len(answered)

        total = sum(_score_value(v) for v in sources)

        if action.aggregator == Aggregator.SUM:
            return normalize_number(total)

        if action.aggregator == Aggregator.AVERAGE:
            denominator = len(answered) if self.average_excludes_missing else len(sources)
            if denominator == 0:
                return 0
            return normalize_number(total / denominator)

        raise ValueError(f"Unhandled aggregator: {action.aggregator}")


def run_completion_actions(
    actions: Sequence[CompletionAction],
    final_answers: Mapping[str, Any],
    average_excludes_missing: Optional[bool] = None,
) -> PipelineResult:
    """Module-level convenience wrapper around ``CompletionPipeline``."""
    pipeline = CompletionPipeline(average_excludes_missing=bool(average_excludes_missing))
    return pipeline.run(actions, final_answers)
