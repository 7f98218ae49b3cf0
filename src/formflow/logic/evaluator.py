"""Conditional logic evaluator.

Given the current answers and a rule set, determine which fields are
hidden, required or disabled and which messages to show.

A single pass is order-independent except for visibility conflicts,
which resolve last-write-wins in rule declaration order. Because a
hidden field reads as unanswered, hiding one field can flip the rules it
triggers, so passes repeat until the effect set stops changing. A rule
set that keeps flipping past the iteration cap raises ``CycleDetected``.
"""

import logging
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from formflow.exceptions import CycleDetected
from formflow.logic.operators import evaluate_condition
from formflow.schemas.form import ConditionalRule, RuleActionKind

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10


class RuleMessage(BaseModel):
    """A message produced by a fired show_message rule."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    target_id: str
    message: str


class EffectSet(BaseModel):
    """Accumulated effects of all fired rules."""

    model_config = ConfigDict(frozen=True)

    hidden_field_ids: FrozenSet[str] = Field(default_factory=frozenset)
    required_field_ids: FrozenSet[str] = Field(default_factory=frozenset)
    disabled_field_ids: FrozenSet[str] = Field(default_factory=frozenset)
    messages_to_show: Tuple[RuleMessage, ...] = Field(default_factory=tuple)
    fired_rule_ids: Tuple[str, ...] = Field(
        default_factory=tuple, description="Rules that fired, in declaration order"
    )
    iterations: int = Field(default=0, description="Passes needed to converge")

    def is_hidden(self, field_id: str) -> bool:
        return field_id in self.hidden_field_ids

    def is_required(self, field_id: str) -> bool:
        return field_id in self.required_field_ids

    def is_disabled(self, field_id: str) -> bool:
        return field_id in self.disabled_field_ids

    def messages_for(self, field_id: str) -> List[str]:
        return [m.message for m in self.messages_to_show if m.target_id == field_id]

    def same_effects(self, other: "EffectSet") -> bool:
        """Compare effects only, ignoring bookkeeping fields."""
        return (
            self.hidden_field_ids == other.hidden_field_ids
            and self.required_field_ids == other.required_field_ids
            and self.disabled_field_ids == other.disabled_field_ids
            and self.messages_to_show == other.messages_to_show
        )


def mask_hidden(answers: Mapping[str, Any], hidden: FrozenSet[str]) -> Dict[str, Any]:
    """Drop answers of hidden fields; they count as unanswered."""
    return {k: v for k, v in answers.items() if k not in hidden}


class ConditionalEvaluator:
    """Fixed-point evaluator over a list of conditional rules."""

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS):
        """Initialize the evaluator.

        Args:
            max_iterations: Minimum iteration cap. The effective cap grows
                with the rule count so that long acyclic chains still converge.
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.max_iterations = max_iterations

    def iteration_cap(self, rules: Sequence[ConditionalRule]) -> int:
        return max(self.max_iterations, len(rules) + 1)

    def evaluate(
        self,
        rules: Sequence[ConditionalRule],
        answers: Mapping[str, Any],
    ) -> EffectSet:
        """Evaluate rules against answers until the effect set is stable.

        Args:
            rules: Conditional rules in declaration order
            answers: Field id -> current answer

        Returns:
            Converged EffectSet

        Raises:
            CycleDetected: If the effect set still changes after the cap
        """
        cap = self.iteration_cap(rules)
        effects = EffectSet()
        previous_fired: Tuple[str, ...] = ()

        for iteration in range(1, cap + 1):
            visible_answers = mask_hidden(answers, effects.hidden_field_ids)
            candidate = self._single_pass(rules, visible_answers, iteration)
            if candidate.same_effects(effects):
                if iteration > 2:
                    logger.debug(f"Conditional rules converged after {iteration} passes")
                return candidate
            previous_fired = effects.fired_rule_ids
            effects = candidate

        flipping = sorted(set(previous_fired) ^ set(effects.fired_rule_ids))
        logger.error(
            f"Conditional rules did not converge after {cap} passes; "
            f"flipping rules: {flipping}"
        )
        raise CycleDetected(flipping, cap)

    def _single_pass(
        self,
        rules: Sequence[ConditionalRule],
        answers: Mapping[str, Any],
        iteration: int,
    ) -> EffectSet:
        # Targets of show_field rules start hidden until a show rule fires
        visibility: Dict[str, bool] = {
            rule.action.target_id: False
            for rule in rules
            if rule.action.kind == RuleActionKind.SHOW_FIELD
        }
        required: Set[str] = set()
        disabled: Set[str] = set()
        messages: List[RuleMessage] = []
        fired: List[str] = []

        for rule in rules:
            if not evaluate_condition(rule.trigger, answers):
                continue
            fired.append(rule.id)
            action = rule.action
            kind = action.kind
            if kind == RuleActionKind.SHOW_FIELD:
                visibility[action.target_id] = True
            elif kind == RuleActionKind.HIDE_FIELD:
                visibility[action.target_id] = False
            elif kind == RuleActionKind.REQUIRE_FIELD:
                required.add(action.target_id)
            elif kind == RuleActionKind.DISABLE_FIELD:
                disabled.add(action.target_id)
            elif kind == RuleActionKind.SHOW_MESSAGE:
                messages.append(
                    RuleMessage(
                        rule_id=rule.id,
                        target_id=action.target_id,
                        message=action.message,
                    )
                )
            else:
                raise ValueError(f"Unhandled rule action kind: {kind}")

        return EffectSet(
            hidden_field_ids=frozenset(t for t, shown in visibility.items() if not shown),
            required_field_ids=frozenset(required),
            disabled_field_ids=frozenset(disabled),
            messages_to_show=tuple(messages),
            fired_rule_ids=tuple(fired),
            iterations=iteration,
        )


def evaluate(
    rules: Sequence[ConditionalRule],
    answers: Mapping[str, Any],
    max_iterations: Optional[int] = None,
) -> EffectSet:
    """Module-level convenience wrapper around ``ConditionalEvaluator``."""
    evaluator = ConditionalEvaluator(max_iterations or DEFAULT_MAX_ITERATIONS)
    return evaluator.evaluate(rules, answers)
