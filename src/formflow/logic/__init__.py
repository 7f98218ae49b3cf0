"""Conditional logic: operators and the fixed-point rule evaluator."""

from formflow.logic.evaluator import ConditionalEvaluator, EffectSet, evaluate

__all__ = ["ConditionalEvaluator", "EffectSet", "evaluate"]
