"""
Score Aggregator.

Combines a response's evaluations into one overall score on the 0-100
scale. All strategies work on normalized scores.

Strategies:
- simple_average: mean of normalized scores
- weighted_average: sum(score * weight) / sum(weight) over the evaluations
  present, so weights are renormalized when some evaluators did not run
- minimum: lowest normalized score
- custom: a rule registered for the owner's category; falls back to
  weighted_average when no rule exists or the rule raises

Aggregation never raises and never returns NaN or infinity.
"""

import logging
import math
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from ..constants import DEFAULT_PASSING_THRESHOLD, DEFAULT_WEIGHT
from ..enum import AggregationStrategy
from ..spec.config_models import EvaluatorConfig
from ..spec.evaluation_models import Evaluation
from ..spec.report_models import AggregateScore, EvaluationBreakdownItem
from .evaluator_registry import EvaluatorRegistry

logger = logging.getLogger(__name__)


CustomRule = Callable[[List[Evaluation], Dict[str, float]], float]


def _finite(value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


class ScoreAggregator:
    """
    Overall-score calculator.

    Custom rules are held in a class-level table keyed by category:

        ScoreAggregator.register_custom_rule(
            "support", lambda evaluations, weights: min(e.normalized_score for e in evaluations)
        )
    """

    _custom_rules: Dict[str, CustomRule] = {}

    # =========================================================================
    # Custom rules
    # =========================================================================

    @classmethod
    def register_custom_rule(cls, category: str, rule: CustomRule) -> None:
        cls._custom_rules[category] = rule
        logger.info(f"Registered custom aggregation rule for category '{category}'")

    @classmethod
    def unregister_custom_rule(cls, category: str) -> bool:
        return cls._custom_rules.pop(category, None) is not None

    @classmethod
    def clear_custom_rules(cls) -> None:
        cls._custom_rules.clear()

    @classmethod
    def get_custom_rule(cls, category: Optional[str]) -> Optional[CustomRule]:
        if category is None:
            return None
        return cls._custom_rules.get(category)

    # =========================================================================
    # Aggregation
    # =========================================================================

    @classmethod
    def aggregate(
        cls,
        evaluations: Iterable[Evaluation],
        strategy: Union[str, AggregationStrategy] = AggregationStrategy.WEIGHTED_AVERAGE,
        weights: Optional[Dict[str, float]] = None,
        category: Optional[str] = None,
    ) -> AggregateScore:
        """
        Args:
            evaluations: Evaluations of one response
            strategy: Aggregation strategy
            weights: evaluator_id -> weight; an evaluation without one uses
                the weight recorded in its metadata, else 1.0
            category: Owner category, used to look up custom rules

        Returns:
            AggregateScore (score 0 when there is nothing to aggregate)
        """
        evaluations = list(evaluations)
        strategy = AggregationStrategy(strategy)

        if strategy == AggregationStrategy.SIMPLE_AVERAGE:
            return AggregateScore(
                strategy=strategy,
                score=cls.simple_average(evaluations),
                evaluation_count=len(evaluations),
            )

        if strategy == AggregationStrategy.MINIMUM:
            return AggregateScore(
                strategy=strategy,
                score=cls.minimum(evaluations),
                evaluation_count=len(evaluations),
            )

        weights_used = cls.resolve_weights(evaluations, weights)

        if strategy == AggregationStrategy.CUSTOM:
            rule = cls.get_custom_rule(category)
            if rule is None:
                logger.debug(f"No custom aggregation rule for category {category!r}; using weighted average")
            else:
                try:
                    score = rule(evaluations, weights_used)
                except Exception as e:
                    logger.warning(f"Custom aggregation rule for '{category}' failed ({e}); using weighted average")
                else:
                    return AggregateScore(
                        strategy=strategy,
                        score=_finite(score),
                        evaluation_count=len(evaluations),
                        weights_used=weights_used,
                        custom_rule=category,
                    )
            return AggregateScore(
                strategy=AggregationStrategy.WEIGHTED_AVERAGE,
                score=cls.weighted_average(evaluations, weights_used),
                evaluation_count=len(evaluations),
                weights_used=weights_used,
            )

        return AggregateScore(
            strategy=strategy,
            score=cls.weighted_average(evaluations, weights_used),
            evaluation_count=len(evaluations),
            weights_used=weights_used,
        )

    @staticmethod
    def resolve_weights(
        evaluations: Sequence[Evaluation],
        weights: Optional[Dict[str, float]] = None,
    ) -> Dict[str, float]:
        weights = weights or {}
        resolved: Dict[str, float] = {}
        for evaluation in evaluations:
            weight = weights.get(evaluation.evaluator_id)
            if weight is None:
                weight = evaluation.metadata.get("weight", DEFAULT_WEIGHT)
            resolved[evaluation.evaluator_id] = _finite(weight)
        return resolved

    @staticmethod
    def simple_average(evaluations: Sequence[Evaluation]) -> float:
        if not evaluations:
            return 0.0
        return _finite(sum(e.normalized_score for e in evaluations) / len(evaluations))

    @staticmethod
    def weighted_average(evaluations: Sequence[Evaluation], weights: Dict[str, float]) -> float:
        if not evaluations:
            return 0.0
        total_weight = sum(weights.get(e.evaluator_id, DEFAULT_WEIGHT) for e in evaluations)
        if total_weight <= 0:
            return 0.0
        weighted = sum(
            e.normalized_score * weights.get(e.evaluator_id, DEFAULT_WEIGHT)
            for e in evaluations
        )
        return _finite(weighted / total_weight)

    @staticmethod
    def minimum(evaluations: Sequence[Evaluation]) -> float:
        if not evaluations:
            return 0.0
        return _finite(min(e.normalized_score for e in evaluations))

    @staticmethod
    def weights_from_configs(configs: Iterable[EvaluatorConfig]) -> Dict[str, float]:
        """evaluator_key -> weight."""
        return {c.evaluator_key: c.weight for c in configs}


# =============================================================================
# Reporting helpers
# =============================================================================

def _evaluator_name(evaluator_id: str) -> str:
    registration = EvaluatorRegistry.get(evaluator_id)
    if registration is not None:
        return registration.name
    return evaluator_id.replace("_", " ").title()


def evaluation_breakdown(evaluations: Iterable[Evaluation]) -> List[EvaluationBreakdownItem]:
    """One row per evaluation, oldest first."""
    return [
        EvaluationBreakdownItem(
            evaluation_id=e.id,
            evaluator_id=e.evaluator_id,
            evaluator_name=_evaluator_name(e.evaluator_id),
            evaluator_type=e.evaluator_type,
            score=e.score,
            score_max=e.score_max,
            normalized_score=e.normalized_score,
            passed=e.passed,
            feedback=e.feedback,
            created_at=e.created_at,
        )
        for e in sorted(evaluations, key=lambda e: e.created_at)
    ]


def weakest_evaluation(evaluations: Iterable[Evaluation]) -> Optional[Evaluation]:
    evaluations = list(evaluations)
    if not evaluations:
        return None
    return min(evaluations, key=lambda e: e.normalized_score)


def strongest_evaluation(evaluations: Iterable[Evaluation]) -> Optional[Evaluation]:
    evaluations = list(evaluations)
    if not evaluations:
        return None
    return max(evaluations, key=lambda e: e.normalized_score)


def average_evaluation_score(evaluations: Iterable[Evaluation]) -> float:
    return ScoreAggregator.simple_average(list(evaluations))


def passes_all_evaluations(
    evaluations: Iterable[Evaluation],
    threshold: float = DEFAULT_PASSING_THRESHOLD,
) -> bool:
    """True when there is at least one evaluation and all reach threshold."""
    evaluations = list(evaluations)
    return bool(evaluations) and all(e.passing(threshold) for e in evaluations)
