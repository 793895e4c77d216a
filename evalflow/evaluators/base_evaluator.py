"""
Base Evaluator.

Base class for rule-based evaluators. An evaluator is built for one response
and one decoded config, and scores that response once.

Subclasses implement:
- compute_score(): the raw score on [score_min, score_max]
- generate_feedback(): text explaining the score

and may override compute_criteria(), is_passed() and extra_metadata().

Example:
    class ShoutingEvaluator(BaseEvaluator):
        evaluator_key = "shouting"

        def compute_score(self):
            return 0 if self.response_text.isupper() else 100

        def generate_feedback(self):
            return "No shouting" if self.compute_score() else "All caps"
"""

import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel

from ..constants import DEFAULT_PASS_SCORE, SCORE_SCALE_MAX, SCORE_SCALE_MIN
from ..enum import EvaluatorType
from ..spec.evaluation_models import EvaluatorResult, LlmResponse, normalize_score


C = TypeVar("C", bound=BaseModel)


class BaseEvaluator(ABC, Generic[C]):
    """
    Abstract base class for evaluators.
    """

    evaluator_key: str = ""
    evaluator_type: EvaluatorType = EvaluatorType.AUTOMATED
    score_min: float = SCORE_SCALE_MIN
    score_max: float = SCORE_SCALE_MAX

    def __init__(self, response: LlmResponse, config: C):
        self.response = response
        self.config = config

    @property
    def response_text(self) -> str:
        return self.response.text

    @property
    def rendered_prompt(self) -> str:
        return self.response.prompt

    # =========================================================================
    # Abstract Methods - Must be implemented by subclasses
    # =========================================================================

    @abstractmethod
    def compute_score(self) -> float:
        """Calculate the raw score."""
        ...

    @abstractmethod
    def generate_feedback(self) -> Optional[str]:
        """Explain the score."""
        ...

    # =========================================================================
    # Overridable hooks
    # =========================================================================

    def compute_criteria(self) -> Dict[str, float]:
        return {}

    def is_passed(self, score: float) -> bool:
        return normalize_score(score, self.score_min, self.score_max) >= DEFAULT_PASS_SCORE

    def extra_metadata(self) -> Dict[str, Any]:
        return {}

    # =========================================================================
    # IEvaluator Implementation
    # =========================================================================

    async def evaluate(self) -> EvaluatorResult:
        score = self.compute_score()
        return EvaluatorResult(
            score=score,
            score_min=self.score_min,
            score_max=self.score_max,
            feedback=self.generate_feedback(),
            criteria_scores=self.compute_criteria(),
            passed=self.is_passed(score),
            metadata={
                "config": self.config.model_dump(mode="json"),
                **self.extra_metadata(),
            },
        )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))
