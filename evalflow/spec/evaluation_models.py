"""
Evaluation Data Models.

Defines the response consumed by evaluators, the raw result an evaluator
returns, and the immutable Evaluation record persisted for each successful
evaluator run.
"""

from datetime import datetime
from typing import Any, Dict, Optional
import uuid

from pydantic import BaseModel, Field, model_validator

from ..constants import (
    DEFAULT_PASSING_THRESHOLD,
    NORMALIZED_SCORE_PRECISION,
    SCORE_SCALE_MAX,
    SCORE_SCALE_MIN,
)
from ..enum import EvaluationContext, EvaluatorType


def normalize_score(score: float, score_min: float, score_max: float) -> float:
    """
    Map a raw score onto the 0-100 scale.

    Returns 0 when the scale is degenerate (score_max == score_min). The
    result is rounded so scores that land on a threshold compare equal to it
    (0.57 on [0, 1] is 57, not 56.99999999999999).
    """
    span = score_max - score_min
    if span == 0:
        return 0.0
    return round((score - score_min) / span * 100, NORMALIZED_SCORE_PRECISION)


class LlmResponse(BaseModel):
    """
    An LLM response produced from a prompt version.

    Produced by the response-creation collaborator; evalflow only reads it.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Response ID"
    )
    prompt_version_id: Optional[str] = Field(
        default=None,
        description="Prompt version that produced this response"
    )
    rendered_prompt: Optional[str] = Field(default=None, description="Prompt sent to the model")
    response_text: Optional[str] = Field(default=None, description="Model output")
    model: Optional[str] = Field(default=None, description="Model name")
    provider: Optional[str] = Field(default=None, description="Provider name")
    is_test_run: bool = Field(
        default=False,
        description="True when produced by a test run rather than a tracked call"
    )
    test_id: Optional[str] = Field(default=None, description="Prompt test that produced it")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional metadata")
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Creation time"
    )

    @property
    def text(self) -> str:
        return self.response_text or ""

    @property
    def prompt(self) -> str:
        return self.rendered_prompt or ""


class EvaluatorResult(BaseModel):
    """
    Raw output of a single evaluator run, on the evaluator's own scale.
    """

    score: float = Field(description="Raw score")
    score_min: float = Field(default=SCORE_SCALE_MIN, description="Lowest possible score")
    score_max: float = Field(default=SCORE_SCALE_MAX, description="Highest possible score")
    feedback: Optional[str] = Field(default=None, description="Human-readable explanation")
    criteria_scores: Dict[str, float] = Field(
        default_factory=dict,
        description="Sub-criterion name -> score"
    )
    passed: Optional[bool] = Field(
        default=None,
        description="Evaluator's own verdict, if it has one"
    )
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Evaluator metadata")

    @model_validator(mode="after")
    def _check_bounds(self) -> "EvaluatorResult":
        if self.score_max <= self.score_min:
            raise ValueError(
                f"score_max ({self.score_max}) must be greater than score_min ({self.score_min})"
            )
        if not self.score_min <= self.score <= self.score_max:
            raise ValueError(
                f"score {self.score} outside [{self.score_min}, {self.score_max}]"
            )
        return self

    @property
    def normalized_score(self) -> float:
        return normalize_score(self.score, self.score_min, self.score_max)


class Evaluation(BaseModel):
    """
    The persisted result of one evaluator run against one response.

    Evaluations are append-only: the model is frozen and stores expose no
    update operation. At most one exists per (response_id, evaluator_id).
    """

    model_config = {"frozen": True}

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Evaluation ID"
    )
    response_id: str = Field(description="Evaluated response")
    evaluator_id: str = Field(description="Evaluator that produced this result")
    evaluator_type: EvaluatorType = Field(
        default=EvaluatorType.AUTOMATED,
        description="automated, llm_judge or human"
    )
    score: float = Field(description="Raw score")
    score_min: float = Field(default=SCORE_SCALE_MIN, description="Lowest possible score")
    score_max: float = Field(default=SCORE_SCALE_MAX, description="Highest possible score")
    feedback: Optional[str] = Field(default=None, description="Explanation")
    criteria_scores: Dict[str, float] = Field(
        default_factory=dict,
        description="Sub-criterion name -> score"
    )
    passed: Optional[bool] = Field(default=None, description="Evaluator verdict")
    context: EvaluationContext = Field(description="tracked_call, test_run or manual")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Dispatch metadata")
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Creation time"
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> "Evaluation":
        if self.score_max < self.score_min:
            raise ValueError("score_max must be >= score_min")
        if not self.score_min <= self.score <= self.score_max:
            raise ValueError(
                f"score {self.score} outside [{self.score_min}, {self.score_max}]"
            )
        return self

    @property
    def normalized_score(self) -> float:
        """Score on the 0-100 scale."""
        return normalize_score(self.score, self.score_min, self.score_max)

    @property
    def config_id(self) -> Optional[str]:
        return self.metadata.get("evaluator_config_id")

    def passing(self, threshold: float = DEFAULT_PASSING_THRESHOLD) -> bool:
        """True when the normalized score reaches threshold."""
        return self.normalized_score >= threshold

    def summary(self) -> str:
        status = "passed" if self.passed else "failed" if self.passed is False else "scored"
        return (
            f"{self.evaluator_id} {status}: {self.score:g}/{self.score_max:g} "
            f"({self.normalized_score:.1f}%)"
        )
