"""
Report Models.

Results returned by orchestration runs, score aggregation and test-run
reporting.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..enum import (
    AggregationStrategy,
    ConfigOutcome,
    EvaluationContext,
    EvaluatorType,
    TestRunStatus,
)
from .evaluation_models import Evaluation


_FAILED_OUTCOMES = (
    ConfigOutcome.BUILD_FAILED,
    ConfigOutcome.EXECUTION_FAILED,
    ConfigOutcome.ENQUEUE_FAILED,
)


class OrchestrationResult(BaseModel):
    """Per-config outcomes of one orchestration run."""

    response_id: str = Field(description="Evaluated response")
    context: EvaluationContext = Field(description="Evaluation context")
    outcomes: Dict[str, ConfigOutcome] = Field(
        default_factory=dict,
        description="evaluator_key -> outcome"
    )
    evaluations: List[Evaluation] = Field(
        default_factory=list,
        description="Evaluations created inline during this run"
    )
    execution_order: List[str] = Field(
        default_factory=list,
        description="evaluator_keys in the order they were considered"
    )

    def record(self, evaluator_key: str, outcome: ConfigOutcome) -> None:
        self.outcomes[evaluator_key] = outcome
        self.execution_order.append(evaluator_key)

    def keys_with(self, *outcomes: ConfigOutcome) -> List[str]:
        return [key for key in self.execution_order if self.outcomes.get(key) in outcomes]

    @property
    def executed_keys(self) -> List[str]:
        return self.keys_with(ConfigOutcome.EXECUTED)

    @property
    def enqueued_keys(self) -> List[str]:
        return self.keys_with(ConfigOutcome.ENQUEUED)

    @property
    def skipped_keys(self) -> List[str]:
        return self.keys_with(ConfigOutcome.SKIPPED_DEPENDENCY, ConfigOutcome.SKIPPED_DUPLICATE)

    @property
    def failed_keys(self) -> List[str]:
        return self.keys_with(*_FAILED_OUTCOMES)


class AggregateScore(BaseModel):
    """Overall score for a response."""

    strategy: AggregationStrategy = Field(description="Strategy actually applied")
    score: float = Field(default=0.0, description="Aggregate on the 0-100 scale")
    evaluation_count: int = Field(default=0, description="Evaluations aggregated")
    weights_used: Dict[str, float] = Field(
        default_factory=dict,
        description="evaluator_id -> weight (weighted strategies only)"
    )
    custom_rule: Optional[str] = Field(
        default=None,
        description="Category whose custom rule produced the score"
    )


class EvaluationBreakdownItem(BaseModel):
    """One row of an evaluation breakdown."""

    evaluation_id: str
    evaluator_id: str
    evaluator_name: str
    evaluator_type: EvaluatorType
    score: float
    score_max: float
    normalized_score: float
    passed: Optional[bool] = None
    feedback: Optional[str] = None
    created_at: datetime


class TestRunReport(BaseModel):
    """
    Pass/fail summary for a response produced by a test run.

    A config passes when its evaluation's normalized score reaches the
    config threshold, or, without a threshold, when the evaluator itself
    reported a pass.
    """

    __test__ = False

    response_id: str = Field(description="Evaluated response")
    status: TestRunStatus = Field(description="passed, failed or pending")
    passed: bool = Field(description="True only when status is passed")
    total_evaluators: int = Field(default=0)
    passed_evaluators: int = Field(default=0)
    failed_evaluators: int = Field(default=0)
    skipped_evaluators: int = Field(default=0)
    pending_evaluators: int = Field(default=0)
    overall_score: float = Field(default=0.0, description="Aggregate on the 0-100 scale")
    results: Dict[str, Optional[bool]] = Field(
        default_factory=dict,
        description="evaluator_key -> pass (None when skipped or pending)"
    )
    breakdown: List[EvaluationBreakdownItem] = Field(default_factory=list)
