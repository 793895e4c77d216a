"""
Evalflow Data Models.
"""

from .config_models import (
    ConfigOwner,
    EvaluatorConfig,
    TestOwner,
    VersionOwner,
)
from .evaluation_models import (
    Evaluation,
    EvaluatorResult,
    LlmResponse,
    normalize_score,
)
from .job_models import EvaluationJob
from .report_models import (
    AggregateScore,
    EvaluationBreakdownItem,
    OrchestrationResult,
    TestRunReport,
)

__all__ = [
    "ConfigOwner",
    "EvaluatorConfig",
    "TestOwner",
    "VersionOwner",
    "Evaluation",
    "EvaluatorResult",
    "LlmResponse",
    "normalize_score",
    "EvaluationJob",
    "AggregateScore",
    "EvaluationBreakdownItem",
    "OrchestrationResult",
    "TestRunReport",
]
