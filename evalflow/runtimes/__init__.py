"""
Evalflow runtimes: registry, validation, orchestration, workers and
aggregation.
"""

from .config_validator import ConfigValidator
from .evaluator_registry import EvaluatorRegistration, EvaluatorRegistry
from .executors import AsyncExecutor, SyncExecutor
from .orchestrator import EvaluationOrchestrator
from .worker import EvaluationWorker, WorkerPool, WorkerStats
from .aggregator import (
    ScoreAggregator,
    average_evaluation_score,
    evaluation_breakdown,
    passes_all_evaluations,
    strongest_evaluation,
    weakest_evaluation,
)
from .entrypoints import (
    build_test_run_report,
    configure_orchestrator,
    evaluate_manual,
    evaluate_test_run,
    evaluate_tracked_call,
    get_orchestrator,
    overall_score,
    reset_orchestrator,
)

__all__ = [
    "ConfigValidator",
    "EvaluatorRegistration",
    "EvaluatorRegistry",
    "SyncExecutor",
    "AsyncExecutor",
    "EvaluationOrchestrator",
    "EvaluationWorker",
    "WorkerPool",
    "WorkerStats",
    "ScoreAggregator",
    "evaluation_breakdown",
    "weakest_evaluation",
    "strongest_evaluation",
    "average_evaluation_score",
    "passes_all_evaluations",
    "evaluate_tracked_call",
    "evaluate_test_run",
    "evaluate_manual",
    "build_test_run_report",
    "overall_score",
    "get_orchestrator",
    "configure_orchestrator",
    "reset_orchestrator",
]
