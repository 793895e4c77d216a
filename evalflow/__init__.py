"""
Evalflow - evaluator orchestration and score aggregation for LLM responses.

Usage:
    from evalflow import (
        EvaluationOrchestrator, EvaluatorConfig, EvaluatorConfigRepository,
        LlmResponse, VersionOwner, evaluate_tracked_call,
    )

    repo = EvaluatorConfigRepository()
    owner = VersionOwner(version_id="v1")
    repo.create(EvaluatorConfig(owner=owner, evaluator_key="length", run_mode="sync"))

    orchestrator = EvaluationOrchestrator(config_repository=repo)
    result = await evaluate_tracked_call(response, owner, orchestrator=orchestrator)
"""

__version__ = "0.1.0"

from .enum import (
    AggregationStrategy,
    ConfigOutcome,
    EvaluationContext,
    EvaluatorCategory,
    EvaluatorType,
    JobState,
    RunMode,
    TestRunStatus,
)
from .exceptions import (
    AsyncJobInfraError,
    ConfigNotFoundError,
    ConfigValidationError,
    EvaluationStoreError,
    EvaluatorBuildError,
    EvaluatorExecutionError,
    EvaluatorRegistrationError,
    EvalflowError,
    InvalidConfigError,
    JobTargetNotFoundError,
    JudgeClientError,
    SettingsError,
    UnknownEvaluatorError,
)
from .spec import (
    AggregateScore,
    Evaluation,
    EvaluationJob,
    EvaluatorConfig,
    EvaluatorResult,
    LlmResponse,
    OrchestrationResult,
    TestOwner,
    TestRunReport,
    VersionOwner,
)
from .config import EvalflowSettings, get_settings, load_settings
from .queue import InMemoryJobQueue
from .runtimes import (
    EvaluationOrchestrator,
    EvaluationWorker,
    EvaluatorRegistry,
    ScoreAggregator,
    WorkerPool,
    build_test_run_report,
    evaluate_manual,
    evaluate_test_run,
    evaluate_tracked_call,
    overall_score,
)
from .stores import (
    EvaluatorConfigRepository,
    InMemoryEvaluationStore,
    InMemoryResponseStore,
)
