"""
Evaluation Entry Points.

Functions the response-creation code calls explicitly:

- evaluate_tracked_call(): production responses; test-run responses are ignored
- evaluate_test_run(): test-run responses, reported as pass/fail
- evaluate_manual(): on-demand re-evaluation
- overall_score(): aggregate a response's evaluations for an owner

Configs come either from the caller or from the orchestrator's config
repository (the owner's enabled configs).
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional, Union

from ..constants import DEFAULT_PASS_SCORE
from ..enum import ConfigOutcome, EvaluationContext, JobState, RunMode, TestRunStatus
from ..interfaces.queue_interfaces import IJobQueue
from ..interfaces.store_interfaces import IEvaluationStore
from ..spec.config_models import EvaluatorConfig, TestOwner, VersionOwner
from ..spec.evaluation_models import Evaluation, LlmResponse
from ..spec.report_models import AggregateScore, OrchestrationResult, TestRunReport
from ..stores.config_repository import EvaluatorConfigRepository
from .aggregator import ScoreAggregator, evaluation_breakdown
from .orchestrator import EvaluationOrchestrator

logger = logging.getLogger(__name__)


Owner = Union[VersionOwner, TestOwner]

_FAILED_OUTCOMES = (
    ConfigOutcome.BUILD_FAILED,
    ConfigOutcome.EXECUTION_FAILED,
    ConfigOutcome.ENQUEUE_FAILED,
)
_SKIPPED_OUTCOMES = (
    ConfigOutcome.SKIPPED_DEPENDENCY,
    ConfigOutcome.SKIPPED_DUPLICATE,
)


# =============================================================================
# Default orchestrator
# =============================================================================

_orchestrator: Optional[EvaluationOrchestrator] = None
_lock = threading.Lock()


def get_orchestrator() -> EvaluationOrchestrator:
    """Get the global orchestrator (singleton), backed by its own config repository."""
    global _orchestrator
    if _orchestrator is None:
        with _lock:
            if _orchestrator is None:
                _orchestrator = EvaluationOrchestrator(config_repository=EvaluatorConfigRepository())
    return _orchestrator


def configure_orchestrator(orchestrator: EvaluationOrchestrator) -> None:
    global _orchestrator
    with _lock:
        _orchestrator = orchestrator


def reset_orchestrator() -> None:
    global _orchestrator
    with _lock:
        _orchestrator = None


def _resolve_configs(
    owner: Owner,
    configs: Optional[Iterable[EvaluatorConfig]],
    orchestrator: EvaluationOrchestrator,
) -> List[EvaluatorConfig]:
    if configs is not None:
        return [c for c in configs if c.enabled]
    if orchestrator.config_repository is None:
        raise ValueError("Pass configs or give the orchestrator a config repository")
    return orchestrator.config_repository.list_for_owner(owner, enabled_only=True)


# =============================================================================
# Entry points
# =============================================================================

async def evaluate_tracked_call(
    response: LlmResponse,
    owner: VersionOwner,
    configs: Optional[Iterable[EvaluatorConfig]] = None,
    orchestrator: Optional[EvaluationOrchestrator] = None,
) -> Optional[OrchestrationResult]:
    """
    Evaluate a production response with its version's evaluators.

    Returns:
        The orchestration result, or None for test-run responses
    """
    if response.is_test_run:
        logger.debug(f"Response {response.id} is a test run; skipping tracked-call evaluation")
        return None

    orchestrator = orchestrator or get_orchestrator()
    resolved = _resolve_configs(owner, configs, orchestrator)
    return await orchestrator.evaluate(resolved, response, EvaluationContext.TRACKED_CALL)


async def evaluate_manual(
    response: LlmResponse,
    owner: Owner,
    configs: Optional[Iterable[EvaluatorConfig]] = None,
    orchestrator: Optional[EvaluationOrchestrator] = None,
) -> OrchestrationResult:
    orchestrator = orchestrator or get_orchestrator()
    resolved = _resolve_configs(owner, configs, orchestrator)
    return await orchestrator.evaluate(resolved, response, EvaluationContext.MANUAL)


async def evaluate_test_run(
    response: LlmResponse,
    owner: TestOwner,
    configs: Optional[Iterable[EvaluatorConfig]] = None,
    orchestrator: Optional[EvaluationOrchestrator] = None,
) -> TestRunReport:
    """
    Evaluate a test-run response and report pass/fail per evaluator.

    Async evaluators are reported as pending until their jobs finish; call
    build_test_run_report() again afterwards for the final report.
    """
    orchestrator = orchestrator or get_orchestrator()
    resolved = _resolve_configs(owner, configs, orchestrator)
    result = await orchestrator.evaluate(resolved, response, EvaluationContext.TEST_RUN)
    return await build_test_run_report(
        response.id,
        owner,
        resolved,
        orchestrator.store,
        orchestration=result,
        job_queue=orchestrator.job_queue,
    )


def config_passed(config: EvaluatorConfig, evaluation: Evaluation) -> bool:
    """Pass when the normalized score reaches the threshold, else the evaluator's verdict."""
    if config.threshold is not None:
        return evaluation.normalized_score >= config.threshold
    if evaluation.passed is not None:
        return evaluation.passed
    return evaluation.normalized_score >= DEFAULT_PASS_SCORE


async def _job_states(job_queue: Optional[IJobQueue], response_id: str) -> Dict[str, JobState]:
    """config_id -> state of this response's finished jobs."""
    if job_queue is None:
        return {}
    states: Dict[str, JobState] = {}
    for state in (JobState.SKIPPED, JobState.FAILED):
        for job in await job_queue.get_by_state(state):
            if job.response_id == response_id:
                states[job.config_id] = state
    return states


async def build_test_run_report(
    response_id: str,
    owner: TestOwner,
    configs: Iterable[EvaluatorConfig],
    store: IEvaluationStore,
    orchestration: Optional[OrchestrationResult] = None,
    job_queue: Optional[IJobQueue] = None,
) -> TestRunReport:
    """
    Build a test-run report from the evaluations stored for a response.

    Without an orchestration result, a missing evaluation counts as pending
    for async configs and skipped for sync ones, unless the job queue
    records the job as skipped or failed.
    """
    configs = sorted((c for c in configs if c.enabled), key=lambda c: c.sort_key)
    evaluations = {e.evaluator_id: e for e in await store.list_for_response(response_id)}
    job_states = await _job_states(job_queue, response_id)
    outcomes = orchestration.outcomes if orchestration else {}

    results: Dict[str, Optional[bool]] = {}
    passed = failed = skipped = pending = 0
    for config in configs:
        key = config.evaluator_key
        evaluation = evaluations.get(key)
        if evaluation is not None:
            ok = config_passed(config, evaluation)
            results[key] = ok
            if ok:
                passed += 1
            else:
                failed += 1
            continue

        outcome = outcomes.get(key)
        job_state = job_states.get(config.id)
        if outcome in _FAILED_OUTCOMES or job_state == JobState.FAILED:
            results[key] = False
            failed += 1
        elif outcome in _SKIPPED_OUTCOMES or job_state == JobState.SKIPPED:
            results[key] = None
            skipped += 1
        elif outcome == ConfigOutcome.ENQUEUED or (outcome is None and config.run_mode == RunMode.ASYNC):
            results[key] = None
            pending += 1
        else:
            results[key] = None
            skipped += 1

    if failed:
        status = TestRunStatus.FAILED
    elif pending:
        status = TestRunStatus.PENDING
    else:
        status = TestRunStatus.PASSED

    configured = [evaluations[c.evaluator_key] for c in configs if c.evaluator_key in evaluations]
    aggregate = ScoreAggregator.aggregate(
        configured,
        owner.aggregation_strategy,
        weights=ScoreAggregator.weights_from_configs(configs),
        category=owner.category,
    )

    return TestRunReport(
        response_id=response_id,
        status=status,
        passed=status == TestRunStatus.PASSED,
        total_evaluators=len(configs),
        passed_evaluators=passed,
        failed_evaluators=failed,
        skipped_evaluators=skipped,
        pending_evaluators=pending,
        overall_score=aggregate.score,
        results=results,
        breakdown=evaluation_breakdown(configured),
    )


async def overall_score(
    response_id: str,
    owner: Owner,
    configs: Optional[Iterable[EvaluatorConfig]] = None,
    store: Optional[IEvaluationStore] = None,
) -> AggregateScore:
    """
    Aggregate a response's stored evaluations with the owner's strategy.

    When configs are given, only their evaluators count and their weights
    are used.
    """
    store = store if store is not None else get_orchestrator().store
    evaluations = await store.list_for_response(response_id)

    weights = None
    if configs is not None:
        configs = list(configs)
        keys = {c.evaluator_key for c in configs}
        evaluations = [e for e in evaluations if e.evaluator_id in keys]
        weights = ScoreAggregator.weights_from_configs(configs)

    return ScoreAggregator.aggregate(
        evaluations,
        owner.aggregation_strategy,
        weights=weights,
        category=owner.category,
    )
