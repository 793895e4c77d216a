"""
Evaluation Orchestrator.

Runs a set of evaluator configs against one response:

1. Enabled configs are split into independent and dependent ones.
2. Independent configs run first, priority descending then evaluator_key.
3. Dependent configs run next in the same order, each only when the
   evaluation of its dependency exists and its normalized score reaches the
   config's minimum dependency score. An async dependent whose dependency
   has not been evaluated yet is still enqueued; its job re-checks the
   dependency at execution time.

Each config is dispatched by run mode: sync configs are executed inline,
async configs are enqueued as EvaluationJobs and executed later by
workers through execute_job(). A failing config never stops the others.

Usage:
    orchestrator = EvaluationOrchestrator(store=store, config_repository=repo)
    result = await orchestrator.evaluate(configs, response, EvaluationContext.TRACKED_CALL)
"""

import logging
from typing import Dict, Iterable, Optional, Tuple, Type, Union

from pydantic import ValidationError

from ..config.settings import EvalflowSettings, get_settings
from ..constants import (
    ERROR_CONFIG_NOT_FOUND,
    ERROR_EVALUATOR_FAILED,
    ERROR_RESPONSE_NOT_FOUND,
    LOG_DEPENDENCY_READ_FAILED,
    LOG_DEPENDENCY_SKIPPED,
    LOG_DUPLICATE_SKIPPED,
    LOG_EVALUATION_CREATED,
    LOG_ORCHESTRATION_STARTED,
    LOG_RESPONSE_RELEASED,
)
from ..enum import ConfigOutcome, EvaluationContext, JobState, RunMode
from ..exceptions import (
    EvaluationStoreError,
    EvaluatorBuildError,
    EvaluatorExecutionError,
    EvalflowError,
    JobTargetNotFoundError,
)
from ..interfaces.queue_interfaces import IJobQueue
from ..interfaces.store_interfaces import IConfigRepository, IEvaluationStore, IResponseStore
from ..queue.memory_queue import InMemoryJobQueue
from ..spec.config_models import EvaluatorConfig
from ..spec.evaluation_models import Evaluation, LlmResponse
from ..spec.job_models import EvaluationJob
from ..spec.report_models import OrchestrationResult
from ..stores.factory import get_evaluation_store
from ..stores.response_store import InMemoryResponseStore
from .evaluator_registry import EvaluatorRegistry
from .executors import AsyncExecutor, SyncExecutor

logger = logging.getLogger(__name__)


class EvaluationOrchestrator:
    """
    Dependency-ordered, mode-aware evaluator runner.

    Collaborators default to in-process implementations: the global
    evaluation store, an in-memory response store and an in-memory job
    queue. Workers resolve a job's config through the config repository,
    or, without one, through the snapshot taken when the job was enqueued.

    Responses are staged in the response store for async jobs. With
    release_responses (the default for the in-memory store) a response is
    deleted from it once its last job finishes.
    """

    def __init__(
        self,
        store: Optional[IEvaluationStore] = None,
        response_store: Optional[IResponseStore] = None,
        config_repository: Optional[IConfigRepository] = None,
        job_queue: Optional[IJobQueue] = None,
        settings: Optional[EvalflowSettings] = None,
        registry: Type[EvaluatorRegistry] = EvaluatorRegistry,
        release_responses: Optional[bool] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store if store is not None else get_evaluation_store()
        self.response_store = response_store if response_store is not None else InMemoryResponseStore()
        if release_responses is None:
            release_responses = isinstance(self.response_store, InMemoryResponseStore)
        self.release_responses = release_responses
        self.config_repository = config_repository
        if job_queue is None:
            job_queue = InMemoryJobQueue(max_size=self.settings.worker.queue_max_size)
        self.job_queue = job_queue
        self.registry = registry

        # config_id -> config as it was when its job was enqueued
        self._config_snapshots: Dict[str, EvaluatorConfig] = {}

        self.sync_executor = SyncExecutor(self)
        self.async_executor = AsyncExecutor(self, self.job_queue, self.settings.retry)

    # =========================================================================
    # Orchestration
    # =========================================================================

    async def evaluate(
        self,
        configs: Iterable[EvaluatorConfig],
        response: LlmResponse,
        context: Union[EvaluationContext, str],
    ) -> OrchestrationResult:
        """
        Run every enabled config against the response.

        Never raises for a single config's failure; the outcome of each
        config is recorded on the returned result.
        """
        context = EvaluationContext(context)
        enabled = [c for c in configs if c.enabled]
        independent = sorted((c for c in enabled if c.is_independent), key=lambda c: c.sort_key)
        dependent = sorted((c for c in enabled if not c.is_independent), key=lambda c: c.sort_key)

        result = OrchestrationResult(response_id=response.id, context=context)
        logger.info(LOG_ORCHESTRATION_STARTED.format(
            response_id=response.id, context=context.value, count=len(enabled),
        ))

        for config in independent:
            await self._dispatch(config, response, context, result)

        for config in dependent:
            try:
                if config.run_mode == RunMode.ASYNC and not await self.store.exists(response.id, config.depends_on):
                    # The dependency may still be queued; the job re-checks it when it runs
                    await self._dispatch(config, response, context, result)
                    continue
                met, reason = await self.check_dependency(config, response.id)
            except EvaluationStoreError as e:
                logger.warning(LOG_DEPENDENCY_READ_FAILED.format(
                    key=config.evaluator_key, response_id=response.id, error=e,
                ))
                result.record(config.evaluator_key, ConfigOutcome.EXECUTION_FAILED)
                continue

            if not met:
                logger.info(LOG_DEPENDENCY_SKIPPED.format(
                    key=config.evaluator_key, response_id=response.id, reason=reason,
                ))
                result.record(config.evaluator_key, ConfigOutcome.SKIPPED_DEPENDENCY)
                continue
            await self._dispatch(config, response, context, result)

        return result

    async def _dispatch(
        self,
        config: EvaluatorConfig,
        response: LlmResponse,
        context: EvaluationContext,
        result: OrchestrationResult,
    ) -> None:
        if config.run_mode == RunMode.SYNC:
            outcome, evaluation = await self.sync_executor.dispatch(config, response, context)
            if evaluation is not None:
                result.evaluations.append(evaluation)
        else:
            outcome = await self.async_executor.dispatch(
                config, response, context, check_dependency=not config.is_independent,
            )
        result.record(config.evaluator_key, outcome)

    # =========================================================================
    # Job staging
    # =========================================================================

    async def stage_job(self, config: EvaluatorConfig, response: LlmResponse) -> None:
        """Keep what a worker needs to run a config's job later."""
        self._config_snapshots[config.id] = config.model_copy(deep=True)
        await self.response_store.save_response(response)

    def resolve_job_config(self, config_id: str) -> Optional[EvaluatorConfig]:
        """The repository's current config; without a repository, the one staged at enqueue time."""
        if self.config_repository is not None:
            return self.config_repository.get(config_id)
        return self._config_snapshots.get(config_id)

    async def release_response(self, response_id: str) -> bool:
        """
        Drop a staged response once none of its jobs are waiting or running.

        Returns:
            True if the response was released
        """
        if not self.release_responses:
            return False
        for state in (JobState.PENDING, JobState.IN_PROGRESS):
            if any(job.response_id == response_id for job in await self.job_queue.get_by_state(state)):
                return False
        released = await self.response_store.delete_response(response_id)
        if released:
            logger.debug(LOG_RESPONSE_RELEASED.format(response_id=response_id))
        return released

    # =========================================================================
    # Dependency gate
    # =========================================================================

    def min_dependency_score(self, config: EvaluatorConfig) -> float:
        if config.min_dependency_score is None:
            return self.settings.default_min_dependency_score
        return config.min_dependency_score

    async def check_dependency(self, config: EvaluatorConfig, response_id: str) -> Tuple[bool, str]:
        """
        Returns:
            (met, reason) where reason explains an unmet dependency
        """
        if config.is_independent:
            return True, ""

        dependency = await self.store.get(response_id, config.depends_on)
        if dependency is None:
            return False, f"dependency '{config.depends_on}' has not been evaluated"

        required = self.min_dependency_score(config)
        if dependency.normalized_score < required:
            return False, (
                f"dependency '{config.depends_on}' scored "
                f"{dependency.normalized_score:.1f} (< {required})"
            )
        return True, ""

    async def dependency_met(self, config: EvaluatorConfig, response: LlmResponse) -> bool:
        met, _ = await self.check_dependency(config, response.id)
        return met

    # =========================================================================
    # Single-config execution
    # =========================================================================

    async def execute_config(
        self,
        config: EvaluatorConfig,
        response: LlmResponse,
        context: EvaluationContext,
    ) -> Optional[Evaluation]:
        """
        Build and run one evaluator and store its evaluation.

        Returns:
            The new Evaluation, or None when one already existed

        Raises:
            EvaluatorBuildError: If the evaluator cannot be built
            EvaluatorExecutionError: If the evaluator fails
            EvaluationStoreError: If the store cannot be read or written
        """
        key = config.evaluator_key
        if await self.store.exists(response.id, key):
            logger.debug(LOG_DUPLICATE_SKIPPED.format(response_id=response.id, key=key))
            return None

        registration = self.registry.get(key)
        evaluator = self.registry.build(key, response, config.config)

        try:
            evaluator_result = await evaluator.evaluate()
        except (EvaluatorExecutionError, EvaluatorBuildError):
            raise
        except EvalflowError as e:
            raise EvaluatorExecutionError(
                ERROR_EVALUATOR_FAILED.format(key=key, error=e.message),
                evaluator_key=key,
                response_id=response.id,
                details={"cause": e.to_dict()},
            ) from e
        except Exception as e:
            raise EvaluatorExecutionError(
                ERROR_EVALUATOR_FAILED.format(key=key, error=e),
                evaluator_key=key,
                response_id=response.id,
                details={"exception_type": type(e).__name__},
            ) from e

        try:
            evaluation = Evaluation(
                response_id=response.id,
                evaluator_id=key,
                evaluator_type=registration.evaluator_type,
                score=evaluator_result.score,
                score_min=evaluator_result.score_min,
                score_max=evaluator_result.score_max,
                feedback=evaluator_result.feedback,
                criteria_scores=evaluator_result.criteria_scores,
                passed=evaluator_result.passed,
                context=context,
                metadata={**evaluator_result.metadata, **config.dispatch_metadata()},
            )
        except ValidationError as e:
            raise EvaluatorExecutionError(
                ERROR_EVALUATOR_FAILED.format(key=key, error=f"invalid result: {e.errors()}"),
                evaluator_key=key,
                response_id=response.id,
                details={"score": evaluator_result.score},
            ) from e

        if not await self.store.insert_unique(evaluation):
            logger.debug(LOG_DUPLICATE_SKIPPED.format(response_id=response.id, key=key))
            return None

        logger.info(LOG_EVALUATION_CREATED.format(
            key=key, score=evaluation.score, response_id=response.id,
        ))
        return evaluation

    async def execute_job(self, job: EvaluationJob) -> ConfigOutcome:
        """
        Execute a dequeued job.

        Returns:
            EXECUTED, SKIPPED_DUPLICATE or SKIPPED_DEPENDENCY

        Raises:
            JobTargetNotFoundError: If the response or config no longer exists
            EvaluatorBuildError: If the evaluator cannot be built
            EvaluatorExecutionError: If the evaluator fails
        """
        response = await self.response_store.get_response(job.response_id)
        if response is None:
            raise JobTargetNotFoundError(
                ERROR_RESPONSE_NOT_FOUND.format(response_id=job.response_id),
                details={"job_id": job.job_id, "response_id": job.response_id},
            )

        config = self.resolve_job_config(job.config_id)
        if config is None:
            raise JobTargetNotFoundError(
                ERROR_CONFIG_NOT_FOUND.format(config_id=job.config_id),
                details={"job_id": job.job_id, "config_id": job.config_id},
            )

        if job.check_dependency:
            met, reason = await self.check_dependency(config, response.id)
            if not met:
                logger.info(LOG_DEPENDENCY_SKIPPED.format(
                    key=config.evaluator_key, response_id=response.id, reason=reason,
                ))
                return ConfigOutcome.SKIPPED_DEPENDENCY

        evaluation = await self.execute_config(config, response, job.context)
        if evaluation is None:
            return ConfigOutcome.SKIPPED_DUPLICATE
        return ConfigOutcome.EXECUTED
