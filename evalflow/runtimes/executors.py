"""
Execution Mode Executors.

SyncExecutor runs a config inline on the calling coroutine. AsyncExecutor
turns it into an EvaluationJob for the job queue. Both map failures to a
ConfigOutcome instead of raising, so one config never stops the others.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional, Tuple

from ..config.settings import RetrySettings
from ..constants import (
    ERROR_ENQUEUE_FAILED,
    LOG_BUILD_FAILED,
    LOG_EXECUTION_FAILED,
    LOG_JOB_ENQUEUED,
)
from ..enum import ConfigOutcome, EvaluationContext
from ..exceptions import (
    AsyncJobInfraError,
    EvaluationStoreError,
    EvaluatorBuildError,
    EvaluatorExecutionError,
)
from ..interfaces.queue_interfaces import IJobQueue
from ..spec.config_models import EvaluatorConfig
from ..spec.evaluation_models import Evaluation, LlmResponse
from ..spec.job_models import EvaluationJob

if TYPE_CHECKING:
    from .orchestrator import EvaluationOrchestrator

logger = logging.getLogger(__name__)


class SyncExecutor:
    """Runs configs inline."""

    def __init__(self, orchestrator: "EvaluationOrchestrator"):
        self.orchestrator = orchestrator

    async def dispatch(
        self,
        config: EvaluatorConfig,
        response: LlmResponse,
        context: EvaluationContext,
    ) -> Tuple[ConfigOutcome, Optional[Evaluation]]:
        try:
            evaluation = await self.orchestrator.execute_config(config, response, context)
        except EvaluatorBuildError as e:
            logger.warning(LOG_BUILD_FAILED.format(
                key=config.evaluator_key, response_id=response.id, error=e,
            ))
            return ConfigOutcome.BUILD_FAILED, None
        except (EvaluatorExecutionError, EvaluationStoreError) as e:
            logger.warning(LOG_EXECUTION_FAILED.format(
                key=config.evaluator_key, response_id=response.id, error=e,
            ))
            return ConfigOutcome.EXECUTION_FAILED, None
        except Exception as e:
            logger.exception(LOG_EXECUTION_FAILED.format(
                key=config.evaluator_key, response_id=response.id, error=e,
            ))
            return ConfigOutcome.EXECUTION_FAILED, None

        if evaluation is None:
            return ConfigOutcome.SKIPPED_DUPLICATE, None
        return ConfigOutcome.EXECUTED, evaluation


class AsyncExecutor:
    """
    Enqueues configs as jobs.

    The config is decoded before enqueueing so a malformed config is reported
    as build_failed right away rather than failing on a worker. Enqueue
    errors are retried with exponential backoff.
    """

    def __init__(
        self,
        orchestrator: "EvaluationOrchestrator",
        job_queue: IJobQueue,
        retry: RetrySettings,
    ):
        self.orchestrator = orchestrator
        self.job_queue = job_queue
        self.retry = retry

    async def dispatch(
        self,
        config: EvaluatorConfig,
        response: LlmResponse,
        context: EvaluationContext,
        check_dependency: bool = False,
    ) -> ConfigOutcome:
        try:
            self.orchestrator.registry.decode_config(config.evaluator_key, config.config)
        except EvaluatorBuildError as e:
            logger.warning(LOG_BUILD_FAILED.format(
                key=config.evaluator_key, response_id=response.id, error=e,
            ))
            return ConfigOutcome.BUILD_FAILED

        job = EvaluationJob(
            response_id=response.id,
            config_id=config.id,
            context=context,
            check_dependency=check_dependency,
            priority=config.priority,
        )

        try:
            await self.orchestrator.stage_job(config, response)
            await self._enqueue_with_retry(job)
        except AsyncJobInfraError as e:
            logger.error(ERROR_ENQUEUE_FAILED.format(key=config.evaluator_key, error=e))
            return ConfigOutcome.ENQUEUE_FAILED

        logger.info(LOG_JOB_ENQUEUED.format(
            job_id=job.job_id, key=config.evaluator_key, response_id=response.id,
        ))
        return ConfigOutcome.ENQUEUED

    async def _enqueue_with_retry(self, job: EvaluationJob) -> str:
        """
        Raises:
            AsyncJobInfraError: When every attempt failed
        """
        last_error: Optional[Exception] = None
        for attempt in range(1, self.retry.max_attempts + 1):
            try:
                return await self.job_queue.enqueue(job)
            except (AsyncJobInfraError, ConnectionError, OSError) as e:
                last_error = e
                if attempt < self.retry.max_attempts:
                    delay = self.retry.delay_for(attempt)
                    logger.warning(
                        f"Enqueue of job {job.job_id} failed on attempt {attempt} ({e}); "
                        f"retrying in {delay:.2f}s"
                    )
                    await asyncio.sleep(delay)

        raise AsyncJobInfraError(
            f"Could not enqueue job {job.job_id} after {self.retry.max_attempts} attempts",
            details={"job_id": job.job_id, "job": job.descriptor(), "error": str(last_error)},
        )
