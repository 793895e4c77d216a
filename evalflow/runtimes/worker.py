"""
Evaluation Workers.

Workers consume EvaluationJobs from the job queue and execute them through
the orchestrator.

Failure handling:
- A timeout, EvaluatorExecutionError (including judge client errors) or
  EvaluationStoreError is transient: the job is retried with exponential
  backoff until retry.max_attempts, then marked failed. An error whose
  details mark it "transient": False (an auth failure, a malformed request)
  fails the job on the first attempt.
- A build error or a missing response/config fails the job immediately.
- An unmet dependency completes the job as skipped; it is not retried.
- Once a job finishes, the orchestrator may release its staged response.

Usage:
    pool = WorkerPool(orchestrator, concurrency=4)
    await pool.drain()          # process until the queue is empty
    # or
    task = asyncio.create_task(pool.run())
    ...
    pool.stop()
    await task
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional

from ..config.settings import EvalflowSettings
from ..constants import LOG_JOB_FAILED, LOG_JOB_PERMANENT, LOG_JOB_RETRY, LOG_JOB_SKIPPED
from ..enum import ConfigOutcome, JobState
from ..exceptions import (
    EvaluationStoreError,
    EvaluatorExecutionError,
    EvalflowError,
)
from ..interfaces.queue_interfaces import IJobQueue
from ..spec.job_models import EvaluationJob

if TYPE_CHECKING:
    from .orchestrator import EvaluationOrchestrator

logger = logging.getLogger(__name__)


TRANSIENT_ERRORS = (EvaluatorExecutionError, EvaluationStoreError)


@dataclass
class WorkerStats:
    """Counters for processed jobs."""
    processed: int = 0
    completed: int = 0
    skipped: int = 0
    failed: int = 0
    retries: int = 0

    def merge(self, other: "WorkerStats") -> "WorkerStats":
        return WorkerStats(
            processed=self.processed + other.processed,
            completed=self.completed + other.completed,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
            retries=self.retries + other.retries,
        )


class EvaluationWorker:
    """
    Single job consumer.

    Args:
        orchestrator: Executes jobs (execute_job)
        job_queue: Queue to consume; defaults to the orchestrator's queue
        settings: Retry and worker settings; defaults to the orchestrator's
        name: Used in log messages
        sleep: Backoff sleep function (injectable for tests)
    """

    def __init__(
        self,
        orchestrator: "EvaluationOrchestrator",
        job_queue: Optional[IJobQueue] = None,
        settings: Optional[EvalflowSettings] = None,
        name: str = "evaluation-worker",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.orchestrator = orchestrator
        self.job_queue = job_queue if job_queue is not None else orchestrator.job_queue
        self.settings = settings or orchestrator.settings
        self.name = name
        self.stats = WorkerStats()
        self._sleep = sleep
        self._stop_event: Optional[asyncio.Event] = None

    def _get_stop_event(self) -> asyncio.Event:
        if self._stop_event is None:
            self._stop_event = asyncio.Event()
        return self._stop_event

    # =========================================================================
    # Job processing
    # =========================================================================

    async def process(self, job: EvaluationJob) -> JobState:
        """
        Execute one job with retries and record its final state on the queue.

        Returns:
            The job's final state (completed, skipped or failed)
        """
        retry = self.settings.retry
        timeout_s = self.settings.worker.job_timeout_s
        self.stats.processed += 1
        job.state = JobState.IN_PROGRESS

        while True:
            job.attempts += 1
            try:
                outcome = await asyncio.wait_for(
                    self.orchestrator.execute_job(job),
                    timeout=timeout_s,
                )
            except asyncio.TimeoutError:
                error: EvalflowError = EvaluatorExecutionError(
                    f"Job timed out after {timeout_s}s",
                    response_id=job.response_id,
                    details={"job_id": job.job_id, "timeout_s": timeout_s},
                )
            except TRANSIENT_ERRORS as e:
                if e.details.get("transient") is False:
                    logger.warning(LOG_JOB_PERMANENT.format(job_id=job.job_id, error=e))
                    return await self._fail(job, e)
                error = e
            except EvalflowError as e:
                return await self._fail(job, e)
            else:
                return await self._finish(job, outcome)

            if job.attempts >= retry.max_attempts:
                return await self._fail(job, error)

            delay = retry.delay_for(job.attempts)
            logger.warning(LOG_JOB_RETRY.format(
                job_id=job.job_id, attempt=job.attempts, error=error, delay=delay,
            ))
            job.last_error = error.to_dict()
            self.stats.retries += 1
            await self.job_queue.update(job)
            await self._sleep(delay)

    async def _finish(self, job: EvaluationJob, outcome: ConfigOutcome) -> JobState:
        if outcome == ConfigOutcome.SKIPPED_DEPENDENCY:
            job.state = JobState.SKIPPED
            self.stats.skipped += 1
            logger.info(LOG_JOB_SKIPPED.format(job_id=job.job_id, reason="dependency not met"))
        else:
            job.state = JobState.COMPLETED
            self.stats.completed += 1
        job.finished_at = datetime.utcnow()
        await self.job_queue.update(job)
        await self.orchestrator.release_response(job.response_id)
        return job.state

    async def _fail(self, job: EvaluationJob, error: EvalflowError) -> JobState:
        job.state = JobState.FAILED
        job.last_error = error.to_dict()
        job.finished_at = datetime.utcnow()
        self.stats.failed += 1
        logger.error(LOG_JOB_FAILED.format(job_id=job.job_id, attempts=job.attempts, error=error))
        await self.job_queue.update(job)
        await self.orchestrator.release_response(job.response_id)
        return job.state

    async def _process_safely(self, job: EvaluationJob) -> None:
        """process() for the run loops; an unexpected error fails the job."""
        try:
            await self.process(job)
        except Exception as e:
            logger.exception(f"{self.name}: unexpected error processing job {job.job_id}")
            await self._fail(job, EvalflowError(str(e), error_code="UNEXPECTED_ERROR"))

    # =========================================================================
    # Loops
    # =========================================================================

    async def drain(self) -> int:
        """
        Process jobs until the queue has nothing left to hand out.

        Returns:
            Number of jobs processed by this call
        """
        count = 0
        while True:
            job = await self.job_queue.dequeue()
            if job is None:
                return count
            await self._process_safely(job)
            count += 1

    async def run(self) -> None:
        """Consume jobs until stop() is called."""
        stop_event = self._get_stop_event()
        stop_event.clear()
        logger.info(f"{self.name} started")

        while not stop_event.is_set():
            job = await self.job_queue.dequeue()
            if job is None:
                try:
                    await asyncio.wait_for(
                        stop_event.wait(),
                        timeout=self.settings.worker.poll_interval_s,
                    )
                except asyncio.TimeoutError:
                    pass
                continue
            await self._process_safely(job)

        logger.info(f"{self.name} stopped")

    def stop(self) -> None:
        self._get_stop_event().set()


class WorkerPool:
    """
    Several EvaluationWorkers sharing one queue.

    Args:
        orchestrator: Executes jobs
        concurrency: Number of workers; defaults to settings.worker.concurrency
        job_queue: Queue to consume; defaults to the orchestrator's queue
        settings: Defaults to the orchestrator's settings
    """

    def __init__(
        self,
        orchestrator: "EvaluationOrchestrator",
        concurrency: Optional[int] = None,
        job_queue: Optional[IJobQueue] = None,
        settings: Optional[EvalflowSettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        settings = settings or orchestrator.settings
        size = concurrency or settings.worker.concurrency
        self.workers: List[EvaluationWorker] = [
            EvaluationWorker(
                orchestrator,
                job_queue=job_queue,
                settings=settings,
                name=f"evaluation-worker-{i + 1}",
                sleep=sleep,
            )
            for i in range(size)
        ]

    @property
    def stats(self) -> WorkerStats:
        total = WorkerStats()
        for worker in self.workers:
            total = total.merge(worker.stats)
        return total

    async def drain(self) -> int:
        counts = await asyncio.gather(*(w.drain() for w in self.workers))
        return sum(counts)

    async def run(self) -> None:
        await asyncio.gather(*(w.run() for w in self.workers))

    def stop(self) -> None:
        for worker in self.workers:
            worker.stop()
