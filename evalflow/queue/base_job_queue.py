"""
Base Job Queue Implementation.

Abstract base class for evaluation job queues.

Version: 1.0.0
"""

from abc import ABC, abstractmethod
import asyncio
import heapq
import itertools
import logging
from typing import Dict, List, Optional, Tuple

from ..constants import DEFAULT_QUEUE_MAX_SIZE, FINISHED_JOB_STATES, PENDING_JOB_STATES
from ..enum import JobState
from ..exceptions import AsyncJobInfraError
from ..spec.job_models import EvaluationJob

logger = logging.getLogger(__name__)


class BaseJobQueue(ABC):
    """
    Abstract base class for job queues.

    Provides priority-based ordering (higher priority first, then FIFO) and
    O(1) pending checks. Jobs are stored as copies, so a caller mutating a
    job it holds must call update() for the queue to see the change.

    A job counts as pending from enqueue until it reaches a finished state
    (completed, skipped or failed); dequeue() moves it to in_progress.

    Extend this class to create durable queues (e.g., SQS or Redis backed):

    Example:
        class RedisJobQueue(BaseJobQueue):
            def __init__(self, redis_client):
                super().__init__()
                self.redis = redis_client

            async def _persist_job(self, job):
                await self.redis.hset("jobs", job.job_id, json.dumps(job.to_dict()))
    """

    def __init__(self, max_size: int = DEFAULT_QUEUE_MAX_SIZE):
        """
        Args:
            max_size: Maximum number of jobs held (finished ones are evicted first)
        """
        self._max_size = max_size
        self._lock = asyncio.Lock()

        self._jobs: Dict[str, EvaluationJob] = {}

        # (-priority, sequence, job_id); sequence keeps FIFO order within a priority
        self._heap: List[Tuple[int, int, str]] = []
        self._sequence = itertools.count()

        self._pending_count = 0

    # =========================================================================
    # Abstract Methods - Must be implemented by subclasses
    # =========================================================================

    @abstractmethod
    async def _persist_job(self, job: EvaluationJob) -> None:
        """Persist a job (for durable queues)."""
        ...

    @abstractmethod
    async def _remove_persisted_job(self, job_id: str) -> None:
        """Remove a persisted job."""
        ...

    @abstractmethod
    async def _load_jobs(self) -> List[EvaluationJob]:
        """Load all persisted jobs (for recovery)."""
        ...

    # =========================================================================
    # IJobQueue Implementation
    # =========================================================================

    async def enqueue(self, job: EvaluationJob) -> str:
        """
        Add a job to the queue.

        Raises:
            AsyncJobInfraError: If the queue is full of unfinished jobs
        """
        async with self._lock:
            if job.job_id not in self._jobs and len(self._jobs) >= self._max_size:
                self._evict_finished()
                if len(self._jobs) >= self._max_size:
                    raise AsyncJobInfraError(
                        f"Job queue is full ({self._max_size} jobs)",
                        details={"job_id": job.job_id, "max_size": self._max_size},
                    )

            previous = self._jobs.get(job.job_id)
            stored = job.model_copy(deep=True)
            self._jobs[job.job_id] = stored
            self._track_transition(previous, stored)

            await self._persist_job(stored)
            logger.debug(f"Queued job {job.job_id} (priority {job.priority})")
            return job.job_id

    async def dequeue(self) -> Optional[EvaluationJob]:
        """Remove the highest priority pending job and mark it in_progress."""
        async with self._lock:
            while self._heap:
                _, _, job_id = heapq.heappop(self._heap)
                job = self._jobs.get(job_id)

                if job and job.state == JobState.PENDING:
                    job.state = JobState.IN_PROGRESS
                    await self._persist_job(job)
                    return job.model_copy(deep=True)

            return None

    async def peek(self) -> Optional[EvaluationJob]:
        """Return highest priority pending job without removing."""
        async with self._lock:
            for _, _, job_id in sorted(self._heap):
                job = self._jobs.get(job_id)
                if job and job.state == JobState.PENDING:
                    return job.model_copy(deep=True)
            return None

    async def get_by_id(self, job_id: str) -> Optional[EvaluationJob]:
        async with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    async def update(self, job: EvaluationJob) -> None:
        """Store a job's new state; a job moved back to pending is requeued."""
        async with self._lock:
            previous = self._jobs.get(job.job_id)
            stored = job.model_copy(deep=True)
            self._jobs[job.job_id] = stored
            self._track_transition(previous, stored)
            await self._persist_job(stored)

    async def remove(self, job_id: str) -> bool:
        async with self._lock:
            return await self._remove_locked(job_id)

    def has_pending_sync(self) -> bool:
        """Synchronous O(1) check for pending jobs."""
        return self._pending_count > 0

    async def has_pending(self) -> bool:
        return self._pending_count > 0

    async def get_pending_count(self) -> int:
        return self._pending_count

    async def get_all_pending(self) -> List[EvaluationJob]:
        """Get all jobs waiting to run, in priority order."""
        async with self._lock:
            return [
                self._jobs[job_id].model_copy(deep=True)
                for _, _, job_id in sorted(self._heap)
                if job_id in self._jobs
                and self._jobs[job_id].state == JobState.PENDING
            ]

    async def get_by_state(self, state: JobState) -> List[EvaluationJob]:
        async with self._lock:
            return [
                job.model_copy(deep=True)
                for job in self._jobs.values()
                if job.state == state
            ]

    async def clear(self) -> None:
        async with self._lock:
            for job_id in list(self._jobs.keys()):
                await self._remove_persisted_job(job_id)

            self._jobs.clear()
            self._heap.clear()
            self._pending_count = 0

    async def recover(self) -> int:
        """
        Reload jobs from persistence. In-progress jobs are reset to pending
        so they are redelivered.

        Returns:
            Number of jobs requeued
        """
        jobs = await self._load_jobs()
        requeued = 0
        async with self._lock:
            for job in jobs:
                if job.state == JobState.IN_PROGRESS:
                    job.state = JobState.PENDING
                previous = self._jobs.get(job.job_id)
                self._jobs[job.job_id] = job
                self._track_transition(previous, job)
                if job.state == JobState.PENDING:
                    requeued += 1
        logger.info(f"Recovered {len(jobs)} jobs ({requeued} requeued)")
        return requeued

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _is_pending_state(self, state: str) -> bool:
        return state in PENDING_JOB_STATES

    def _push(self, job: EvaluationJob) -> None:
        heapq.heappush(
            self._heap,
            (-job.priority, next(self._sequence), job.job_id)
        )

    def _track_transition(self, previous: Optional[EvaluationJob], current: EvaluationJob) -> None:
        """Must hold lock."""
        was_pending = previous is not None and self._is_pending_state(previous.state)
        is_pending = self._is_pending_state(current.state)

        if was_pending and not is_pending:
            self._pending_count = max(0, self._pending_count - 1)
        elif not was_pending and is_pending:
            self._pending_count += 1

        was_waiting = previous is not None and previous.state == JobState.PENDING
        if current.state == JobState.PENDING and not was_waiting:
            self._push(current)

    async def _remove_locked(self, job_id: str) -> bool:
        """Must hold lock."""
        job = self._jobs.pop(job_id, None)
        if job is None:
            return False
        if self._is_pending_state(job.state):
            self._pending_count = max(0, self._pending_count - 1)
        await self._remove_persisted_job(job_id)
        return True

    def _evict_finished(self) -> None:
        """Must hold lock. Drops finished jobs from the in-memory index."""
        finished = [
            job_id for job_id, job in self._jobs.items()
            if job.state in FINISHED_JOB_STATES
        ]
        for job_id in finished:
            del self._jobs[job_id]
        if finished:
            logger.debug(f"Evicted {len(finished)} finished jobs")
