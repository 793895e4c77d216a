"""
Job Queue Interfaces.

Defines the protocol for the queue that carries async evaluation jobs from
the orchestrator to workers.

Version: 1.0.0
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from ..enum import JobState
from ..spec.job_models import EvaluationJob


@runtime_checkable
class IJobQueue(Protocol):
    """
    Protocol for the evaluation job queue.

    Key Requirements:
    - Priority-based ordering (higher priority first, then FIFO)
    - At-least-once delivery; consumers must be idempotent
    - O(1) has_pending_sync()
    """

    async def enqueue(self, job: EvaluationJob) -> str:
        """
        Add a job to the queue.

        Args:
            job: Job to enqueue

        Returns:
            Job ID

        Raises:
            AsyncJobInfraError: If the queue cannot accept the job
        """
        ...

    async def dequeue(self) -> Optional[EvaluationJob]:
        """
        Remove and return the highest priority pending job.

        Returns:
            Job or None if the queue is empty
        """
        ...

    async def peek(self) -> Optional[EvaluationJob]:
        """Return the highest priority pending job without removing it."""
        ...

    async def get_by_id(self, job_id: str) -> Optional[EvaluationJob]:
        """Get a job by ID."""
        ...

    async def update(self, job: EvaluationJob) -> None:
        """Update an existing job (state, attempts, last_error)."""
        ...

    async def remove(self, job_id: str) -> bool:
        """Remove a job by ID."""
        ...

    def has_pending_sync(self) -> bool:
        """Synchronous O(1) check for pending jobs."""
        ...

    async def has_pending(self) -> bool:
        """Check if there are pending jobs."""
        ...

    async def get_pending_count(self) -> int:
        """Get count of pending jobs."""
        ...

    async def get_all_pending(self) -> List[EvaluationJob]:
        """Get all pending jobs in priority order."""
        ...

    async def get_by_state(self, state: JobState) -> List[EvaluationJob]:
        """Get every job currently in the given state."""
        ...

    async def clear(self) -> None:
        """Clear all jobs."""
        ...
