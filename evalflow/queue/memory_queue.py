"""
In-Memory Job Queue.

Non-durable queue for single-process deployments and tests. Jobs are lost
when the process exits.
"""

from typing import List

from .base_job_queue import BaseJobQueue
from ..spec.job_models import EvaluationJob


class InMemoryJobQueue(BaseJobQueue):
    """Job queue held entirely in process memory."""

    async def _persist_job(self, job: EvaluationJob) -> None:
        pass

    async def _remove_persisted_job(self, job_id: str) -> None:
        pass

    async def _load_jobs(self) -> List[EvaluationJob]:
        return []
