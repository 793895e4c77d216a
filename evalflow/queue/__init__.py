"""
Evaluation job queues.
"""

from .base_job_queue import BaseJobQueue
from .memory_queue import InMemoryJobQueue

__all__ = [
    "BaseJobQueue",
    "InMemoryJobQueue",
]
