"""
Evalflow Interfaces.
"""

from .evaluator_interfaces import IEvaluator, IJudgeClient
from .queue_interfaces import IJobQueue
from .store_interfaces import IConfigRepository, IEvaluationStore, IResponseStore

__all__ = [
    "IEvaluator",
    "IJudgeClient",
    "IJobQueue",
    "IConfigRepository",
    "IEvaluationStore",
    "IResponseStore",
]
