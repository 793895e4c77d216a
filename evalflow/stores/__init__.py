"""
Evalflow stores: evaluations, responses and evaluator configs.
"""

from .base_evaluation_store import BaseEvaluationStore
from .memory_store import InMemoryEvaluationStore
from .dynamo_store import DynamoDBEvaluationStore
from .factory import (
    configure_evaluation_store,
    create_evaluation_store,
    get_evaluation_store,
    reset_evaluation_store,
)
from .response_store import InMemoryResponseStore
from .config_repository import CopyResult, EvaluatorConfigRepository

__all__ = [
    "BaseEvaluationStore",
    "InMemoryEvaluationStore",
    "DynamoDBEvaluationStore",
    "create_evaluation_store",
    "get_evaluation_store",
    "configure_evaluation_store",
    "reset_evaluation_store",
    "InMemoryResponseStore",
    "EvaluatorConfigRepository",
    "CopyResult",
]
