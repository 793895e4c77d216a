"""
In-Memory Evaluation Store.

Process-local store for development and testing. Evaluations live only in
the base class index.
"""

from typing import List

from ..spec.evaluation_models import Evaluation
from .base_evaluation_store import BaseEvaluationStore


class InMemoryEvaluationStore(BaseEvaluationStore):
    """
    In-memory evaluation store.

    Usage:
        store = InMemoryEvaluationStore()
        inserted = await store.insert_unique(evaluation)
        evaluations = await store.list_for_response(response_id)
    """

    async def _persist_evaluation(self, evaluation: Evaluation) -> bool:
        return True

    async def _load_evaluations(self, response_id: str) -> List[Evaluation]:
        return []

    async def _delete_persisted(self, response_id: str) -> None:
        pass

    async def _clear_persisted(self) -> None:
        pass
