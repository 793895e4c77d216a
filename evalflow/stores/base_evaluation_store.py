"""
Base Evaluation Store Implementation.

Provides common functionality for evaluation stores including:
- In-memory index keyed by (response_id, evaluator_id)
- Atomic check-and-insert for at-most-once evaluations
- Lazy loading of a response's evaluations from persistence

Version: 1.0.0
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Dict, List, Optional

from ..enum import EvaluationContext
from ..spec.evaluation_models import Evaluation

logger = logging.getLogger(__name__)


class BaseEvaluationStore(ABC):
    """
    Base implementation for evaluation stores.

    Keeps known evaluations in a per-response index guarded by a
    threading.Lock. insert_unique() reserves the (response, evaluator) slot
    in the index before persisting, so two concurrent writers for the same
    pair cannot both succeed; the backend may refuse the write as well
    (for example a conditional put) when another process got there first.

    Stores shared between processes set refresh_on_miss, so a miss or a
    listing goes back to persistence instead of trusting the index, and may
    bound the index with max_cached_responses (least recently used
    responses are dropped from memory, never from persistence).

    Subclasses implement the persistence hooks.

    Example:
        class RedisEvaluationStore(BaseEvaluationStore):
            refresh_on_miss = True

            async def _persist_evaluation(self, evaluation):
                return await self.redis.hsetnx(...)
    """

    refresh_on_miss: bool = False
    max_cached_responses: Optional[int] = None

    def __init__(self):
        # response_id -> evaluator_id -> Evaluation, least recently used first
        self._evaluations: "OrderedDict[str, Dict[str, Evaluation]]" = OrderedDict()

        # Responses whose persisted evaluations were merged into the index
        self._loaded: set = set()

        # Thread safety
        self._lock = threading.Lock()

    # =========================================================================
    # IEvaluationStore Implementation
    # =========================================================================

    async def insert_unique(self, evaluation: Evaluation) -> bool:
        """Insert unless (response_id, evaluator_id) already has an evaluation."""
        await self._ensure_loaded(evaluation.response_id)

        with self._lock:
            by_evaluator = self._bucket(evaluation.response_id)
            if evaluation.evaluator_id in by_evaluator:
                return False
            by_evaluator[evaluation.evaluator_id] = evaluation

        try:
            persisted = await self._persist_evaluation(evaluation)
        except Exception:
            self._release(evaluation)
            raise

        if not persisted:
            self._release(evaluation)
            # Someone else owns the slot; pick up their row
            await self._reload(evaluation.response_id)
            return False

        return True

    async def exists(self, response_id: str, evaluator_id: str) -> bool:
        return await self.get(response_id, evaluator_id) is not None

    async def get(self, response_id: str, evaluator_id: str) -> Optional[Evaluation]:
        await self._ensure_loaded(response_id)
        evaluation = self._lookup(response_id, evaluator_id)
        if evaluation is None and self.refresh_on_miss:
            await self._reload(response_id)
            evaluation = self._lookup(response_id, evaluator_id)
        return evaluation

    async def list_for_response(
        self,
        response_id: str,
        context: Optional[EvaluationContext] = None,
    ) -> List[Evaluation]:
        if self.refresh_on_miss:
            await self._reload(response_id)
        else:
            await self._ensure_loaded(response_id)
        with self._lock:
            evaluations = list(self._evaluations.get(response_id, {}).values())

        if context is not None:
            evaluations = [e for e in evaluations if e.context == context]

        return sorted(evaluations, key=lambda e: e.created_at)

    async def delete_for_response(self, response_id: str) -> int:
        await self._ensure_loaded(response_id)
        with self._lock:
            removed = self._evaluations.pop(response_id, {})
            self._loaded.discard(response_id)

        await self._delete_persisted(response_id)
        return len(removed)

    async def count(self) -> int:
        """Number of evaluations in the index."""
        with self._lock:
            return sum(len(by_evaluator) for by_evaluator in self._evaluations.values())

    async def clear(self) -> None:
        with self._lock:
            self._evaluations.clear()
            self._loaded.clear()

        await self._clear_persisted()

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _bucket(self, response_id: str) -> Dict[str, Evaluation]:
        """A response's index entry, marked most recently used. Caller holds the lock."""
        by_evaluator = self._evaluations.get(response_id)
        if by_evaluator is None:
            by_evaluator = self._evaluations[response_id] = {}
        self._evaluations.move_to_end(response_id)

        limit = self.max_cached_responses
        while limit is not None and len(self._evaluations) > limit:
            evicted, _ = self._evaluations.popitem(last=False)
            self._loaded.discard(evicted)
            logger.debug(f"Evicted response {evicted} from the evaluation index")
        return by_evaluator

    def _lookup(self, response_id: str, evaluator_id: str) -> Optional[Evaluation]:
        with self._lock:
            by_evaluator = self._evaluations.get(response_id)
            if by_evaluator is None:
                return None
            self._evaluations.move_to_end(response_id)
            return by_evaluator.get(evaluator_id)

    def _release(self, evaluation: Evaluation) -> None:
        """Drop a reservation made by insert_unique()."""
        with self._lock:
            by_evaluator = self._evaluations.get(evaluation.response_id, {})
            if by_evaluator.get(evaluation.evaluator_id) is evaluation:
                del by_evaluator[evaluation.evaluator_id]

    async def _ensure_loaded(self, response_id: str) -> None:
        with self._lock:
            if response_id in self._loaded:
                return
        await self._reload(response_id)

    async def _reload(self, response_id: str) -> None:
        persisted = await self._load_evaluations(response_id)
        with self._lock:
            by_evaluator = self._bucket(response_id)
            for evaluation in persisted:
                by_evaluator.setdefault(evaluation.evaluator_id, evaluation)
            self._loaded.add(response_id)

    # =========================================================================
    # Abstract Methods - Must be implemented by subclasses
    # =========================================================================

    @abstractmethod
    async def _persist_evaluation(self, evaluation: Evaluation) -> bool:
        """
        Persist a new evaluation.

        Returns:
            False if the backend already holds one for the same pair
        """
        ...

    @abstractmethod
    async def _load_evaluations(self, response_id: str) -> List[Evaluation]:
        """Load a response's evaluations from persistence."""
        ...

    @abstractmethod
    async def _delete_persisted(self, response_id: str) -> None:
        """Delete a response's evaluations from persistence."""
        ...

    @abstractmethod
    async def _clear_persisted(self) -> None:
        """Clear all persisted data."""
        ...
