"""
Storage Interfaces.

Defines protocols for the evaluation store, the response lookup used by
workers, and the evaluator config repository.

Version: 1.0.0
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from ..enum import EvaluationContext
from ..spec.config_models import EvaluatorConfig
from ..spec.evaluation_models import Evaluation, LlmResponse


@runtime_checkable
class IEvaluationStore(Protocol):
    """
    Protocol for append-only evaluation storage.

    Key Requirements:
    - insert_unique() is an atomic check-and-insert on
      (response_id, evaluator_id)
    - No update operation; removal only by response
    """

    async def insert_unique(self, evaluation: Evaluation) -> bool:
        """
        Insert an evaluation unless one exists for the same pair.

        Args:
            evaluation: Evaluation to insert

        Returns:
            True if inserted, False if a duplicate was skipped
        """
        ...

    async def exists(self, response_id: str, evaluator_id: str) -> bool:
        """Check whether an evaluation exists for the pair."""
        ...

    async def get(self, response_id: str, evaluator_id: str) -> Optional[Evaluation]:
        """Get the evaluation for the pair, if any."""
        ...

    async def list_for_response(
        self,
        response_id: str,
        context: Optional[EvaluationContext] = None,
    ) -> List[Evaluation]:
        """
        List evaluations of a response, oldest first.

        Args:
            response_id: Response ID
            context: Optional context filter

        Returns:
            List of evaluations
        """
        ...

    async def delete_for_response(self, response_id: str) -> int:
        """
        Delete every evaluation of a response (cascade from the response).

        Returns:
            Number of evaluations deleted
        """
        ...

    async def clear(self) -> None:
        """Clear all evaluations."""
        ...


@runtime_checkable
class IResponseStore(Protocol):
    """
    Protocol for looking up responses by ID.

    Responses are staged here while they have async jobs; workers use it
    to resolve the response named in a job descriptor.
    """

    async def get_response(self, response_id: str) -> Optional[LlmResponse]:
        """Get a response by ID."""
        ...

    async def save_response(self, response: LlmResponse) -> None:
        """Save or replace a response."""
        ...

    async def delete_response(self, response_id: str) -> bool:
        """
        Delete a response.

        Returns:
            True if the response existed
        """
        ...


@runtime_checkable
class IConfigRepository(Protocol):
    """
    Protocol for evaluator config lookup.
    """

    def get(self, config_id: str) -> Optional[EvaluatorConfig]:
        """Get a config by ID."""
        ...

    def list_for_owner(self, owner, enabled_only: bool = False) -> List[EvaluatorConfig]:
        """List an owner's configs."""
        ...
