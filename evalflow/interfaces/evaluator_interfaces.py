"""
Evaluator Interfaces.

Defines the protocol every evaluator plugin implements and the protocol for
the external model used by the LLM judge.

Version: 1.0.0
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ..spec.evaluation_models import EvaluatorResult


@runtime_checkable
class IEvaluator(Protocol):
    """
    Protocol for an evaluator instance.

    Instances are built by the registry from one response and one decoded
    config and are used for a single evaluate() call.
    """

    @property
    def evaluator_key(self) -> str:
        """Registry key this evaluator was built from."""
        ...

    async def evaluate(self) -> EvaluatorResult:
        """
        Score the response.

        Returns:
            EvaluatorResult with score, bounds, feedback and criteria scores

        Raises:
            EvaluatorExecutionError: If scoring fails
        """
        ...


@runtime_checkable
class IJudgeClient(Protocol):
    """
    Protocol for the model an LLM judge delegates to.
    """

    async def judge(
        self,
        model: str,
        prompt: str,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Ask the judge model to grade a response.

        Args:
            model: Judge model name
            prompt: Fully rendered judge prompt
            response_schema: JSON schema the answer must follow

        Returns:
            Parsed structured answer

        Raises:
            JudgeClientError: If the call fails or the answer cannot be parsed
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
