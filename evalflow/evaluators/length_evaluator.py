"""
Length Evaluator.

Scores 100 when the response length (characters) is within
[min_length, max_length], 0 otherwise.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field, model_validator

from ..constants import EVALUATOR_LENGTH
from .base_evaluator import BaseEvaluator


class LengthConfig(BaseModel):
    """Config for the length evaluator."""

    model_config = {"extra": "forbid"}

    min_length: int = Field(default=10, ge=0, description="Minimum acceptable length")
    max_length: int = Field(default=2000, ge=0, description="Maximum acceptable length")

    @model_validator(mode="after")
    def _check_range(self) -> "LengthConfig":
        if self.min_length > self.max_length:
            raise ValueError("min_length must not exceed max_length")
        return self


class LengthEvaluator(BaseEvaluator[LengthConfig]):
    """Validates response length against a min/max range."""

    evaluator_key = EVALUATOR_LENGTH

    @property
    def length(self) -> int:
        return len(self.response_text)

    def _in_range(self) -> bool:
        return self.config.min_length <= self.length <= self.config.max_length

    def compute_score(self) -> float:
        return 100 if self._in_range() else 0

    def generate_feedback(self) -> str:
        length = self.length
        if length < self.config.min_length:
            return (
                f"Response is too short ({length} chars). "
                f"Minimum: {self.config.min_length} chars."
            )
        if length > self.config.max_length:
            return (
                f"Response is too long ({length} chars). "
                f"Maximum: {self.config.max_length} chars."
            )
        return (
            f"Response length is acceptable ({length} chars). "
            f"Range: {self.config.min_length}-{self.config.max_length} chars."
        )

    def is_passed(self, score: float) -> bool:
        return self._in_range()

    def extra_metadata(self) -> Dict[str, Any]:
        return {"response_length": self.length}
