"""
Exact Match Evaluator.

Scores 100 when the (optionally trimmed and case-folded) response equals the
expected text, 0 otherwise.
"""

from pydantic import BaseModel, Field

from ..constants import EVALUATOR_EXACT_MATCH, FEEDBACK_PREVIEW_CHARS
from .base_evaluator import BaseEvaluator


class ExactMatchConfig(BaseModel):
    """Config for the exact match evaluator."""

    model_config = {"extra": "forbid"}

    expected_text: str = Field(default="", description="Text the response must equal")
    case_sensitive: bool = Field(default=False, description="Compare case-sensitively")
    trim_whitespace: bool = Field(default=True, description="Strip both sides before comparing")


def _preview(text: str) -> str:
    if len(text) > FEEDBACK_PREVIEW_CHARS:
        return f"{text[:FEEDBACK_PREVIEW_CHARS]}..."
    return text


class ExactMatchEvaluator(BaseEvaluator[ExactMatchConfig]):
    """Checks that the response exactly matches the expected text."""

    evaluator_key = EVALUATOR_EXACT_MATCH

    def _normalize(self, text: str) -> str:
        if self.config.trim_whitespace:
            text = text.strip()
        if not self.config.case_sensitive:
            text = text.lower()
        return text

    @property
    def expected(self) -> str:
        return self._normalize(self.config.expected_text)

    @property
    def actual(self) -> str:
        return self._normalize(self.response_text)

    def compute_score(self) -> float:
        return 100 if self.expected == self.actual else 0

    def generate_feedback(self) -> str:
        if self.expected == self.actual:
            return "✓ Response exactly matches expected output"
        return (
            "✗ Response does not match expected output.\n\n"
            f"Expected: \"{_preview(self.expected)}\"\n\n"
            f"Actual: \"{_preview(self.actual)}\""
        )

    def is_passed(self, score: float) -> bool:
        return self.expected == self.actual
