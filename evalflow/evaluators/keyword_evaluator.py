"""
Keyword Evaluator.

Checks for required and forbidden keywords. With both lists set, required
coverage counts for 70% of the score and absence of forbidden keywords for
30%; with one list set only that list counts; with neither the score is 100.
"""

from typing import List

from pydantic import BaseModel, Field

from ..constants import EVALUATOR_KEYWORD
from .base_evaluator import BaseEvaluator, round_half_up


REQUIRED_SHARE = 0.7
FORBIDDEN_SHARE = 0.3


class KeywordConfig(BaseModel):
    """Config for the keyword evaluator."""

    model_config = {"extra": "forbid"}

    required_keywords: List[str] = Field(default_factory=list, description="Must be present")
    forbidden_keywords: List[str] = Field(default_factory=list, description="Must be absent")
    case_sensitive: bool = Field(default=False, description="Match case-sensitively")


class KeywordEvaluator(BaseEvaluator[KeywordConfig]):
    """Checks for required and forbidden keywords in the response."""

    evaluator_key = EVALUATOR_KEYWORD

    def _contains(self, keyword: str) -> bool:
        if self.config.case_sensitive:
            return keyword in self.response_text
        return keyword.lower() in self.response_text.lower()

    def missing_required(self) -> List[str]:
        return [k for k in self.config.required_keywords if not self._contains(k)]

    def found_forbidden(self) -> List[str]:
        return [k for k in self.config.forbidden_keywords if self._contains(k)]

    def compute_score(self) -> float:
        required = self.config.required_keywords
        forbidden = self.config.forbidden_keywords
        if not required and not forbidden:
            return 100

        required_score = 0.0
        if required:
            present = len(required) - len(self.missing_required())
            required_score = present / len(required) * 100

        forbidden_penalty = 0.0
        if forbidden:
            forbidden_penalty = len(self.found_forbidden()) / len(forbidden) * 100

        if not required:
            return round_half_up(100 - forbidden_penalty)
        if not forbidden:
            return round_half_up(required_score)
        return round_half_up(required_score * REQUIRED_SHARE + (100 - forbidden_penalty) * FORBIDDEN_SHARE)

    def generate_feedback(self) -> str:
        parts = []
        missing = self.missing_required()
        if missing:
            parts.append(f"Missing required keywords: {', '.join(missing)}")
        found = self.found_forbidden()
        if found:
            parts.append(f"Contains forbidden keywords: {', '.join(found)}")
        if not parts:
            return "All keyword requirements met."
        return ". ".join(parts)

    def is_passed(self, score: float) -> bool:
        return not self.missing_required() and not self.found_forbidden()
