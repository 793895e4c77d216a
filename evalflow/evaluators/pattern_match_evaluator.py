"""
Pattern Match Evaluator.

Checks the response against regular expressions. A pattern written as
``/body/flags`` is compiled as a regex with flags ``i`` (ignore case),
``m`` (dot matches newline) and ``x`` (verbose); anything else is matched
as a literal string.

Scores 100 when all patterns match (match_all=True) or any pattern matches
(match_all=False), 0 otherwise. An empty pattern list never passes.
"""

import re
from typing import List, Pattern, Tuple

from pydantic import BaseModel, Field, field_validator

from ..constants import EVALUATOR_PATTERN_MATCH
from .base_evaluator import BaseEvaluator


SLASH_PATTERN = re.compile(r"\A/(.*)/([imx]*)\Z", re.DOTALL)

FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.DOTALL,
    "x": re.VERBOSE,
}


def parse_pattern(pattern: str) -> Pattern:
    """
    Compile a ``/body/flags`` or literal pattern.

    Raises:
        ValueError: If the regex body does not compile
    """
    match = SLASH_PATTERN.match(pattern)
    if not match:
        return re.compile(re.escape(pattern))

    body, flag_chars = match.group(1), match.group(2)
    flags = 0
    for char in flag_chars:
        flags |= FLAG_MAP[char]
    try:
        return re.compile(body, flags)
    except re.error as e:
        raise ValueError(f"Invalid pattern {pattern!r}: {e}") from e


class PatternMatchConfig(BaseModel):
    """Config for the pattern match evaluator."""

    model_config = {"extra": "forbid"}

    patterns: List[str] = Field(default_factory=list, description="Patterns to check")
    match_all: bool = Field(default=True, description="All must match (else any)")

    @field_validator("patterns")
    @classmethod
    def _patterns_compile(cls, patterns: List[str]) -> List[str]:
        for pattern in patterns:
            parse_pattern(pattern)
        return patterns


def _plural(count: int) -> str:
    return "s" if count > 1 else ""


class PatternMatchEvaluator(BaseEvaluator[PatternMatchConfig]):
    """Checks the response against regex patterns."""

    evaluator_key = EVALUATOR_PATTERN_MATCH

    def _split(self) -> Tuple[List[str], List[str]]:
        matched, failed = [], []
        for pattern in self.config.patterns:
            if parse_pattern(pattern).search(self.response_text):
                matched.append(pattern)
            else:
                failed.append(pattern)
        return matched, failed

    def _passes(self) -> bool:
        if not self.config.patterns:
            return False
        matched, failed = self._split()
        if self.config.match_all:
            return not failed
        return bool(matched)

    def compute_score(self) -> float:
        return 100 if self._passes() else 0

    def generate_feedback(self) -> str:
        patterns = self.config.patterns
        if not patterns:
            return "⚠ No patterns configured"

        matched, failed = self._split()
        if not failed:
            return f"✓ All {len(patterns)} pattern{_plural(len(patterns))} matched successfully"
        if self.config.match_all:
            return (
                f"✗ Failed to match {len(failed)} pattern{_plural(len(failed))}: "
                f"{', '.join(failed)}"
            )
        if matched:
            return f"✓ Matched {len(matched)} of {len(patterns)} patterns: {', '.join(matched)}"
        return f"✗ No patterns matched. Tried: {', '.join(patterns)}"

    def is_passed(self, score: float) -> bool:
        return self._passes()
