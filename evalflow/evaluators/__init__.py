"""
Built-in evaluators.
"""

from .base_evaluator import BaseEvaluator, round_half_up
from .exact_match_evaluator import ExactMatchConfig, ExactMatchEvaluator
from .format_evaluator import FormatConfig, FormatEvaluator, JsonSchemaSpec
from .keyword_evaluator import KeywordConfig, KeywordEvaluator
from .length_evaluator import LengthConfig, LengthEvaluator
from .llm_judge_evaluator import CRITERIA_DESCRIPTIONS, LlmJudgeConfig, LlmJudgeEvaluator
from .pattern_match_evaluator import PatternMatchConfig, PatternMatchEvaluator, parse_pattern

__all__ = [
    "BaseEvaluator",
    "round_half_up",
    "LengthConfig",
    "LengthEvaluator",
    "KeywordConfig",
    "KeywordEvaluator",
    "FormatConfig",
    "FormatEvaluator",
    "JsonSchemaSpec",
    "ExactMatchConfig",
    "ExactMatchEvaluator",
    "PatternMatchConfig",
    "PatternMatchEvaluator",
    "parse_pattern",
    "LlmJudgeConfig",
    "LlmJudgeEvaluator",
    "CRITERIA_DESCRIPTIONS",
]
