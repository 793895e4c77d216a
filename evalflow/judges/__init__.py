"""
Judge clients used by the LLM judge evaluator.
"""

from .factory import configure_judge_client, get_judge_client, reset_judge_client
from .openai_judge_client import OpenAIJudgeClient

__all__ = [
    "OpenAIJudgeClient",
    "get_judge_client",
    "configure_judge_client",
    "reset_judge_client",
]
