"""
Judge Client Factory.

Process-wide judge client built from JudgeSettings on first use.
"""

import threading
from typing import Optional

from ..config.settings import get_settings
from ..interfaces.evaluator_interfaces import IJudgeClient
from .openai_judge_client import OpenAIJudgeClient


_judge_client: Optional[IJudgeClient] = None
_lock = threading.Lock()


def get_judge_client() -> IJudgeClient:
    """Get the global judge client, creating it from settings if needed."""
    global _judge_client
    if _judge_client is None:
        with _lock:
            if _judge_client is None:
                judge = get_settings().judge
                _judge_client = OpenAIJudgeClient(
                    api_key=judge.api_key,
                    base_url=judge.base_url,
                    timeout_s=judge.timeout_s,
                )
    return _judge_client


def configure_judge_client(client: IJudgeClient) -> None:
    """Replace the global judge client (e.g. with a fake in tests)."""
    global _judge_client
    with _lock:
        _judge_client = client


def reset_judge_client() -> None:
    global _judge_client
    with _lock:
        _judge_client = None
