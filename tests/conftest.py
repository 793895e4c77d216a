"""
Shared fixtures for evalflow tests.

Version: 1.0.0
"""

import asyncio

import pytest
from pydantic import BaseModel

from evalflow.config.settings import EvalflowSettings, RetrySettings, reset_settings
from evalflow.judges.factory import reset_judge_client
from evalflow.queue import InMemoryJobQueue
from evalflow.runtimes.aggregator import ScoreAggregator
from evalflow.runtimes.entrypoints import reset_orchestrator
from evalflow.runtimes.evaluator_registry import EvaluatorRegistry
from evalflow.runtimes.orchestrator import EvaluationOrchestrator
from evalflow.spec import EvaluatorConfig, EvaluatorResult, LlmResponse, TestOwner, VersionOwner
from evalflow.stores import (
    EvaluatorConfigRepository,
    InMemoryEvaluationStore,
    InMemoryResponseStore,
    reset_evaluation_store,
)


# =============================================================================
# FIXED SCORE EVALUATOR
# =============================================================================

class FixedScoreConfig(BaseModel):
    score: float = 100
    error: bool = False
    delay_s: float = 0


class FixedScoreEvaluator:
    """Returns the configured score; used to drive orchestration scenarios."""

    calls = []

    def __init__(self, response, config: FixedScoreConfig, key: str = "fixed"):
        self.response = response
        self.config = config
        self.evaluator_key = key

    async def evaluate(self) -> EvaluatorResult:
        FixedScoreEvaluator.calls.append(self.evaluator_key)
        if self.config.delay_s:
            await asyncio.sleep(self.config.delay_s)
        if self.config.error:
            raise RuntimeError(f"{self.evaluator_key} blew up")
        return EvaluatorResult(score=self.config.score)


# =============================================================================
# RESET
# =============================================================================

@pytest.fixture(autouse=True)
def reset_globals():
    """Reset process-wide singletons between tests."""
    FixedScoreEvaluator.calls = []
    yield
    EvaluatorRegistry.reset()
    ScoreAggregator.clear_custom_rules()
    reset_settings()
    reset_evaluation_store()
    reset_judge_client()
    reset_orchestrator()


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def register_fixed():
    """Register fixed-score evaluators under the given keys."""
    def _register(*keys):
        for key in keys:
            EvaluatorRegistry.register(
                key=key,
                constructor=lambda response, config, key=key: FixedScoreEvaluator(response, config, key),
                config_model=FixedScoreConfig,
                override=True,
            )
    return _register


@pytest.fixture
def evaluator_calls():
    """Keys of fixed-score evaluators in the order they ran."""
    return FixedScoreEvaluator.calls


@pytest.fixture
def settings():
    """Settings with zero backoff so retries don't sleep."""
    return EvalflowSettings(retry=RetrySettings(max_attempts=3, base_delay_s=0, max_delay_s=0))


@pytest.fixture
def response():
    return LlmResponse(
        id="resp-1",
        prompt_version_id="v1",
        rendered_prompt="Say hello to the customer.",
        response_text="Hello! How can I help you today?",
        model="gpt-4o",
        provider="openai",
    )


@pytest.fixture
def version_owner():
    return VersionOwner(version_id="v1")


@pytest.fixture
def test_owner():
    return TestOwner(test_id="t1", version_id="v1")


@pytest.fixture
def store():
    return InMemoryEvaluationStore()


@pytest.fixture
def response_store():
    return InMemoryResponseStore()


@pytest.fixture
def repo():
    return EvaluatorConfigRepository()


@pytest.fixture
def job_queue():
    return InMemoryJobQueue()


@pytest.fixture
def orchestrator(store, response_store, repo, job_queue, settings):
    return EvaluationOrchestrator(
        store=store,
        response_store=response_store,
        config_repository=repo,
        job_queue=job_queue,
        settings=settings,
    )


@pytest.fixture
def make_config():
    """Build an EvaluatorConfig; sync run mode unless told otherwise."""
    def _make(owner, key, **kwargs):
        kwargs.setdefault("run_mode", "sync")
        return EvaluatorConfig(owner=owner, evaluator_key=key, **kwargs)
    return _make
