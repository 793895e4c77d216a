"""
Tests for the LLM judge evaluator and the judge client answer parsing.

Version: 1.0.0
"""

import pytest

from evalflow.config.settings import EvalflowSettings, JudgeSettings, configure_settings
from evalflow.evaluators import LlmJudgeConfig, LlmJudgeEvaluator
from evalflow.exceptions import EvaluatorExecutionError, InvalidConfigError, JudgeClientError
from evalflow.judges import OpenAIJudgeClient, configure_judge_client
from evalflow.runtimes.evaluator_registry import EvaluatorRegistry
from evalflow.spec import LlmResponse


class FakeJudgeClient:
    """Returns a canned answer and records each request."""

    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.requests = []

    async def judge(self, model, prompt, response_schema=None):
        self.requests.append({"model": model, "prompt": prompt, "schema": response_schema})
        if self.error is not None:
            raise self.error
        return self.answer

    async def close(self):
        pass


@pytest.fixture
def judge_response():
    return LlmResponse(
        id="r-judge",
        rendered_prompt="What is the capital of France?",
        response_text="The capital of France is Paris.",
    )


def good_answer(score=4):
    return {
        "overall_score": score,
        "criteria_scores": {"accuracy": 5, "helpfulness": 4, "tone": 3},
        "feedback": "Accurate and polite.",
    }


# =============================================================================
# PROMPT TESTS
# =============================================================================

class TestJudgePrompt:
    """Tests for the judge prompt and schema."""

    def test_prompt_sections(self, judge_response):
        """Test the prompt carries the original prompt, response and criteria."""
        evaluator = LlmJudgeEvaluator(
            judge_response,
            LlmJudgeConfig(criteria=["accuracy", "originality"], custom_instructions="Be strict."),
        )

        prompt = evaluator.build_judge_prompt()

        assert "ORIGINAL PROMPT:\nWhat is the capital of France?" in prompt
        assert "LLM RESPONSE TO EVALUATE:\nThe capital of France is Paris." in prompt
        assert "- Accuracy: Is the response factually correct and accurate?" in prompt
        assert "- Originality: Evaluate originality" in prompt
        assert "Additional Instructions:\nBe strict." in prompt
        assert "A number from 0 to 5" in prompt

    @pytest.mark.asyncio
    async def test_schema_sent_to_client(self, judge_response):
        """Test the structured-output schema lists every criterion."""
        client = FakeJudgeClient(answer=good_answer())
        evaluator = LlmJudgeEvaluator(judge_response, LlmJudgeConfig(judge_model="judge-1"), judge_client=client)

        await evaluator.evaluate()

        request = client.requests[0]
        assert request["model"] == "judge-1"
        schema = request["schema"]
        assert schema["required"] == ["overall_score", "criteria_scores", "feedback"]
        assert schema["properties"]["criteria_scores"]["required"] == ["accuracy", "helpfulness", "tone"]


# =============================================================================
# EVALUATION TESTS
# =============================================================================

class TestLlmJudgeEvaluator:
    """Tests for LlmJudgeEvaluator.evaluate()."""

    @pytest.mark.asyncio
    async def test_scores_on_judge_scale(self, judge_response):
        """Test the judge's answer becomes the evaluator result."""
        client = FakeJudgeClient(answer=good_answer(4))
        evaluator = LlmJudgeEvaluator(judge_response, LlmJudgeConfig(judge_model="judge-1"), judge_client=client)

        result = await evaluator.evaluate()

        assert result.score == 4
        assert result.score_min == 0
        assert result.score_max == 5
        assert result.normalized_score == 80
        assert result.passed is True
        assert result.criteria_scores == {"accuracy": 5.0, "helpfulness": 4.0, "tone": 3.0}
        assert result.feedback == "Accurate and polite."
        assert result.metadata["judge_model"] == "judge-1"
        assert "judge_prompt" in result.metadata

    @pytest.mark.asyncio
    async def test_low_score_fails(self, judge_response):
        """Test scores below 80% do not pass."""
        client = FakeJudgeClient(answer=good_answer(3))
        evaluator = LlmJudgeEvaluator(judge_response, LlmJudgeConfig(), judge_client=client)

        result = await evaluator.evaluate()

        assert result.passed is False

    @pytest.mark.asyncio
    async def test_out_of_range_score_raises(self, judge_response):
        """Test a score outside the scale is not clamped."""
        client = FakeJudgeClient(answer=good_answer(7))
        evaluator = LlmJudgeEvaluator(judge_response, LlmJudgeConfig(), judge_client=client)

        with pytest.raises(EvaluatorExecutionError, match="outside"):
            await evaluator.evaluate()

    @pytest.mark.asyncio
    async def test_missing_score_raises(self, judge_response):
        """Test an answer without overall_score fails."""
        client = FakeJudgeClient(answer={"feedback": "fine"})
        evaluator = LlmJudgeEvaluator(judge_response, LlmJudgeConfig(), judge_client=client)

        with pytest.raises(EvaluatorExecutionError):
            await evaluator.evaluate()

    @pytest.mark.asyncio
    async def test_client_error_propagates(self, judge_response):
        """Test judge client errors surface as execution errors."""
        client = FakeJudgeClient(error=JudgeClientError("rate limited", status_code=429))
        evaluator = LlmJudgeEvaluator(judge_response, LlmJudgeConfig(), judge_client=client)

        with pytest.raises(EvaluatorExecutionError) as exc_info:
            await evaluator.evaluate()

        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_built_from_registry_uses_global_client(self, judge_response):
        """Test the registry-built judge uses the configured global client and default model."""
        configure_settings(EvalflowSettings(judge=JudgeSettings(default_model="judge-default")))
        client = FakeJudgeClient(answer=good_answer(5))
        configure_judge_client(client)

        evaluator = EvaluatorRegistry.build("llm_judge", judge_response, {"criteria": ["accuracy"]})
        result = await evaluator.evaluate()

        assert result.score == 5
        assert client.requests[0]["model"] == "judge-default"

    def test_inverted_scale_rejected(self):
        """Test score_max must exceed score_min."""
        with pytest.raises(InvalidConfigError):
            EvaluatorRegistry.decode_config("llm_judge", {"score_min": 5, "score_max": 5})

    def test_empty_criteria_rejected(self):
        """Test at least one criterion is required."""
        with pytest.raises(InvalidConfigError):
            EvaluatorRegistry.decode_config("llm_judge", {"criteria": []})


# =============================================================================
# JUDGE CLIENT TESTS
# =============================================================================

class TestOpenAIJudgeClient:
    """Tests for OpenAIJudgeClient payloads and answer parsing."""

    def test_payload_requests_json_schema(self):
        """Test structured output is requested when a schema is given."""
        client = OpenAIJudgeClient(api_key="k", base_url="https://judge.example/v1/")

        payload = client.build_payload("gpt-4o", "grade this", response_schema={"type": "object"})

        assert payload["model"] == "gpt-4o"
        assert payload["messages"] == [{"role": "user", "content": "grade this"}]
        assert payload["response_format"]["type"] == "json_schema"
        assert payload["response_format"]["json_schema"]["strict"] is True
        assert client._build_url("chat/completions") == "https://judge.example/v1/chat/completions"

    def test_payload_without_schema(self):
        """Test plain JSON mode without a schema."""
        payload = OpenAIJudgeClient().build_payload("gpt-4o", "grade this")

        assert payload["response_format"] == {"type": "json_object"}

    def test_parse_answer_string_content(self):
        """Test JSON string content is decoded."""
        body = {"choices": [{"message": {"content": '{"overall_score": 4}'}}]}

        assert OpenAIJudgeClient.parse_answer(body) == {"overall_score": 4}

    def test_parse_answer_invalid(self):
        """Test unusable bodies raise JudgeClientError."""
        with pytest.raises(JudgeClientError):
            OpenAIJudgeClient.parse_answer({"choices": []})
        with pytest.raises(JudgeClientError):
            OpenAIJudgeClient.parse_answer({"choices": [{"message": {"content": "not json"}}]})
        with pytest.raises(JudgeClientError):
            OpenAIJudgeClient.parse_answer({"choices": [{"message": {"content": "[1, 2]"}}]})
