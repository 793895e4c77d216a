"""
Tests for the judge client HTTP handling and factory.

The aiohttp session is replaced by a fake that returns canned responses.

Version: 1.0.0
"""

import asyncio

import aiohttp
import pytest

from evalflow.config.settings import EvalflowSettings, JudgeSettings, configure_settings
from evalflow.exceptions import JudgeClientError
from evalflow.judges import OpenAIJudgeClient, configure_judge_client, get_judge_client
from evalflow.judges.factory import reset_judge_client


class FakeResponse:
    def __init__(self, status=200, body=None, text="", headers=None):
        self.status = status
        self._body = body
        self._text = text
        self.headers = headers or {}

    async def json(self):
        return self._body

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Records posts and returns a canned response or raises."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.posts = []
        self.closed = False

    def post(self, url, json=None):
        self.posts.append({"url": url, "json": json})
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True


def client_with(session):
    client = OpenAIJudgeClient(api_key="k", base_url="https://judge.example/v1")
    client._session = session
    return client


ANSWER = {"choices": [{"message": {"content": '{"overall_score": 5, "feedback": "good"}'}}]}


# =============================================================================
# HTTP TESTS
# =============================================================================

class TestJudgeRequests:
    """Tests for OpenAIJudgeClient.judge."""

    @pytest.mark.asyncio
    async def test_success(self):
        """Test the answer is parsed from a chat completion."""
        session = FakeSession(FakeResponse(body=ANSWER))
        client = client_with(session)

        answer = await client.judge("gpt-4o", "grade this", response_schema={"type": "object"})

        assert answer == {"overall_score": 5, "feedback": "good"}
        assert session.posts[0]["url"] == "https://judge.example/v1/chat/completions"
        assert session.posts[0]["json"]["model"] == "gpt-4o"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,transient", [(401, False), (429, True), (400, False), (503, True)])
    async def test_error_statuses(self, status, transient):
        """Test error statuses raise JudgeClientError marked transient or not."""
        client = client_with(FakeSession(FakeResponse(status=status, text="nope")))

        with pytest.raises(JudgeClientError) as exc_info:
            await client.judge("gpt-4o", "grade this")

        assert exc_info.value.status_code == status
        assert exc_info.value.details["transient"] is transient

    @pytest.mark.asyncio
    async def test_rate_limit_retry_after(self):
        """Test the Retry-After header is kept on rate limit errors."""
        response = FakeResponse(status=429, headers={"Retry-After": "7"})
        client = client_with(FakeSession(response))

        with pytest.raises(JudgeClientError) as exc_info:
            await client.judge("gpt-4o", "grade this")

        assert exc_info.value.details["retry_after"] == "7"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [asyncio.TimeoutError(), aiohttp.ClientConnectionError("refused")])
    async def test_transport_errors(self, error):
        """Test timeouts and connection failures are transient."""
        client = client_with(FakeSession(error=error))

        with pytest.raises(JudgeClientError) as exc_info:
            await client.judge("gpt-4o", "grade this")

        assert exc_info.value.details["transient"] is True

    @pytest.mark.asyncio
    async def test_close(self):
        """Test close() closes and drops the session."""
        session = FakeSession(FakeResponse(body=ANSWER))
        client = client_with(session)

        await client.close()

        assert session.closed is True
        assert client._session is None


# =============================================================================
# FACTORY TESTS
# =============================================================================

class TestJudgeClientFactory:
    """Tests for the global judge client."""

    def test_built_from_settings(self):
        """Test the client takes its connection settings from JudgeSettings."""
        configure_settings(EvalflowSettings(
            judge=JudgeSettings(api_key="sk-test", base_url="https://judge.example/v1/", timeout_s=5),
        ))

        client = get_judge_client()

        assert isinstance(client, OpenAIJudgeClient)
        assert client.api_key == "sk-test"
        assert client.base_url == "https://judge.example/v1"
        assert client.timeout_s == 5
        assert get_judge_client() is client

    def test_configure_and_reset(self):
        """Test replacing and resetting the global client."""
        fake = object()
        configure_judge_client(fake)

        assert get_judge_client() is fake

        reset_judge_client()
        assert get_judge_client() is not fake
