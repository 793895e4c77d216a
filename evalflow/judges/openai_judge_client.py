"""
OpenAI-compatible Judge Client.

Sends a judge prompt to an OpenAI-compatible ``chat/completions`` endpoint
and requests structured (json_schema) output.

Usage:
    client = OpenAIJudgeClient(api_key="...", base_url="https://api.openai.com/v1")
    answer = await client.judge("gpt-4o", prompt, response_schema=schema)
    await client.close()
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..constants import DEFAULT_JUDGE_BASE_URL, DEFAULT_JUDGE_TIMEOUT_S
from ..exceptions import JudgeClientError

logger = logging.getLogger(__name__)


CHAT_COMPLETIONS = "chat/completions"
JUDGE_SCHEMA_NAME = "judge_evaluation"


class OpenAIJudgeClient:
    """
    Judge client for OpenAI-compatible APIs.

    The aiohttp session is created lazily on first use and reused until
    close() is called.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_JUDGE_BASE_URL,
        timeout_s: float = DEFAULT_JUDGE_TIMEOUT_S,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._session: Optional[aiohttp.ClientSession] = None

    def _build_url(self, operation: str) -> str:
        return f"{self.base_url}/{operation}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_s),
                headers=headers,
            )
        return self._session

    def build_payload(
        self,
        model: str,
        prompt: str,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": JUDGE_SCHEMA_NAME,
                    "schema": response_schema,
                    "strict": True,
                },
            }
        else:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def judge(
        self,
        model: str,
        prompt: str,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Ask the judge model and return its parsed JSON answer.

        Raises:
            JudgeClientError: On transport errors, error statuses or
                unparseable answers
        """
        url = self._build_url(CHAT_COMPLETIONS)
        payload = self.build_payload(model, prompt, response_schema)
        session = self._get_session()

        try:
            async with session.post(url, json=payload) as response:
                if response.status == 401:
                    raise JudgeClientError(
                        "Judge authentication failed",
                        status_code=401,
                        details={"transient": False},
                    )
                if response.status == 429:
                    raise JudgeClientError(
                        "Judge rate limit exceeded",
                        status_code=429,
                        details={
                            "transient": True,
                            "retry_after": response.headers.get("Retry-After"),
                        },
                    )
                if response.status >= 400:
                    error_body = await response.text()
                    raise JudgeClientError(
                        f"Judge API error: {response.status}",
                        status_code=response.status,
                        details={
                            "transient": response.status >= 500,
                            "error_body": error_body,
                        },
                    )
                body = await response.json()
        except asyncio.TimeoutError as e:
            raise JudgeClientError(
                f"Judge request timed out after {self.timeout_s}s",
                details={"transient": True},
            ) from e
        except aiohttp.ClientError as e:
            raise JudgeClientError(
                f"Failed to reach judge API: {e}",
                details={"transient": True, "error": str(e)},
            ) from e

        return self.parse_answer(body)

    @staticmethod
    def parse_answer(body: Dict[str, Any]) -> Dict[str, Any]:
        """Extract the JSON object from a chat completion body."""
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise JudgeClientError(
                "Judge response has no message content",
                details={"body": body},
            ) from e

        if isinstance(content, dict):
            return content
        try:
            parsed = json.loads(content)
        except (TypeError, json.JSONDecodeError) as e:
            raise JudgeClientError(
                "Judge response is not valid JSON",
                details={"content": content},
            ) from e
        if not isinstance(parsed, dict):
            raise JudgeClientError(
                "Judge response is not a JSON object",
                details={"content": content},
            )
        return parsed

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
