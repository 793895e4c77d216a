"""
LLM Judge Evaluator.

Asks a judge model to grade the response against a list of criteria. The
judge is given the original prompt, the response and the criteria, and must
answer with structured output:

    {"overall_score": 4, "criteria_scores": {"accuracy": 5, ...}, "feedback": "..."}

The answer is not clamped: an overall score outside [score_min, score_max]
or a malformed answer fails the evaluation.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from ..config.settings import get_settings
from ..constants import DEFAULT_PASS_SCORE, EVALUATOR_LLM_JUDGE
from ..enum import EvaluatorType
from ..exceptions import EvaluatorExecutionError
from ..interfaces.evaluator_interfaces import IJudgeClient
from ..judges.factory import get_judge_client
from ..spec.evaluation_models import EvaluatorResult, LlmResponse, normalize_score

logger = logging.getLogger(__name__)


CRITERIA_DESCRIPTIONS: Dict[str, str] = {
    "accuracy": "Is the response factually correct and accurate?",
    "helpfulness": "Is the response helpful and addresses the user's needs?",
    "tone": "Is the tone appropriate and professional?",
    "clarity": "Is the response clear and easy to understand?",
    "completeness": "Does the response fully address the question?",
    "conciseness": "Is the response concise without unnecessary information?",
}


class LlmJudgeConfig(BaseModel):
    """Config for the LLM judge evaluator."""

    model_config = {"extra": "forbid"}

    judge_model: Optional[str] = Field(
        default=None,
        description="Judge model; defaults to the judge settings' default_model"
    )
    criteria: List[str] = Field(
        default_factory=lambda: ["accuracy", "helpfulness", "tone"],
        min_length=1,
        description="Criteria the judge scores"
    )
    score_min: float = Field(default=0, description="Lowest judge score")
    score_max: float = Field(default=5, description="Highest judge score")
    custom_instructions: Optional[str] = Field(default=None, description="Extra judge instructions")

    @model_validator(mode="after")
    def _check_scale(self) -> "LlmJudgeConfig":
        if self.score_max <= self.score_min:
            raise ValueError("score_max must be greater than score_min")
        return self


def _format_score(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def build_judge_schema(criteria: List[str], score_min: float, score_max: float) -> Dict[str, Any]:
    """JSON schema for the judge's structured answer."""
    scale = f"{_format_score(score_min)}-{_format_score(score_max)}"
    return {
        "type": "object",
        "properties": {
            "overall_score": {
                "type": "number",
                "description": f"Overall score from {_format_score(score_min)} to {_format_score(score_max)}",
            },
            "criteria_scores": {
                "type": "object",
                "properties": {
                    criterion: {
                        "type": "number",
                        "description": f"Score for {criterion} ({scale})",
                    }
                    for criterion in criteria
                },
                "required": list(criteria),
                "additionalProperties": False,
            },
            "feedback": {
                "type": "string",
                "description": "Detailed feedback explaining the scores and evaluation",
            },
        },
        "required": ["overall_score", "criteria_scores", "feedback"],
        "additionalProperties": False,
    }


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


class LlmJudgeEvaluator:
    """
    Grades a response with a judge model.

    The judge client is injected for tests; otherwise the process-wide
    client from get_judge_client() is used.
    """

    evaluator_key = EVALUATOR_LLM_JUDGE
    evaluator_type = EvaluatorType.LLM_JUDGE

    def __init__(
        self,
        response: LlmResponse,
        config: LlmJudgeConfig,
        judge_client: Optional[IJudgeClient] = None,
    ):
        self.response = response
        self.config = config
        self._judge_client = judge_client

    @property
    def judge_model(self) -> str:
        return self.config.judge_model or get_settings().judge.default_model

    def _get_client(self) -> IJudgeClient:
        if self._judge_client is None:
            self._judge_client = get_judge_client()
        return self._judge_client

    def build_judge_prompt(self) -> str:
        criteria_list = "\n".join(
            f"- {criterion.capitalize()}: "
            f"{CRITERIA_DESCRIPTIONS.get(criterion, f'Evaluate {criterion}')}"
            for criterion in self.config.criteria
        )
        custom_section = ""
        if self.config.custom_instructions:
            custom_section = f"\n\nAdditional Instructions:\n{self.config.custom_instructions}"

        return (
            "You are an expert evaluator of AI-generated responses. "
            "Please evaluate the following LLM response.\n\n"
            f"ORIGINAL PROMPT:\n{self.response.prompt}\n\n"
            f"LLM RESPONSE TO EVALUATE:\n{self.response.text}\n\n"
            f"EVALUATION CRITERIA:\n{criteria_list}{custom_section}\n\n"
            "Please provide your evaluation with:\n"
            f"- overall_score: A number from {_format_score(self.config.score_min)} "
            f"to {_format_score(self.config.score_max)}\n"
            f"- criteria_scores: A score for each criterion ({', '.join(self.config.criteria)})\n"
            "- feedback: Detailed explanation of your scores\n\n"
            "Respond with JSON only."
        )

    def _fail(self, message: str, details: Optional[Dict[str, Any]] = None) -> EvaluatorExecutionError:
        return EvaluatorExecutionError(
            message,
            evaluator_key=self.evaluator_key,
            response_id=self.response.id,
            details=details,
        )

    def _parse_answer(self, answer: Dict[str, Any]) -> EvaluatorResult:
        score = answer.get("overall_score")
        if not _is_number(score):
            raise self._fail("Judge answer has no numeric overall_score", {"answer": answer})
        if not self.config.score_min <= score <= self.config.score_max:
            raise self._fail(
                f"Judge score {score} outside "
                f"[{self.config.score_min}, {self.config.score_max}]",
                {"answer": answer},
            )

        raw_criteria = answer.get("criteria_scores") or {}
        if not isinstance(raw_criteria, dict):
            raise self._fail("Judge criteria_scores is not an object", {"answer": answer})
        criteria_scores = {k: float(v) for k, v in raw_criteria.items() if _is_number(v)}

        feedback = answer.get("feedback")
        normalized = normalize_score(score, self.config.score_min, self.config.score_max)
        return EvaluatorResult(
            score=score,
            score_min=self.config.score_min,
            score_max=self.config.score_max,
            feedback=feedback if isinstance(feedback, str) else None,
            criteria_scores=criteria_scores,
            passed=normalized >= DEFAULT_PASS_SCORE,
            metadata={
                "config": self.config.model_dump(mode="json"),
                "judge_model": self.judge_model,
                "criteria": list(self.config.criteria),
                "judge_prompt": self.build_judge_prompt(),
            },
        )

    async def evaluate(self) -> EvaluatorResult:
        """
        Raises:
            EvaluatorExecutionError: If the judge call fails (JudgeClientError)
                or its answer is unusable
        """
        prompt = self.build_judge_prompt()
        schema = build_judge_schema(self.config.criteria, self.config.score_min, self.config.score_max)
        logger.debug(f"Requesting judge evaluation from {self.judge_model} for response {self.response.id}")
        answer = await self._get_client().judge(self.judge_model, prompt, response_schema=schema)
        if not isinstance(answer, dict):
            raise self._fail("Judge answer is not an object", {"answer": repr(answer)})
        return self._parse_answer(answer)
