"""
Format Evaluator.

Validates that the response is well-formed JSON, Markdown or plain text.

JSON scoring:
- invalid JSON scores 0
- with a schema: start at 100; missing required keys cost up to 50
  (proportionally), extra keys in strict mode cost 20, each wrong type
  costs 10, a non-object value under nested_structure costs 15, nested
  schemas cap the score at their own result; the floor is 0
- without a schema: the percentage of required_keys present

Markdown scores 100, minus 50 when headers are required but absent.
Plain text scores 100 when non-empty.
"""

import json
import re
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from ..constants import EVALUATOR_FORMAT
from .base_evaluator import BaseEvaluator, round_half_up


MISSING_KEYS_MAX_PENALTY = 50
EXTRA_KEYS_PENALTY = 20
WRONG_TYPE_PENALTY = 10
NESTED_NOT_OBJECT_PENALTY = 15
MISSING_HEADERS_PENALTY = 50

MARKDOWN_HEADER = re.compile(r"^#{1,6}\s+.+", re.MULTILINE)

_NO_VALUE = object()


class JsonSchemaSpec(BaseModel):
    """Lightweight structural schema for JSON responses."""

    required_keys: List[str] = Field(default_factory=list)
    optional_keys: List[str] = Field(default_factory=list)
    types: Dict[str, str] = Field(
        default_factory=dict,
        description="key -> string, integer, number, boolean, array, object or null"
    )
    nested_structure: Dict[str, "JsonSchemaSpec"] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.required_keys or self.optional_keys or self.types or self.nested_structure)


class FormatConfig(BaseModel):
    """Config for the format evaluator."""

    model_config = {"extra": "forbid"}

    format: Literal["json", "markdown", "plain_text"] = Field(
        default="plain_text",
        description="Expected format"
    )
    required_keys: List[str] = Field(
        default_factory=list,
        description="JSON: required top-level keys (without a schema)"
    )
    require_headers: bool = Field(default=False, description="Markdown: require headers")
    schema_spec: Optional[JsonSchemaSpec] = Field(
        default=None,
        alias="schema",
        description="JSON: structural schema"
    )
    strict: bool = Field(default=False, description="JSON: no keys outside the schema")


def value_matches_type(value: Any, expected_type: str) -> bool:
    expected = expected_type.lower()
    if expected == "string":
        return isinstance(value, str)
    if expected in ("integer", "int"):
        return isinstance(value, int) and not isinstance(value, bool)
    if expected in ("float", "number"):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected in ("boolean", "bool"):
        return isinstance(value, bool)
    if expected == "array":
        return isinstance(value, list)
    if expected in ("object", "hash"):
        return isinstance(value, dict)
    if expected in ("null", "nil"):
        return value is None
    # Unknown type names are not checked
    return True


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def check_schema(data: Dict[str, Any], schema: JsonSchemaSpec, strict: bool) -> Tuple[int, List[str]]:
    """Score a parsed object against a schema; returns (score, errors)."""
    score = 100
    errors: List[str] = []

    if schema.required_keys:
        missing = [k for k in schema.required_keys if k not in data]
        if missing:
            errors.append(f"Missing required keys: {', '.join(missing)}")
            score -= round_half_up(len(missing) / len(schema.required_keys) * MISSING_KEYS_MAX_PENALTY)

    if strict and (schema.required_keys or schema.optional_keys):
        allowed = set(schema.required_keys) | set(schema.optional_keys)
        extra = [k for k in data if k not in allowed]
        if extra:
            errors.append(f"Extra keys not allowed in strict mode: {', '.join(extra)}")
            score -= EXTRA_KEYS_PENALTY

    for key, expected_type in schema.types.items():
        value = data.get(key, _NO_VALUE)
        if value is _NO_VALUE:
            continue
        if not value_matches_type(value, expected_type):
            errors.append(
                f"Key '{key}' has wrong type (expected {expected_type}, got {_type_name(value)})"
            )
            score -= WRONG_TYPE_PENALTY

    for key, nested_schema in schema.nested_structure.items():
        if key not in data:
            continue
        nested = data[key]
        if isinstance(nested, dict):
            nested_score, nested_errors = check_schema(nested, nested_schema, strict)
            score = min(score, nested_score)
            errors.extend(f"{key}.{e}" for e in nested_errors)
        else:
            errors.append(f"Key '{key}' should be an object for nested validation")
            score -= NESTED_NOT_OBJECT_PENALTY

    return max(score, 0), errors


class FormatEvaluator(BaseEvaluator[FormatConfig]):
    """Validates response format (JSON, Markdown or plain text)."""

    evaluator_key = EVALUATOR_FORMAT

    def __init__(self, response, config: FormatConfig):
        super().__init__(response, config)
        self._parsed = _NO_VALUE
        self._parse_error: Optional[str] = None

    # =========================================================================
    # JSON
    # =========================================================================

    def _parse_json(self) -> Any:
        if self._parsed is _NO_VALUE and self._parse_error is None:
            try:
                self._parsed = json.loads(self.response_text)
            except json.JSONDecodeError as e:
                self._parse_error = str(e)
        return self._parsed

    def _json_valid(self) -> bool:
        self._parse_json()
        return self._parse_error is None

    def _has_schema(self) -> bool:
        return self.config.schema_spec is not None and not self.config.schema_spec.is_empty()

    def _json_object(self) -> Dict[str, Any]:
        parsed = self._parse_json()
        return parsed if isinstance(parsed, dict) else {}

    def _json_score(self) -> float:
        if not self._json_valid():
            return 0
        data = self._json_object()
        if self._has_schema():
            score, _ = check_schema(data, self.config.schema_spec, self.config.strict)
            return score
        required = self.config.required_keys
        if not required:
            return 100
        present = sum(1 for k in required if k in data)
        return round_half_up(present / len(required) * 100)

    def _json_feedback(self) -> str:
        if not self._json_valid():
            return "Invalid JSON format"
        data = self._json_object()
        if self._has_schema():
            _, errors = check_schema(data, self.config.schema_spec, self.config.strict)
            if not errors:
                return "Valid JSON matching schema"
            return f"Schema validation errors: {'; '.join(errors)}"
        if not self.config.required_keys:
            return "Valid JSON format"
        missing = [k for k in self.config.required_keys if k not in data]
        if not missing:
            return "Valid JSON with all required keys"
        return f"Valid JSON but missing keys: {', '.join(missing)}"

    # =========================================================================
    # Markdown / plain text
    # =========================================================================

    def _has_headers(self) -> bool:
        return MARKDOWN_HEADER.search(self.response_text) is not None

    def _markdown_score(self) -> float:
        if self.config.require_headers and not self._has_headers():
            return 100 - MISSING_HEADERS_PENALTY
        return 100

    def _markdown_feedback(self) -> str:
        if self.config.require_headers and not self._has_headers():
            return "Missing markdown headers"
        return "Valid markdown format"

    # =========================================================================
    # BaseEvaluator
    # =========================================================================

    def compute_score(self) -> float:
        if self.config.format == "json":
            return self._json_score()
        if self.config.format == "markdown":
            return self._markdown_score()
        return 100 if self.response_text else 0

    def generate_feedback(self) -> str:
        if self.config.format == "json":
            return self._json_feedback()
        if self.config.format == "markdown":
            return self._markdown_feedback()
        return "Valid plain text" if self.response_text else "Empty response"

    def is_passed(self, score: float) -> bool:
        if self.config.format == "json":
            return self._json_valid()
        return len(self.response_text) > 0

    def extra_metadata(self) -> Dict[str, Any]:
        return {"format": self.config.format, "format_valid": self.is_passed(0)}
