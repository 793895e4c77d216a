"""
Evaluator Registry.

Maps evaluator keys to the class that implements them and the pydantic model
their config decodes into. Configs are stored raw on EvaluatorConfig and are
only decoded here, when an evaluator is built.

Example:
    # Register a custom evaluator
    EvaluatorRegistry.register(
        key="sentiment",
        constructor=SentimentEvaluator,
        config_model=SentimentConfig,
        name="Sentiment",
        description="Scores the sentiment of the response",
        category=EvaluatorCategory.QUALITY,
    )

    # Build one for a response
    evaluator = EvaluatorRegistry.build("sentiment", response, {"target": "positive"})
    result = await evaluator.evaluate()
"""

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Any, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from ..constants import (
    ERROR_ALREADY_REGISTERED,
    EVALUATOR_EXACT_MATCH,
    EVALUATOR_FORMAT,
    EVALUATOR_KEYWORD,
    EVALUATOR_LENGTH,
    EVALUATOR_LLM_JUDGE,
    EVALUATOR_PATTERN_MATCH,
    LOG_EVALUATOR_REGISTERED,
    LOG_EVALUATOR_UNREGISTERED,
)
from ..enum import EvaluatorCategory, EvaluatorType
from ..exceptions import (
    EvaluatorRegistrationError,
    InvalidConfigError,
    UnknownEvaluatorError,
)
from ..interfaces.evaluator_interfaces import IEvaluator
from ..spec.evaluation_models import LlmResponse

logger = logging.getLogger(__name__)


EvaluatorConstructor = Callable[[LlmResponse, BaseModel], IEvaluator]


@dataclass
class EvaluatorRegistration:
    """
    Registration information for an evaluator.

    Attributes:
        key: Unique evaluator key (e.g., "keyword")
        constructor: Callable taking (response, decoded_config)
        config_model: Pydantic model the raw config decodes into
        name: Human-readable name
        description: What the evaluator checks
        category: Grouping used by UIs and custom aggregation
        evaluator_type: automated, llm_judge or human
        default_config: Values merged under the raw config before decoding
        metadata: Additional metadata
        created_at: When the evaluator was registered
    """
    key: str
    constructor: EvaluatorConstructor
    config_model: Type[BaseModel]
    name: str = ""
    description: str = ""
    category: EvaluatorCategory = EvaluatorCategory.CUSTOM
    evaluator_type: EvaluatorType = EvaluatorType.AUTOMATED
    default_config: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if not self.name:
            self.name = self.key.replace("_", " ").title()


class EvaluatorRegistry:
    """
    Class-level table of evaluator registrations.

    Built-in evaluators (length, keyword, format, exact_match, pattern_match,
    llm_judge) are registered automatically on first use. The table is
    process-wide; populate it at startup and treat it as read-only after.
    """

    _registry: Dict[str, EvaluatorRegistration] = {}
    _initialized: bool = False

    @classmethod
    def _ensure_initialized(cls) -> None:
        """Register built-in evaluators if not already done."""
        if cls._initialized:
            return

        # Import here to avoid circular imports
        from ..evaluators import (
            ExactMatchConfig,
            ExactMatchEvaluator,
            FormatConfig,
            FormatEvaluator,
            KeywordConfig,
            KeywordEvaluator,
            LengthConfig,
            LengthEvaluator,
            LlmJudgeConfig,
            LlmJudgeEvaluator,
            PatternMatchConfig,
            PatternMatchEvaluator,
        )

        builtins = [
            EvaluatorRegistration(
                key=EVALUATOR_LENGTH,
                constructor=LengthEvaluator,
                config_model=LengthConfig,
                name="Length Validator",
                description="Validates response length against min/max ranges",
                category=EvaluatorCategory.FORMAT,
            ),
            EvaluatorRegistration(
                key=EVALUATOR_KEYWORD,
                constructor=KeywordEvaluator,
                config_model=KeywordConfig,
                name="Keyword Checker",
                description="Checks for required and forbidden keywords",
                category=EvaluatorCategory.CONTENT,
            ),
            EvaluatorRegistration(
                key=EVALUATOR_FORMAT,
                constructor=FormatEvaluator,
                config_model=FormatConfig,
                name="Format Validator",
                description="Validates response format (JSON, Markdown or plain text)",
                category=EvaluatorCategory.FORMAT,
            ),
            EvaluatorRegistration(
                key=EVALUATOR_EXACT_MATCH,
                constructor=ExactMatchEvaluator,
                config_model=ExactMatchConfig,
                name="Exact Match",
                description="Checks if the response exactly matches expected text",
                category=EvaluatorCategory.ACCURACY,
            ),
            EvaluatorRegistration(
                key=EVALUATOR_PATTERN_MATCH,
                constructor=PatternMatchEvaluator,
                config_model=PatternMatchConfig,
                name="Pattern Match",
                description="Checks if the response matches regex patterns",
                category=EvaluatorCategory.ACCURACY,
            ),
            EvaluatorRegistration(
                key=EVALUATOR_LLM_JUDGE,
                constructor=LlmJudgeEvaluator,
                config_model=LlmJudgeConfig,
                name="LLM Judge",
                description="Uses an LLM to evaluate response quality",
                category=EvaluatorCategory.QUALITY,
                evaluator_type=EvaluatorType.LLM_JUDGE,
            ),
        ]
        for registration in builtins:
            cls._registry[registration.key] = registration

        cls._initialized = True
        logger.debug(f"EvaluatorRegistry initialized with {len(builtins)} built-in evaluators")

    @classmethod
    def register(
        cls,
        key: str,
        constructor: EvaluatorConstructor,
        config_model: Type[BaseModel],
        name: Optional[str] = None,
        description: str = "",
        category: Union[str, EvaluatorCategory] = EvaluatorCategory.CUSTOM,
        evaluator_type: Union[str, EvaluatorType] = EvaluatorType.AUTOMATED,
        default_config: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        override: bool = False,
    ) -> EvaluatorRegistration:
        """
        Register an evaluator.

        Args:
            key: Unique evaluator key
            constructor: Callable taking (response, decoded_config)
            config_model: Pydantic model for the evaluator's config
            name: Human-readable name (defaults to the title-cased key)
            description: What the evaluator checks
            category: Evaluator category
            evaluator_type: automated, llm_judge or human
            default_config: Defaults merged under raw configs
            metadata: Additional metadata
            override: If True, replaces an existing registration

        Raises:
            EvaluatorRegistrationError: If key is empty or already registered
                and override=False
        """
        cls._ensure_initialized()

        if not key:
            raise EvaluatorRegistrationError("Evaluator key must not be empty")
        if key in cls._registry and not override:
            raise EvaluatorRegistrationError(
                ERROR_ALREADY_REGISTERED.format(key=key),
                details={"existing_key": key},
            )

        registration = EvaluatorRegistration(
            key=key,
            constructor=constructor,
            config_model=config_model,
            name=name or "",
            description=description,
            category=EvaluatorCategory(category),
            evaluator_type=EvaluatorType(evaluator_type),
            default_config=default_config or {},
            metadata=metadata or {},
        )
        cls._registry[key] = registration
        logger.info(LOG_EVALUATOR_REGISTERED.format(key=key, name=registration.name))
        return registration

    @classmethod
    def unregister(cls, key: str) -> bool:
        """
        Returns:
            True if the evaluator was unregistered, False if it wasn't registered
        """
        cls._ensure_initialized()

        if key in cls._registry:
            del cls._registry[key]
            logger.info(LOG_EVALUATOR_UNREGISTERED.format(key=key))
            return True
        return False

    @classmethod
    def get(cls, key: str) -> Optional[EvaluatorRegistration]:
        cls._ensure_initialized()
        return cls._registry.get(key)

    @classmethod
    def exists(cls, key: str) -> bool:
        return cls.get(key) is not None

    @classmethod
    def _require(cls, key: str) -> EvaluatorRegistration:
        registration = cls.get(key)
        if registration is None:
            raise UnknownEvaluatorError(key, available=cls.list_keys())
        return registration

    @classmethod
    def decode_config(cls, key: str, raw_config: Optional[Dict[str, Any]] = None) -> BaseModel:
        """
        Decode a raw config into the evaluator's config model.

        Raises:
            UnknownEvaluatorError: If key is not registered
            InvalidConfigError: If the config does not decode
        """
        registration = cls._require(key)
        merged = {**registration.default_config, **(raw_config or {})}
        try:
            return registration.config_model.model_validate(merged)
        except ValidationError as e:
            errors = [
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ]
            reason = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
                for err in errors
            )
            raise InvalidConfigError(key, reason, errors=errors) from e
        except ValueError as e:
            raise InvalidConfigError(key, str(e)) from e

    @classmethod
    def build(
        cls,
        key: str,
        response: LlmResponse,
        raw_config: Optional[Dict[str, Any]] = None,
    ) -> IEvaluator:
        """
        Build an evaluator for one response.

        Raises:
            UnknownEvaluatorError: If key is not registered
            InvalidConfigError: If the config does not decode or the
                constructor rejects it
        """
        registration = cls._require(key)
        config = cls.decode_config(key, raw_config)
        try:
            return registration.constructor(response, config)
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(key, f"constructor failed: {e}") from e

    @classmethod
    def list_keys(cls) -> List[str]:
        cls._ensure_initialized()
        return sorted(cls._registry.keys())

    @classmethod
    def list_registrations(cls) -> List[EvaluatorRegistration]:
        cls._ensure_initialized()
        return [cls._registry[k] for k in sorted(cls._registry)]

    @classmethod
    def by_category(cls, category: Union[str, EvaluatorCategory]) -> List[EvaluatorRegistration]:
        """Registrations in one category, ordered by key."""
        category = EvaluatorCategory(category)
        return [r for r in cls.list_registrations() if r.category == category]

    @classmethod
    def get_info(cls, key: str) -> Dict[str, Any]:
        """
        Get detailed information about an evaluator.

        Returns:
            Dictionary with evaluator information, empty if unknown
        """
        registration = cls.get(key)
        if not registration:
            return {}

        return {
            "key": registration.key,
            "name": registration.name,
            "description": registration.description,
            "category": registration.category.value,
            "evaluator_type": registration.evaluator_type.value,
            "default_config": registration.default_config,
            "config_schema": registration.config_model.model_json_schema(),
            "created_at": registration.created_at.isoformat(),
            "metadata": registration.metadata,
        }

    @classmethod
    def reset(cls) -> None:
        """Remove every registration; built-ins come back on next use."""
        cls._registry.clear()
        cls._initialized = False
        logger.info("EvaluatorRegistry reset")
