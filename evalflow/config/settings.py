"""
Evalflow Settings.

Process-wide settings for dependency gating, worker retries, the judge
model client, the evaluation store and logging.

Settings are read from an optional JSON or YAML file; environment variables
with the EVALFLOW_ prefix take precedence over file values. Nested sections
use a double underscore, e.g. EVALFLOW_JUDGE__API_KEY.

Usage:
    settings = load_settings("evalflow.yaml")
    configure_settings(settings)

    # Anywhere else
    settings = get_settings()
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, Union

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource
import yaml

from ..constants import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_BASE_DELAY_S,
    DEFAULT_JOB_TIMEOUT_S,
    DEFAULT_JUDGE_BASE_URL,
    DEFAULT_JUDGE_MODEL,
    DEFAULT_JUDGE_TIMEOUT_S,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_CACHED_RESPONSES,
    DEFAULT_MAX_DELAY_S,
    DEFAULT_MIN_DEPENDENCY_SCORE,
    DEFAULT_POLL_INTERVAL_S,
    DEFAULT_QUEUE_MAX_SIZE,
    DEFAULT_REGION,
    DEFAULT_STORE_TYPE,
    DEFAULT_TABLE_NAME,
    DEFAULT_WORKER_CONCURRENCY,
    ENV_NESTED_DELIMITER,
    ENV_PREFIX,
    ENV_SETTINGS_FILE,
    JSON_EXTENSION,
    UTF_8,
    YAML_EXTENSION,
    YML_EXTENSION,
)
from ..enum import StoreType
from ..exceptions import SettingsError


class RetrySettings(BaseModel):
    """
    Retry behavior for async jobs and enqueue calls.

    Delay before attempt n+1 is base_delay_s * backoff_multiplier ** (n - 1),
    capped at max_delay_s.
    """
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1, le=10)
    base_delay_s: float = Field(default=DEFAULT_BASE_DELAY_S, ge=0)
    max_delay_s: float = Field(default=DEFAULT_MAX_DELAY_S, ge=0)
    backoff_multiplier: float = Field(default=DEFAULT_BACKOFF_MULTIPLIER, ge=1)

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given (1-based) failed attempt."""
        delay = self.base_delay_s * (self.backoff_multiplier ** max(attempt - 1, 0))
        return min(delay, self.max_delay_s)


class WorkerSettings(BaseModel):
    """Async worker pool settings."""
    concurrency: int = Field(default=DEFAULT_WORKER_CONCURRENCY, ge=1)
    job_timeout_s: float = Field(default=DEFAULT_JOB_TIMEOUT_S, gt=0)
    poll_interval_s: float = Field(default=DEFAULT_POLL_INTERVAL_S, gt=0)
    queue_max_size: int = Field(default=DEFAULT_QUEUE_MAX_SIZE, ge=1)


class JudgeSettings(BaseModel):
    """Settings for the LLM judge's model client."""
    base_url: str = Field(default=DEFAULT_JUDGE_BASE_URL)
    api_key: Optional[str] = Field(default=None)
    default_model: str = Field(default=DEFAULT_JUDGE_MODEL)
    timeout_s: float = Field(default=DEFAULT_JUDGE_TIMEOUT_S, gt=0)


class StoreSettings(BaseModel):
    """Evaluation store backend settings."""
    store_type: StoreType = Field(default=StoreType(DEFAULT_STORE_TYPE))
    table_name: str = Field(default=DEFAULT_TABLE_NAME)
    region_name: str = Field(default=DEFAULT_REGION)
    endpoint_url: Optional[str] = Field(default=None)
    max_cached_responses: Optional[int] = Field(default=DEFAULT_MAX_CACHED_RESPONSES, ge=1)


class EvalflowSettings(BaseSettings):
    """
    Top-level settings with environment variable loading.

    Example: EVALFLOW_WORKER__CONCURRENCY=4 overrides worker.concurrency
    """
    default_min_dependency_score: int = Field(
        default=DEFAULT_MIN_DEPENDENCY_SCORE,
        ge=0, le=100,
        description="Dependency gate used when a config sets none"
    )
    log_level: str = Field(default=DEFAULT_LOG_LEVEL)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    judge: JudgeSettings = Field(default_factory=JudgeSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)

    model_config = {
        "env_prefix": ENV_PREFIX,
        "env_nested_delimiter": ENV_NESTED_DELIMITER,
        "env_ignore_empty": True,
        "case_sensitive": False,
        "extra": "ignore",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment first, so it wins over values passed in (file contents)
        return env_settings, init_settings


def _read_settings_file(path: Path) -> Dict[str, Any]:
    """Read a JSON or YAML settings file."""
    if not path.exists():
        raise SettingsError(f"Settings file not found: {path}", details={"path": str(path)})

    with open(path, "r", encoding=UTF_8) as f:
        content = f.read()

    suffix = path.suffix.lower()
    try:
        if suffix in (YAML_EXTENSION, YML_EXTENSION):
            data = yaml.safe_load(content)
        elif suffix == JSON_EXTENSION:
            data = json.loads(content)
        else:
            raise SettingsError(
                f"Unsupported settings format: {suffix}",
                details={"path": str(path)},
            )
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise SettingsError(
            f"Could not parse settings file {path}: {e}",
            details={"path": str(path)},
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SettingsError(
            f"Settings file must contain a mapping: {path}",
            details={"path": str(path)},
        )
    return data


def load_settings(path: Optional[Union[str, Path]] = None) -> EvalflowSettings:
    """
    Load settings from a file and the environment.

    Args:
        path: JSON or YAML file; defaults to $EVALFLOW_SETTINGS_FILE if set

    Returns:
        Validated EvalflowSettings

    Raises:
        SettingsError: If the file is missing or values are invalid
    """
    if path is None:
        path = os.environ.get(ENV_SETTINGS_FILE) or None

    data: Dict[str, Any] = {}
    if path is not None:
        data = _read_settings_file(Path(path))

    try:
        return EvalflowSettings(**data)
    except ValidationError as e:
        raise SettingsError(
            f"Invalid settings: {e.error_count()} error(s)",
            details={"errors": e.errors(include_url=False)},
        ) from e


def configure_logging(settings: Optional[EvalflowSettings] = None) -> None:
    """Set the evalflow logger level from settings."""
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        raise SettingsError(f"Unknown log level: {settings.log_level}")
    logging.getLogger("evalflow").setLevel(level)


# =============================================================================
# Singleton Instance
# =============================================================================

_instance: Optional[EvalflowSettings] = None
_lock = threading.Lock()


def get_settings() -> EvalflowSettings:
    """
    Get the global settings (singleton).

    Loaded from the environment on first call.
    """
    global _instance

    if _instance is None:
        with _lock:
            if _instance is None:
                _instance = load_settings()

    return _instance


def configure_settings(settings: EvalflowSettings) -> None:
    """Replace the global settings."""
    global _instance

    with _lock:
        _instance = settings


def reset_settings() -> None:
    """Reset the settings (for testing)."""
    global _instance

    with _lock:
        _instance = None
