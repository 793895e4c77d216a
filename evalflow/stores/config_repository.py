"""
Evaluator Config Repository.

In-memory, thread-safe storage for evaluator configs. Every write is
validated before it is applied, so a rejected write leaves the repository
unchanged.

Usage:
    repo = EvaluatorConfigRepository()
    repo.create(EvaluatorConfig(owner=VersionOwner(version_id="v1"), evaluator_key="length"))
    configs = repo.list_for_owner(VersionOwner(version_id="v1"), enabled_only=True)
"""

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ValidationError

from ..constants import ERROR_CONFIG_HAS_DEPENDENTS
from ..exceptions import ConfigNotFoundError, ConfigValidationError
from ..runtimes.config_validator import ConfigValidator
from ..spec.config_models import EvaluatorConfig, TestOwner, VersionOwner

logger = logging.getLogger(__name__)


Owner = Union[VersionOwner, TestOwner]


class CopyResult(BaseModel):
    """Outcome of copying test evaluators onto a version."""
    copied_count: int = 0
    skipped_count: int = 0
    copied_keys: List[str] = []


class EvaluatorConfigRepository:
    """
    Stores evaluator configs keyed by ID.
    """

    def __init__(self):
        self._configs: Dict[str, EvaluatorConfig] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, config_id: str) -> Optional[EvaluatorConfig]:
        with self._lock:
            return self._configs.get(config_id)

    def list_for_owner(self, owner: Owner, enabled_only: bool = False) -> List[EvaluatorConfig]:
        """An owner's configs, priority descending then evaluator_key."""
        with self._lock:
            configs = [
                c for c in self._configs.values()
                if c.owner.owner_key == owner.owner_key
            ]
        if enabled_only:
            configs = [c for c in configs if c.enabled]
        return sorted(configs, key=lambda c: c.sort_key)

    def get_by_key(self, owner: Owner, evaluator_key: str) -> Optional[EvaluatorConfig]:
        for config in self.list_for_owner(owner):
            if config.evaluator_key == evaluator_key:
                return config
        return None

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, config: EvaluatorConfig) -> EvaluatorConfig:
        """
        Add a config.

        Raises:
            ConfigValidationError: If the config conflicts with its owner's set
        """
        with self._lock:
            if config.id in self._configs:
                raise ConfigValidationError(
                    f"Evaluator config already exists: {config.id}",
                    validation_errors=[f"Duplicate config id: {config.id}"],
                )
            ConfigValidator.validate_write(config, self._configs.values())
            self._configs[config.id] = config

        logger.info(f"Created evaluator config {config.evaluator_key} for {config.owner.owner_key}")
        return config

    def update(self, config_id: str, **changes: Any) -> EvaluatorConfig:
        """
        Apply field changes to a config.

        Raises:
            ConfigNotFoundError: If config_id is unknown
            ConfigValidationError: If the result is invalid
        """
        changes.pop("id", None)
        with self._lock:
            current = self._configs.get(config_id)
            if current is None:
                raise ConfigNotFoundError(config_id)

            data = current.model_dump()
            data.update(changes)
            data["updated_at"] = datetime.utcnow()
            try:
                updated = EvaluatorConfig.model_validate(data)
            except ValidationError as e:
                raise ConfigValidationError(
                    f"Invalid update for evaluator config {config_id}",
                    validation_errors=[err["msg"] for err in e.errors()],
                ) from e

            ConfigValidator.validate_write(updated, self._configs.values())
            if updated.evaluator_key != current.evaluator_key:
                self._check_no_dependents(current)
            self._configs[config_id] = updated

        return updated

    def delete(self, config_id: str) -> EvaluatorConfig:
        """
        Remove a config.

        Raises:
            ConfigNotFoundError: If config_id is unknown
            ConfigValidationError: If other configs depend on it
        """
        with self._lock:
            current = self._configs.get(config_id)
            if current is None:
                raise ConfigNotFoundError(config_id)
            self._check_no_dependents(current)
            del self._configs[config_id]

        logger.info(f"Deleted evaluator config {current.evaluator_key} for {current.owner.owner_key}")
        return current

    def bulk_create(self, configs: Iterable[EvaluatorConfig]) -> List[EvaluatorConfig]:
        """
        Add several configs at once; all are saved or none are.

        Raises:
            ConfigValidationError: With every problem across the batch
        """
        configs = list(configs)
        with self._lock:
            owner_keys = {c.owner.owner_key for c in configs}
            existing = [
                c for c in self._configs.values()
                if c.owner.owner_key in owner_keys
            ]
            ConfigValidator.validate_set(existing + configs)
            for config in configs:
                self._configs[config.id] = config

        return configs

    def copy_test_evaluators(
        self,
        version_owner: VersionOwner,
        test_owners: Iterable[TestOwner],
    ) -> CopyResult:
        """
        Copy the configs of a version's tests onto the version itself so
        tracked calls are monitored with the same evaluators.

        Keys the version already has are skipped; so are keys seen earlier
        in the copy. A depends_on that would not resolve on the version is
        dropped from the copy.
        """
        result = CopyResult()
        with self._lock:
            existing_keys = {
                c.evaluator_key for c in self._configs.values()
                if c.owner.owner_key == version_owner.owner_key
            }
            sources: List[EvaluatorConfig] = []
            for test_owner in test_owners:
                sources.extend(
                    c for c in self._configs.values()
                    if c.owner.owner_key == test_owner.owner_key
                )
            sources.sort(key=lambda c: (c.owner.owner_key, c.sort_key))

            candidates: List[EvaluatorConfig] = []
            for source in sources:
                if source.evaluator_key in existing_keys:
                    result.skipped_count += 1
                    continue
                existing_keys.add(source.evaluator_key)
                candidates.append(source)

            copies = []
            for source in candidates:
                depends_on = source.depends_on if source.depends_on in existing_keys else None
                copies.append(EvaluatorConfig(
                    owner=version_owner,
                    evaluator_key=source.evaluator_key,
                    enabled=True,
                    run_mode=source.run_mode,
                    priority=source.priority,
                    weight=source.weight,
                    threshold=source.threshold,
                    depends_on=depends_on,
                    min_dependency_score=source.min_dependency_score,
                    config=dict(source.config),
                ))

            existing = [
                c for c in self._configs.values()
                if c.owner.owner_key == version_owner.owner_key
            ]
            ConfigValidator.validate_set(existing + copies)
            for copy in copies:
                self._configs[copy.id] = copy
                result.copied_keys.append(copy.evaluator_key)

        result.copied_count = len(result.copied_keys)
        logger.info(
            f"Copied {result.copied_count} test evaluators to {version_owner.owner_key} "
            f"({result.skipped_count} skipped)"
        )
        return result

    def clear(self) -> None:
        with self._lock:
            self._configs.clear()

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _check_no_dependents(self, config: EvaluatorConfig) -> None:
        """Must hold lock."""
        dependents = sorted(
            c.evaluator_key for c in self._configs.values()
            if c.owner.owner_key == config.owner.owner_key
            and c.id != config.id
            and c.depends_on == config.evaluator_key
        )
        if dependents:
            message = ERROR_CONFIG_HAS_DEPENDENTS.format(
                key=config.evaluator_key, dependents=", ".join(dependents),
            )
            raise ConfigValidationError(message, validation_errors=[message])
