"""
Evaluator Config Validator.

Write-time validation of evaluator configs. All problems with a write are
collected and reported together before anything is persisted.

Rules (scoped to one owner):
- evaluator_key is unique, whether the other config is enabled or not
- depends_on names another existing config (never the config itself)
- the depends_on chain is acyclic; a cycle is reported with the edge that
  closed it
- weight >= 0; threshold and min_dependency_score within [0, 100]
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from ..constants import (
    ERROR_DEPENDENCY_CYCLE,
    ERROR_DUPLICATE_KEY,
    ERROR_NEGATIVE_WEIGHT,
    ERROR_OUT_OF_RANGE,
    ERROR_SELF_DEPENDENCY,
    ERROR_UNRESOLVED_DEPENDENCY,
)
from ..exceptions import ConfigValidationError
from ..spec.config_models import EvaluatorConfig


Edge = Tuple[str, str]


class ConfigValidator:
    """
    Validates evaluator configs against their owner's other configs.

    Usage:
        ConfigValidator.validate_write(candidate, existing_configs)
        ConfigValidator.validate_set(configs)
    """

    @staticmethod
    def range_errors(config: EvaluatorConfig) -> List[str]:
        """Out-of-range numeric fields of one config."""
        errors = []
        key = config.evaluator_key
        if config.weight is None or config.weight < 0:
            errors.append(ERROR_NEGATIVE_WEIGHT.format(key=key, weight=config.weight))
        for field_name in ("threshold", "min_dependency_score"):
            value = getattr(config, field_name)
            if value is not None and not 0 <= value <= 100:
                errors.append(ERROR_OUT_OF_RANGE.format(key=key, field=field_name, value=value))
        return errors

    @staticmethod
    def find_cycle(start: str, dependencies: Dict[str, Optional[str]]) -> Optional[List[str]]:
        """
        Walk the depends_on chain from start with a visited set.

        Args:
            start: evaluator_key to start from
            dependencies: evaluator_key -> depends_on for one owner

        Returns:
            The path ending in the first revisited key, or None if the chain
            terminates
        """
        visited = {start}
        path = [start]
        current = start
        while True:
            nxt = dependencies.get(current)
            if nxt is None:
                return None
            if nxt in visited:
                return path + [nxt]
            if nxt not in dependencies:
                # Unresolved reference; reported separately
                return None
            visited.add(nxt)
            path.append(nxt)
            current = nxt

    @classmethod
    def validate_write(
        cls,
        candidate: EvaluatorConfig,
        existing: Iterable[EvaluatorConfig],
    ) -> None:
        """
        Validate creating or updating one config.

        Args:
            candidate: The config as it would be saved
            existing: Currently saved configs (any owner); a saved config
                with the candidate's id is the one being replaced

        Raises:
            ConfigValidationError: With every problem found
        """
        owner_key = candidate.owner.owner_key
        siblings = [
            c for c in existing
            if c.owner.owner_key == owner_key and c.id != candidate.id
        ]

        errors = cls.range_errors(candidate)
        offending_edge: Optional[Edge] = None
        key = candidate.evaluator_key

        if any(c.evaluator_key == key for c in siblings):
            errors.append(ERROR_DUPLICATE_KEY.format(key=key, owner=owner_key))

        if candidate.depends_on is not None:
            sibling_keys = {c.evaluator_key for c in siblings}
            if candidate.depends_on == key:
                errors.append(ERROR_SELF_DEPENDENCY.format(key=key))
                offending_edge = (key, key)
            elif candidate.depends_on not in sibling_keys:
                errors.append(ERROR_UNRESOLVED_DEPENDENCY.format(
                    key=key, depends_on=candidate.depends_on, owner=owner_key,
                ))
            else:
                dependencies = {c.evaluator_key: c.depends_on for c in siblings}
                dependencies[key] = candidate.depends_on
                cycle = cls.find_cycle(key, dependencies)
                if cycle:
                    errors.append(ERROR_DEPENDENCY_CYCLE.format(path=" -> ".join(cycle)))
                    offending_edge = (cycle[-2], cycle[-1])

        if errors:
            raise ConfigValidationError(
                errors[0],
                validation_errors=errors,
                offending_edge=offending_edge,
                details={"owner": owner_key, "evaluator_key": key},
            )

    @classmethod
    def validate_set(cls, configs: Iterable[EvaluatorConfig]) -> None:
        """
        Validate a complete set of configs, possibly spanning owners.

        Raises:
            ConfigValidationError: With every problem found; offending_edge
                is the edge closing the first cycle found
        """
        by_owner: Dict[str, List[EvaluatorConfig]] = defaultdict(list)
        for config in configs:
            by_owner[config.owner.owner_key].append(config)

        errors: List[str] = []
        offending_edge: Optional[Edge] = None

        for owner_key, owner_configs in by_owner.items():
            dependencies: Dict[str, Optional[str]] = {}
            for config in owner_configs:
                errors.extend(cls.range_errors(config))
                if config.evaluator_key in dependencies:
                    errors.append(ERROR_DUPLICATE_KEY.format(
                        key=config.evaluator_key, owner=owner_key,
                    ))
                    continue
                dependencies[config.evaluator_key] = config.depends_on

            reported_cycles = set()
            for key, depends_on in dependencies.items():
                if depends_on is None:
                    continue
                if depends_on == key:
                    errors.append(ERROR_SELF_DEPENDENCY.format(key=key))
                    offending_edge = offending_edge or (key, key)
                    continue
                if depends_on not in dependencies:
                    errors.append(ERROR_UNRESOLVED_DEPENDENCY.format(
                        key=key, depends_on=depends_on, owner=owner_key,
                    ))
                    continue
                cycle = cls.find_cycle(key, dependencies)
                if cycle:
                    members = frozenset(cycle[cycle.index(cycle[-1]):])
                    if members in reported_cycles:
                        continue
                    reported_cycles.add(members)
                    errors.append(ERROR_DEPENDENCY_CYCLE.format(path=" -> ".join(cycle)))
                    offending_edge = offending_edge or (cycle[-2], cycle[-1])

        if errors:
            raise ConfigValidationError(
                errors[0],
                validation_errors=errors,
                offending_edge=offending_edge,
            )
