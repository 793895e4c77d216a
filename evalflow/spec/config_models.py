"""
Evaluator Configuration Models.

Defines the owners of evaluator configs (a prompt version for production
monitoring, a test case for pre-deployment validation) and the declarative
EvaluatorConfig record describing which evaluator runs, how, and when.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union
import uuid

from pydantic import BaseModel, Field

from ..constants import (
    DEFAULT_PRIORITY,
    DEFAULT_WEIGHT,
    OWNER_KIND_VERSION,
    OWNER_KIND_TEST,
)
from ..enum import AggregationStrategy, RunMode


class VersionOwner(BaseModel):
    """
    A prompt version owning configs used to monitor tracked calls.
    """

    kind: Literal["version"] = Field(default=OWNER_KIND_VERSION, description="Owner tag")
    version_id: str = Field(min_length=1, description="Prompt version ID")
    category: Optional[str] = Field(
        default=None,
        description="Owner category, used to resolve custom aggregation rules"
    )
    aggregation_strategy: AggregationStrategy = Field(
        default=AggregationStrategy.WEIGHTED_AVERAGE,
        description="How this owner's evaluation scores are combined"
    )

    @property
    def owner_key(self) -> str:
        return f"{OWNER_KIND_VERSION}:{self.version_id}"

    def __str__(self) -> str:
        return self.owner_key


class TestOwner(BaseModel):
    """
    A prompt test owning configs used to validate test runs.
    """

    __test__ = False

    kind: Literal["test"] = Field(default=OWNER_KIND_TEST, description="Owner tag")
    test_id: str = Field(min_length=1, description="Prompt test ID")
    version_id: Optional[str] = Field(
        default=None,
        description="Prompt version exercised by the test"
    )
    category: Optional[str] = Field(
        default=None,
        description="Owner category, used to resolve custom aggregation rules"
    )
    aggregation_strategy: AggregationStrategy = Field(
        default=AggregationStrategy.WEIGHTED_AVERAGE,
        description="How this owner's evaluation scores are combined"
    )

    @property
    def owner_key(self) -> str:
        return f"{OWNER_KIND_TEST}:{self.test_id}"

    def __str__(self) -> str:
        return self.owner_key


ConfigOwner = Annotated[Union[VersionOwner, TestOwner], Field(discriminator="kind")]


class EvaluatorConfig(BaseModel):
    """
    Declarative record attached to one owner describing an evaluator run.

    Range checks mirror the write-time validator so that invalid values
    fail as early as construction.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Config ID"
    )
    owner: ConfigOwner = Field(description="Owning version or test")
    evaluator_key: str = Field(
        min_length=1,
        description="Registered evaluator key; unique per owner"
    )
    enabled: bool = Field(default=True, description="Disabled configs are never scheduled")
    run_mode: RunMode = Field(default=RunMode.ASYNC, description="Inline or queued execution")
    priority: int = Field(
        default=DEFAULT_PRIORITY,
        description="Higher runs earlier within a dependency tier"
    )
    weight: float = Field(
        default=DEFAULT_WEIGHT,
        ge=0.0,
        description="Weight used by weighted aggregation"
    )
    threshold: Optional[int] = Field(
        default=None,
        ge=0, le=100,
        description="Pass mark for test-run reporting"
    )
    depends_on: Optional[str] = Field(
        default=None,
        description="evaluator_key of another config on the same owner"
    )
    min_dependency_score: Optional[int] = Field(
        default=None,
        ge=0, le=100,
        description="Minimum normalized dependency score (default 80)"
    )
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Evaluator-specific parameters, decoded at build time"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Creation time"
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last update time"
    )

    @property
    def is_independent(self) -> bool:
        return self.depends_on is None

    @property
    def sort_key(self) -> Tuple[int, str]:
        """Priority descending, then evaluator_key ascending."""
        return (-self.priority, self.evaluator_key)

    def dispatch_metadata(self) -> Dict[str, Any]:
        """Metadata recorded on every evaluation produced from this config."""
        return {
            "evaluator_config_id": self.id,
            "weight": self.weight,
            "priority": self.priority,
            "depends_on": self.depends_on,
            "run_mode": self.run_mode.value,
        }
