"""
Enumerations for the Evalflow Module.
"""

from enum import Enum
from .constants import (
    RUN_MODE_SYNC,
    RUN_MODE_ASYNC,
    CONTEXT_TRACKED_CALL,
    CONTEXT_TEST_RUN,
    CONTEXT_MANUAL,
    EVALUATOR_TYPE_AUTOMATED,
    EVALUATOR_TYPE_LLM_JUDGE,
    EVALUATOR_TYPE_HUMAN,
    CATEGORY_FORMAT,
    CATEGORY_CONTENT,
    CATEGORY_ACCURACY,
    CATEGORY_QUALITY,
    CATEGORY_CUSTOM,
    STRATEGY_SIMPLE_AVERAGE,
    STRATEGY_WEIGHTED_AVERAGE,
    STRATEGY_MINIMUM,
    STRATEGY_CUSTOM,
    JOB_STATE_PENDING,
    JOB_STATE_IN_PROGRESS,
    JOB_STATE_COMPLETED,
    JOB_STATE_SKIPPED,
    JOB_STATE_FAILED,
    OUTCOME_EXECUTED,
    OUTCOME_ENQUEUED,
    OUTCOME_SKIPPED_DEPENDENCY,
    OUTCOME_SKIPPED_DUPLICATE,
    OUTCOME_BUILD_FAILED,
    OUTCOME_EXECUTION_FAILED,
    OUTCOME_ENQUEUE_FAILED,
    TEST_STATUS_PASSED,
    TEST_STATUS_FAILED,
    TEST_STATUS_PENDING,
    STORE_TYPE_MEMORY,
    STORE_TYPE_DYNAMODB,
)


class RunMode(str, Enum):
    """Where an evaluator runs: inline or on a worker."""
    SYNC = RUN_MODE_SYNC
    ASYNC = RUN_MODE_ASYNC


class EvaluationContext(str, Enum):
    """Why an evaluation was produced."""
    TRACKED_CALL = CONTEXT_TRACKED_CALL
    TEST_RUN = CONTEXT_TEST_RUN
    MANUAL = CONTEXT_MANUAL


class EvaluatorType(str, Enum):
    """Type of evaluator that produced an evaluation."""
    AUTOMATED = EVALUATOR_TYPE_AUTOMATED
    LLM_JUDGE = EVALUATOR_TYPE_LLM_JUDGE
    HUMAN = EVALUATOR_TYPE_HUMAN


class EvaluatorCategory(str, Enum):
    """Grouping used when listing registered evaluators."""
    FORMAT = CATEGORY_FORMAT
    CONTENT = CATEGORY_CONTENT
    ACCURACY = CATEGORY_ACCURACY
    QUALITY = CATEGORY_QUALITY
    CUSTOM = CATEGORY_CUSTOM


class AggregationStrategy(str, Enum):
    """How evaluation scores combine into an overall score."""
    SIMPLE_AVERAGE = STRATEGY_SIMPLE_AVERAGE
    WEIGHTED_AVERAGE = STRATEGY_WEIGHTED_AVERAGE
    MINIMUM = STRATEGY_MINIMUM
    CUSTOM = STRATEGY_CUSTOM


class JobState(str, Enum):
    """Lifecycle of an async evaluation job."""
    PENDING = JOB_STATE_PENDING
    IN_PROGRESS = JOB_STATE_IN_PROGRESS
    COMPLETED = JOB_STATE_COMPLETED
    SKIPPED = JOB_STATE_SKIPPED
    FAILED = JOB_STATE_FAILED


class ConfigOutcome(str, Enum):
    """What happened to one config during an orchestration run."""
    EXECUTED = OUTCOME_EXECUTED
    ENQUEUED = OUTCOME_ENQUEUED
    SKIPPED_DEPENDENCY = OUTCOME_SKIPPED_DEPENDENCY
    SKIPPED_DUPLICATE = OUTCOME_SKIPPED_DUPLICATE
    BUILD_FAILED = OUTCOME_BUILD_FAILED
    EXECUTION_FAILED = OUTCOME_EXECUTION_FAILED
    ENQUEUE_FAILED = OUTCOME_ENQUEUE_FAILED


class TestRunStatus(str, Enum):
    """Overall result of evaluating a test run."""
    __test__ = False

    PASSED = TEST_STATUS_PASSED
    FAILED = TEST_STATUS_FAILED
    PENDING = TEST_STATUS_PENDING


class StoreType(str, Enum):
    """Evaluation store backends."""
    MEMORY = STORE_TYPE_MEMORY
    DYNAMODB = STORE_TYPE_DYNAMODB
