"""
Constants for the Evalflow Module.

Defines evaluator keys, run modes, contexts, aggregation strategies,
defaults and log/error message templates.
"""

# =============================================================================
# OWNER KINDS
# =============================================================================

OWNER_KIND_VERSION = "version"
OWNER_KIND_TEST = "test"

# =============================================================================
# RUN MODES
# =============================================================================

RUN_MODE_SYNC = "sync"
RUN_MODE_ASYNC = "async"

# =============================================================================
# EVALUATION CONTEXTS
# =============================================================================

CONTEXT_TRACKED_CALL = "tracked_call"
CONTEXT_TEST_RUN = "test_run"
CONTEXT_MANUAL = "manual"

# =============================================================================
# EVALUATOR TYPES
# =============================================================================

EVALUATOR_TYPE_AUTOMATED = "automated"
EVALUATOR_TYPE_LLM_JUDGE = "llm_judge"
EVALUATOR_TYPE_HUMAN = "human"

# =============================================================================
# EVALUATOR CATEGORIES
# =============================================================================

CATEGORY_FORMAT = "format"
CATEGORY_CONTENT = "content"
CATEGORY_ACCURACY = "accuracy"
CATEGORY_QUALITY = "quality"
CATEGORY_CUSTOM = "custom"

# =============================================================================
# BUILT-IN EVALUATOR KEYS
# =============================================================================

EVALUATOR_LENGTH = "length"
EVALUATOR_KEYWORD = "keyword"
EVALUATOR_FORMAT = "format"
EVALUATOR_EXACT_MATCH = "exact_match"
EVALUATOR_PATTERN_MATCH = "pattern_match"
EVALUATOR_LLM_JUDGE = "llm_judge"

# =============================================================================
# AGGREGATION STRATEGIES
# =============================================================================

STRATEGY_SIMPLE_AVERAGE = "simple_average"
STRATEGY_WEIGHTED_AVERAGE = "weighted_average"
STRATEGY_MINIMUM = "minimum"
STRATEGY_CUSTOM = "custom"

# =============================================================================
# JOB STATES
# =============================================================================

JOB_STATE_PENDING = "pending"
JOB_STATE_IN_PROGRESS = "in_progress"
JOB_STATE_COMPLETED = "completed"
JOB_STATE_SKIPPED = "skipped"
JOB_STATE_FAILED = "failed"

PENDING_JOB_STATES = (JOB_STATE_PENDING, JOB_STATE_IN_PROGRESS)
FINISHED_JOB_STATES = (JOB_STATE_COMPLETED, JOB_STATE_SKIPPED, JOB_STATE_FAILED)

# =============================================================================
# CONFIG OUTCOMES
# =============================================================================

OUTCOME_EXECUTED = "executed"
OUTCOME_ENQUEUED = "enqueued"
OUTCOME_SKIPPED_DEPENDENCY = "skipped_dependency"
OUTCOME_SKIPPED_DUPLICATE = "skipped_duplicate"
OUTCOME_BUILD_FAILED = "build_failed"
OUTCOME_EXECUTION_FAILED = "execution_failed"
OUTCOME_ENQUEUE_FAILED = "enqueue_failed"

# =============================================================================
# TEST RUN STATUS
# =============================================================================

TEST_STATUS_PASSED = "passed"
TEST_STATUS_FAILED = "failed"
TEST_STATUS_PENDING = "pending"

# =============================================================================
# DEFAULTS
# =============================================================================

SCORE_SCALE_MIN = 0
SCORE_SCALE_MAX = 100
NORMALIZED_SCORE_PRECISION = 6

DEFAULT_MIN_DEPENDENCY_SCORE = 80
DEFAULT_PRIORITY = 0
DEFAULT_WEIGHT = 1.0
DEFAULT_PASS_SCORE = 80
DEFAULT_PASSING_THRESHOLD = 70

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_S = 1.0
DEFAULT_MAX_DELAY_S = 30.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0

DEFAULT_WORKER_CONCURRENCY = 2
DEFAULT_JOB_TIMEOUT_S = 60.0
DEFAULT_POLL_INTERVAL_S = 0.5
DEFAULT_QUEUE_MAX_SIZE = 10000

DEFAULT_JUDGE_MODEL = "gpt-4o"
DEFAULT_JUDGE_BASE_URL = "https://api.openai.com/v1"
DEFAULT_JUDGE_TIMEOUT_S = 30.0

DEFAULT_STORE_TYPE = "memory"
DEFAULT_TABLE_NAME = "evalflow_evaluations"
DEFAULT_REGION = "us-east-1"
DEFAULT_MAX_CACHED_RESPONSES = 1000

DEFAULT_LOG_LEVEL = "INFO"

FEEDBACK_PREVIEW_CHARS = 100

# =============================================================================
# STORE TYPES
# =============================================================================

STORE_TYPE_MEMORY = "memory"
STORE_TYPE_DYNAMODB = "dynamodb"

# =============================================================================
# ENVIRONMENT VARIABLES
# =============================================================================

ENV_PREFIX = "EVALFLOW_"
ENV_NESTED_DELIMITER = "__"
ENV_SETTINGS_FILE = "EVALFLOW_SETTINGS_FILE"

# =============================================================================
# FILE FORMATS
# =============================================================================

JSON_EXTENSION = ".json"
YAML_EXTENSION = ".yaml"
YML_EXTENSION = ".yml"
UTF_8 = "utf-8"

# =============================================================================
# ERROR MESSAGES
# =============================================================================

ERROR_ALREADY_REGISTERED = "Evaluator '{key}' is already registered. Use override=True to replace it."
ERROR_DUPLICATE_KEY = "Evaluator '{key}' is already configured for {owner}"
ERROR_UNRESOLVED_DEPENDENCY = "Evaluator '{key}' depends on '{depends_on}', which is not configured for {owner}"
ERROR_SELF_DEPENDENCY = "Evaluator '{key}' cannot depend on itself"
ERROR_DEPENDENCY_CYCLE = "Dependency cycle detected: {path}"
ERROR_NEGATIVE_WEIGHT = "Evaluator '{key}' weight must be >= 0 (got {weight})"
ERROR_OUT_OF_RANGE = "Evaluator '{key}' {field} must be within [0, 100] (got {value})"
ERROR_CONFIG_NOT_FOUND = "Evaluator config not found: {config_id}"
ERROR_CONFIG_HAS_DEPENDENTS = "Evaluator '{key}' is required by: {dependents}"
ERROR_RESPONSE_NOT_FOUND = "Response not found: {response_id}"
ERROR_EVALUATOR_FAILED = "Evaluator '{key}' failed: {error}"
ERROR_ENQUEUE_FAILED = "Failed to enqueue evaluator '{key}': {error}"

# =============================================================================
# LOG MESSAGES
# =============================================================================

LOG_EVALUATOR_REGISTERED = "Registered evaluator: {key} ({name})"
LOG_EVALUATOR_UNREGISTERED = "Unregistered evaluator: {key}"
LOG_ORCHESTRATION_STARTED = "Evaluating response {response_id} ({context}) with {count} evaluators"
LOG_EVALUATION_CREATED = "Evaluation created: {key} scored {score} for response {response_id}"
LOG_DUPLICATE_SKIPPED = "Evaluation already exists for response {response_id} / {key}; skipping"
LOG_DEPENDENCY_SKIPPED = "Skipping '{key}' for response {response_id}: {reason}"
LOG_BUILD_FAILED = "Could not build evaluator '{key}' for response {response_id}: {error}"
LOG_EXECUTION_FAILED = "Evaluator '{key}' failed for response {response_id}: {error}"
LOG_JOB_ENQUEUED = "Enqueued job {job_id} for '{key}' on response {response_id}"
LOG_JOB_RETRY = "Job {job_id} attempt {attempt} failed ({error}); retrying in {delay:.2f}s"
LOG_JOB_FAILED = "Job {job_id} permanently failed after {attempts} attempts: {error}"
LOG_JOB_SKIPPED = "Job {job_id} skipped: {reason}"
LOG_DEPENDENCY_READ_FAILED = "Could not read dependency of '{key}' for response {response_id}: {error}"
LOG_RESPONSE_RELEASED = "Released response {response_id}; no jobs pending"
LOG_JOB_PERMANENT = "Job {job_id} failed with a non-transient error; not retrying: {error}"
