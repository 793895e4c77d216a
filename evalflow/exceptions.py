"""
Evalflow Exceptions Module.

This module defines all custom exceptions used throughout evalflow.
"""

from typing import Any, Dict, List, Optional, Tuple


class EvalflowError(Exception):
    """Base exception for all evalflow errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            parts.insert(0, f"[{self.error_code}]")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


# =============================================================================
# Configuration
# =============================================================================

class ConfigValidationError(EvalflowError):
    """Raised when an evaluator config write is rejected."""

    def __init__(
        self,
        message: str,
        validation_errors: Optional[List[str]] = None,
        offending_edge: Optional[Tuple[str, str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        all_details = details or {}
        all_details["validation_errors"] = validation_errors or []
        if offending_edge:
            all_details["offending_edge"] = list(offending_edge)
        super().__init__(
            message,
            error_code="CONFIG_VALIDATION_ERROR",
            details=all_details,
        )
        self.validation_errors = validation_errors or []
        self.offending_edge = offending_edge


class ConfigNotFoundError(EvalflowError):
    """Raised when an evaluator config cannot be found."""

    def __init__(self, config_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Evaluator config not found: {config_id}",
            error_code="CONFIG_NOT_FOUND",
            details=details,
        )
        self.config_id = config_id


class SettingsError(EvalflowError):
    """Raised when settings cannot be loaded."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="SETTINGS_ERROR", details=details)


# =============================================================================
# Registry / build
# =============================================================================

class EvaluatorRegistrationError(EvalflowError):
    """Raised when an evaluator cannot be registered."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            error_code="EVALUATOR_REGISTRATION_ERROR",
            details=details,
        )


class EvaluatorBuildError(EvalflowError):
    """Raised when an evaluator instance cannot be built."""

    def __init__(
        self,
        message: str,
        evaluator_key: Optional[str] = None,
        error_code: str = "EVALUATOR_BUILD_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        all_details = details or {}
        if evaluator_key:
            all_details["evaluator_key"] = evaluator_key
        super().__init__(message, error_code=error_code, details=all_details)
        self.evaluator_key = evaluator_key


class UnknownEvaluatorError(EvaluatorBuildError):
    """Raised when an evaluator key is not registered."""

    def __init__(self, evaluator_key: str, available: Optional[List[str]] = None):
        super().__init__(
            f"Unknown evaluator: '{evaluator_key}'",
            evaluator_key=evaluator_key,
            error_code="UNKNOWN_EVALUATOR",
            details={"available_evaluators": available or []},
        )


class InvalidConfigError(EvaluatorBuildError):
    """Raised when an evaluator config cannot be decoded."""

    def __init__(
        self,
        evaluator_key: str,
        reason: str,
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(
            f"Invalid config for evaluator '{evaluator_key}': {reason}",
            evaluator_key=evaluator_key,
            error_code="INVALID_EVALUATOR_CONFIG",
            details={"errors": errors or []},
        )
        self.reason = reason


# =============================================================================
# Execution
# =============================================================================

class EvaluatorExecutionError(EvalflowError):
    """Raised when an evaluator fails while scoring a response."""

    def __init__(
        self,
        message: str,
        evaluator_key: Optional[str] = None,
        response_id: Optional[str] = None,
        error_code: str = "EVALUATOR_EXECUTION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        all_details = details or {}
        if evaluator_key:
            all_details["evaluator_key"] = evaluator_key
        if response_id:
            all_details["response_id"] = response_id
        super().__init__(message, error_code=error_code, details=all_details)
        self.evaluator_key = evaluator_key
        self.response_id = response_id


class JudgeClientError(EvaluatorExecutionError):
    """Raised when the judge model call fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        all_details = details or {}
        if status_code is not None:
            all_details["status_code"] = status_code
        super().__init__(
            message,
            error_code="JUDGE_CLIENT_ERROR",
            details=all_details,
        )
        self.status_code = status_code


class JobTargetNotFoundError(EvalflowError):
    """Raised when a job's response or config no longer exists."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="JOB_TARGET_NOT_FOUND", details=details)


class AsyncJobInfraError(EvalflowError):
    """Raised when the job queue cannot accept or deliver work."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="ASYNC_JOB_INFRA_ERROR", details=details)


# =============================================================================
# Storage
# =============================================================================

class EvaluationStoreError(EvalflowError):
    """Raised when the evaluation store fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="EVALUATION_STORE_ERROR", details=details)
