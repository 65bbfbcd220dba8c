"""
Domain exceptions.

Typed exceptions for explicit error handling.
Pipeline failures carry a stable error code plus trace context so callers
can report them without parsing messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Stable error codes for structured failures."""

    INVALID_INPUT = "INVALID_INPUT"
    LLM_VALIDATION_FAILED = "LLM_VALIDATION_FAILED"
    LLM_RETRY_EXHAUSTED = "LLM_RETRY_EXHAUSTED"
    RESPONSE_BLOCKED = "RESPONSE_BLOCKED"
    VALIDATION_CRITICAL = "VALIDATION_CRITICAL"
    NUTRITION_LOOKUP_FAILED = "NUTRITION_LOOKUP_FAILED"
    PIPELINE_EXECUTION_FAILED = "PIPELINE_EXECUTION_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# PROPOSAL / INVARIANT EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class MalformedProposalError(DomainError):
    """
    Generated meal proposal could not be parsed.

    Raised when:
    - Output is not valid JSON
    - A meal is not an object
    - An item has no key, a non-positive quantity or an unknown unit

    Example:
        >>> raise MalformedProposalError(["meals[0].items[1].qty_value: must be > 0"])
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        summary = "; ".join(self.errors[:5]) or "no details"
        super().__init__(f"Malformed meal proposal: {summary}")


class InvariantViolationError(DomainError):
    """
    A hard numeric invariant was broken.

    Example:
        >>> raise InvariantViolationError(
        ...     "RECONCILIATION_BOUNDS",
        ...     "Factor 3.0 outside [0.5, 2.0]",
        ...     {"factor": 3.0},
        ... )
    """

    def __init__(
        self,
        invariant_id: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        self.invariant_id = invariant_id
        self.context = context or {}
        super().__init__(f"[{invariant_id}] {message}")


# ═══════════════════════════════════════════════════════════
# PIPELINE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class PipelineError(DomainError):
    """
    Structured pipeline failure.

    Every fatal pipeline error carries a code, the stage it failed in and
    the trace id of the invocation.

    Example:
        >>> err = PipelineError(
        ...     ErrorCode.PIPELINE_EXECUTION_FAILED,
        ...     "Nutrition stage crashed",
        ...     trace_id="3f0c...",
        ...     stage="nutrition_fetch",
        ... )
        >>> err.to_dict()["code"]
        'PIPELINE_EXECUTION_FAILED'
    """

    default_code = ErrorCode.PIPELINE_EXECUTION_FAILED

    def __init__(
        self,
        code: Optional[ErrorCode],
        message: str,
        trace_id: Optional[str] = None,
        stage: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        self.code = code or self.default_code
        self.message = message
        self.trace_id = trace_id
        self.stage = stage
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize as a structured failure record."""
        return {
            "code": self.code.value,
            "message": self.message,
            "trace_id": self.trace_id,
            "stage": self.stage,
            "context": self.context,
        }

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        trace_id: Optional[str] = None,
        stage: Optional[str] = None,
    ) -> PipelineError:
        """Wrap an arbitrary exception, keeping pipeline errors as they are."""
        if isinstance(exc, PipelineError):
            if exc.trace_id is None:
                exc.trace_id = trace_id
            if exc.stage is None:
                exc.stage = stage
            return exc
        return cls(
            ErrorCode.PIPELINE_EXECUTION_FAILED,
            str(exc) or exc.__class__.__name__,
            trace_id=trace_id,
            stage=stage,
            context={"exception_type": exc.__class__.__name__},
        )


class PipelineInputError(PipelineError):
    """
    Raw input rejected before any stage ran.

    Example:
        >>> raise PipelineInputError(
        ...     None, "meals[2] is not an object", context={"index": 2}
        ... )
    """

    default_code = ErrorCode.INVALID_INPUT


class RetryExhaustedError(PipelineError):
    """Generated proposal still malformed after all retries."""

    default_code = ErrorCode.LLM_RETRY_EXHAUSTED


class ResponseBlockedError(PipelineError):
    """Too many items carry inconsistent kcal/macro data."""

    default_code = ErrorCode.RESPONSE_BLOCKED


class ValidationBlockedError(PipelineError):
    """
    Validation found critical issues in blocking mode.

    The full issue list is available on ``issues``.
    """

    default_code = ErrorCode.VALIDATION_CRITICAL

    def __init__(
        self,
        message: str,
        issues: list[Any],
        trace_id: Optional[str] = None,
        stage: Optional[str] = "validation",
    ) -> None:
        self.issues = list(issues)
        super().__init__(
            ErrorCode.VALIDATION_CRITICAL,
            message,
            trace_id=trace_id,
            stage=stage,
            context={"issue_count": len(self.issues)},
        )


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    External collaborator call failed.

    Raised when:
    - Nutrition lookup fails
    - Generation service fails

    Example:
        >>> raise ExternalServiceError("Nutrition lookup failed: timeout")
    """

    pass


class TimeoutError(ExternalServiceError):  # noqa: A001
    """
    Collaborator call timed out.

    Example:
        >>> raise TimeoutError("Nutrition lookup timeout after 5s")
    """

    pass
