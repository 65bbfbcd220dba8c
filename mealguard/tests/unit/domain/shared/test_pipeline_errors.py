"""
Unit tests for structured pipeline errors and TraceId.
"""

import pytest
from pydantic import ValidationError

from mealguard.domain.shared.errors import (
    DomainError,
    ErrorCode,
    MalformedProposalError,
    PipelineError,
    PipelineInputError,
    ResponseBlockedError,
    RetryExhaustedError,
    ValidationBlockedError,
)
from mealguard.domain.shared.value_objects import TraceId


class TestPipelineError:
    def test_to_dict(self) -> None:
        err = PipelineError(
            ErrorCode.PIPELINE_EXECUTION_FAILED,
            "Nutrition stage crashed",
            trace_id="abc",
            stage="nutrition_fetch",
            context={"keys": 3},
        )
        assert err.to_dict() == {
            "code": "PIPELINE_EXECUTION_FAILED",
            "message": "Nutrition stage crashed",
            "trace_id": "abc",
            "stage": "nutrition_fetch",
            "context": {"keys": 3},
        }
        assert isinstance(err, DomainError)

    @pytest.mark.parametrize(
        "cls,code",
        [
            (PipelineInputError, ErrorCode.INVALID_INPUT),
            (RetryExhaustedError, ErrorCode.LLM_RETRY_EXHAUSTED),
            (ResponseBlockedError, ErrorCode.RESPONSE_BLOCKED),
            (PipelineError, ErrorCode.PIPELINE_EXECUTION_FAILED),
        ],
    )
    def test_default_codes(self, cls: type[PipelineError], code: ErrorCode) -> None:
        assert cls(None, "boom").code == code

    def test_wraps_foreign_exception(self) -> None:
        err = PipelineError.from_exception(KeyError("rice"), trace_id="t", stage="totals")
        assert err.code == ErrorCode.PIPELINE_EXECUTION_FAILED
        assert err.stage == "totals"
        assert err.context == {"exception_type": "KeyError"}

    def test_message_falls_back_to_type_name(self) -> None:
        err = PipelineError.from_exception(RuntimeError(), stage="proposal")
        assert err.message == "RuntimeError"

    def test_keeps_pipeline_error(self) -> None:
        original = ResponseBlockedError(None, "blocked", stage="response_gate")
        err = PipelineError.from_exception(original, trace_id="t", stage="validation")
        assert err is original
        assert err.trace_id == "t"
        assert err.stage == "response_gate"

    def test_validation_blocked(self) -> None:
        err = ValidationBlockedError("2 critical issues", issues=["a", "b"], trace_id="t")
        assert err.code == ErrorCode.VALIDATION_CRITICAL
        assert err.stage == "validation"
        assert err.context == {"issue_count": 2}


def test_malformed_proposal_keeps_errors() -> None:
    err = MalformedProposalError(["meals[0].type: missing or empty", "meals[1]: expected an object"])
    assert len(err.errors) == 2
    assert "meals[0].type" in str(err)


class TestTraceId:
    def test_generate(self) -> None:
        trace_id = TraceId.generate()
        assert len(trace_id.value) == 36
        assert trace_id != TraceId.generate()

    def test_from_string(self) -> None:
        trace_id = TraceId.from_string("  run-42 ")
        assert str(trace_id) == "run-42"
        assert repr(trace_id) == "TraceId('run-42')"

    def test_hashable(self) -> None:
        assert len({TraceId.from_string("a"), TraceId.from_string("a")}) == 1

    @pytest.mark.parametrize("value", ["", "   "])
    def test_rejects_blank(self, value: str) -> None:
        with pytest.raises(ValidationError):
            TraceId.from_string(value)

    def test_immutable(self) -> None:
        trace_id = TraceId.generate()
        with pytest.raises(ValidationError):
            trace_id.value = "other"  # type: ignore[misc]
