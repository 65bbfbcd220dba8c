"""
Shared value objects.

Immutable, validated domain primitives.
"""

from __future__ import annotations

import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Confidence(str, Enum):
    """How much a derived value can be trusted."""

    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class TraceId(BaseModel):
    """
    Trace ID value object.

    Identifies one pipeline invocation across logs, alerts and errors.

    Example:
        >>> trace_id = TraceId.generate()
        >>> assert len(trace_id.value) == 36
        >>> TraceId.from_string("run-42").value
        'run-42'
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., min_length=1, description="Trace identifier")

    @field_validator("value")
    @classmethod
    def not_empty(cls, v: str) -> str:
        """Ensure not empty or whitespace."""
        if not v.strip():
            raise ValueError("TraceId cannot be empty or whitespace")
        return v.strip()

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __repr__(self) -> str:
        """Debug representation."""
        return f"TraceId('{self.value}')"

    def __hash__(self) -> int:
        """Allow use as dict key."""
        return hash(self.value)

    @classmethod
    def generate(cls) -> TraceId:
        """Generate new random trace ID."""
        return cls(value=str(uuid.uuid4()))

    @classmethod
    def from_string(cls, s: str) -> TraceId:
        """Create from string."""
        return cls(value=s)
