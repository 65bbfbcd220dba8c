"""
Validation result models and thresholds.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class IssueCode(str, Enum):
    """Stable codes for validation findings."""

    MEAL_EMPTY = "MEAL_EMPTY"
    ITEM_NEGATIVE_VALUE = "ITEM_NEGATIVE_VALUE"
    ITEM_HIGH_CALORIES = "ITEM_HIGH_CALORIES"
    ITEM_PORTION_SIZE = "ITEM_PORTION_SIZE"
    ITEM_MACRO_INCONSISTENT = "ITEM_MACRO_INCONSISTENT"
    YIELD_UNMAPPED = "YIELD_UNMAPPED"
    NUTRITION_MISSING = "NUTRITION_MISSING"
    DAY_NEGATIVE_TOTALS = "DAY_NEGATIVE_TOTALS"
    DAY_CALORIE_DEVIATION = "DAY_CALORIE_DEVIATION"
    HIGH_FALLBACK_RATIO = "HIGH_FALLBACK_RATIO"
    RECONCILIATION_BOUNDS = "RECONCILIATION_BOUNDS"
    RECONCILIATION_CLAMPED = "RECONCILIATION_CLAMPED"


class ValidationIssue(BaseModel):
    """One finding of the gatekeeper."""

    model_config = ConfigDict(frozen=True)

    code: IssueCode
    severity: Severity
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    meal_index: Optional[int] = None
    item_index: Optional[int] = None


class ValidationResult(BaseModel):
    """All findings of one validation run.

    Example:
        >>> result = ValidationResult(issues=[], items_validated=3)
        >>> assert result.is_valid
    """

    model_config = ConfigDict(frozen=True)

    issues: list[ValidationIssue] = Field(default_factory=list)
    items_validated: int = 0
    fallback_count: int = 0

    @property
    def critical(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.CRITICAL]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def info(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.INFO]

    @property
    def is_valid(self) -> bool:
        """True when no critical issue was found."""
        return not self.critical

    def codes(self, severity: Optional[Severity] = None) -> list[IssueCode]:
        return [i.code for i in self.issues if severity is None or i.severity == severity]

    def to_response(self) -> dict[str, Any]:
        """Grouped form for API responses."""
        return {
            "valid": self.is_valid,
            "critical": [i.model_dump(mode="json") for i in self.critical],
            "warnings": [i.model_dump(mode="json") for i in self.warnings],
            "info": [i.model_dump(mode="json") for i in self.info],
        }


class ValidationThresholds(BaseModel):
    """Gatekeeper thresholds.

    Day deviation bands are 15% (warning) and 50% (critical).
    """

    model_config = ConfigDict(frozen=True)

    max_item_kcal: float = 1200.0
    min_portion: float = 10.0
    max_portion: float = 800.0
    kcal_cap_exempt: tuple[str, ...] = ("oil", "butter", "ghee", "lard", "fat", "dripping")
    min_portion_exempt: tuple[str, ...] = ("oil", "spice", "salt")
    day_deviation_warning: float = Field(default=0.15, gt=0)
    day_deviation_critical: float = Field(default=0.50, gt=0)
    fallback_ratio_warning: float = 0.30
    fallback_ratio_critical: float = 0.50
    factor_min: float = 0.5
    factor_max: float = 2.0
