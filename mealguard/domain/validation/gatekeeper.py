"""
Validation gatekeeper.

Runs the final checks on a computed day plan and decides whether it may
be returned. Stages run in order:

1. structural: every meal has items
2. item scan: sign, calorie ceiling, portion size, data gaps
3. day level: calorie deviation, fallback ratio, reconciliation safety
4. decision: valid when no critical issue was found

Every critical issue emits one ``validation_critical`` alert. In blocking
mode a critical result raises ``ValidationBlockedError`` instead of
returning.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence

import structlog

from mealguard.domain.nutrition.adapters import totals_from_mapping
from mealguard.domain.nutrition.models import MacroTargets, MacroTotals
from mealguard.domain.plan.models import DayPlan, PlannedItem
from mealguard.domain.reconciliation.models import ReconciliationOutcome
from mealguard.domain.resolution.resolver import word_pattern
from mealguard.domain.shared.errors import ValidationBlockedError
from mealguard.domain.shared.ports import AlertLevel, IAlertSink
from mealguard.domain.transform.models import QuantityUnit
from mealguard.domain.transform.yields import YIELD_UNMAPPED
from mealguard.domain.validation.invariants import (
    assert_meal_has_items,
    assert_non_negative_totals,
    assert_reconciliation_bounds,
    soft_assert,
)
from mealguard.domain.validation.models import (
    IssueCode,
    Severity,
    ValidationIssue,
    ValidationResult,
    ValidationThresholds,
)

logger = structlog.get_logger(__name__)


def _mentions(key: str, words: Iterable[str]) -> bool:
    text = key.lower().replace("_", " ")
    return any(word_pattern(word).search(text) for word in words)


def uses_fallback_data(planned: PlannedItem) -> bool:
    """Item macros rest on missing, estimated or inconsistent data."""
    macros = planned.macros
    return (
        macros.is_fallback
        or macros.error is not None
        or macros.flagged
        or planned.yield_resolution.error is not None
    )


class ValidationGatekeeper:
    """
    Severity-classified validation of day plans.

    Example:
        >>> gatekeeper = ValidationGatekeeper(blocking=False)
        >>> result = gatekeeper.validate(plan)
        >>> if not result.is_valid:
        ...     print(result.codes(Severity.CRITICAL))
    """

    def __init__(
        self,
        thresholds: Optional[ValidationThresholds] = None,
        alert_sink: Optional[IAlertSink] = None,
        blocking: bool = True,
    ):
        """
        Initialize gatekeeper.

        Args:
            thresholds: Check thresholds (defaults apply when omitted)
            alert_sink: Receives one alert per critical issue
            blocking: Raise on critical issues instead of returning
        """
        self.thresholds = thresholds or ValidationThresholds()
        self.alert_sink = alert_sink
        self.blocking = blocking

    # ═══════════════════════════════════════════════════════════
    # ENTRY POINTS
    # ═══════════════════════════════════════════════════════════

    def validate(
        self,
        plan: DayPlan,
        *,
        reconciliation_factors: Sequence[float] = (),
        clamp_events: Sequence[ReconciliationOutcome] = (),
        trace_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate a computed day plan.

        Args:
            plan: Day plan with computed macros
            reconciliation_factors: Externally supplied factors to bound-check
            clamp_events: Solver outcomes; clamped ones become warnings
            trace_id: Trace id copied into alerts

        Returns:
            ValidationResult (soft mode, or no critical issue)

        Raises:
            ValidationBlockedError: Blocking mode with critical issues
        """
        issues: list[ValidationIssue] = []
        issues.extend(self._check_structure(plan))

        fallback_count = 0
        item_count = 0
        for meal_index, meal in enumerate(plan.meals):
            for item_index, planned in enumerate(meal.items):
                item_count += 1
                if uses_fallback_data(planned):
                    fallback_count += 1
                issues.extend(self._check_item(planned, meal_index, item_index))

        issues.extend(self._check_totals(plan.day_totals, plan.targets))
        issues.extend(self._check_fallback_ratio(fallback_count, item_count))
        issues.extend(self._check_reconciliation(reconciliation_factors, clamp_events))

        result = ValidationResult(
            issues=issues,
            items_validated=item_count,
            fallback_count=fallback_count,
        )
        return self._decide(result, trace_id)

    def validate_totals(
        self,
        totals: MacroTotals | Mapping[str, Any],
        targets: MacroTargets,
        *,
        reconciliation_factors: Sequence[float] = (),
        trace_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Day-level checks only, for callers holding totals but no plan.

        Totals may use any supported field spelling (``calories``, ``p``...).
        """
        if not isinstance(totals, MacroTotals):
            totals = totals_from_mapping(totals)
        issues = self._check_totals(totals, targets)
        issues.extend(self._check_reconciliation(reconciliation_factors, ()))
        return self._decide(ValidationResult(issues=issues), trace_id)

    # ═══════════════════════════════════════════════════════════
    # STAGES
    # ═══════════════════════════════════════════════════════════

    def _check_structure(self, plan: DayPlan) -> list[ValidationIssue]:
        if not plan.meals:
            return [
                ValidationIssue(
                    code=IssueCode.MEAL_EMPTY,
                    severity=Severity.CRITICAL,
                    message="Day plan has no meals",
                )
            ]
        issues = []
        for index, meal in enumerate(plan.meals):
            violation = soft_assert(assert_meal_has_items, meal)
            if violation is not None:
                issues.append(
                    ValidationIssue(
                        code=IssueCode.MEAL_EMPTY,
                        severity=Severity.CRITICAL,
                        message=f"Meal {index} ({meal.name}) has no items",
                        details=violation.context,
                        meal_index=index,
                    )
                )
        return issues

    def _check_item(
        self, planned: PlannedItem, meal_index: int, item_index: int
    ) -> list[ValidationIssue]:
        t = self.thresholds
        macros = planned.macros
        item = planned.item
        where = {"meal_index": meal_index, "item_index": item_index}

        if min(macros.kcal, macros.protein, macros.fat, macros.carbs) < 0:
            # No further checks on negative data
            return [
                ValidationIssue(
                    code=IssueCode.ITEM_NEGATIVE_VALUE,
                    severity=Severity.CRITICAL,
                    message=f"Negative macro values for {item.key}",
                    details={
                        "key": item.key,
                        "kcal": macros.kcal,
                        "protein": macros.protein,
                        "fat": macros.fat,
                        "carbs": macros.carbs,
                    },
                    **where,
                )
            ]

        issues = []
        if macros.kcal > t.max_item_kcal and not _mentions(item.normalized_key, t.kcal_cap_exempt):
            issues.append(
                ValidationIssue(
                    code=IssueCode.ITEM_HIGH_CALORIES,
                    severity=Severity.CRITICAL,
                    message=f"{item.key} has {macros.kcal:.0f} kcal (max {t.max_item_kcal:.0f})",
                    details={"key": item.key, "kcal": macros.kcal, "max": t.max_item_kcal},
                    **where,
                )
            )

        if item.quantity_unit in (QuantityUnit.G, QuantityUnit.ML):
            qty = item.quantity_value
            too_small = qty < t.min_portion and not _mentions(
                item.normalized_key, t.min_portion_exempt
            )
            if too_small or qty > t.max_portion:
                issues.append(
                    ValidationIssue(
                        code=IssueCode.ITEM_PORTION_SIZE,
                        severity=Severity.WARNING,
                        message=(
                            f"Unusual portion for {item.key}: {qty:g}{item.quantity_unit.value} "
                            f"(expected {t.min_portion:g}-{t.max_portion:g})"
                        ),
                        details={"key": item.key, "quantity": qty, "unit": item.quantity_unit.value},
                        **where,
                    )
                )

        if macros.flagged:
            issues.append(
                ValidationIssue(
                    code=IssueCode.ITEM_MACRO_INCONSISTENT,
                    severity=Severity.WARNING,
                    message=f"kcal/macro mismatch for {item.key}; macro-derived kcal used",
                    details={
                        "key": item.key,
                        "reported_kcal": macros.reported_kcal,
                        "kcal": macros.kcal,
                        "deviation_pct": macros.deviation_pct,
                    },
                    **where,
                )
            )

        if planned.yield_resolution.error == YIELD_UNMAPPED:
            issues.append(
                ValidationIssue(
                    code=IssueCode.YIELD_UNMAPPED,
                    severity=Severity.WARNING,
                    message=f"No cooked yield for {item.key}; cooked weight used as-is",
                    details={"key": item.key, "normalized_key": item.normalized_key},
                    **where,
                )
            )

        if macros.error is not None:
            issues.append(
                ValidationIssue(
                    code=IssueCode.NUTRITION_MISSING,
                    severity=Severity.WARNING,
                    message=f"No nutrition data for {item.key}",
                    details={"key": item.normalized_key, "error": macros.error},
                    **where,
                )
            )

        return issues

    def _check_totals(self, totals: MacroTotals, targets: MacroTargets) -> list[ValidationIssue]:
        t = self.thresholds
        violation = soft_assert(assert_non_negative_totals, totals)
        if violation is not None:
            return [
                ValidationIssue(
                    code=IssueCode.DAY_NEGATIVE_TOTALS,
                    severity=Severity.CRITICAL,
                    message="Day totals contain negative values",
                    details=violation.context,
                )
            ]

        deviation = abs(totals.kcal - targets.kcal) / targets.kcal
        details = {
            "kcal": totals.kcal,
            "target": targets.kcal,
            "deviation_pct": round(deviation * 100, 1),
        }
        if deviation > t.day_deviation_critical:
            severity = Severity.CRITICAL
        elif deviation > t.day_deviation_warning:
            severity = Severity.WARNING
        else:
            return []
        return [
            ValidationIssue(
                code=IssueCode.DAY_CALORIE_DEVIATION,
                severity=severity,
                message=(
                    f"Day total {totals.kcal:.0f} kcal deviates {deviation * 100:.1f}% "
                    f"from target {targets.kcal:.0f} kcal"
                ),
                details=details,
            )
        ]

    def _check_fallback_ratio(self, fallback_count: int, item_count: int) -> list[ValidationIssue]:
        if item_count == 0:
            return []
        t = self.thresholds
        ratio = fallback_count / item_count
        if ratio > t.fallback_ratio_critical:
            severity = Severity.CRITICAL
        elif ratio > t.fallback_ratio_warning:
            severity = Severity.WARNING
        else:
            return []
        return [
            ValidationIssue(
                code=IssueCode.HIGH_FALLBACK_RATIO,
                severity=severity,
                message=f"{fallback_count}/{item_count} items rely on fallback or estimated data",
                details={
                    "fallback_count": fallback_count,
                    "item_count": item_count,
                    "ratio_pct": round(ratio * 100, 1),
                },
            )
        ]

    def _check_reconciliation(
        self,
        factors: Sequence[float],
        clamp_events: Sequence[ReconciliationOutcome],
    ) -> list[ValidationIssue]:
        t = self.thresholds
        issues = []
        for factor in factors:
            violation = soft_assert(assert_reconciliation_bounds, factor, t.factor_min, t.factor_max)
            if violation is not None:
                issues.append(
                    ValidationIssue(
                        code=IssueCode.RECONCILIATION_BOUNDS,
                        severity=Severity.CRITICAL,
                        message=str(violation),
                        details=violation.context,
                    )
                )
        for event in clamp_events:
            if not (event.clamped and event.adjusted):
                continue
            issues.append(
                ValidationIssue(
                    code=IssueCode.RECONCILIATION_CLAMPED,
                    severity=Severity.WARNING,
                    message=(
                        f"{event.scope.value} scaling factor clamped "
                        f"from {event.raw_factor:.3f} to {event.factor}"
                    ),
                    details={
                        "scope": event.scope.value,
                        "raw_factor": event.raw_factor,
                        "factor": event.factor,
                        "meal_name": event.meal_name,
                    },
                )
            )
        return issues

    # ═══════════════════════════════════════════════════════════
    # DECISION
    # ═══════════════════════════════════════════════════════════

    def _decide(self, result: ValidationResult, trace_id: Optional[str]) -> ValidationResult:
        critical = result.critical
        for issue in critical:
            if self.alert_sink is not None:
                self.alert_sink.emit(
                    AlertLevel.CRITICAL,
                    "validation_critical",
                    {
                        "trace_id": trace_id,
                        "code": issue.code.value,
                        "message": issue.message,
                        "details": issue.details,
                    },
                )

        logger.info(
            "Validation complete",
            trace_id=trace_id,
            valid=result.is_valid,
            critical=len(critical),
            warnings=len(result.warnings),
        )

        if critical and self.blocking:
            raise ValidationBlockedError(
                f"Validation failed with {len(critical)} critical issue(s): "
                + ", ".join(sorted({i.code.value for i in critical})),
                issues=result.issues,
                trace_id=trace_id,
            )
        return result


def validate_day_plan(
    plan: DayPlan,
    *,
    thresholds: Optional[ValidationThresholds] = None,
    blocking: bool = False,
    alert_sink: Optional[IAlertSink] = None,
    trace_id: Optional[str] = None,
    reconciliation_factor: Optional[float] = None,
    clamp_events: Sequence[ReconciliationOutcome] = (),
) -> ValidationResult:
    """Validate ``plan`` with a one-off gatekeeper."""
    gatekeeper = ValidationGatekeeper(thresholds, alert_sink=alert_sink, blocking=blocking)
    factors = [] if reconciliation_factor is None else [reconciliation_factor]
    return gatekeeper.validate(
        plan,
        reconciliation_factors=factors,
        clamp_events=clamp_events,
        trace_id=trace_id,
    )
