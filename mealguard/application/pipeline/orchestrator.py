"""
Meal plan pipeline orchestrator.

Turns a generated meal proposal into a validated day plan.

Stages:
1. entry guard
2. proposal validation (bounded generation retries)
3. state resolution
4. nutrition lookups (concurrent, cached)
5. per-meal reconciliation
6. day-level reconciliation
7. bottom-up totals
8. response gate (macro-inconsistent item ratio)
9. validation gate

Design Pattern: Service Layer + Dependency Injection (Ports & Adapters)
"""

from __future__ import annotations

import asyncio
import time
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional

import structlog
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from mealguard.application.nutrition.lookup_service import LookupBatch, NutritionLookupService
from mealguard.application.pipeline.config import PipelineConfig
from mealguard.application.pipeline.models import PipelineResult, PipelineStats
from mealguard.domain.nutrition.models import MacroTargets
from mealguard.domain.plan.calculator import PlanCalculator
from mealguard.domain.plan.models import DayPlan, Meal
from mealguard.domain.plan.proposal import ParsedProposal, parse_proposal
from mealguard.domain.reconciliation.models import ReconciliationOutcome
from mealguard.domain.reconciliation.solver import reconcile_day, reconcile_meal
from mealguard.domain.resolution.resolver import StateResolver
from mealguard.domain.shared.errors import (
    MalformedProposalError,
    PipelineError,
    PipelineInputError,
    ResponseBlockedError,
    RetryExhaustedError,
    TimeoutError,
)
from mealguard.domain.shared.ports import AlertLevel, IAlertSink, INutritionCache, INutritionLookup, RetryFn
from mealguard.domain.shared.value_objects import Confidence, TraceId
from mealguard.domain.transform.yields import YieldTable
from mealguard.domain.validation.gatekeeper import ValidationGatekeeper, uses_fallback_data
from mealguard.domain.validation.models import ValidationResult

logger = structlog.get_logger(__name__)

FALLBACK_RATE_CRITICAL_PCT = 30.0
FALLBACK_RATE_WARNING_PCT = 15.0

_TRUSTED = (Confidence.EXACT, Confidence.HIGH)


class _StageClock:
    """Tracks the running stage and per-stage durations."""

    def __init__(self) -> None:
        self.current = "entry_guard"
        self.durations_ms: dict[str, float] = {}

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        self.current = name
        start = time.perf_counter()
        try:
            yield
        finally:
            self.durations_ms[name] = round((time.perf_counter() - start) * 1000, 2)


class MealPlanPipeline:
    """
    Orchestrates proposal → validated day plan.

    Dependencies (injected via Ports/Interfaces):
    - lookup: INutritionLookup - nutrition fact source
    - alert_sink: IAlertSink - alert delivery (optional)
    - cache: INutritionCache - read-through fact cache (optional)

    Example:
        >>> pipeline = MealPlanPipeline(
        ...     lookup=StaticNutritionLookup(FACTS),
        ...     alert_sink=StructlogAlertSink(),
        ... )
        >>> result = await pipeline.run(
        ...     raw_meals,
        ...     MacroTargets(kcal=2000, protein=150),
        ...     retry_fn=regenerate,
        ... )
        >>> print(result.day_totals.kcal, result.validation.is_valid)
    """

    def __init__(
        self,
        lookup: INutritionLookup,
        config: Optional[PipelineConfig] = None,
        alert_sink: Optional[IAlertSink] = None,
        cache: Optional[INutritionCache] = None,
        resolver: Optional[StateResolver] = None,
        yield_table: Optional[YieldTable] = None,
    ):
        """
        Initialize pipeline with dependencies.

        Args:
            lookup: Nutrition fact source
            config: Pipeline options (defaults apply when omitted)
            alert_sink: Alert delivery
            cache: Nutrition fact cache shared across runs
            resolver: State resolver (built-in rule table by default)
            yield_table: Cooked yield table (built-in table by default)
        """
        self.config = config or PipelineConfig()
        self.alert_sink = alert_sink
        self.resolver = resolver or StateResolver()
        self.yield_table = yield_table or YieldTable()
        self.lookup_service = NutritionLookupService(
            lookup,
            cache=cache,
            max_concurrency=self.config.lookup_concurrency,
            timeout_s=self.config.lookup_timeout_s,
            retries=self.config.lookup_retries,
        )

    def _alert(self, level: AlertLevel, event: str, trace_id: str, **context: Any) -> None:
        if self.alert_sink is not None:
            self.alert_sink.emit(level, event, {"trace_id": trace_id, **context})

    # ═══════════════════════════════════════════════════════════
    # ENTRY POINT
    # ═══════════════════════════════════════════════════════════

    async def run(
        self,
        raw_meals: Any,
        targets: MacroTargets | Mapping[str, Any],
        retry_fn: Optional[RetryFn] = None,
        store_context: Optional[dict[str, Any]] = None,
    ) -> PipelineResult:
        """
        Run the full pipeline once.

        Args:
            raw_meals: Generated meals (list of meal objects)
            targets: Daily macro targets
            retry_fn: Regenerates the proposal after a malformed attempt
            store_context: Passed through to nutrition lookups

        Returns:
            PipelineResult with the plan, validation result and stats

        Raises:
            PipelineInputError: Raw input rejected (INVALID_INPUT)
            RetryExhaustedError: Proposal still malformed after retries
            ResponseBlockedError: Too many macro-inconsistent items
            ValidationBlockedError: Critical issues in blocking mode
            PipelineError: Any other failure (PIPELINE_EXECUTION_FAILED)
        """
        trace_id = self.config.trace_id or TraceId.generate().value
        log = logger.bind(trace_id=trace_id)
        clock = _StageClock()
        log.info("Pipeline started", meals=len(raw_meals) if isinstance(raw_meals, (list, tuple)) else None)

        try:
            with clock.stage("entry_guard"):
                self._guard_input(raw_meals)
                day_targets = self._coerce_targets(targets)

            with clock.stage("proposal"):
                parsed, attempts = await self._parse_with_retries(raw_meals, retry_fn, trace_id)

            with clock.stage("state_resolution"):
                meals, disagreements = self._resolve_states(parsed.meals, trace_id)

            with clock.stage("nutrition_fetch"):
                keys = [item.normalized_key for meal in meals for item in meal.items]
                batch = await self.lookup_service.fetch_all(keys, store_context)

            calculator = PlanCalculator(
                batch.facts,
                failed_keys=list(batch.failures),
                yield_table=self.yield_table,
                macro_tolerance=self.config.macro_tolerance_pct,
                alert_sink=self.alert_sink,
                trace_id=trace_id,
            )

            outcomes: list[ReconciliationOutcome] = []
            if self.config.enable_reconciliation:
                with clock.stage("meal_reconciliation"):
                    meals = self._reconcile_meals(meals, day_targets, calculator, outcomes)
                with clock.stage("day_reconciliation"):
                    day = reconcile_day(
                        meals,
                        day_targets.kcal,
                        calculator.macros_for,
                        tolerance=self.config.reconciliation_tolerance_pct,
                        allow_protein_scaling=self.config.allow_protein_scaling,
                        target_protein=day_targets.protein,
                    )
                    meals = day.meals
                    outcomes.append(day.outcome)
                self._report_clamps(outcomes, trace_id)

            with clock.stage("totals"):
                plan = calculator.plan_day(meals, day_targets)

            with clock.stage("response_gate"):
                flagged_count, flagged_pct = self._response_gate(plan, trace_id)
                fallback_count, fallback_pct = self._check_fallback_rate(plan, batch, trace_id)

            with clock.stage("validation"):
                validation = self._validate(plan, outcomes, trace_id)

        except Exception as e:
            error = PipelineError.from_exception(e, trace_id=trace_id, stage=clock.current)
            self._alert(
                AlertLevel.CRITICAL,
                "pipeline_failure",
                trace_id,
                code=error.code.value,
                message=error.message,
                stage=error.stage,
            )
            log.error(
                "Pipeline failed",
                code=error.code.value,
                stage=error.stage,
                error=error.message,
            )
            if error is e:
                raise
            raise error from e

        stats = PipelineStats(
            durations_ms=clock.durations_ms,
            attempts=attempts,
            corrections=parsed.corrections,
            state_disagreements=disagreements,
            lookup=batch.stats,
            item_count=len(plan.items),
            flagged_count=flagged_count,
            flagged_pct=flagged_pct,
            fallback_count=fallback_count,
            fallback_pct=fallback_pct,
            reconciliation=outcomes,
        )
        log.info(
            "Pipeline complete",
            kcal=plan.day_totals.kcal,
            target_kcal=day_targets.kcal,
            valid=validation.is_valid,
            attempts=attempts,
        )
        return PipelineResult(trace_id=trace_id, plan=plan, validation=validation, stats=stats)

    # ═══════════════════════════════════════════════════════════
    # STAGES
    # ═══════════════════════════════════════════════════════════

    def _guard_input(self, raw_meals: Any) -> None:
        if not isinstance(raw_meals, (list, tuple)):
            raise PipelineInputError(
                None,
                f"raw_meals must be a list of meals, got {type(raw_meals).__name__}",
                context={"type": type(raw_meals).__name__},
            )
        if not raw_meals:
            raise PipelineInputError(None, "raw_meals must contain at least one meal")
        for index, meal in enumerate(raw_meals):
            if not isinstance(meal, Mapping):
                raise PipelineInputError(
                    None,
                    f"raw_meals[{index}] is not an object",
                    context={"index": index, "type": type(meal).__name__},
                )

    def _coerce_targets(self, targets: MacroTargets | Mapping[str, Any]) -> MacroTargets:
        if isinstance(targets, MacroTargets):
            return targets
        try:
            return MacroTargets.model_validate(dict(targets))
        except (ValidationError, TypeError, ValueError) as e:
            raise PipelineInputError(None, f"Invalid targets: {e}") from e

    async def _generate(self, retry_fn: RetryFn) -> Any:
        try:
            return await asyncio.wait_for(retry_fn(), timeout=self.config.generation_timeout_s)
        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Generation timeout after {self.config.generation_timeout_s:g}s"
            ) from e

    async def _parse_with_retries(
        self, raw_meals: Any, retry_fn: Optional[RetryFn], trace_id: str
    ) -> tuple[ParsedProposal, int]:
        max_attempts = 1 + (self.config.max_retries if retry_fn is not None else 0)
        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                retry=retry_if_exception_type((MalformedProposalError, TimeoutError)),
                reraise=True,
            ):
                with attempt:
                    attempts += 1
                    raw = raw_meals if attempts == 1 else await self._generate(retry_fn)
                    try:
                        return parse_proposal(raw), attempts
                    except MalformedProposalError as e:
                        logger.warning(
                            "Generated proposal invalid",
                            trace_id=trace_id,
                            attempt=attempts,
                            errors=e.errors[:5],
                        )
                        self._alert(
                            AlertLevel.WARNING,
                            "llm_validation_failed",
                            trace_id,
                            attempt=attempts,
                            errors=e.errors[:5],
                        )
                        raise
        except (MalformedProposalError, TimeoutError) as e:
            errors = e.errors if isinstance(e, MalformedProposalError) else [str(e)]
            self._alert(
                AlertLevel.CRITICAL,
                "llm_retry_exhausted",
                trace_id,
                attempts=attempts,
                errors=errors[:5],
            )
            raise RetryExhaustedError(
                None,
                f"Proposal still invalid after {attempts} attempt(s)",
                trace_id=trace_id,
                stage="proposal",
                context={"attempts": attempts, "errors": errors},
            ) from e
        raise RetryExhaustedError(None, "No proposal attempt was made", trace_id=trace_id)

    def _resolve_states(self, meals: list[Meal], trace_id: str) -> tuple[list[Meal], int]:
        disagreements = 0
        resolved_meals = []
        for meal in meals:
            items = []
            for item in meal.items:
                resolution = self.resolver.resolve(item.key)
                hint = item.state_hint
                if (
                    hint is not None
                    and resolution.state != hint
                    and resolution.confidence in _TRUSTED
                ):
                    disagreements += 1
                    logger.info(
                        "Proposal state disagrees with rule",
                        trace_id=trace_id,
                        key=item.key,
                        hint=hint.value,
                        rule_state=resolution.state.value,
                        rule_id=resolution.rule_id,
                    )
                    self._alert(
                        AlertLevel.INFO,
                        "llm_state_disagreement",
                        trace_id,
                        key=item.key,
                        hint=hint.value,
                        rule_state=resolution.state.value,
                        rule_id=resolution.rule_id,
                    )
                items.append(item.model_copy(update={"resolution": resolution}))
            resolved_meals.append(meal.model_copy(update={"items": items}))
        return resolved_meals, disagreements

    def _reconcile_meals(
        self,
        meals: list[Meal],
        targets: MacroTargets,
        calculator: PlanCalculator,
        outcomes: list[ReconciliationOutcome],
    ) -> list[Meal]:
        meal_targets = targets.per_meal(len(meals))
        reconciled = []
        for meal in meals:
            result = reconcile_meal(
                meal,
                meal_targets.kcal,
                meal_targets.protein,
                calculator.macros_for,
                tolerance=self.config.meal_tolerance_pct,
            )
            reconciled.append(result.meal)
            outcomes.append(result.outcome)
        return reconciled

    def _report_clamps(self, outcomes: list[ReconciliationOutcome], trace_id: str) -> None:
        for outcome in outcomes:
            if outcome.clamped and outcome.adjusted:
                self._alert(
                    AlertLevel.WARNING,
                    "reconciliation_clamped",
                    trace_id,
                    scope=outcome.scope.value,
                    meal=outcome.meal_name,
                    raw_factor=outcome.raw_factor,
                    factor=outcome.factor,
                )

    def _response_gate(self, plan: DayPlan, trace_id: str) -> tuple[int, float]:
        items = plan.items
        flagged = sum(1 for planned in items if planned.macros.flagged)
        flagged_pct = round(flagged / len(items) * 100, 1) if items else 0.0
        threshold = self.config.response_block_threshold_pct

        if flagged_pct > threshold:
            context = {
                "flagged": flagged,
                "total": len(items),
                "flagged_pct": flagged_pct,
                "threshold_pct": threshold,
                "keys": [p.item.key for p in items if p.macros.flagged],
            }
            self._alert(AlertLevel.CRITICAL, "response_blocked", trace_id, **context)
            raise ResponseBlockedError(
                None,
                f"{flagged}/{len(items)} items ({flagged_pct}%) have inconsistent kcal/macro data "
                f"(limit {threshold:g}%)",
                trace_id=trace_id,
                stage="response_gate",
                context=context,
            )
        return flagged, flagged_pct

    def _check_fallback_rate(
        self, plan: DayPlan, batch: LookupBatch, trace_id: str
    ) -> tuple[int, float]:
        items = plan.items
        fallback = sum(1 for planned in items if uses_fallback_data(planned))
        rate = round(fallback / len(items) * 100, 1) if items else 0.0
        context = {"fallback": fallback, "total": len(items), "fallback_pct": rate}
        if rate > FALLBACK_RATE_CRITICAL_PCT:
            self._alert(AlertLevel.CRITICAL, "high_fallback_rate", trace_id, **context)
        elif rate > FALLBACK_RATE_WARNING_PCT:
            self._alert(AlertLevel.WARNING, "elevated_fallback_rate", trace_id, **context)
        if batch.failures:
            self._alert(
                AlertLevel.WARNING,
                "nutrition_lookup_failed",
                trace_id,
                keys=sorted(batch.failures),
            )
        return fallback, rate

    def _validate(
        self, plan: DayPlan, outcomes: list[ReconciliationOutcome], trace_id: str
    ) -> ValidationResult:
        gatekeeper = ValidationGatekeeper(
            alert_sink=self.alert_sink,
            blocking=self.config.enable_blocking_validation,
        )
        return gatekeeper.validate(
            plan,
            reconciliation_factors=[o.factor for o in outcomes if o.factor is not None],
            clamp_events=outcomes,
            trace_id=trace_id,
        )


async def execute_pipeline(
    raw_meals: Any,
    targets: MacroTargets | Mapping[str, Any],
    retry_fn: Optional[RetryFn] = None,
    config: Optional[PipelineConfig] = None,
    *,
    lookup: INutritionLookup,
    alert_sink: Optional[IAlertSink] = None,
    cache: Optional[INutritionCache] = None,
    store_context: Optional[dict[str, Any]] = None,
) -> PipelineResult:
    """
    Run the meal plan pipeline once.

    Example:
        >>> result = await execute_pipeline(
        ...     raw_meals,
        ...     {"kcal": 2000, "protein": 150},
        ...     retry_fn,
        ...     lookup=StaticNutritionLookup(FACTS),
        ... )
        >>> result.to_response()["day_totals"]["calories"]
        1987.5
    """
    pipeline = MealPlanPipeline(lookup, config=config, alert_sink=alert_sink, cache=cache)
    return await pipeline.run(raw_meals, targets, retry_fn, store_context=store_context)
