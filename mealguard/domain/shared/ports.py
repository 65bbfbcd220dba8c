"""
Ports (Interfaces) for pipeline collaborators.

Defines abstract interfaces for the external services the pipeline talks
to. Implementations live in infrastructure/ or are supplied by callers.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol, runtime_checkable

from mealguard.domain.nutrition.models import NutritionFact


class AlertLevel(str, Enum):
    """Alert severity."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


@runtime_checkable
class IAlertSink(Protocol):
    """
    Port for alert delivery.

    Fire-and-forget: implementations must not raise into the caller.
    """

    def emit(self, level: AlertLevel, event_name: str, context: dict[str, Any]) -> None:
        """
        Record an alert.

        Args:
            level: Alert severity
            event_name: Stable event name (e.g. "yield_unmapped")
            context: Structured details, including trace_id when known
        """
        ...


@runtime_checkable
class INutritionLookup(Protocol):
    """
    Port for the nutrition fact source.

    A key/value lookup by normalized ingredient key. Returning None
    means the source has no data for the key.
    """

    async def lookup(
        self, normalized_key: str, store_context: Optional[dict[str, Any]] = None
    ) -> Optional[NutritionFact]:
        """
        Fetch per-100g nutrition facts.

        Args:
            normalized_key: Key produced by normalize_key
            store_context: Opaque caller context (store, region)

        Returns:
            NutritionFact or None if not found
        """
        ...


@runtime_checkable
class INutritionCache(Protocol):
    """Port for the read-through nutrition fact cache."""

    def get(
        self, normalized_key: str, store_context: Optional[dict[str, Any]] = None
    ) -> Optional[NutritionFact]:
        ...

    def set(
        self,
        normalized_key: str,
        fact: NutritionFact,
        store_context: Optional[dict[str, Any]] = None,
    ) -> None:
        ...


# Called with no arguments; returns raw generated output (JSON text,
# a {"meals": [...]} mapping or a list of meals).
RetryFn = Callable[[], Awaitable[Any]]
