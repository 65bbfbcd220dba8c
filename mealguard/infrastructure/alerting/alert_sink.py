"""
Alert sink adapters.

``StructlogAlertSink`` writes alerts as structured log events and forwards
them to registered hooks. Repeated non-critical alerts of the same event
are rate limited; critical alerts always go through.

``InMemoryAlertSink`` records alerts for tests and local runs.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from mealguard.domain.shared.ports import AlertLevel

logger = structlog.get_logger(__name__)

# event name -> routing category
EVENT_CATEGORIES: dict[str, str] = {
    "yield_unmapped": "nutrition",
    "high_fallback_rate": "nutrition",
    "elevated_fallback_rate": "nutrition",
    "nutrition_lookup_failed": "nutrition",
    "llm_state_disagreement": "state_resolution",
    "validation_critical": "validation",
    "reconciliation_clamped": "reconciliation",
    "llm_validation_failed": "llm",
    "llm_retry_exhausted": "llm",
    "response_blocked": "invariants",
    "pipeline_failure": "system",
}


class Alert(BaseModel):
    """Structured alert record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    level: AlertLevel
    event: str
    category: str
    context: dict[str, Any] = Field(default_factory=dict)
    trace_id: Optional[str] = None

    @classmethod
    def create(cls, level: AlertLevel, event: str, context: dict[str, Any]) -> "Alert":
        return cls(
            level=level,
            event=event,
            category=EVENT_CATEGORIES.get(event, "system"),
            context=dict(context),
            trace_id=context.get("trace_id"),
        )


AlertHook = Callable[[Alert], None]


class StructlogAlertSink:
    """
    Alert sink backed by structlog.

    Example:
        >>> sink = StructlogAlertSink()
        >>> sink.register_hook(lambda alert: pager.send(alert.model_dump()))
        >>> sink.emit(AlertLevel.CRITICAL, "pipeline_failure", {"trace_id": "abc"})
    """

    def __init__(
        self,
        max_per_window: int = 5,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize alert sink.

        Args:
            max_per_window: Non-critical alerts per event per window
            window_seconds: Rate limit window length
            clock: Time source in seconds
        """
        self.max_per_window = max_per_window
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._hooks: list[AlertHook] = []

    def register_hook(self, hook: AlertHook) -> None:
        self._hooks.append(hook)

    def unregister_hook(self, hook: AlertHook) -> None:
        if hook in self._hooks:
            self._hooks.remove(hook)

    def _rate_limited(self, event: str) -> bool:
        now = self._clock()
        window = self._windows.get(event)
        if window is None or now - window[0] > self.window_seconds:
            self._windows[event] = (now, 1)
            return False
        start, count = window
        if count >= self.max_per_window:
            return True
        self._windows[event] = (start, count + 1)
        return False

    def emit(self, level: AlertLevel, event_name: str, context: dict[str, Any]) -> None:
        """Log and dispatch an alert. Never raises."""
        try:
            if level != AlertLevel.CRITICAL and self._rate_limited(event_name):
                logger.debug("Alert rate limited", alert_event=event_name)
                return

            alert = Alert.create(level, event_name, context)
            log = {
                AlertLevel.CRITICAL: logger.error,
                AlertLevel.WARNING: logger.warning,
                AlertLevel.INFO: logger.info,
            }[level]
            log(
                "Alert",
                alert_id=alert.id,
                alert_event=alert.event,
                level=alert.level.value,
                category=alert.category,
                trace_id=alert.trace_id,
                context=alert.context,
            )
            self._dispatch(alert)
        except Exception as e:
            # Alerting must never break the pipeline
            logger.error("Alert emission failed", alert_event=event_name, error=str(e))

    def _dispatch(self, alert: Alert) -> None:
        for hook in list(self._hooks):
            try:
                hook(alert)
            except Exception as e:
                logger.error("Alert hook failed", alert_event=alert.event, error=str(e))


class InMemoryAlertSink:
    """Collects alerts in a list."""

    def __init__(self) -> None:
        self.alerts: list[Alert] = []

    def emit(self, level: AlertLevel, event_name: str, context: dict[str, Any]) -> None:
        self.alerts.append(Alert.create(level, event_name, context))

    def events(self, level: Optional[AlertLevel] = None) -> list[str]:
        return [a.event for a in self.alerts if level is None or a.level == level]

    def clear(self) -> None:
        self.alerts.clear()
