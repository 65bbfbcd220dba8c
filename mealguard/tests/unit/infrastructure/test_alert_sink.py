"""
Unit tests for alert sinks.
"""

from unittest.mock import MagicMock

import pytest

from mealguard.domain.shared.ports import AlertLevel, IAlertSink
from mealguard.infrastructure.alerting.alert_sink import (
    Alert,
    InMemoryAlertSink,
    StructlogAlertSink,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink(clock: FakeClock) -> StructlogAlertSink:
    return StructlogAlertSink(max_per_window=2, window_seconds=60, clock=clock)


def test_alert_create() -> None:
    alert = Alert.create(AlertLevel.WARNING, "yield_unmapped", {"trace_id": "t-1", "key": "okra"})
    assert alert.category == "nutrition"
    assert alert.trace_id == "t-1"
    assert alert.context["key"] == "okra"
    assert len(alert.id) == 12


def test_unknown_event_is_system_category() -> None:
    assert Alert.create(AlertLevel.INFO, "something_new", {}).category == "system"


def test_sinks_satisfy_port(sink: StructlogAlertSink) -> None:
    assert isinstance(sink, IAlertSink)
    assert isinstance(InMemoryAlertSink(), IAlertSink)


class TestStructlogAlertSink:
    """Test suite for StructlogAlertSink."""

    def test_hooks_receive_alerts(self, sink: StructlogAlertSink) -> None:
        hook = MagicMock()
        sink.register_hook(hook)

        sink.emit(AlertLevel.CRITICAL, "pipeline_failure", {"trace_id": "abc"})

        hook.assert_called_once()
        alert = hook.call_args.args[0]
        assert alert.event == "pipeline_failure"
        assert alert.level == AlertLevel.CRITICAL

    def test_unregister_hook(self, sink: StructlogAlertSink) -> None:
        hook = MagicMock()
        sink.register_hook(hook)
        sink.unregister_hook(hook)
        sink.unregister_hook(hook)
        sink.emit(AlertLevel.WARNING, "yield_unmapped", {})
        hook.assert_not_called()

    def test_rate_limits_non_critical(self, sink: StructlogAlertSink, clock: FakeClock) -> None:
        """Test repeated warnings of one event are capped per window."""
        hook = MagicMock()
        sink.register_hook(hook)

        for _ in range(5):
            sink.emit(AlertLevel.WARNING, "yield_unmapped", {})
        assert hook.call_count == 2

        sink.emit(AlertLevel.WARNING, "reconciliation_clamped", {})
        assert hook.call_count == 3

        clock.now = 61
        sink.emit(AlertLevel.WARNING, "yield_unmapped", {})
        assert hook.call_count == 4

    def test_critical_never_rate_limited(self, sink: StructlogAlertSink) -> None:
        hook = MagicMock()
        sink.register_hook(hook)
        for _ in range(5):
            sink.emit(AlertLevel.CRITICAL, "validation_critical", {})
        assert hook.call_count == 5

    def test_failing_hook_does_not_raise(self, sink: StructlogAlertSink) -> None:
        """Test a broken hook neither raises nor blocks later hooks."""
        later = MagicMock()
        sink.register_hook(MagicMock(side_effect=RuntimeError("pager down")))
        sink.register_hook(later)

        sink.emit(AlertLevel.CRITICAL, "pipeline_failure", {})

        later.assert_called_once()

    def test_bad_context_does_not_raise(self, sink: StructlogAlertSink) -> None:
        sink.emit(AlertLevel.WARNING, "yield_unmapped", {"trace_id": object()})


class TestInMemoryAlertSink:
    def test_records_and_filters(self) -> None:
        sink = InMemoryAlertSink()
        sink.emit(AlertLevel.WARNING, "yield_unmapped", {})
        sink.emit(AlertLevel.CRITICAL, "response_blocked", {})

        assert sink.events() == ["yield_unmapped", "response_blocked"]
        assert sink.events(AlertLevel.CRITICAL) == ["response_blocked"]

        sink.clear()
        assert sink.alerts == []
