"""Tests for performance timing instrumentation."""

from cogniplug.metrics.timing import PerformanceMonitor, RoundTiming


def test_round_timing_defaults():
    timing = RoundTiming()
    assert timing.activation_ms == 0.0
    assert timing.total_ms == 0.0
    assert timing.admitted == 0


def test_empty_monitor_has_empty_summary():
    assert PerformanceMonitor().summary == {}


def test_performance_monitor_records_rounds():
    monitor = PerformanceMonitor()
    monitor.record_round(RoundTiming(activation_ms=4.0, total_ms=10.0, admitted=2))
    monitor.record_round(RoundTiming(activation_ms=6.0, total_ms=20.0, admitted=1), cancelled=True)

    summary = monitor.summary
    assert summary["total_rounds"] == 2
    assert summary["cancelled_rounds"] == 1
    assert summary["avg_round_ms"] == 15.0
    assert summary["avg_activation_ms"] == 5.0
    assert summary["slowest_round_ms"] == 20.0
    assert summary["avg_admitted"] == 1.5
    assert monitor.round_count == 2


def test_plugin_breakdown():
    monitor = PerformanceMonitor()
    monitor.record_round(RoundTiming(total_ms=1.0))
    monitor.record_plugin_call("a", 2.0)
    monitor.record_plugin_call("a", 4.0, failed=True)
    monitor.record_plugin_call("b", 1.0)

    breakdown = monitor.summary["plugin_breakdown"]
    assert breakdown["a"] == {"calls": 2, "failures": 1, "total_ms": 6.0, "avg_ms": 3.0}
    assert breakdown["b"]["failures"] == 0


def test_reset():
    monitor = PerformanceMonitor()
    monitor.record_round(RoundTiming(total_ms=1.0))
    monitor.record_plugin_call("a", 2.0)
    monitor.reset()
    assert monitor.summary == {}
