"""Performance timing instrumentation for orchestration rounds."""

from collections import defaultdict
from dataclasses import dataclass


@dataclass
class RoundTiming:
    """Timing breakdown for a single orchestration round."""

    activation_ms: float = 0.0
    admission_ms: float = 0.0
    invocation_ms: float = 0.0
    total_ms: float = 0.0
    candidates: int = 0
    admitted: int = 0


class PerformanceMonitor:
    """Tracks per-phase round timing and per-plugin call metrics."""

    def __init__(self):
        self._round_timings: list[RoundTiming] = []
        self._plugin_call_counts: dict[str, int] = defaultdict(int)
        self._plugin_total_ms: dict[str, float] = defaultdict(float)
        self._plugin_failures: dict[str, int] = defaultdict(int)
        self._cancelled_rounds: int = 0

    def record_round(self, timing: RoundTiming, cancelled: bool = False) -> None:
        self._round_timings.append(timing)
        if cancelled:
            self._cancelled_rounds += 1

    def record_plugin_call(self, plugin_id: str, duration_ms: float, failed: bool = False) -> None:
        self._plugin_call_counts[plugin_id] += 1
        self._plugin_total_ms[plugin_id] += duration_ms
        if failed:
            self._plugin_failures[plugin_id] += 1

    @property
    def round_count(self) -> int:
        return len(self._round_timings)

    @property
    def summary(self) -> dict:
        if not self._round_timings:
            return {}
        n = len(self._round_timings)
        return {
            "total_rounds": n,
            "cancelled_rounds": self._cancelled_rounds,
            "avg_round_ms": sum(t.total_ms for t in self._round_timings) / n,
            "avg_activation_ms": sum(t.activation_ms for t in self._round_timings) / n,
            "avg_admission_ms": sum(t.admission_ms for t in self._round_timings) / n,
            "avg_invocation_ms": sum(t.invocation_ms for t in self._round_timings) / n,
            "slowest_round_ms": max(t.total_ms for t in self._round_timings),
            "avg_admitted": sum(t.admitted for t in self._round_timings) / n,
            "plugin_breakdown": {
                plugin_id: {
                    "calls": self._plugin_call_counts[plugin_id],
                    "failures": self._plugin_failures[plugin_id],
                    "total_ms": round(self._plugin_total_ms[plugin_id], 2),
                    "avg_ms": round(
                        self._plugin_total_ms[plugin_id]
                        / max(1, self._plugin_call_counts[plugin_id]),
                        2,
                    ),
                }
                for plugin_id in self._plugin_call_counts
            },
        }

    def reset(self) -> None:
        self._round_timings.clear()
        self._plugin_call_counts.clear()
        self._plugin_total_ms.clear()
        self._plugin_failures.clear()
        self._cancelled_rounds = 0
