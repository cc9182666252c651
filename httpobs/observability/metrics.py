from __future__ import annotations

from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any

from httpobs.observation.keyvalues import KeyValues


@dataclass
class _LatencyAgg:
    count: int = 0
    sum_ms: float = 0.0
    max_ms: float = 0.0

    def observe(self, elapsed_ms: float) -> None:
        self.count += 1
        self.sum_ms += float(elapsed_ms)
        if elapsed_ms > self.max_ms:
            self.max_ms = float(elapsed_ms)


_SeriesKey = tuple[str, KeyValues]


class InMemoryMetrics:
    """Thread-safe, process-local timers keyed by observation name + low-cardinality tags.

    High-cardinality tags never reach this class, so the number of series stays
    bounded by the tag vocabulary.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._series: dict[_SeriesKey, _LatencyAgg] = {}

    def observe_exchange(self, name: str, low_cardinality: KeyValues, elapsed_ms: float) -> None:
        key = (name, low_cardinality)
        with self._lock:
            agg = self._series.get(key)
            if agg is None:
                agg = _LatencyAgg()
                self._series[key] = agg
            agg.observe(elapsed_ms)

    def count(self, name: str, **tags: str) -> int:
        """Total exchanges recorded under ``name`` whose tags include ``tags``."""

        total = 0
        with self._lock:
            for (series_name, key_values), agg in self._series.items():
                if series_name != name:
                    continue
                values = key_values.to_dict()
                if all(values.get(k) == v for k, v in tags.items()):
                    total += agg.count
        return total

    def snapshot(self) -> dict[str, Any]:
        timers: list[dict[str, Any]] = []
        with self._lock:
            for (name, key_values), agg in self._series.items():
                timers.append(
                    {
                        "name": name,
                        "tags": key_values.to_dict(),
                        **asdict(agg),
                    }
                )
        timers.sort(key=lambda t: (t["name"], sorted(t["tags"].items())))
        return {"timers": timers}

    def reset(self) -> None:
        with self._lock:
            self._series = {}


_METRICS: InMemoryMetrics | None = None


def get_metrics() -> InMemoryMetrics:
    global _METRICS
    if _METRICS is None:
        _METRICS = InMemoryMetrics()
    return _METRICS


def reset_metrics() -> None:
    """Reset metrics counters/aggregates (used by tests)."""

    get_metrics().reset()
