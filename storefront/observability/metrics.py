"""
Process-local metrics registry.

Counters, gauges and latency histograms are keyed by name plus a sorted label
tuple. The last ``MAX_EVENTS`` business events are kept for ``/admin/metrics``.
"""
from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Optional, Tuple

from storefront.config import Config

MetricKey = Tuple[str, Tuple[Tuple[str, str], ...]]
MAX_EVENTS = 100


def _labels_tuple(labels: Optional[Dict[str, str]]) -> Tuple[Tuple[str, str], ...]:
    if not labels:
        return ()
    return tuple(sorted((key, str(value)) for key, value in labels.items()))


@dataclass
class Histogram:
    count: int = 0
    total: float = 0.0
    min_value: float = field(default=float("inf"))
    max_value: float = field(default=float("-inf"))

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.min_value = min(self.min_value, value)
        self.max_value = max(self.max_value, value)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg": self.total / self.count if self.count else 0.0,
            "min": None if self.count == 0 else self.min_value,
            "max": None if self.count == 0 else self.max_value,
        }


_lock = threading.Lock()
_counters: Dict[MetricKey, float] = defaultdict(float)
_gauges: Dict[MetricKey, float] = {}
_histograms: Dict[MetricKey, Histogram] = {}
_events: Deque[Dict[str, Any]] = deque(maxlen=MAX_EVENTS)


def increment_counter(name: str, amount: float = 1.0, labels: Optional[Dict[str, str]] = None) -> None:
    if not Config.OBSERVABILITY_ENABLED:
        return
    with _lock:
        _counters[(name, _labels_tuple(labels))] += amount


def set_gauge(name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
    if not Config.OBSERVABILITY_ENABLED:
        return
    with _lock:
        _gauges[(name, _labels_tuple(labels))] = value


def observe_latency(name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
    if not Config.OBSERVABILITY_ENABLED:
        return
    with _lock:
        _histograms.setdefault((name, _labels_tuple(labels)), Histogram()).observe(value)


def record_event(name: str, payload: Dict[str, Any]) -> None:
    if not Config.OBSERVABILITY_ENABLED:
        return
    event = {"name": name, "timestamp": time.time(), "payload": payload}
    with _lock:
        _events.append(event)


def get_counter_value(name: str, labels: Optional[Dict[str, str]] = None) -> float:
    """Sum of a counter across label sets, or one label set when ``labels`` is given."""
    with _lock:
        if labels is not None:
            return _counters.get((name, _labels_tuple(labels)), 0.0)
        return sum(value for (counter, _), value in _counters.items() if counter == name)


def get_metrics_snapshot() -> Dict[str, Any]:
    snapshot: Dict[str, Any] = {"counters": {}, "gauges": {}, "histograms": {}}
    with _lock:
        for (name, labels), value in _counters.items():
            snapshot["counters"].setdefault(name, []).append({"labels": dict(labels), "value": value})
        for (name, labels), value in _gauges.items():
            snapshot["gauges"].setdefault(name, []).append({"labels": dict(labels), "value": value})
        for (name, labels), histogram in _histograms.items():
            snapshot["histograms"].setdefault(name, []).append(
                {"labels": dict(labels), "stats": histogram.snapshot()}
            )
        snapshot["events"] = list(_events)
    return snapshot


def reset_metrics() -> None:
    """Testing helper."""
    with _lock:
        _counters.clear()
        _gauges.clear()
        _histograms.clear()
        _events.clear()
