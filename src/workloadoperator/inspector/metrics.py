"""Counters of remote calls made through the mod client."""

from __future__ import annotations

__all__ = ("ClientMetrics", "MetricKey", "client_metrics")

import threading
from collections import Counter
from typing import NamedTuple


class MetricKey(NamedTuple):
    kind: str
    verb: str
    failed: bool


class ClientMetrics:
    """Thread-safe counters keyed by ``(kind, verb, failed)``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: Counter[MetricKey] = Counter()

    def inc(self, kind: str, verb: str, failed: bool) -> None:
        with self._lock:
            self._counts[MetricKey(kind, verb, failed)] += 1

    def get(self, kind: str, verb: str, failed: bool = False) -> int:
        with self._lock:
            return self._counts[MetricKey(kind, verb, failed)]

    def snapshot(self) -> dict[MetricKey, int]:
        with self._lock:
            return dict(self._counts)

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()


client_metrics = ClientMetrics()
"""Process-wide counters shared by every mod client."""
