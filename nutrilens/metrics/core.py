"""Tagged in-process counters and latency windows.

Everything is read through `MetricsRegistry.snapshot()`, which
/api/metrics serves as JSON. There is no exporter.
"""

from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Any, Callable, Deque, Dict, Tuple, TypeVar

WINDOW_SIZE = 2000

_Key = Tuple[str, Tuple[Tuple[str, str], ...]]


class Counter:
    def __init__(self, name: str, tags: Dict[str, str]) -> None:
        self.name = name
        self.tags = tags
        self._count = 0
        self._lock = Lock()

    def inc(self) -> None:
        with self._lock:
            self._count += 1

    def value(self) -> int:
        with self._lock:
            return self._count


class Histogram:
    """Summary over the last WINDOW_SIZE observations."""

    def __init__(self, name: str, tags: Dict[str, str]) -> None:
        self.name = name
        self.tags = tags
        self._window: Deque[float] = deque(maxlen=WINDOW_SIZE)
        self._lock = Lock()

    def observe(self, value: float) -> None:
        with self._lock:
            self._window.append(value)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            ordered = sorted(self._window)
        n = len(ordered)
        if n == 0:
            return {"count": 0, "avg": 0.0, "p95": 0.0, "min": 0.0, "max": 0.0}
        return {
            "count": n,
            "avg": sum(ordered) / n,
            "p95": ordered[int(0.95 * (n - 1))],
            "min": ordered[0],
            "max": ordered[-1],
        }


_M = TypeVar("_M", Counter, Histogram)


class MetricsRegistry:
    """Get-or-create store of metrics keyed by name and tag set."""

    def __init__(self) -> None:
        self._counters: Dict[_Key, Counter] = {}
        self._histograms: Dict[_Key, Histogram] = {}
        self._lock = Lock()

    def _get(
        self, store: Dict[_Key, _M], make: Callable[[str, Dict[str, str]], _M], name: str, tags: Dict[str, str]
    ) -> _M:
        key = (name, tuple(sorted(tags.items())))
        with self._lock:
            if key not in store:
                store[key] = make(name, tags)
            return store[key]

    def counter(self, name: str, **tags: str) -> Counter:
        return self._get(self._counters, Counter, name, tags)

    def histogram(self, name: str, **tags: str) -> Histogram:
        return self._get(self._histograms, Histogram, name, tags)

    def counter_total(self, name: str, **tags: str) -> int:
        """
        Sum of every counter named `name` whose tags include `tags`.

        Example:
            >>> registry.counter("runs_total", result="ok").inc()
            >>> registry.counter_total("runs_total")
            1
        """
        with self._lock:
            matching = [
                c
                for (n, _), c in self._counters.items()
                if n == name and tags.items() <= c.tags.items()
            ]
        return sum(c.value() for c in matching)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            counters = list(self._counters.values())
            histograms = list(self._histograms.values())
        return {
            "counters": [{"name": c.name, "tags": dict(c.tags), "value": c.value()} for c in counters],
            "histograms": [{"name": h.name, "tags": dict(h.tags), **h.snapshot()} for h in histograms],
            "generatedAt": time.time(),
        }
