"""Injectable metrics sinks for request and AI counters."""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Protocol


class MetricsSink(Protocol):  # Minimal metrics protocol injected into services
    def increment(self, name: str, value: int = 1, **tags: str) -> None: ...

    def observe(self, name: str, value: float, **tags: str) -> None: ...


def _key(name: str, tags: Dict[str, str]) -> str:
    if not tags:
        return name
    rendered = ",".join(f"{key}={tags[key]}" for key in sorted(tags))
    return f"{name}{{{rendered}}}"


class InMemoryMetrics:
    """Thread-safe counters and bounded observation windows."""

    def __init__(self, window: int = 1000) -> None:
        self._window = window
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._observations: Dict[str, List[float]] = {}

    def increment(self, name: str, value: int = 1, **tags: str) -> None:
        key = _key(name, tags)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + value

    def observe(self, name: str, value: float, **tags: str) -> None:
        key = _key(name, tags)
        with self._lock:
            values = self._observations.setdefault(key, [])
            values.append(float(value))
            if len(values) > self._window:
                del values[: len(values) - self._window]

    def counter(self, name: str, **tags: str) -> int:
        with self._lock:
            return self._counters.get(_key(name, tags), 0)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            counters = dict(self._counters)
            observations: Dict[str, Dict[str, float]] = {}
            for key, values in self._observations.items():
                if not values:
                    continue
                observations[key] = {
                    "count": float(len(values)),
                    "avg": round(sum(values) / len(values), 2),
                    "max": max(values),
                }
        return {"counters": counters, "observations": observations}


class NullMetrics:
    """Sink that drops everything."""

    def increment(self, name: str, value: int = 1, **tags: str) -> None:
        return None

    def observe(self, name: str, value: float, **tags: str) -> None:
        return None


__all__ = ["MetricsSink", "InMemoryMetrics", "NullMetrics"]
