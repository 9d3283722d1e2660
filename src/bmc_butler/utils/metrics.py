"""In-process metrics registry.

Counters and runtimes are fire-and-forget: callers never wait on a sink and
never see an error from one. Safe to use from any number of tasks or threads.

Usage:
    from bmc_butler.utils.metrics import metrics

    metrics.incr_counter(["butler", "asset_recvd"])
    start = time.perf_counter()
    ...
    metrics.measure_runtime(["butler", "configure_runtime"], start)
    print(metrics.summary())
"""
import threading
import time
from typing import Iterable, Union

Key = Union[str, Iterable[str]]


def _name(key: Key) -> str:
    if isinstance(key, str):
        return key
    return ".".join(key)


class MetricsRegistry:
    """Collect counters and runtime samples."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}
        self._runtimes: dict[str, list[float]] = {}

    def incr_counter(self, key: Key, value: int = 1) -> None:
        """Increment a counter, creating it at zero first."""
        name = _name(key)
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def measure_runtime(self, key: Key, start: float) -> None:
        """Record the milliseconds elapsed since ``start`` (a perf_counter value)."""
        elapsed = (time.perf_counter() - start) * 1000
        name = _name(key)
        with self._lock:
            self._runtimes.setdefault(name, []).append(elapsed)

    def counter(self, key: Key) -> int:
        with self._lock:
            return self._counters.get(_name(key), 0)

    def runtimes(self, key: Key) -> list[float]:
        with self._lock:
            return list(self._runtimes.get(_name(key), []))

    def counters(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def summary(self) -> str:
        """Generate summary lines for every counter and runtime."""
        with self._lock:
            counters = dict(self._counters)
            runtimes = {k: list(v) for k, v in self._runtimes.items()}

        lines = ["Run Summary", "=" * 60]
        for name, value in sorted(counters.items()):
            lines.append(f"{name:40s} | {value:6d}")

        for name, times in sorted(runtimes.items()):
            if not times:
                continue
            count = len(times)
            avg = sum(times) / count
            lines.append(
                f"{name:40s} | count={count:4d} | "
                f"avg={avg:8.2f}ms | min={min(times):8.2f}ms | max={max(times):8.2f}ms"
            )

        return "\n".join(lines)

    def clear(self) -> None:
        """Clear all recorded data."""
        with self._lock:
            self._counters.clear()
            self._runtimes.clear()


# Global registry for convenience
metrics = MetricsRegistry()
