"""Performance monitoring utilities for the rackcalc costing engines."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("rackcalc-api.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures execution time of an engine entry point, logs it
    and records it on the module-level ``tracker``.

    Usage::

        @timed
        def calculate_project_costs(...):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        failed = False
        try:
            return func(*args, **kwargs)
        except Exception:
            failed = True
            raise
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 3)
            if failed:
                tracker.record_error(func.__name__)
            else:
                tracker.record_duration(func.__name__, duration_ms)
            logger.debug(
                "function timed",
                extra={
                    "operation": func.__qualname__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for engine-level metrics.

    Tracks:
    - Call count and average duration per engine operation
    - Slowest operation observed
    - Error count broken down by operation
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._durations: Dict[str, list] = {}    # operation -> [duration_ms, ...]
        self._error_counts: Dict[str, int] = {}  # operation -> count
        self._slowest_operation: Optional[str] = None
        self._slowest_operation_ms: float = 0.0

    def record_duration(self, operation: str, duration_ms: float) -> None:
        with self._lock:
            self._durations.setdefault(operation, []).append(duration_ms)
            if duration_ms > self._slowest_operation_ms:
                self._slowest_operation_ms = duration_ms
                self._slowest_operation = operation

    def record_error(self, operation: str) -> None:
        with self._lock:
            self._error_counts[operation] = self._error_counts.get(operation, 0) + 1

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            calls_by_operation       : dict  {operation: count}
            avg_duration_ms          : dict  {operation: avg_ms}
            slowest_operation        : str | None
            slowest_operation_ms     : float
            error_count              : int   (total across all operations)
            error_count_by_operation : dict  {operation: count}
        """
        with self._lock:
            avgs: Dict[str, float] = {}
            for operation, durations in self._durations.items():
                avgs[operation] = round(sum(durations) / len(durations), 3) if durations else 0.0

            return {
                "calls_by_operation": {op: len(d) for op, d in self._durations.items()},
                "avg_duration_ms": avgs,
                "slowest_operation": self._slowest_operation,
                "slowest_operation_ms": round(self._slowest_operation_ms, 3),
                "error_count": sum(self._error_counts.values()),
                "error_count_by_operation": dict(self._error_counts),
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._durations.clear()
            self._error_counts.clear()
            self._slowest_operation = None
            self._slowest_operation_ms = 0.0


# Module-level singleton; import this instance everywhere else.
tracker = PerformanceTracker()
