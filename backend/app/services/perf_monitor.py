"""Performance monitoring utilities for the growth engine API."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict

logger = logging.getLogger("bizplan-api.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for synchronous functions.

    Usage::

        @timed
        def compute(self, payload):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                "function timed",
                extra={
                    "qualname": func.__qualname__,
                    "source_module": func.__module__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for computation metrics.

    Tracks, per computation kind ("growth_timeline", "cash_projection", ...):
    - Number of completed computations
    - Cumulative and average duration
    - Months simulated
    - Error count
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._completed: Dict[str, int] = {}
        self._durations_ms: Dict[str, float] = {}
        self._months_simulated: int = 0
        self._error_counts: Dict[str, int] = {}
        self._slowest_kind: str | None = None
        self._slowest_ms: float = 0.0

    # ------------------------------------------------------------------
    # Public write API
    # ------------------------------------------------------------------

    def record_computation(self, kind: str, duration_ms: float, months: int = 0) -> None:
        """Call once when a computation finishes successfully."""
        with self._lock:
            self._completed[kind] = self._completed.get(kind, 0) + 1
            self._durations_ms[kind] = self._durations_ms.get(kind, 0.0) + duration_ms
            self._months_simulated += months
            if duration_ms > self._slowest_ms:
                self._slowest_ms = duration_ms
                self._slowest_kind = kind

    def record_error(self, kind: str) -> None:
        with self._lock:
            self._error_counts[kind] = self._error_counts.get(kind, 0) + 1

    # ------------------------------------------------------------------
    # Public read API
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            computations_processed : int
            avg_duration_ms        : float  (0 if none processed)
            months_simulated       : int
            slowest_kind           : str | None
            slowest_ms             : float
            error_count            : int   (total across all kinds)
            error_count_by_kind    : dict  {kind: count}
            avg_duration_ms_by_kind: dict  {kind: avg_ms}
        """
        with self._lock:
            total = sum(self._completed.values())
            total_ms = sum(self._durations_ms.values())
            by_kind = {
                kind: round(self._durations_ms[kind] / count, 2)
                for kind, count in self._completed.items()
                if count > 0
            }
            return {
                "computations_processed": total,
                "avg_duration_ms": round(total_ms / total, 2) if total > 0 else 0.0,
                "months_simulated": self._months_simulated,
                "slowest_kind": self._slowest_kind,
                "slowest_ms": round(self._slowest_ms, 2),
                "error_count": sum(self._error_counts.values()),
                "error_count_by_kind": dict(self._error_counts),
                "avg_duration_ms_by_kind": by_kind,
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._completed.clear()
            self._durations_ms.clear()
            self._months_simulated = 0
            self._error_counts.clear()
            self._slowest_kind = None
            self._slowest_ms = 0.0


# Module-level singleton; import this instance everywhere else.
tracker = PerformanceTracker()
