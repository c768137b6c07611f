"""Observability: decision/retrieval counters, timers and run summary logging."""

import time
from contextlib import contextmanager
from typing import Any

import structlog

logger = structlog.get_logger().bind(source="observability")


class Metrics:
    """Dict-based counters and timers.

    Counter names are dotted, e.g. ``decision.adjust.fallback`` or
    ``retrieval.rerank_failed``.
    """

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._timers: dict[str, list[float]] = {}

    def counter(self, name: str, value: int = 1):
        self._counters[name] = self._counters.get(name, 0) + value

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    def record_decision(self, name: str, source: str, reason: str | None = None):
        """Count a decision outcome and, for fallbacks, why the AI tier was skipped."""
        self.counter(f"decision.{name}.{source}")
        if reason:
            self.counter(f"decision.fallback_reason.{reason}")

    @contextmanager
    def timer(self, name: str):
        start = time.monotonic()
        try:
            yield
        finally:
            self._timers.setdefault(name, []).append(time.monotonic() - start)

    def summary(self) -> dict[str, Any]:
        timer_summary = {}
        for name, durations in self._timers.items():
            timer_summary[name] = {
                "count": len(durations),
                "avg": sum(durations) / len(durations),
                "max": max(durations),
            }
        return {"counters": dict(self._counters), "timers": timer_summary}

    def reset(self):
        self._counters.clear()
        self._timers.clear()


# Module-level singleton
metrics = Metrics()


def log_run_summary():
    """Log the current metrics summary via structlog."""
    logger.info("run_summary", **metrics.summary())
