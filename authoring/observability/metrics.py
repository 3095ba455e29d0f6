"""In-process counters for uploads, deletes and submissions."""
from __future__ import annotations

import contextlib
import time
from typing import Dict, Iterable, Iterator

import structlog

LOGGER = structlog.get_logger(__name__)

AUTHORING_COUNTERS = (
    "images_uploaded",
    "images_rejected",
    "upload_failures",
    "images_deleted",
    "delete_failures",
    "validation_failures",
    "submissions_ok",
    "submissions_failed",
    "events_deleted",
    "submit_duration_ms",
)


class MetricsRegistry:
    """Counters for one CLI run or authoring session.

    Known counters are reported as zero until first touched; any other name
    is created on first increment.
    """

    def __init__(self, names: Iterable[str] = AUTHORING_COUNTERS) -> None:
        self._counters: Dict[str, int] = {name: 0 for name in names}

    def incr(self, name: str, value: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + value

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._counters)

    def log_snapshot(self, **context: object) -> None:
        LOGGER.info("metrics_snapshot", **context, **self.snapshot())


@contextlib.contextmanager
def record_duration(registry: MetricsRegistry, metric_name: str) -> Iterator[None]:
    """Add the wall time of the block, in milliseconds, to ``metric_name``."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        registry.incr(metric_name, elapsed_ms)
        LOGGER.debug("duration_recorded", metric=metric_name, duration_ms=elapsed_ms)
