"""Tracing helpers for authoring operations and collaborator calls."""
from __future__ import annotations

import contextlib
import time
from typing import Iterator, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


def _logger():
    return structlog.get_logger("authoring.trace")


def set_context(*, session_id: str, event_id: Optional[str] = None) -> None:
    bind_contextvars(session_id=session_id, event_id=event_id)
    _logger().debug("trace_context", session_id=session_id, event_id=event_id)


def clear_context() -> None:
    clear_contextvars()


@contextlib.contextmanager
def span(*, name: str, target: Optional[str] = None) -> Iterator[None]:
    start = time.perf_counter()
    outcome = "ok"
    try:
        yield
    except BaseException:
        outcome = "error"
        raise
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        _logger().info("trace_span", span=name, target=target, outcome=outcome, elapsed_ms=elapsed_ms)


def log_call_result(*, method: str, url: str, status: int, elapsed_ms: int) -> None:
    _logger().info(
        "collaborator_call",
        method=method,
        url=url,
        status=status,
        elapsed_ms=elapsed_ms,
    )
