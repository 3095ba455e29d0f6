import pytest

from authoring.observability.metrics import MetricsRegistry, record_duration
from authoring.observability.tracing import span


def test_registry_starts_with_authoring_counters():
    registry = MetricsRegistry()
    registry.incr("images_uploaded")
    registry.incr("images_uploaded", 2)
    snapshot = registry.snapshot()
    assert snapshot["images_uploaded"] == 3
    assert snapshot["submissions_failed"] == 0
    assert registry.get("unknown") == 0


def test_record_duration_accumulates_even_on_error():
    registry = MetricsRegistry()
    with pytest.raises(RuntimeError):
        with record_duration(registry, "submit_duration_ms"):
            raise RuntimeError("boom")
    assert registry.get("submit_duration_ms") >= 0
    assert "submit_duration_ms" in registry.snapshot()


def test_span_reraises_failures():
    with pytest.raises(KeyError):
        with span(name="GET /api/user/profile"):
            raise KeyError("profile")
