"""Tests for the Prometheus metrics registry."""

from __future__ import annotations

from zkcert_registry.metrics import (
    REGISTRY,
    generate_metrics,
    log_query_retries,
    queue_operations_processed,
    queue_pointer,
)


class TestMetricTypes:
    """Tests for metric type behavior."""

    def test_counter_increments_correctly(self) -> None:
        """Counter metrics increment by one on each call."""
        initial = log_query_retries._value.get()
        log_query_retries.inc()
        assert log_query_retries._value.get() == initial + 1.0

    def test_gauge_sets_value_correctly(self) -> None:
        """Gauge metrics can be set to arbitrary values."""
        queue_pointer.set(7)
        assert queue_pointer._value.get() == 7.0

    def test_labelled_counter(self) -> None:
        """Operations are counted per kind."""
        initial = queue_operations_processed.labels(operation="issue")._value.get()
        queue_operations_processed.labels(operation="issue").inc()
        assert queue_operations_processed.labels(operation="issue")._value.get() == initial + 1


class TestMetricsOutput:
    """Tests for the exposition format."""

    def test_output_contains_registry_metrics(self) -> None:
        """Every registered metric shows up in the text output."""
        output = generate_metrics().decode()
        for name in (
            "zkcert_log_query_retries_total",
            "zkcert_reconciled_leaves",
            "zkcert_queue_processing_failures_total",
            "zkcert_queue_pointer",
        ):
            assert name in output

    def test_registry_excludes_process_metrics(self) -> None:
        """The dedicated registry carries no default collectors."""
        names = {metric.name for metric in REGISTRY.collect()}
        assert not any(name.startswith("process_") for name in names)
