"""
Metric registry using prometheus_client.

Counters and gauges for the reconciler and the queue processor. They live
in a dedicated registry so that embedding applications choose whether and
where to expose them.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

# A dedicated registry keeps default process metrics out of the output.
REGISTRY = CollectorRegistry()

# -----------------------------------------------------------------------------
# Log Reconciliation
# -----------------------------------------------------------------------------

log_query_retries = Counter(
    "zkcert_log_query_retries_total",
    "Failed event window queries that were retried or abandoned",
    registry=REGISTRY,
)

reconciled_leaves = Gauge(
    "zkcert_reconciled_leaves",
    "Active leaves after the last reconciliation",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Queue Processing
# -----------------------------------------------------------------------------

queue_operations_processed = Counter(
    "zkcert_queue_operations_processed_total",
    "Queue entries applied to the registry",
    ["operation"],
    registry=REGISTRY,
)

queue_processing_failures = Counter(
    "zkcert_queue_processing_failures_total",
    "Queue processing attempts that raised",
    registry=REGISTRY,
)

queue_pointer = Gauge(
    "zkcert_queue_pointer",
    "Last observed registry queue pointer",
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format output as bytes.
    """
    return generate_latest(REGISTRY)
