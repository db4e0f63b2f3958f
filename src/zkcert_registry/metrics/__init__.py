"""
Metrics module for observability.

Counters and gauges tracking reconciliation and queue processing, exposed
in Prometheus text format.
"""

from .registry import (
    REGISTRY,
    generate_metrics,
    log_query_retries,
    queue_operations_processed,
    queue_pointer,
    queue_processing_failures,
    reconciled_leaves,
)

__all__ = [
    "REGISTRY",
    "generate_metrics",
    "log_query_retries",
    "queue_operations_processed",
    "queue_pointer",
    "queue_processing_failures",
    "reconciled_leaves",
]
