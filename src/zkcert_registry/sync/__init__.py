"""Reconciliation of the active leaf set from registry events."""

from .cache import CachedLeaf, LeafLogCache, LeafLogCacheStore, LeafLogResult
from .config import (
    LOG_BLOCK_WINDOW,
    LOG_RETRY_DELAY,
    MAX_LOG_QUERY_RETRIES,
    TREE_INSERT_BATCH_SIZE,
)
from .reconciler import LogReconciler, ProgressCallback

__all__ = [
    "CachedLeaf",
    "LOG_BLOCK_WINDOW",
    "LOG_RETRY_DELAY",
    "LeafLogCache",
    "LeafLogCacheStore",
    "LeafLogResult",
    "LogReconciler",
    "MAX_LOG_QUERY_RETRIES",
    "ProgressCallback",
    "TREE_INSERT_BATCH_SIZE",
]
