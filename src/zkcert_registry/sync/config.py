"""
Reconciler configuration constants.

Operational parameters for rebuilding the leaf set from ledger events:
window sizes, retry policy, and tree rebuild batching.
"""

from __future__ import annotations

from typing import Final

from zkcert_registry.config import ZKCERT_ENV

LOG_BLOCK_WINDOW: Final[int] = 10_000
"""Blocks covered by a single event query."""

MAX_LOG_QUERY_RETRIES: Final[int] = 3
"""Attempts made for one window before the reconciliation fails."""

LOG_RETRY_DELAY: Final[float] = 0.0 if ZKCERT_ENV == "test" else 5.0
"""Seconds to wait between attempts on a failing window."""

TREE_INSERT_BATCH_SIZE: Final[int] = 10_000
"""Leaves inserted into the local tree per batch while rebuilding."""
