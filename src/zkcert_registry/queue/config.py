"""
Queue processor configuration constants.

All values are in seconds.
"""

from __future__ import annotations

from typing import Final

from zkcert_registry.config import ZKCERT_ENV

_TEST = ZKCERT_ENV == "test"

QUEUE_POLL_INTERVAL: Final[float] = 0.0 if _TEST else 1.0
"""Wait before polling again when the queue is drained."""

QUEUE_RETRY_DELAY: Final[float] = 0.0 if _TEST else 5.0
"""Backoff after a failed processing attempt."""

QUEUE_SETTLE_DELAY: Final[float] = 0.0 if _TEST else 0.1
"""Pause after each processed entry."""

QUEUE_TURN_POLL_INTERVAL: Final[float] = 0.0 if _TEST else 1.0
"""Wait between checks while a queued issuance or revocation awaits its turn."""
