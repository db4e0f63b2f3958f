"""Long-running processor for the registry operation queue."""

from .config import (
    QUEUE_POLL_INTERVAL,
    QUEUE_RETRY_DELAY,
    QUEUE_SETTLE_DELAY,
    QUEUE_TURN_POLL_INTERVAL,
)
from .processor import QueueProcessor

__all__ = [
    "QUEUE_POLL_INTERVAL",
    "QUEUE_RETRY_DELAY",
    "QUEUE_SETTLE_DELAY",
    "QUEUE_TURN_POLL_INTERVAL",
    "QueueProcessor",
]
