"""Base models and errors shared across the registry engine."""

from .base import CamelModel, StrictBaseModel
from .exceptions import (
    LeafMismatchError,
    LeafNotFoundError,
    LogQueryError,
    OrphanRevocationError,
    QueueExpiredError,
    RegistryError,
    SRSError,
    TransactionRevertedError,
    TreeIndexError,
    UnauthorizedRevocationError,
    UnexpectedOperationStateError,
)

__all__ = [
    # Models
    "CamelModel",
    "StrictBaseModel",
    # Exceptions
    "RegistryError",
    "TreeIndexError",
    "LeafNotFoundError",
    "LogQueryError",
    "OrphanRevocationError",
    "LeafMismatchError",
    "UnauthorizedRevocationError",
    "TransactionRevertedError",
    "QueueExpiredError",
    "UnexpectedOperationStateError",
    "SRSError",
]
