"""
Processing states of a certificate hash on the registry ledger.

The registry contract tracks every certificate hash through a queue:

    NONE --> ISSUANCE_QUEUED --> ISSUED --> REVOCATION_QUEUED --> REVOKED

Only the two queued states can be acted on by the queue processor. The
integer values are the ones the contract reports.
"""

from __future__ import annotations

from enum import IntEnum


class OperationState(IntEnum):
    """Ledger state of a certificate hash."""

    NONE = 0
    """Unknown to the registry."""

    ISSUANCE_QUEUED = 1
    """Registered for addition, waiting for its queue turn."""

    ISSUED = 2
    """Added to the tree."""

    REVOCATION_QUEUED = 3
    """Registered for revocation, waiting for its queue turn."""

    REVOKED = 4
    """Replaced by the empty leaf."""

    def can_transition_to(self, target: OperationState) -> bool:
        """Check if transition to target state is valid."""
        return target in _VALID_TRANSITIONS.get(self, set())

    @property
    def is_queued(self) -> bool:
        """Whether the hash is waiting in the queue."""
        return self in (OperationState.ISSUANCE_QUEUED, OperationState.REVOCATION_QUEUED)

    @property
    def is_processed(self) -> bool:
        """Whether the last queued operation has been applied to the tree."""
        return self in (OperationState.ISSUED, OperationState.REVOKED)


_VALID_TRANSITIONS: dict[OperationState, set[OperationState]] = {
    OperationState.NONE: {OperationState.ISSUANCE_QUEUED},
    OperationState.ISSUANCE_QUEUED: {OperationState.ISSUED},
    OperationState.ISSUED: {OperationState.REVOCATION_QUEUED},
    OperationState.REVOCATION_QUEUED: {OperationState.REVOKED},
    OperationState.REVOKED: set(),
}
