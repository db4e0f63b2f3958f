"""Exception hierarchy for the registry engine."""

from __future__ import annotations

from typing import Any


class RegistryError(Exception):
    """
    Base exception for all registry engine errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class TreeIndexError(RegistryError):
    """
    Raised when a tree position lies outside the tree.

    Attributes:
        level: The requested level (0 is the leaf level).
        index: The requested index within that level.
        depth: The depth of the tree.
    """

    def __init__(self, level: int, index: int, depth: int) -> None:
        self.level = level
        self.index = index
        self.depth = depth

        if not 0 <= level <= depth:
            msg = f"Level {level} is outside the tree of depth {depth}"
        else:
            msg = f"Index {index} is outside level {level} of a tree of depth {depth}"

        super().__init__(msg)


class LeafNotFoundError(RegistryError):
    """
    Raised when a leaf value is not present in the tree.

    Attributes:
        leaf: The leaf value that was searched for.
    """

    def __init__(self, leaf: Any) -> None:
        self.leaf = leaf
        super().__init__(f"Leaf {leaf} is not in the tree")


class LogQueryError(RegistryError):
    """
    Raised when a block window could not be queried after all retries.

    Attributes:
        from_block: First block of the failing window.
        to_block: Last block of the failing window.
        attempts: Number of attempts made.
        cause: The last error raised by the ledger.
    """

    def __init__(
        self,
        from_block: int,
        to_block: int,
        attempts: int,
        cause: BaseException | None = None,
    ) -> None:
        self.from_block = from_block
        self.to_block = to_block
        self.attempts = attempts
        self.cause = cause

        msg = f"Log query for blocks {from_block}-{to_block} failed after {attempts} attempts"
        if cause is not None:
            msg = f"{msg}: {cause}"

        super().__init__(msg)


class OrphanRevocationError(RegistryError):
    """
    Raised when a revocation has no matching addition in the leaf history.

    Attributes:
        leaf_hash: The revoked leaf.
        index: The index of the revocation.
    """

    def __init__(self, leaf_hash: Any, index: int) -> None:
        self.leaf_hash = leaf_hash
        self.index = index
        super().__init__(f"Leaf {leaf_hash} was revoked at index {index} but never added")


class LeafMismatchError(RegistryError):
    """
    Raised when the leaf at an index differs from the one being revoked.

    Attributes:
        index: The tree index.
        expected: The leaf the caller asked to revoke.
        actual: The leaf actually stored at the index.
    """

    def __init__(self, index: int, expected: Any, actual: Any) -> None:
        self.index = index
        self.expected = expected
        self.actual = actual
        super().__init__(f"Leaf at index {index} is {actual}, expected {expected}")


class UnauthorizedRevocationError(RegistryError):
    """
    Raised when the sender is not the guardian that issued a certificate.

    Attributes:
        leaf_hash: The certificate hash.
        sender: The account attempting the revocation.
        guardian: The guardian recorded on the ledger.
    """

    def __init__(self, leaf_hash: Any, sender: str, guardian: str) -> None:
        self.leaf_hash = leaf_hash
        self.sender = sender
        self.guardian = guardian
        super().__init__(
            f"Account {sender} cannot revoke {leaf_hash}: it was issued by {guardian}"
        )


class TransactionRevertedError(RegistryError):
    """
    Raised when a ledger transaction was mined with a failure status.

    Attributes:
        operation: Name of the contract call.
        transaction_hash: Hash of the failed transaction.
    """

    def __init__(self, operation: str, transaction_hash: str) -> None:
        self.operation = operation
        self.transaction_hash = transaction_hash
        super().__init__(f"Transaction {transaction_hash} for {operation} reverted")


class QueueExpiredError(RegistryError):
    """
    Raised when a queued operation's turn arrived after its expiration.

    Attributes:
        leaf_hash: The queued certificate hash.
        expiration: Ledger timestamp after which the queue slot is void.
        now: Ledger timestamp observed.
    """

    def __init__(self, leaf_hash: Any, expiration: int, now: int) -> None:
        self.leaf_hash = leaf_hash
        self.expiration = expiration
        self.now = now
        super().__init__(
            f"Queue slot for {leaf_hash} expired at {expiration} (ledger time {now})"
        )


class UnexpectedOperationStateError(RegistryError):
    """
    Raised when a queue entry is in a state that cannot be processed.

    Attributes:
        leaf_hash: The queued certificate hash.
        state: The state reported by the ledger.
    """

    def __init__(self, leaf_hash: Any, state: Any) -> None:
        self.leaf_hash = leaf_hash
        self.state = state
        super().__init__(f"Queue entry {leaf_hash} has unexpected state {state!s}")


class SRSError(RegistryError):
    """Raised when a structured reference string is malformed or too small."""
