"""
Interface to the registry contract on the ledger.

The engine never talks to a node directly. Everything it needs from the
ledger goes through `RegistryLedger`, so the synchronizer, the reconciler,
and the queue processor can run against a live contract or an in-memory
stand-in alike.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from pydantic import Field

from zkcert_registry.field import Fr
from zkcert_registry.types import StrictBaseModel

from .states import OperationState


class LeafOperation(Enum):
    """Kind of leaf change reported by a registry event."""

    ADD = "add"
    REVOKE = "revoke"


class LeafEvent(StrictBaseModel):
    """An addition or revocation event emitted by the registry."""

    leaf_hash: Fr
    operation: LeafOperation
    index: int = Field(ge=0)
    block_number: int = Field(ge=0)
    transaction_hash: str
    log_index: int = Field(ge=0)

    @property
    def key(self) -> tuple[str, int]:
        """Identity of the log entry, stable across re-delivery."""
        return (self.transaction_hash.lower(), self.log_index)


class TransactionReceipt(StrictBaseModel):
    """Outcome of a mined transaction."""

    transaction_hash: str
    status: int
    block_number: int = Field(ge=0)

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class RegistryLedger(Protocol):
    """
    Protocol for the registry contract and the chain it lives on.

    Transaction methods wait for the transaction to be mined and return its
    receipt. A reverted transaction is reported through the receipt status,
    not by raising. Read methods may raise on transport errors.
    """

    @property
    def address(self) -> str:
        """Address of the registry contract."""
        ...

    @property
    def account(self) -> str:
        """Account that signs transactions."""
        ...

    async def chain_id(self) -> int: ...

    async def block_number(self) -> int: ...

    async def timestamp(self) -> int:
        """Timestamp of the latest block."""
        ...

    async def tree_depth(self) -> int: ...

    async def merkle_root(self) -> Fr: ...

    async def leaf_events(self, from_block: int, to_block: int) -> list[LeafEvent]:
        """
        Addition and revocation events in an inclusive block range.

        Args:
            from_block: First block to scan.
            to_block: Last block to scan.

        Returns:
            Events in chain order.
        """
        ...

    async def add_leaf(self, index: int, leaf: Fr, path: list[Fr]) -> TransactionReceipt:
        """Add `leaf` at `index`, proving the slot is empty with `path`."""
        ...

    async def revoke_leaf(self, index: int, leaf: Fr, path: list[Fr]) -> TransactionReceipt:
        """Replace `leaf` at `index` with the empty leaf, proving it with `path`."""
        ...

    async def process_next_operation(
        self, index: int, leaf: Fr, path: list[Fr]
    ) -> TransactionReceipt:
        """Apply the queue entry at the current queue pointer."""
        ...

    async def register_to_queue(self, leaf: Fr) -> TransactionReceipt:
        """Queue the next operation for `leaf`."""
        ...

    async def queue_pointer(self) -> int:
        """Position of the next queue entry to process."""
        ...

    async def queue_length(self) -> int: ...

    async def queue_entry(self, position: int) -> Fr:
        """Certificate hash at a queue position. Zero for a cleared entry."""
        ...

    async def queue_position(self, leaf: Fr) -> int: ...

    async def queue_expiration(self, leaf: Fr) -> int:
        """Ledger timestamp after which the queue entry of `leaf` is void."""
        ...

    async def operation_state(self, leaf: Fr) -> OperationState: ...

    async def guardian_of(self, leaf: Fr) -> str:
        """Account that issued `leaf`."""
        ...
