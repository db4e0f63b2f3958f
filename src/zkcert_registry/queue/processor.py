"""
Queue processor that drains the registry's operation queue.

The Queue Problem
-----------------
Guardians do not add or revoke leaves directly. They register a
certificate hash to a queue on the registry, and the queue is applied in
order by whoever holds an up-to-date copy of the tree: every addition and
revocation needs a Merkle path against the current root, which only an
off-chain mirror can supply.

How It Works
------------
1. Read the queue pointer and length. If drained, sleep and poll again.
2. Read the entry at the pointer. A cleared (zero) entry is skipped after
   a pause; the ledger advances past it on its own.
3. Look up the entry's state:
   - ISSUANCE_QUEUED: take the lowest free slot and prove it empty.
   - REVOCATION_QUEUED: find the slot holding the hash and prove it.
   - anything else is an error.
4. Submit `processNextOperation` and, once mined, apply the same change to
   the local tree so the next iteration proves against the new root.
5. Any error is logged and retried after a backoff, forever. The job of
   this service is eventual drainage, unlike the fail-fast one-shot paths.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from zkcert_registry.field import Fr
from zkcert_registry.ledger import OperationState, RegistryLedger
from zkcert_registry.metrics import (
    queue_operations_processed,
    queue_pointer,
    queue_processing_failures,
)
from zkcert_registry.tree import SparseMerkleTree
from zkcert_registry.types import TransactionRevertedError, UnexpectedOperationStateError

from .config import QUEUE_POLL_INTERVAL, QUEUE_RETRY_DELAY, QUEUE_SETTLE_DELAY

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class QueueProcessor:
    """
    Applies queued registry operations in order and mirrors them locally.

    The processor is the single owner of `tree` while it runs. Shutdown is
    cooperative: `stop()` clears a flag read at the top of each iteration,
    so an operation that is already in flight always completes.
    """

    ledger: RegistryLedger
    """The registry contract."""

    tree: SparseMerkleTree
    """Local mirror of the registry tree."""

    poll_interval: float = QUEUE_POLL_INTERVAL
    """Seconds to wait when there is nothing to process."""

    retry_delay: float = QUEUE_RETRY_DELAY
    """Seconds to back off after a failed attempt."""

    settle_delay: float = QUEUE_SETTLE_DELAY
    """Seconds to pause after each processed entry."""

    processed: int = 0
    """Entries processed since construction."""

    _running: bool = field(default=False, repr=False)
    """Whether the service is running."""

    async def run(self) -> None:
        """
        Main loop: process queue entries until stopped.

        Exceptions raised while processing an entry never escape the loop.
        Cancellation of the surrounding task does.
        """
        self._running = True
        logger.info("Queue processor started for registry %s", self.ledger.address)

        while self._running:
            try:
                if await self.process_next():
                    await asyncio.sleep(self.settle_delay)
                else:
                    await asyncio.sleep(self.poll_interval)
            except Exception as exc:
                queue_processing_failures.inc()
                logger.error("Error processing queue: %s", exc, exc_info=True)
                await asyncio.sleep(self.retry_delay)

        logger.info("Queue processor stopped after %d operations", self.processed)

    async def process_next(self) -> bool:
        """
        Process the entry at the queue pointer, if there is one.

        Returns:
            True if an entry was applied, False if the queue was drained or
            the entry was cleared.

        Raises:
            UnexpectedOperationStateError: If the entry is not queued.
            LeafNotFoundError: If a revoked hash is not in the local tree.
            TransactionRevertedError: If the ledger rejected the operation.
        """
        pointer = await self.ledger.queue_pointer()
        length = await self.ledger.queue_length()
        queue_pointer.set(pointer)
        if pointer >= length:
            return False

        leaf = await self.ledger.queue_entry(pointer)
        if leaf == Fr.zero():
            logger.debug("Queue entry %d is cleared", pointer)
            return False

        logger.info("Processing queue item %d: %s", pointer, leaf.hex())

        state = await self.ledger.operation_state(leaf)
        if state is OperationState.ISSUANCE_QUEUED:
            index = self.tree.get_free_leaf_index()
            new_value = leaf
        elif state is OperationState.REVOCATION_QUEUED:
            index = self.tree.get_leaf_index(leaf)
            new_value = self.tree.empty_leaf
        else:
            raise UnexpectedOperationStateError(leaf.hex(), state)

        proof = self.tree.create_proof(index)
        receipt = await self.ledger.process_next_operation(
            index, leaf, list(proof.path_elements)
        )
        if not receipt.succeeded:
            raise TransactionRevertedError("processNextOperation", receipt.transaction_hash)

        self.tree.insert_leaves([new_value], [index])
        self.processed += 1
        queue_operations_processed.labels(
            operation="issue" if state is OperationState.ISSUANCE_QUEUED else "revoke"
        ).inc()
        logger.info("Processed queue item %d at index %d", pointer, index)
        return True

    def stop(self) -> None:
        """
        Stop the service.

        Sets the running flag to False, causing the run() loop to exit
        after completing its current iteration.
        """
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if the service is currently running."""
        return self._running
