"""
Registry synchronizer: keeps a local Merkle tree in step with the ledger.

The synchronizer owns a sparse Merkle tree rebuilt from the reconciled
leaf set. Every issuance or revocation it submits is mirrored into that
tree once the ledger accepts it, so proofs handed back to callers are
always against the post-update root.

Failures in these one-shot paths are fatal. Submissions are never retried,
since retrying a state-changing transaction risks applying it twice.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Self

from pydantic import Field

from zkcert_registry.field import Fr
from zkcert_registry.ledger import RegistryLedger, TransactionReceipt
from zkcert_registry.poseidon import POSEIDON
from zkcert_registry.queue.config import QUEUE_TURN_POLL_INTERVAL
from zkcert_registry.sync import TREE_INSERT_BATCH_SIZE, LogReconciler
from zkcert_registry.tree import FieldHasher, MerkleProof, SparseMerkleTree
from zkcert_registry.types import (
    LeafMismatchError,
    QueueExpiredError,
    StrictBaseModel,
    TransactionRevertedError,
    UnauthorizedRevocationError,
)

logger = logging.getLogger(__name__)


class ZkCertRegistration(StrictBaseModel):
    """Where a certificate was registered."""

    address: str
    """Registry contract address."""

    chain_id: int
    """Chain the registry lives on."""

    leaf_index: int = Field(ge=0)
    """Slot of the certificate in the registry tree."""

    revocable: bool = True
    """Whether the issuing guardian can revoke the certificate."""


class IssuanceResult(StrictBaseModel):
    """Proof and registration data of a freshly issued certificate."""

    merkle_proof: MerkleProof
    registration: ZkCertRegistration


@dataclass(slots=True)
class RegistrySynchronizer:
    """
    Issues and revokes certificates against a registry and its local mirror.

    Use `create` to build an instance: it reconciles the event log and
    rebuilds the tree before the first operation.
    """

    ledger: RegistryLedger
    """The registry contract."""

    tree: SparseMerkleTree
    """Local mirror of the registry tree. Owned exclusively by this instance."""

    chain_id: int
    """Chain id of the ledger, read once at creation."""

    poll_interval: float = QUEUE_TURN_POLL_INTERVAL
    """Seconds between queue checks in the queued variants."""

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    """Serializes tree mutations across concurrent callers."""

    @classmethod
    async def create(
        cls,
        ledger: RegistryLedger,
        reconciler: LogReconciler,
        *,
        hasher: FieldHasher = POSEIDON,
        batch_size: int = TREE_INSERT_BATCH_SIZE,
        poll_interval: float = QUEUE_TURN_POLL_INTERVAL,
    ) -> Self:
        """
        Reconcile the registry and rebuild its tree.

        Leaves are inserted in batches of `batch_size`, yielding to the event
        loop between batches so a large backfill does not starve other tasks.
        """
        depth = await ledger.tree_depth()
        chain_id = await ledger.chain_id()
        leaves = await reconciler.reconcile()

        tree = SparseMerkleTree(depth, hasher)
        for start in range(0, len(leaves), batch_size):
            chunk = leaves[start : start + batch_size]
            tree.insert_leaves([r.leaf_hash for r in chunk], [r.index for r in chunk])
            await asyncio.sleep(0)

        logger.info(
            "Rebuilt registry tree of depth %d with %d leaves, root %s",
            depth,
            len(leaves),
            tree.root.hex(),
        )
        return cls(ledger=ledger, tree=tree, chain_id=chain_id, poll_interval=poll_interval)

    def registration_for(self, index: int) -> ZkCertRegistration:
        """Registration record of the slot `index`."""
        return ZkCertRegistration(
            address=self.ledger.address,
            chain_id=self.chain_id,
            leaf_index=index,
        )

    async def issue(self, leaf: Fr) -> IssuanceResult:
        """
        Add a certificate at the lowest free slot.

        Returns:
            A proof against the updated root and the registration record.

        Raises:
            TransactionRevertedError: If the ledger rejected the addition.
        """
        async with self._lock:
            index = self.tree.get_free_leaf_index()
            empty_proof = self.tree.create_proof(index)

            receipt = await self.ledger.add_leaf(index, leaf, list(empty_proof.path_elements))
            _require_success("addZkCertificate", receipt)

            self.tree.insert_leaves([leaf], [index])
            logger.info("Issued %s at index %d", leaf.hex(), index)

            return IssuanceResult(
                merkle_proof=self.tree.create_proof(index),
                registration=self.registration_for(index),
            )

    async def revoke(self, leaf: Fr, index: int) -> MerkleProof:
        """
        Revoke the certificate stored at `index`.

        Returns:
            A proof of the now-empty slot against the updated root.

        Raises:
            LeafMismatchError: If the slot does not hold `leaf`.
            UnauthorizedRevocationError: If the sender did not issue `leaf`.
            TransactionRevertedError: If the ledger rejected the revocation.
        """
        async with self._lock:
            stored = self.tree.retrieve_leaf(0, index)
            if stored != leaf:
                raise LeafMismatchError(index, leaf.hex(), stored.hex())

            guardian = await self.ledger.guardian_of(leaf)
            if guardian.lower() != self.ledger.account.lower():
                raise UnauthorizedRevocationError(leaf.hex(), self.ledger.account, guardian)

            proof = self.tree.create_proof(index)
            receipt = await self.ledger.revoke_leaf(index, leaf, list(proof.path_elements))
            _require_success("revokeZkCertificate", receipt)

            self.tree.insert_leaves([self.tree.empty_leaf], [index])
            logger.info("Revoked %s at index %d", leaf.hex(), index)

            return self.tree.create_proof(index)

    async def issue_queued(self, leaf: Fr) -> IssuanceResult:
        """Register the issuance in the ledger queue, wait for its turn, then issue."""
        await self._enqueue(leaf)
        await self.wait_for_turn(leaf)
        return await self.issue(leaf)

    async def revoke_queued(self, leaf: Fr, index: int) -> MerkleProof:
        """Register the revocation in the ledger queue, wait for its turn, then revoke."""
        await self._enqueue(leaf)
        await self.wait_for_turn(leaf)
        return await self.revoke(leaf, index)

    async def _enqueue(self, leaf: Fr) -> None:
        receipt = await self.ledger.register_to_queue(leaf)
        _require_success("registerToQueue", receipt)
        logger.info("Registered %s to the queue", leaf.hex())

    async def wait_for_turn(self, leaf: Fr) -> None:
        """
        Block until the queue pointer reaches the entry of `leaf`.

        Raises:
            QueueExpiredError: If the entry expired before its turn came.
        """
        position = await self.ledger.queue_position(leaf)
        expiration = await self.ledger.queue_expiration(leaf)

        while True:
            now = await self.ledger.timestamp()
            if now > expiration:
                raise QueueExpiredError(leaf.hex(), expiration, now)

            pointer = await self.ledger.queue_pointer()
            if pointer >= position:
                return

            logger.debug(
                "Waiting for queue turn of %s: pointer %d, position %d",
                leaf.hex(),
                pointer,
                position,
            )
            await asyncio.sleep(self.poll_interval)


def _require_success(operation: str, receipt: TransactionReceipt) -> None:
    if not receipt.succeeded:
        raise TransactionRevertedError(operation, receipt.transaction_hash)
