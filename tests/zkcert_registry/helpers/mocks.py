"""
In-memory stand-in for the registry contract.

`FakeRegistryLedger` keeps its own copy of the registry tree and enforces
the checks of the real contract that matter to the engine: paths must
match the current root, revocations must come from the guardian, and the
queue is applied strictly in order. Every accepted change emits an event
in a fresh block.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from zkcert_registry.field import Fr
from zkcert_registry.ledger import LeafEvent, LeafOperation, OperationState, TransactionReceipt
from zkcert_registry.poseidon import POSEIDON
from zkcert_registry.tree import EMPTY_LEAF, SparseMerkleTree

REGISTRY_ADDRESS = "0x00000000000000000000000000000000000000Aa"
GUARDIAN = "0x000000000000000000000000000000000000bEEF"
OTHER_ACCOUNT = "0x000000000000000000000000000000000000c0DE"
CHAIN_ID = 41238
QUEUE_EXPIRATION_TIME = 1_000


@dataclass
class FakeRegistryLedger:
    """A registry contract and chain held in memory."""

    depth: int = 8
    sender: str = GUARDIAN
    chain: int = CHAIN_ID
    registry_address: str = REGISTRY_ADDRESS
    now: int = 1_700_000_000
    head: int = 0

    events: list[LeafEvent] = field(default_factory=list)
    queue: list[Fr] = field(default_factory=list)
    pointer: int = 0
    states: dict[Fr, OperationState] = field(default_factory=dict)
    guardians: dict[Fr, str] = field(default_factory=dict)
    positions: dict[Fr, int] = field(default_factory=dict)
    expirations: dict[Fr, int] = field(default_factory=dict)

    failing_log_queries: int = 0
    """Number of upcoming event queries that raise."""

    redeliver_events: bool = False
    """Return every event twice, as a flaky provider would."""

    reject_transactions: bool = False
    """Mine every transaction with a failure status."""

    log_queries: list[tuple[int, int]] = field(default_factory=list)
    processed_calls: list[tuple[int, Fr]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.tree = SparseMerkleTree(self.depth, POSEIDON)
        self._tx_count = 0

    # -------------------------------------------------------------------------
    # Chain
    # -------------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self.registry_address

    @property
    def account(self) -> str:
        return self.sender

    async def chain_id(self) -> int:
        return self.chain

    async def block_number(self) -> int:
        return self.head

    async def timestamp(self) -> int:
        return self.now

    async def tree_depth(self) -> int:
        return self.depth

    async def merkle_root(self) -> Fr:
        return self.tree.root

    def mine(self) -> int:
        """Advance the chain by one block."""
        self.head += 1
        self.now += 12
        return self.head

    async def leaf_events(self, from_block: int, to_block: int) -> list[LeafEvent]:
        self.log_queries.append((from_block, to_block))
        if self.failing_log_queries > 0:
            self.failing_log_queries -= 1
            raise ConnectionError("provider timed out")

        selected = [e for e in self.events if from_block <= e.block_number <= to_block]
        if self.redeliver_events:
            selected = [e for e in selected for _ in range(2)]
        return selected

    # -------------------------------------------------------------------------
    # Direct mutations
    # -------------------------------------------------------------------------

    def _receipt(self, ok: bool) -> TransactionReceipt:
        self._tx_count += 1
        block = self.mine()
        return TransactionReceipt(
            transaction_hash=f"0x{self._tx_count:064x}",
            status=1 if ok and not self.reject_transactions else 0,
            block_number=block,
        )

    def _emit(self, leaf: Fr, operation: LeafOperation, index: int, receipt: TransactionReceipt):
        self.events.append(
            LeafEvent(
                leaf_hash=leaf,
                operation=operation,
                index=index,
                block_number=receipt.block_number,
                transaction_hash=receipt.transaction_hash,
                log_index=0,
            )
        )

    def _valid_path(self, index: int, path: list[Fr]) -> bool:
        if not 0 <= index < 2**self.depth:
            return False
        return list(self.tree.create_proof(index).path_elements) == path

    def _apply_add(self, index: int, leaf: Fr, path: list[Fr]) -> TransactionReceipt:
        ok = (
            self._valid_path(index, path)
            and self.tree.retrieve_leaf(0, index) == EMPTY_LEAF
            and self.states.get(leaf, OperationState.NONE)
            in (OperationState.NONE, OperationState.ISSUANCE_QUEUED)
        )
        receipt = self._receipt(ok)
        if receipt.succeeded:
            self.tree.insert_leaves([leaf], [index])
            self.states[leaf] = OperationState.ISSUED
            self.guardians.setdefault(leaf, self.sender)
            self._emit(leaf, LeafOperation.ADD, index, receipt)
        return receipt

    def _apply_revoke(self, index: int, leaf: Fr, path: list[Fr]) -> TransactionReceipt:
        ok = (
            self._valid_path(index, path)
            and self.tree.leaves.get(index) == leaf
            and self.guardians.get(leaf, "").lower() == self.sender.lower()
        )
        receipt = self._receipt(ok)
        if receipt.succeeded:
            self.tree.insert_leaves([self.tree.empty_leaf], [index])
            self.states[leaf] = OperationState.REVOKED
            self._emit(leaf, LeafOperation.REVOKE, index, receipt)
        return receipt

    def _advance_queue_for(self, leaf: Fr) -> None:
        if self.pointer < len(self.queue) and self.queue[self.pointer] == leaf:
            self.pointer += 1

    async def add_leaf(self, index: int, leaf: Fr, path: list[Fr]) -> TransactionReceipt:
        receipt = self._apply_add(index, leaf, path)
        if receipt.succeeded:
            self._advance_queue_for(leaf)
        return receipt

    async def revoke_leaf(self, index: int, leaf: Fr, path: list[Fr]) -> TransactionReceipt:
        receipt = self._apply_revoke(index, leaf, path)
        if receipt.succeeded:
            self._advance_queue_for(leaf)
        return receipt

    # -------------------------------------------------------------------------
    # Queue
    # -------------------------------------------------------------------------

    async def register_to_queue(self, leaf: Fr) -> TransactionReceipt:
        state = self.states.get(leaf, OperationState.NONE)
        if state is OperationState.ISSUED:
            target = OperationState.REVOCATION_QUEUED
        else:
            target = OperationState.ISSUANCE_QUEUED
        if not state.can_transition_to(target):
            return self._receipt(False)

        receipt = self._receipt(True)
        if receipt.succeeded:
            self.states[leaf] = target
            self.guardians.setdefault(leaf, self.sender)
            self.positions[leaf] = len(self.queue)
            self.expirations[leaf] = self.now + QUEUE_EXPIRATION_TIME
            self.queue.append(leaf)
        return receipt

    async def queue_pointer(self) -> int:
        return self.pointer

    async def queue_length(self) -> int:
        return len(self.queue)

    async def queue_entry(self, position: int) -> Fr:
        return self.queue[position]

    async def queue_position(self, leaf: Fr) -> int:
        return self.positions[leaf]

    async def queue_expiration(self, leaf: Fr) -> int:
        return self.expirations[leaf]

    async def operation_state(self, leaf: Fr) -> OperationState:
        return self.states.get(leaf, OperationState.NONE)

    async def guardian_of(self, leaf: Fr) -> str:
        return self.guardians.get(leaf, "0x" + "00" * 20)

    async def process_next_operation(
        self, index: int, leaf: Fr, path: list[Fr]
    ) -> TransactionReceipt:
        self.processed_calls.append((index, leaf))
        if self.pointer >= len(self.queue) or self.queue[self.pointer] != leaf:
            return self._receipt(False)

        state = self.states.get(leaf, OperationState.NONE)
        if state is OperationState.ISSUANCE_QUEUED:
            receipt = self._apply_add(index, leaf, path)
        elif state is OperationState.REVOCATION_QUEUED:
            receipt = self._apply_revoke(index, leaf, path)
        else:
            return self._receipt(False)

        if receipt.succeeded:
            self.pointer += 1
        return receipt

    # -------------------------------------------------------------------------
    # Test conveniences
    # -------------------------------------------------------------------------

    def add_directly(self, leaf: Fr, index: int) -> None:
        """Add a leaf as another guardian would, bypassing the engine."""
        path = list(self.tree.create_proof(index).path_elements)
        receipt = self._apply_add(index, leaf, path)
        assert receipt.succeeded

    def revoke_directly(self, leaf: Fr, index: int) -> None:
        """Revoke a leaf as its guardian would, bypassing the engine."""
        path = list(self.tree.create_proof(index).path_elements)
        receipt = self._apply_revoke(index, leaf, path)
        assert receipt.succeeded
