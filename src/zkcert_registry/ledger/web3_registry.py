"""
Registry ledger backed by a live ZkCertificateRegistry contract.

Calls go through `web3.AsyncWeb3`. Transactions are sent from an account
unlocked on the node (`eth_sendTransaction`); this module never handles
private keys.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from zkcert_registry.field import Fr

from .interface import LeafEvent, LeafOperation, TransactionReceipt
from .states import OperationState

logger = logging.getLogger(__name__)

RECEIPT_POLL_INTERVAL = 1.0
"""Seconds between receipt lookups while waiting for a transaction."""

DEFAULT_GAS_LIMIT = 5_000_000
"""Gas limit attached to tree-mutating calls."""


def _event(name: str) -> dict[str, Any]:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": "zkCertificateLeafHash", "type": "bytes32", "indexed": True},
            {"name": "Guardian", "type": "address", "indexed": True},
            {"name": "index", "type": "uint256", "indexed": False},
        ],
    }


def _function(
    name: str,
    inputs: list[tuple[str, str]],
    outputs: list[tuple[str, str]],
    mutability: str = "view",
) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


_MUTATION_INPUTS = [
    ("leafIndex", "uint256"),
    ("zkCertificateHash", "bytes32"),
    ("merkleProof", "bytes32[]"),
]

REGISTRY_ABI: list[dict[str, Any]] = [
    _event("zkCertificateAddition"),
    _event("zkCertificateRevocation"),
    _function("treeDepth", [], [("", "uint256")]),
    _function("merkleRoot", [], [("", "bytes32")]),
    _function("addZkCertificate", _MUTATION_INPUTS, [], "nonpayable"),
    _function("revokeZkCertificate", _MUTATION_INPUTS, [], "nonpayable"),
    _function("processNextOperation", _MUTATION_INPUTS, [], "nonpayable"),
    _function("registerToQueue", [("zkCertificateHash", "bytes32")], [], "nonpayable"),
    _function("currentQueuePointer", [], [("", "uint256")]),
    _function("getZkCertificateQueueLength", [], [("", "uint256")]),
    _function("ZkCertificateQueue", [("", "uint256")], [("", "bytes32")]),
    _function("ZkCertificateHashToIndexInQueue", [("", "bytes32")], [("", "uint256")]),
    _function("ZkCertificateHashToQueueTime", [("", "bytes32")], [("", "uint256")]),
    _function(
        "zkCertificateProcessingData",
        [("", "bytes32")],
        [("guardian", "address"), ("state", "uint8")],
    ),
    _function("ZkCertificateToGuardian", [("", "bytes32")], [("", "address")]),
]
"""The subset of the registry ABI used by the engine."""


class Web3RegistryLedger:
    """`RegistryLedger` implementation over an `AsyncWeb3` connection."""

    def __init__(
        self,
        w3: AsyncWeb3,
        address: str,
        account: str | None = None,
        *,
        receipt_timeout: float | None = None,
    ):
        """
        Bind to a deployed registry.

        Args:
            w3: Connected async web3 instance.
            address: Registry contract address.
            account: Unlocked sender account. When omitted, call
                `connect_account` before sending transactions.
            receipt_timeout: Seconds to wait for a transaction to be mined.
                None waits indefinitely.
        """
        self.w3 = w3
        self._address = Web3.to_checksum_address(address)
        self._account = Web3.to_checksum_address(account) if account else None
        self.receipt_timeout = receipt_timeout
        self.contract = w3.eth.contract(address=self._address, abi=REGISTRY_ABI)

    @classmethod
    def from_url(cls, url: str, address: str, account: str | None = None) -> Web3RegistryLedger:
        """Connect to a node over HTTP."""
        return cls(AsyncWeb3(AsyncHTTPProvider(url)), address, account)

    async def connect_account(self) -> None:
        """Use the node's first unlocked account as the sender."""
        accounts = await self.w3.eth.accounts
        if not accounts:
            raise RuntimeError("The node exposes no unlocked account")
        self._account = Web3.to_checksum_address(accounts[0])

    @property
    def address(self) -> str:
        return self._address

    @property
    def account(self) -> str:
        if self._account is None:
            raise RuntimeError("No sender account configured; call connect_account first")
        return self._account

    # -------------------------------------------------------------------------
    # Chain reads
    # -------------------------------------------------------------------------

    async def chain_id(self) -> int:
        return int(await self.w3.eth.chain_id)

    async def block_number(self) -> int:
        return int(await self.w3.eth.block_number)

    async def timestamp(self) -> int:
        block = await self.w3.eth.get_block("latest")
        return int(block["timestamp"])

    async def tree_depth(self) -> int:
        return int(await self.contract.functions.treeDepth().call())

    async def merkle_root(self) -> Fr:
        return Fr.from_bytes(bytes(await self.contract.functions.merkleRoot().call()))

    async def leaf_events(self, from_block: int, to_block: int) -> list[LeafEvent]:
        added = await self.contract.events.zkCertificateAddition.get_logs(
            from_block=from_block, to_block=to_block
        )
        revoked = await self.contract.events.zkCertificateRevocation.get_logs(
            from_block=from_block, to_block=to_block
        )
        events = [self._to_event(log, LeafOperation.ADD) for log in added]
        events += [self._to_event(log, LeafOperation.REVOKE) for log in revoked]
        events.sort(key=lambda e: (e.block_number, e.log_index))
        return events

    @staticmethod
    def _to_event(log: Any, operation: LeafOperation) -> LeafEvent:
        leaf_word = bytes(log["args"]["zkCertificateLeafHash"])
        return LeafEvent(
            leaf_hash=Fr(value=int.from_bytes(leaf_word, "big")),
            operation=operation,
            index=int(log["args"]["index"]),
            block_number=int(log["blockNumber"]),
            transaction_hash=Web3.to_hex(log["transactionHash"]),
            log_index=int(log["logIndex"]),
        )

    # -------------------------------------------------------------------------
    # Queue reads
    # -------------------------------------------------------------------------

    async def queue_pointer(self) -> int:
        return int(await self.contract.functions.currentQueuePointer().call())

    async def queue_length(self) -> int:
        return int(await self.contract.functions.getZkCertificateQueueLength().call())

    async def queue_entry(self, position: int) -> Fr:
        raw = await self.contract.functions.ZkCertificateQueue(position).call()
        return Fr(value=int.from_bytes(bytes(raw), "big"))

    async def queue_position(self, leaf: Fr) -> int:
        return int(
            await self.contract.functions.ZkCertificateHashToIndexInQueue(bytes(leaf)).call()
        )

    async def queue_expiration(self, leaf: Fr) -> int:
        return int(await self.contract.functions.ZkCertificateHashToQueueTime(bytes(leaf)).call())

    async def operation_state(self, leaf: Fr) -> OperationState:
        data = await self.contract.functions.zkCertificateProcessingData(bytes(leaf)).call()
        return OperationState(int(data[1]))

    async def guardian_of(self, leaf: Fr) -> str:
        guardian = await self.contract.functions.ZkCertificateToGuardian(bytes(leaf)).call()
        return Web3.to_checksum_address(guardian)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_leaf(self, index: int, leaf: Fr, path: list[Fr]) -> TransactionReceipt:
        call = self.contract.functions.addZkCertificate(
            index, bytes(leaf), [bytes(p) for p in path]
        )
        return await self._send("addZkCertificate", call)

    async def revoke_leaf(self, index: int, leaf: Fr, path: list[Fr]) -> TransactionReceipt:
        call = self.contract.functions.revokeZkCertificate(
            index, bytes(leaf), [bytes(p) for p in path]
        )
        return await self._send("revokeZkCertificate", call)

    async def process_next_operation(
        self, index: int, leaf: Fr, path: list[Fr]
    ) -> TransactionReceipt:
        call = self.contract.functions.processNextOperation(
            index, bytes(leaf), [bytes(p) for p in path]
        )
        return await self._send("processNextOperation", call)

    async def register_to_queue(self, leaf: Fr) -> TransactionReceipt:
        call = self.contract.functions.registerToQueue(bytes(leaf))
        return await self._send("registerToQueue", call)

    async def _send(self, operation: str, call: Any) -> TransactionReceipt:
        tx_hash = await call.transact({"from": self.account, "gas": DEFAULT_GAS_LIMIT})
        logger.info("Submitted %s: %s", operation, Web3.to_hex(tx_hash))

        if self.receipt_timeout is not None:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        else:
            receipt = await self._wait_forever(tx_hash)

        return TransactionReceipt(
            transaction_hash=Web3.to_hex(receipt["transactionHash"]),
            status=int(receipt["status"]),
            block_number=int(receipt["blockNumber"]),
        )

    async def _wait_forever(self, tx_hash: Any) -> Any:
        while True:
            try:
                return await self.w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                await asyncio.sleep(RECEIPT_POLL_INTERVAL)
