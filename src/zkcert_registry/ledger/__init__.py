"""Access to the registry contract on the ledger."""

from .interface import LeafEvent, LeafOperation, RegistryLedger, TransactionReceipt
from .states import OperationState
from .web3_registry import REGISTRY_ABI, Web3RegistryLedger

__all__ = [
    "LeafEvent",
    "LeafOperation",
    "OperationState",
    "REGISTRY_ABI",
    "RegistryLedger",
    "TransactionReceipt",
    "Web3RegistryLedger",
]
