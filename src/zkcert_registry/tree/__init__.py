"""Fixed-depth leaf trees: a sparse Merkle tree and a Verkle tree."""

from .base import (
    EMPTY_LEAF,
    FieldHasher,
    LeafTree,
    check_position,
    find_free_leaf_index,
    find_leaf_index,
)
from .sparse import MerkleProof, SparseMerkleTree, empty_branches
from .verkle import VerkleNode, VerkleProof, VerkleTree, empty_nodes

__all__ = [
    "EMPTY_LEAF",
    "FieldHasher",
    "LeafTree",
    "MerkleProof",
    "SparseMerkleTree",
    "VerkleNode",
    "VerkleProof",
    "VerkleTree",
    "check_position",
    "empty_branches",
    "empty_nodes",
    "find_free_leaf_index",
    "find_leaf_index",
]
