"""
Shared definitions for the fixed-depth leaf trees.

Both tree constructions store nodes sparsely, keyed by `(level, index)`
where level 0 holds the leaves. A missing key means the node is the root
of an empty subtree, whose value is precomputed per level.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from Crypto.Hash import keccak

from zkcert_registry.field import P, Fr
from zkcert_registry.types import LeafNotFoundError, TreeIndexError

EMPTY_LEAF_SEED = b"Galactica"
"""Preimage of the canonical empty leaf."""


def _keccak_to_field(data: bytes) -> Fr:
    digest = keccak.new(digest_bits=256)
    digest.update(data)
    return Fr(value=int.from_bytes(digest.digest(), "big") % P)


EMPTY_LEAF: Fr = _keccak_to_field(EMPTY_LEAF_SEED)
"""
Value of an unpopulated or revoked leaf: keccak256("Galactica") mod p.

Circuits and the ledger contract use the same constant, so empty subtrees
hash identically on and off chain.
"""


class FieldHasher(Protocol):
    """A deterministic, order-sensitive 2-to-1 hash over Fr."""

    def hash(self, left: Fr, right: Fr) -> Fr:
        """Compress two field elements."""
        ...


class LeafTree(Protocol):
    """Operations common to the sparse Merkle tree and the Verkle tree."""

    @property
    def depth(self) -> int: ...

    @property
    def root(self) -> Fr: ...

    @property
    def empty_leaf(self) -> Fr: ...

    @property
    def leaf_indices(self) -> list[int]: ...

    def insert_leaves(self, leaves: list[Fr], indices: list[int]) -> None: ...

    def retrieve_leaf(self, level: int, index: int) -> Fr: ...

    def create_proof(self, index: int) -> Any: ...

    def get_free_leaf_index(self) -> int: ...

    def get_leaf_index(self, leaf: Fr) -> int: ...


def check_position(level: int, index: int, depth: int, arity: int = 2) -> None:
    """
    Reject positions outside the tree.

    Level `l` of a tree with the given arity and depth holds
    `arity ** (depth - l)` nodes.

    Raises:
        TreeIndexError: If the level or the index is out of range.
    """
    if not 0 <= level <= depth:
        raise TreeIndexError(level, index, depth)
    if not 0 <= index < arity ** (depth - level):
        raise TreeIndexError(level, index, depth)


def check_batch(leaves: list[Fr], indices: list[int], depth: int, arity: int = 2) -> None:
    """Validate an insertion batch before any node is written."""
    if len(leaves) != len(indices):
        raise ValueError(f"Got {len(leaves)} leaves but {len(indices)} indices")
    for index in indices:
        check_position(0, index, depth, arity)


def find_free_leaf_index(indices: Iterable[int]) -> int:
    """
    Lowest index that can take a new leaf.

    Algorithm
    ---------
    1. With no populated index, or with index 0 free, return 0.
    2. Otherwise scan the sorted indices for the first gap between
       neighbours and return the slot right after the lower one.
    3. With no gap, return one past the largest index.

    Revoked slots hold the empty leaf but stay populated, so they are
    never handed out again.
    """
    ordered = sorted(indices)
    if not ordered or ordered[0] != 0:
        return 0
    for current, following in zip(ordered, ordered[1:], strict=False):
        if following - current >= 2:
            return current + 1
    return ordered[-1] + 1


def find_leaf_index(leaves: Mapping[int, Fr], leaf: Fr) -> int:
    """
    Lowest populated index holding `leaf`.

    Raises:
        LeafNotFoundError: If no populated slot holds the value.
    """
    matches = [index for index, value in leaves.items() if value == leaf]
    if not matches:
        raise LeafNotFoundError(leaf)
    return min(matches)
