"""
Sparse binary Merkle tree over Fr.

A tree of depth D has 2^D leaf slots, but only populated slots and their
ancestors are stored. Every other node is the root of an empty subtree,
and its value is read from a per-level table built once from the
canonical empty leaf:

    empty[0] = EMPTY_LEAF
    empty[l] = H(empty[l - 1], empty[l - 1])

The root is therefore a pure function of the set of populated leaves.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from pydantic import Field, field_serializer, field_validator

from zkcert_registry.field import Fr
from zkcert_registry.types import StrictBaseModel

from .base import (
    EMPTY_LEAF,
    FieldHasher,
    check_batch,
    check_position,
    find_free_leaf_index,
    find_leaf_index,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=32)
def empty_branches(depth: int, hasher: FieldHasher) -> tuple[Fr, ...]:
    """Root of an all-empty subtree for every level 0..depth."""
    branches = [EMPTY_LEAF]
    for _ in range(depth):
        branches.append(hasher.hash(branches[-1], branches[-1]))
    return tuple(branches)


class MerkleProof(StrictBaseModel):
    """An authentication path from a leaf to the root."""

    leaf: Fr
    """The proven leaf value."""

    leaf_index: int = Field(ge=0)
    """Position of the leaf on level 0."""

    path_elements: tuple[Fr, ...]
    """Sibling of each node on the path, ordered from the leaf upward."""

    path_indices: int = Field(ge=0)
    """Bit `l` is set when the path node at level `l` is a right child."""

    root: Fr
    """The root the path leads to."""

    @field_serializer("leaf", "root", when_used="json")
    def _serialize_element(self, value: Fr) -> str:
        """Field elements are written as decimal strings, as circuits expect."""
        return str(value.value)

    @field_serializer("path_elements", when_used="json")
    def _serialize_path(self, value: tuple[Fr, ...]) -> list[str]:
        return [str(element.value) for element in value]

    @field_validator("leaf", "root", mode="before")
    @classmethod
    def _parse_element(cls, v: Any) -> Any:
        """Accept the decimal strings written by the JSON serializer."""
        return Fr(value=int(v)) if isinstance(v, str) else v

    @field_validator("path_elements", mode="before")
    @classmethod
    def _parse_path(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return tuple(Fr(value=int(e)) if isinstance(e, str) else e for e in v)
        return v

    def compute_root(self, hasher: FieldHasher) -> Fr:
        """Hash the leaf up the path."""
        node = self.leaf
        for level, sibling in enumerate(self.path_elements):
            if (self.path_indices >> level) & 1:
                node = hasher.hash(sibling, node)
            else:
                node = hasher.hash(node, sibling)
        return node

    def verify(self, hasher: FieldHasher) -> bool:
        """True when the path reproduces the claimed root."""
        return self.compute_root(hasher) == self.root


class SparseMerkleTree:
    """
    A fixed-depth binary Merkle tree with sparse node storage.

    The tree is mutated only through `insert_leaves`. Revoking a leaf is an
    insertion of `EMPTY_LEAF` at its index: the slot stays populated and is
    never returned by `get_free_leaf_index` again.
    """

    def __init__(self, depth: int, hasher: FieldHasher):
        """Build an empty tree of the given depth."""
        if depth < 1:
            raise ValueError(f"Tree depth must be positive, got {depth}")
        self._depth = depth
        self.hasher = hasher
        self.empty_branches = empty_branches(depth, hasher)
        self._nodes: dict[tuple[int, int], Fr] = {}

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def empty_leaf(self) -> Fr:
        return EMPTY_LEAF

    @property
    def root(self) -> Fr:
        return self._node(self._depth, 0)

    @property
    def leaf_indices(self) -> list[int]:
        """Populated leaf slots, tombstones included, in ascending order."""
        return sorted(index for level, index in self._nodes if level == 0)

    @property
    def leaves(self) -> dict[int, Fr]:
        """Populated leaf values by index."""
        return {index: value for (level, index), value in self._nodes.items() if level == 0}

    def _node(self, level: int, index: int) -> Fr:
        return self._nodes.get((level, index), self.empty_branches[level])

    def retrieve_leaf(self, level: int, index: int) -> Fr:
        """
        Value of the node at `(level, index)`.

        Raises:
            TreeIndexError: If the position is outside the tree.
        """
        check_position(level, index, self._depth)
        return self._node(level, index)

    def insert_leaves(self, leaves: list[Fr], indices: list[int]) -> None:
        """
        Write a batch of leaves and rehash their ancestors.

        Only the ancestors of touched slots are recomputed, one level at a
        time, so the cost is O(len(leaves) * depth). Writing the same value
        twice leaves the root unchanged.

        Raises:
            ValueError: If the two lists differ in length.
            TreeIndexError: If any index is outside the tree.
        """
        check_batch(leaves, indices, self._depth)
        if not leaves:
            return

        for leaf, index in zip(leaves, indices, strict=True):
            self._nodes[(0, index)] = leaf

        touched = set(indices)
        for level in range(1, self._depth + 1):
            parents = {index // 2 for index in touched}
            for parent in parents:
                left = self._node(level - 1, 2 * parent)
                right = self._node(level - 1, 2 * parent + 1)
                self._nodes[(level, parent)] = self.hasher.hash(left, right)
            touched = parents

        logger.debug("Inserted %d leaves, root is now %s", len(leaves), self.root.hex())

    def create_proof(self, index: int) -> MerkleProof:
        """
        Authentication path for the leaf slot `index`.

        Algorithm
        ---------
        Walk from level 0 to level D - 1. At each level record the sibling
        of the current node, set bit `level` of the path mask when the node
        is a right child, and move to the parent.

        Raises:
            TreeIndexError: If the index is outside the tree.
        """
        check_position(0, index, self._depth)

        path: list[Fr] = []
        path_indices = 0
        current = index
        for level in range(self._depth):
            if current % 2 == 0:
                path.append(self._node(level, current + 1))
            else:
                path.append(self._node(level, current - 1))
                path_indices |= 1 << level
            current //= 2

        return MerkleProof(
            leaf=self._node(0, index),
            leaf_index=index,
            path_elements=tuple(path),
            path_indices=path_indices,
            root=self.root,
        )

    def get_free_leaf_index(self) -> int:
        """Lowest slot that can take a new leaf."""
        return find_free_leaf_index(self.leaf_indices)

    def get_leaf_index(self, leaf: Fr) -> int:
        """
        Lowest populated slot holding `leaf`.

        Raises:
            LeafNotFoundError: If the value is not in the tree.
        """
        return find_leaf_index(self.leaves, leaf)
