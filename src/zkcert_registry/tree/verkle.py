"""
Verkle tree: a width-W tree whose inner nodes are KZG commitments.

Every window of W sibling values is interpolated over the domain
`0..W-1` and committed. The parent's value is the X coordinate of that
commitment reduced into Fr, so it can itself be interpolated one level up.

Each stored node also keeps the opening proof for its own position inside
its parent's polynomial. That proof is written while the parent is being
built, which is why a node's proof is "one level up" and the root's proof
is the point at infinity.

Empty subtrees interpolate to constant polynomials, whose opening proofs
are commitments to the zero quotient, i.e. the point at infinity.
"""

from __future__ import annotations

import logging

from pydantic import Field

from zkcert_registry.field import Fr
from zkcert_registry.kzg import (
    G1Point,
    StructuredReferenceString,
    commit,
    interpolate,
    opening_proof,
    verify_opening,
)
from zkcert_registry.types import SRSError, StrictBaseModel

from .base import EMPTY_LEAF, check_batch, check_position, find_free_leaf_index, find_leaf_index

logger = logging.getLogger(__name__)


class VerkleNode(StrictBaseModel):
    """A node of the Verkle tree."""

    value: Fr
    """Leaf value, or the reduced X coordinate of the node's commitment."""

    commitment: G1Point
    """Commitment to the children's polynomial. Infinity on leaves."""

    proof: G1Point
    """Opening of the parent's polynomial at this node's position."""


class VerkleProof(StrictBaseModel):
    """Commitments and openings linking a leaf to the root."""

    leaf: Fr
    """The proven leaf value."""

    leaf_index: int = Field(ge=0)
    """Position of the leaf on level 0."""

    commitments: tuple[G1Point, ...]
    """Commitment of each window on the path, from the leaf upward."""

    proofs: tuple[G1Point, ...]
    """Opening of each commitment at the path position."""

    root: Fr
    """The root value the path leads to."""

    def verify(self, srs: StructuredReferenceString, width: int) -> bool:
        """
        Check every opening along the path and the final root.

        Algorithm
        ---------
        1. Start from the leaf value at position `leaf_index`.
        2. At each level, verify that the level's commitment opens to the
           current value at `position % width`.
        3. The commitment's reduced X coordinate becomes the value checked
           at the next level.
        4. After the last level, the value must equal the root.
        """
        if len(self.commitments) != len(self.proofs):
            return False

        value = self.leaf
        position = self.leaf_index
        for commitment, proof in zip(self.commitments, self.proofs, strict=True):
            if not verify_opening(commitment, Fr(value=position % width), value, proof, srs):
                return False
            value = Fr(value=commitment.x)
            position //= width

        return value == self.root


def empty_nodes(depth: int, srs: StructuredReferenceString) -> list[VerkleNode]:
    """Node of an all-empty subtree for every level 0..depth."""
    infinity = G1Point.infinity()
    zero_proof = commit([Fr.zero()], srs)
    levels = [VerkleNode(value=EMPTY_LEAF, commitment=infinity, proof=infinity)]
    for level in range(1, depth + 1):
        commitment = commit([levels[level - 1].value], srs)
        levels[level - 1] = levels[level - 1].model_copy(update={"proof": zero_proof})
        levels.append(
            VerkleNode(value=Fr(value=commitment.x), commitment=commitment, proof=infinity)
        )
    return levels


class VerkleTree:
    """A fixed-depth, width-W Verkle tree with sparse node storage."""

    def __init__(self, depth: int, width: int, srs: StructuredReferenceString):
        """
        Build an empty tree.

        Raises:
            SRSError: If the reference string cannot commit to W coefficients.
        """
        if depth < 1:
            raise ValueError(f"Tree depth must be positive, got {depth}")
        if width < 2:
            raise ValueError(f"Tree width must be at least 2, got {width}")
        if srs.size < width:
            raise SRSError(f"A tree of width {width} needs {width} G1 powers, got {srs.size}")

        self._depth = depth
        self.width = width
        self.srs = srs
        self.empty_branches = empty_nodes(depth, srs)
        self._nodes: dict[tuple[int, int], VerkleNode] = {}

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def empty_leaf(self) -> Fr:
        return EMPTY_LEAF

    @property
    def root(self) -> Fr:
        return self.retrieve_node(self._depth, 0).value

    @property
    def leaf_indices(self) -> list[int]:
        return sorted(index for level, index in self._nodes if level == 0)

    @property
    def leaves(self) -> dict[int, Fr]:
        return {index: node.value for (level, index), node in self._nodes.items() if level == 0}

    def _node(self, level: int, index: int) -> VerkleNode:
        return self._nodes.get((level, index), self.empty_branches[level])

    def retrieve_node(self, level: int, index: int) -> VerkleNode:
        """Node at `(level, index)`, falling back to the empty subtree node."""
        check_position(level, index, self._depth, self.width)
        return self._node(level, index)

    def retrieve_leaf(self, level: int, index: int) -> Fr:
        """Value of the node at `(level, index)`."""
        return self.retrieve_node(level, index).value

    def _window_values(self, level: int, parent: int) -> list[Fr]:
        start = parent * self.width
        return [self._node(level, i).value for i in range(start, start + self.width)]

    def insert_leaves(self, leaves: list[Fr], indices: list[int]) -> None:
        """
        Write a batch of leaves and rebuild the windows above them.

        For each touched window: interpolate its W values, commit once to
        produce the parent, and refresh the opening proof of every stored
        child in the window, since all of them open the new polynomial.
        """
        check_batch(leaves, indices, self._depth, self.width)
        if not leaves:
            return

        infinity = G1Point.infinity()
        for leaf, index in zip(leaves, indices, strict=True):
            self._nodes[(0, index)] = VerkleNode(value=leaf, commitment=infinity, proof=infinity)

        touched = set(indices)
        for level in range(self._depth):
            parents = {index // self.width for index in touched}
            for parent in parents:
                start = parent * self.width
                children = [
                    i for i in range(start, start + self.width) if (level, i) in self._nodes
                ]
                coeffs = interpolate(self._window_values(level, parent))
                commitment = commit(coeffs, self.srs)

                for child in children:
                    proof = opening_proof(coeffs, Fr(value=child % self.width), self.srs)
                    node = self._nodes[(level, child)]
                    self._nodes[(level, child)] = node.model_copy(update={"proof": proof})

                self._nodes[(level + 1, parent)] = VerkleNode(
                    value=Fr(value=commitment.x),
                    commitment=commitment,
                    proof=infinity,
                )

            touched = parents

        logger.debug("Inserted %d leaves into Verkle tree", len(leaves))

    def create_proof(self, index: int) -> VerkleProof:
        """
        Commitments and openings along the path of leaf `index`.

        Windows are re-interpolated and re-committed on the way up, so the
        proof reflects the current tree even where no node is stored.
        """
        check_position(0, index, self._depth, self.width)

        commitments: list[G1Point] = []
        proofs: list[G1Point] = []
        current = index
        for level in range(self._depth):
            coeffs = interpolate(self._window_values(level, current // self.width))
            commitments.append(commit(coeffs, self.srs))
            proofs.append(opening_proof(coeffs, Fr(value=current % self.width), self.srs))
            current //= self.width

        return VerkleProof(
            leaf=self._node(0, index).value,
            leaf_index=index,
            commitments=tuple(commitments),
            proofs=tuple(proofs),
            root=self.root,
        )

    def get_free_leaf_index(self) -> int:
        """Lowest slot that can take a new leaf."""
        return find_free_leaf_index(self.leaf_indices)

    def get_leaf_index(self, leaf: Fr) -> int:
        """Lowest populated slot holding `leaf`."""
        return find_leaf_index(self.leaves, leaf)
