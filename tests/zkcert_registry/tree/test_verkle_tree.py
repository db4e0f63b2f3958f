"""Tests for the KZG-backed Verkle tree."""

import pytest

from zkcert_registry.field import Fr
from zkcert_registry.kzg import G1Point, StructuredReferenceString, commit, interpolate
from zkcert_registry.tree import EMPTY_LEAF, VerkleTree, empty_nodes
from zkcert_registry.types import LeafNotFoundError, SRSError, TreeIndexError

WIDTH = 4


@pytest.fixture(scope="module")
def srs() -> StructuredReferenceString:
    return StructuredReferenceString.insecure_from_secret(0xC0FFEE, WIDTH)


def leaf(seed: int) -> Fr:
    return Fr(value=seed * 104729 + 3)


class TestConstruction:
    """Tree parameters and the empty tree."""

    def test_reference_string_too_small(self, srs: StructuredReferenceString) -> None:
        with pytest.raises(SRSError, match="needs 8"):
            VerkleTree(1, 8, srs)

    def test_width_must_exceed_one(self, srs: StructuredReferenceString) -> None:
        with pytest.raises(ValueError, match="width"):
            VerkleTree(1, 1, srs)

    def test_empty_nodes(self, srs: StructuredReferenceString) -> None:
        nodes = empty_nodes(2, srs)
        assert nodes[0].value == EMPTY_LEAF
        assert nodes[0].commitment.is_infinity
        assert nodes[1].commitment == commit([EMPTY_LEAF], srs)
        assert nodes[1].value == Fr(value=nodes[1].commitment.x)
        assert nodes[2].proof.is_infinity

    def test_empty_root(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(1, WIDTH, srs)
        assert tree.root == empty_nodes(1, srs)[1].value


class TestInsert:
    """Insertion rebuilds the windows above the touched leaves."""

    def test_root_is_window_commitment(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(1, WIDTH, srs)
        tree.insert_leaves([leaf(1), leaf(2)], [0, 2])

        window = [leaf(1), EMPTY_LEAF, leaf(2), EMPTY_LEAF]
        commitment = commit(interpolate(window), srs)

        assert tree.retrieve_node(1, 0).commitment == commitment
        assert tree.root == Fr(value=commitment.x)

    def test_stored_children_carry_proofs(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(1, WIDTH, srs)
        tree.insert_leaves([leaf(1), leaf(2)], [0, 1])
        assert tree.retrieve_node(0, 0).proof != G1Point.infinity()
        assert tree.retrieve_node(1, 0).proof.is_infinity

    def test_out_of_range(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(1, WIDTH, srs)
        with pytest.raises(TreeIndexError):
            tree.insert_leaves([leaf(1)], [WIDTH])

    def test_index_lookup(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(2, WIDTH, srs)
        tree.insert_leaves([leaf(1), leaf(2), leaf(3)], [0, 1, 3])

        assert tree.get_free_leaf_index() == 2
        assert tree.get_leaf_index(leaf(3)) == 3
        assert tree.retrieve_leaf(0, 3) == leaf(3)
        with pytest.raises(LeafNotFoundError):
            tree.get_leaf_index(leaf(9))


@pytest.mark.slow
class TestProofs:
    """Opening proofs along the path to the root."""

    def test_populated_leaf_verifies(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(1, WIDTH, srs)
        tree.insert_leaves([leaf(1), leaf(2)], [0, 2])

        proof = tree.create_proof(2)

        assert proof.leaf == leaf(2)
        assert proof.root == tree.root
        assert proof.verify(srs, WIDTH)

    def test_stored_proof_matches_fresh_proof(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(1, WIDTH, srs)
        tree.insert_leaves([leaf(1), leaf(2)], [0, 2])
        assert tree.retrieve_node(0, 2).proof == tree.create_proof(2).proofs[0]

    def test_wrong_leaf_fails(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(1, WIDTH, srs)
        tree.insert_leaves([leaf(1)], [0])

        forged = tree.create_proof(0).model_copy(update={"leaf": leaf(5)})

        assert not forged.verify(srs, WIDTH)

    def test_empty_slot_verifies(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(1, WIDTH, srs)
        assert tree.create_proof(1).verify(srs, WIDTH)

    def test_full_window_verifies(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(1, WIDTH, srs)
        indices = list(range(WIDTH))
        tree.insert_leaves([leaf(i) for i in indices], indices)

        for index in indices:
            assert tree.create_proof(index).verify(srs, WIDTH)


class TestDeepTree:
    """Trees with windows above the leaf level."""

    def test_empty_windows_fall_back(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(2, WIDTH, srs)
        tree.insert_leaves([leaf(1)], [5])

        empty = tree.empty_branches[1]
        populated = commit(interpolate([EMPTY_LEAF, leaf(1), EMPTY_LEAF, EMPTY_LEAF]), srs)
        root_window = [empty.value, Fr(value=populated.x), empty.value, empty.value]
        root_commitment = commit(interpolate(root_window), srs)

        assert tree.retrieve_node(1, 0) == empty
        assert tree.retrieve_node(1, 1).commitment == populated
        assert tree.retrieve_node(2, 0).commitment == root_commitment
        assert tree.root == Fr(value=root_commitment.x)

    def test_second_batch_refreshes_stored_proofs(
        self, srs: StructuredReferenceString
    ) -> None:
        tree = VerkleTree(2, WIDTH, srs)
        tree.insert_leaves([leaf(1), leaf(2)], [0, 5])
        tree.insert_leaves([leaf(3)], [6])

        assert tree.retrieve_node(0, 5).proof == tree.create_proof(5).proofs[0]
        assert tree.retrieve_node(0, 6).proof == tree.create_proof(6).proofs[0]
        assert tree.retrieve_node(1, 1).proof == tree.create_proof(6).proofs[1]
        assert tree.retrieve_node(1, 0).proof == tree.create_proof(0).proofs[1]

    def test_batches_match_single_insert(self, srs: StructuredReferenceString) -> None:
        split = VerkleTree(2, WIDTH, srs)
        split.insert_leaves([leaf(1), leaf(2)], [0, 5])
        split.insert_leaves([leaf(3)], [14])

        single = VerkleTree(2, WIDTH, srs)
        single.insert_leaves([leaf(1), leaf(2), leaf(3)], [0, 5, 14])

        assert split.root == single.root

    def test_free_index_spans_windows(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(2, WIDTH, srs)
        indices = list(range(WIDTH + 1))
        tree.insert_leaves([leaf(i) for i in indices], indices)
        assert tree.get_free_leaf_index() == WIDTH + 1


@pytest.mark.slow
class TestDeepProofs:
    """Opening proofs that climb through several windows."""

    def test_depth_two_leaves_verify(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(2, WIDTH, srs)
        indices = [0, 3, 5, 14]
        tree.insert_leaves([leaf(i) for i in indices], indices)

        for index in indices:
            proof = tree.create_proof(index)
            assert proof.leaf == leaf(index)
            assert proof.verify(srs, WIDTH)

    def test_depth_two_empty_slot_verifies(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(2, WIDTH, srs)
        tree.insert_leaves([leaf(0), leaf(14)], [0, 14])

        proof = tree.create_proof(9)

        assert proof.leaf == EMPTY_LEAF
        assert proof.root == tree.root
        assert proof.verify(srs, WIDTH)

    def test_depth_two_wrong_root_fails(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(2, WIDTH, srs)
        tree.insert_leaves([leaf(1)], [5])

        forged = tree.create_proof(5).model_copy(update={"root": leaf(7)})

        assert not forged.verify(srs, WIDTH)

    def test_depth_three(self, srs: StructuredReferenceString) -> None:
        tree = VerkleTree(3, WIDTH, srs)
        tree.insert_leaves([leaf(0), leaf(21), leaf(63)], [0, 21, 63])
        proof = tree.create_proof(21)

        assert tree.retrieve_node(1, 5).proof == proof.proofs[1]
        assert tree.retrieve_node(2, 1).proof == proof.proofs[2]
        assert proof.verify(srs, WIDTH)
        assert tree.create_proof(40).verify(srs, WIDTH)
