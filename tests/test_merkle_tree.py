"""
Tests for the incremental Merkle membership tree
"""

import dataclasses

import pytest

from merkle.merkle_tree import MAX_DEPTH, IncrementalMerkleTree
from merkle.poseidon import SECP256K1_BASE_FIELD

DEPTH = 4


@pytest.fixture
def tree(poseidon):
    t = IncrementalMerkleTree(DEPTH, poseidon)
    for leaf in (11, 22, 33, 44, 55):
        t.insert(leaf)
    return t


def full_root(hasher, leaves, depth, zero=0):
    level = list(leaves) + [zero] * ((1 << depth) - len(leaves))
    for _ in range(depth):
        level = [hasher([level[i], level[i + 1]]) for i in range(0, len(level), 2)]
    return level[0]


def test_empty_tree_root_is_zero_subtree(poseidon):
    t = IncrementalMerkleTree(DEPTH, poseidon)
    zeroes = t.zeroes

    assert zeroes[0] == 0
    assert zeroes[1] == poseidon([0, 0])
    assert t.root == zeroes[DEPTH]
    assert len(t) == 0


def test_root_matches_full_tree(poseidon, tree):
    assert tree.root == full_root(poseidon, [11, 22, 33, 44, 55], DEPTH)


def test_every_leaf_proves(tree):
    for index, leaf in enumerate(tree.leaves):
        proof = tree.create_proof(index)
        assert proof.root == tree.root
        assert proof.depth == DEPTH
        assert proof.leaf == leaf
        assert tree.verify_proof(proof, leaf)


def test_path_indices_follow_leaf_index(tree):
    proof = tree.create_proof(4)
    assert proof.path_indices == [0, 0, 1, 0]

    proof = tree.create_proof(3)
    assert proof.path_indices == [1, 1, 0, 0]


def test_proof_rejects_wrong_leaf(tree):
    proof = tree.create_proof(2)
    assert not tree.verify_proof(proof, 34)


def test_proof_ignores_informational_leaf(tree):
    proof = dataclasses.replace(tree.create_proof(2), leaf=99)
    assert tree.verify_proof(proof, 33)
    assert not tree.verify_proof(proof, 99)


def test_proof_rejects_tampering(tree):
    proof = tree.create_proof(1)

    bad_sibling = dataclasses.replace(proof, siblings=[proof.siblings[0] ^ 1] + proof.siblings[1:])
    assert not tree.verify_proof(bad_sibling, 22)

    bad_direction = dataclasses.replace(proof, path_indices=[0] + proof.path_indices[1:])
    assert not tree.verify_proof(bad_direction, 22)

    bad_root = dataclasses.replace(proof, root=proof.root ^ 1)
    assert not tree.verify_proof(bad_root, 22)


def test_proof_rejects_malformed_shapes(tree):
    proof = tree.create_proof(0)

    short = dataclasses.replace(proof, siblings=proof.siblings[:-1])
    assert not tree.verify_proof(short, 11)

    non_binary = dataclasses.replace(proof, path_indices=[2] + proof.path_indices[1:])
    assert not tree.verify_proof(non_binary, 11)

    out_of_field = dataclasses.replace(
        proof, siblings=[SECP256K1_BASE_FIELD] + proof.siblings[1:])
    assert not tree.verify_proof(out_of_field, 11)


def test_update_and_delete(poseidon, tree):
    tree.update(1, 99)
    assert tree.root == full_root(poseidon, [11, 99, 33, 44, 55], DEPTH)

    tree.delete(0)
    assert tree.leaves[0] == 0
    assert len(tree) == 5
    assert tree.root == full_root(poseidon, [0, 99, 33, 44, 55], DEPTH)
    assert tree.verify_proof(tree.create_proof(4), 55)


def test_index_of(tree):
    assert tree.index_of(33) == 2
    assert tree.index_of(1000) == -1


def test_capacity(poseidon):
    t = IncrementalMerkleTree(2, poseidon)
    for leaf in range(1, 5):
        t.insert(leaf)
    assert len(t) == t.capacity == 4
    with pytest.raises(ValueError):
        t.insert(5)


def test_rejected_leaf_leaves_tree_untouched(tree):
    root, size = tree.root, len(tree)

    with pytest.raises(ValueError):
        tree.insert(SECP256K1_BASE_FIELD)
    with pytest.raises(ValueError):
        tree.insert(-1)
    with pytest.raises(ValueError):
        tree.update(0, SECP256K1_BASE_FIELD + 1)

    assert tree.root == root
    assert len(tree) == size
    assert tree.leaves[0] == 11


def test_index_bounds(tree):
    with pytest.raises(ValueError):
        tree.create_proof(5)
    with pytest.raises(ValueError):
        tree.update(-1, 1)


def test_depth_bounds(poseidon):
    with pytest.raises(ValueError):
        IncrementalMerkleTree(0, poseidon)
    with pytest.raises(ValueError):
        IncrementalMerkleTree(MAX_DEPTH + 1, poseidon)


def test_nonzero_zero_value(poseidon):
    t = IncrementalMerkleTree(3, poseidon, zero_value=7)
    t.insert(1)
    assert t.root == full_root(poseidon, [1], 3, zero=7)
    t.delete(0)
    assert t.root == t.zeroes[3]
