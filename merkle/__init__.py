"""Poseidon hashing and the incremental Merkle membership tree."""

from .poseidon import Poseidon, PoseidonParameters, generate_parameters
from .merkle_tree import IncrementalMerkleTree, MerkleProof
from .leaves import hash_public_key, address_leaf, derive_leaf

__all__ = [
    # Hashing
    'Poseidon',
    'PoseidonParameters',
    'generate_parameters',

    # Tree
    'IncrementalMerkleTree',
    'MerkleProof',

    # Leaves
    'hash_public_key',
    'address_leaf',
    'derive_leaf',
]
