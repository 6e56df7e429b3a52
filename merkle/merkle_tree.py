"""
Incremental Merkle Tree for Set Membership
Append-only, fixed-depth binary tree stored as an arena of levels
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

HashFunction = Callable[[Sequence[int]], int]

MAX_DEPTH = 32


@dataclass
class MerkleProof:
    """Inclusion proof; `leaf` is informational only"""
    root: int
    siblings: List[int]
    path_indices: List[int]
    leaf: Optional[int] = None

    @property
    def depth(self) -> int:
        return len(self.siblings)

    def to_witness_input(self) -> Dict[str, Any]:
        """Circom signal names, decimal-string field elements"""
        return {
            'root': str(self.root),
            'siblings': [str(s) for s in self.siblings],
            'pathIndices': list(self.path_indices),
        }


class IncrementalMerkleTree:
    """Binary Merkle tree where leaves are appended in insertion order.

    `_nodes[level][i]` holds the i-th populated node of that level; missing
    nodes are the zero-subtree hashes in `_zeroes[level]`.
    """

    def __init__(self, depth: int, hash_fn: HashFunction, zero_value: int = 0):
        if not 1 <= depth <= MAX_DEPTH:
            raise ValueError(f"Tree depth must be between 1 and {MAX_DEPTH}, got {depth}")

        self._depth = depth
        self._hash = hash_fn
        self._zero_value = zero_value
        self._zeroes = self._compute_zeroes()
        self._nodes: List[List[int]] = [[] for _ in range(depth + 1)]
        self._root = self._zeroes[depth]

    def _compute_zeroes(self) -> List[int]:
        """Hash of an empty subtree at each level, leaves first"""
        zeroes = [self._zero_value]
        for _ in range(self._depth):
            zeroes.append(self._hash([zeroes[-1], zeroes[-1]]))
        return zeroes

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def root(self) -> int:
        return self._root

    @property
    def zeroes(self) -> List[int]:
        return list(self._zeroes)

    @property
    def capacity(self) -> int:
        return 1 << self._depth

    @property
    def leaves(self) -> List[int]:
        return list(self._nodes[0])

    def __len__(self) -> int:
        return len(self._nodes[0])

    def insert(self, leaf: int):
        """Append a leaf and recompute its path to the root"""
        if len(self) >= self.capacity:
            raise ValueError(f"Tree is full ({self.capacity} leaves)")
        self._check_leaf(leaf)

        index = len(self)
        self._commit_path(index, self._compute_path(index, leaf))

    def update(self, index: int, leaf: int):
        self._check_index(index)
        self._check_leaf(leaf)

        self._commit_path(index, self._compute_path(index, leaf))

    def delete(self, index: int):
        """Replace a leaf with the zero value; the leaf count never shrinks"""
        self.update(index, self._zero_value)

    def index_of(self, leaf: int) -> int:
        """Position of the first matching leaf, or -1"""
        try:
            return self._nodes[0].index(leaf)
        except ValueError:
            return -1

    def create_proof(self, index: int) -> MerkleProof:
        self._check_index(index)

        leaf = self._nodes[0][index]
        siblings = []
        path_indices = []

        for level in range(self._depth):
            position = index & 1
            siblings.append(self._node(level, index ^ 1))
            path_indices.append(position)
            index >>= 1

        return MerkleProof(
            root=self._root,
            siblings=siblings,
            path_indices=path_indices,
            leaf=leaf,
        )

    def verify_proof(self, proof: MerkleProof, leaf: int) -> bool:
        """Replay the hash path from the claimed leaf and compare with proof.root"""
        if len(proof.siblings) != self._depth or len(proof.path_indices) != self._depth:
            return False
        if any(bit not in (0, 1) for bit in proof.path_indices):
            return False

        try:
            node = leaf
            for sibling, position in zip(proof.siblings, proof.path_indices):
                if position:
                    node = self._hash([sibling, node])
                else:
                    node = self._hash([node, sibling])
        except ValueError as e:
            logger.debug(f"Merkle proof rejected: {e}")
            return False

        return node == proof.root

    def _node(self, level: int, index: int) -> int:
        nodes = self._nodes[level]
        return nodes[index] if index < len(nodes) else self._zeroes[level]

    def _compute_path(self, index: int, leaf: int) -> List[int]:
        """Nodes from the leaf up to the root; the tree is not modified"""
        path = [leaf]
        node = leaf

        for level in range(self._depth):
            sibling = self._node(level, index ^ 1)
            if index & 1:
                node = self._hash([sibling, node])
            else:
                node = self._hash([node, sibling])
            path.append(node)
            index >>= 1

        return path

    def _commit_path(self, index: int, path: List[int]):
        for level, node in enumerate(path):
            nodes = self._nodes[level]
            if index < len(nodes):
                nodes[index] = node
            else:
                nodes.append(node)
            index >>= 1

        self._root = path[-1]

    def _check_index(self, index: int):
        if index < 0 or index >= len(self):
            raise ValueError(f"Leaf index {index} out of bounds (tree has {len(self)} leaves)")

    def _check_leaf(self, leaf: int):
        if not isinstance(leaf, int) or leaf < 0:
            raise ValueError(f"Leaf must be a non-negative field element, got {leaf!r}")
