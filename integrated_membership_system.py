#!/usr/bin/env python3
"""
Integrated ECDSA Membership System
==================================
Keeps a group's membership tree, produces anonymous membership proofs for its
members and verifies them against roots the group has published
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from cryptography.hazmat.primitives.asymmetric import ec

from config.config import LeafKind, SystemConfig, load_config
from ec.secp256k1 import Point
from ec.signing import hash_personal_message, public_key_point, sign_message
from merkle.leaves import derive_leaf
from merkle.merkle_tree import IncrementalMerkleTree
from merkle.poseidon import Poseidon
from utils.utils import setup_logging
from zk.backend import ProvingBackend, WitnessGenerator
from zk.errors import MalformedInput
from zk.public_input import FullPublicInput
from zk.zk_proofs import NIZK, MembershipProofSystem

logger = logging.getLogger(__name__)

# ============================================================================
# INTEGRATED MEMBERSHIP SYSTEM
# ============================================================================


@dataclass
class Member:
    """Registered public key and its position in the tree"""
    member_id: str
    public_key: Point
    leaf: int
    index: int
    registration_time: float = field(default_factory=time.time)


class IntegratedMembershipSystem:
    """
    Group membership with anonymous proofs:
    1. Registration appends the member's leaf to the Merkle tree
    2. Members sign a message and prove their key is in the tree
    3. Verifiers accept proofs only for roots the group has published
    """

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        backend: Optional[ProvingBackend] = None,
        witness_generator: Optional[WitnessGenerator] = None,
        hasher: Optional[Callable[[Sequence[int]], int]] = None
    ):
        self.config = config or SystemConfig()
        self.leaf_type = self.config.prover.leaf_type
        if self.leaf_type == LeafKind.NONE:
            raise ValueError("Membership system needs a pubkey_hash or address leaf type")

        logger.info("Initializing membership system...")

        self.hasher = hasher or Poseidon()
        self.tree = IncrementalMerkleTree(self.config.prover.tree_depth, self.hasher)
        self.proof_system = MembershipProofSystem(self.config, backend, witness_generator)

        self.members: Dict[str, Member] = {}
        self._published_roots = deque([self.tree.root], maxlen=self.config.max_root_history)
        self._initialized = False
        self._lock = asyncio.Lock()

        logger.info(
            f"Membership system ready: {self.leaf_type.value} leaves, "
            f"depth {self.tree.depth}")

    async def initialize(self):
        async with self._lock:
            if self._initialized:
                return

            logger.info("Initializing proving backend...")
            await self.proof_system.initialize()

            self._initialized = True
            logger.info("System initialization complete")

    @property
    def root(self) -> int:
        return self.tree.root

    @property
    def published_roots(self) -> List[int]:
        return list(self._published_roots)

    def _publish_root(self):
        self._published_roots.append(self.tree.root)
        logger.info(f"  Published root {self.tree.root:#x}")

    async def register_member(self, member_id: str, public_key: Point) -> Member:
        async with self._lock:
            if member_id in self.members:
                raise ValueError(f"Member {member_id} already registered")

            leaf = derive_leaf(self.leaf_type, public_key, self.hasher)
            if self.tree.index_of(leaf) != -1:
                raise ValueError(f"Public key of {member_id} is already in the group")

            self.tree.insert(leaf)
            member = Member(
                member_id=member_id,
                public_key=public_key,
                leaf=leaf,
                index=len(self.tree) - 1
            )
            self.members[member_id] = member
            self._publish_root()

        logger.info(f"Member {member_id} registered at index {member.index}")
        return member

    async def remove_member(self, member_id: str):
        async with self._lock:
            member = self.members.pop(member_id, None)
            if member is None:
                raise ValueError(f"Member {member_id} not registered")

            self.tree.delete(member.index)
            self._publish_root()

        logger.info(f"Member {member_id} removed")

    async def prove_membership(self, private_key: ec.EllipticCurvePrivateKey, message: bytes) -> NIZK:
        """
        Sign `message` and prove the signer is a member:
        1. Locate the signer's leaf
        2. Snapshot its Merkle proof under the tree lock
        3. Sign the personal-message digest
        4. Generate the membership proof
        """
        start_time = time.time()

        leaf = derive_leaf(self.leaf_type, public_key_point(private_key), self.hasher)

        async with self._lock:
            index = self.tree.index_of(leaf)
            if index == -1:
                raise ValueError("Signer is not a member of the group")
            merkle_proof = self.tree.create_proof(index)
        logger.info(f"  ✓ Merkle proof for index {index} against root {merkle_proof.root:#x}")

        signature = sign_message(private_key, message)
        msg_hash = hash_personal_message(message)
        logger.info("  ✓ Message signed")

        nizk = await self.proof_system.prove(signature, msg_hash, merkle_proof)

        logger.info(f"Membership proof produced in {time.time() - start_time:.2f}s")
        return nizk

    async def verify_membership(self, nizk: NIZK) -> bool:
        return await self.verify_membership_bytes(nizk.proof, nizk.public_input_bytes())

    async def verify_membership_bytes(self, proof: bytes, public_input_bytes: bytes) -> bool:
        """Verify a proof received off the wire against the published roots"""
        try:
            public_input = FullPublicInput.deserialize(
                bytes(public_input_bytes), with_root=True)
        except MalformedInput as e:
            logger.warning(f"Rejected membership proof: {e}")
            return False

        root = public_input.circuit_input.merkle_root
        if root not in self._published_roots:
            logger.warning(f"Rejected membership proof for unknown root {root:#x}")
            return False

        if not self._initialized:
            await self.initialize()

        return await self.proof_system.verifier.verify(proof, public_input_bytes)

    def get_system_metrics(self) -> Dict[str, Any]:
        return {
            'leaf_type': self.leaf_type.value,
            'tree_depth': self.tree.depth,
            'registered_members': len(self.members),
            'tree_leaves': len(self.tree),
            'root': hex(self.tree.root),
            'published_roots': len(self._published_roots),
            'prover_profile': self.proof_system.prover.profiler.get_summary(),
            'verifier_profile': self.proof_system.verifier.profiler.get_summary()
        }

# ============================================================================
# DEMONSTRATION
# ============================================================================


async def demonstrate_membership_system(config_path: Optional[Path] = None):
    """Register a few members and prove membership for one of them"""
    config = load_config(config_path)
    setup_logging(config.log_level, config.log_dir / "membership_demo.log")

    system = IntegratedMembershipSystem(config)
    await system.initialize()

    keys = [ec.generate_private_key(ec.SECP256K1()) for _ in range(4)]
    for i, key in enumerate(keys):
        await system.register_member(f"member_{i:03d}", public_key_point(key))

    nizk = await system.prove_membership(keys[1], b"hello world")
    is_valid = await system.verify_membership(nizk)
    logger.info(f"Membership proof valid: {is_valid}")

    system.proof_system.prover.profiler.save_metrics(
        config.results_dir / "membership_demo_metrics.json")


if __name__ == "__main__":
    asyncio.run(demonstrate_membership_system())
