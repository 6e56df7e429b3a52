#!/usr/bin/env python3
"""
Integration Test Suite for the ECDSA Membership System
Tests the complete workflow: Registration → Signing → Proving → Verification
"""

import asyncio
import logging
import time

import pytest

from config.config import LeafKind, SystemConfig
from ec.signing import load_private_key, public_key_point
from integrated_membership_system import IntegratedMembershipSystem
from zk.public_input import FULL_INPUT_WITH_ROOT_BYTES

from conftest import FakeProvingBackend, ReferenceWitnessGenerator, make_configs

logger = logging.getLogger(__name__)

MEMBER_KEYS = [load_private_key(i) for i in (11, 12, 13, 14)]


def make_system(circuit_files, poseidon, leaf_type=LeafKind.PUBKEY_HASH, depth=10,
                max_root_history=16):
    prover, verifier = make_configs(circuit_files, leaf_type, depth=depth)
    config = SystemConfig(prover=prover, verifier=verifier, max_root_history=max_root_history)
    backend = FakeProvingBackend()
    system = IntegratedMembershipSystem(
        config,
        backend=backend,
        witness_generator=ReferenceWitnessGenerator(leaf_type, poseidon),
        hasher=poseidon,
    )
    return system, backend


async def register_all(system, keys=MEMBER_KEYS):
    for i, key in enumerate(keys):
        await system.register_member(f"member_{i:03d}", public_key_point(key))


class TestIntegratedMembershipSystem:
    """Integration tests for the membership system"""

    @pytest.mark.parametrize("leaf_type", [LeafKind.PUBKEY_HASH, LeafKind.ADDRESS])
    def test_single_member_workflow(self, circuit_files, poseidon, leaf_type):
        logger.info("=" * 80)
        logger.info(f"Single Member Workflow ({leaf_type.value})")
        logger.info("=" * 80)

        async def run():
            start_time = time.time()
            system, backend = make_system(circuit_files, poseidon, leaf_type)
            await system.initialize()
            logger.info(f" System initialized in {time.time() - start_time:.2f}s")

            await register_all(system)
            logger.info(f" Registered {len(system.members)} members")

            nizk = await system.prove_membership(MEMBER_KEYS[2], b"hello world")
            logger.info(" Membership proof generated")

            valid = await system.verify_membership(nizk)
            logger.info(f" Membership proof verified: {valid}")
            return system, backend, nizk, valid

        system, backend, nizk, valid = asyncio.run(run())

        assert valid
        assert backend.init_calls == 1
        assert nizk.public_input.circuit_input.merkle_root == system.root
        assert len(nizk.public_input_bytes()) == FULL_INPUT_WITH_ROOT_BYTES

    def test_proof_verifies_from_wire_bytes(self, circuit_files, poseidon):
        async def run():
            system, _ = make_system(circuit_files, poseidon)
            await register_all(system)
            nizk = await system.prove_membership(MEMBER_KEYS[0], b"vote yes")

            proof, public_input = bytes(nizk.proof), nizk.public_input_bytes()
            tampered = bytearray(public_input)
            tampered[40] ^= 0x80
            return (
                await system.verify_membership_bytes(proof, public_input),
                await system.verify_membership_bytes(proof, bytes(tampered)),
                await system.verify_membership_bytes(proof, public_input[:100]),
            )

        assert asyncio.run(run()) == (True, False, False)

    def test_non_member_cannot_prove(self, circuit_files, poseidon):
        async def run():
            system, _ = make_system(circuit_files, poseidon)
            await register_all(system)
            await system.prove_membership(load_private_key(99), b"hello world")

        with pytest.raises(ValueError, match="not a member"):
            asyncio.run(run())

    def test_duplicate_registration_rejected(self, circuit_files, poseidon):
        async def run():
            system, _ = make_system(circuit_files, poseidon)
            await register_all(system)
            try:
                await system.register_member("member_000", public_key_point(load_private_key(50)))
            except ValueError:
                pass
            else:
                raise AssertionError("duplicate member id accepted")
            await system.register_member("someone_else", public_key_point(MEMBER_KEYS[1]))

        with pytest.raises(ValueError, match="already in the group"):
            asyncio.run(run())

    def test_proof_for_foreign_root_rejected(self, circuit_files, poseidon):
        async def run():
            ours, _ = make_system(circuit_files, poseidon)
            theirs, _ = make_system(circuit_files, poseidon)
            await register_all(ours)
            await register_all(theirs, MEMBER_KEYS + [load_private_key(77)])

            nizk = await theirs.prove_membership(MEMBER_KEYS[0], b"hello world")
            return await theirs.verify_membership(nizk), await ours.verify_membership(nizk)

        assert asyncio.run(run()) == (True, False)

    def test_removed_member(self, circuit_files, poseidon):
        async def run():
            system, _ = make_system(circuit_files, poseidon, max_root_history=2)
            await register_all(system)
            nizk = await system.prove_membership(MEMBER_KEYS[3], b"before removal")

            await system.remove_member("member_003")
            still_recent = await system.verify_membership(nizk)

            await system.register_member("member_004", public_key_point(load_private_key(40)))
            expired = await system.verify_membership(nizk)

            try:
                await system.prove_membership(MEMBER_KEYS[3], b"after removal")
            except ValueError:
                removed = True
            else:
                removed = False
            return still_recent, expired, removed, system

        still_recent, expired, removed, system = asyncio.run(run())
        assert still_recent
        assert not expired
        assert removed
        assert len(system.published_roots) == 2
        assert "member_003" not in system.members

    def test_concurrent_registrations(self, circuit_files, poseidon):
        async def run():
            system, _ = make_system(circuit_files, poseidon)
            keys = [load_private_key(100 + i) for i in range(6)]
            await asyncio.gather(*(
                system.register_member(f"member_{i}", public_key_point(key))
                for i, key in enumerate(keys)
            ))
            return system

        system = asyncio.run(run())
        indices = sorted(member.index for member in system.members.values())
        assert indices == list(range(6))
        for member in system.members.values():
            assert system.tree.leaves[member.index] == member.leaf

    def test_system_metrics(self, circuit_files, poseidon):
        async def run():
            system, _ = make_system(circuit_files, poseidon)
            await register_all(system)
            return system.get_system_metrics()

        metrics = asyncio.run(run())
        assert metrics["registered_members"] == 4
        assert metrics["tree_leaves"] == 4
        assert metrics["tree_depth"] == 10
        assert metrics["published_roots"] == 5

    def test_eff_ecdsa_only_config_rejected(self, circuit_files, poseidon):
        with pytest.raises(ValueError):
            make_system(circuit_files, poseidon, leaf_type=LeafKind.NONE)
