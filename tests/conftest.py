"""
Shared fixtures and test doubles for the membership proof tests
"""

import asyncio
import hashlib
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.config import LeafKind, ProverConfig, VerifierConfig  # noqa: E402
from ec.secp256k1 import Point, Scalar  # noqa: E402
from ec.signing import load_private_key  # noqa: E402
from merkle.leaves import derive_leaf  # noqa: E402
from merkle.poseidon import Poseidon  # noqa: E402
from zk.backend import ProvingBackend, WitnessGenerator  # noqa: E402
from zk.errors import WitnessGenError  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

TREE_DEPTH = 10
WIZARD_KEY = ("🧙" * 8).encode("utf-16-le")


class FakeProvingBackend(ProvingBackend):
    """Proof is sha256(circuit || public input); verify recomputes it"""

    def __init__(self, fail_with: Optional[Exception] = None):
        super().__init__()
        self.fail_with = fail_with
        self.init_calls = 0
        self.prove_calls = 0
        self.verify_calls = 0
        self.public_inputs: List[bytes] = []

    async def _initialize(self):
        self.init_calls += 1
        await asyncio.sleep(0)

    async def prove(self, circuit: bytes, witness: bytes, public_input: bytes) -> bytes:
        self.prove_calls += 1
        self.public_inputs.append(public_input)
        if self.fail_with is not None:
            raise self.fail_with
        return hashlib.sha256(circuit + public_input).digest()

    async def verify(self, circuit: bytes, proof: bytes, public_input: bytes) -> bool:
        self.verify_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return proof == hashlib.sha256(circuit + public_input).digest()


class ReferenceWitnessGenerator(WitnessGenerator):
    """Evaluates the membership circuit relations in Python.

    Q = s*T + U, then leaf(Q) must hash up the supplied path to `root`.
    """

    def __init__(self, leaf_type: LeafKind, hasher=None):
        self.leaf_type = leaf_type
        self.hasher = hasher or Poseidon()
        self.requests: List[Dict[str, Any]] = []

    async def generate(self, inputs: Dict[str, Any]) -> bytes:
        self.requests.append(inputs)

        s = Scalar(int(inputs["s"]))
        t = Point(int(inputs["Tx"]), int(inputs["Ty"]))
        u = Point(int(inputs["Ux"]), int(inputs["Uy"]))
        q = s * t + u
        if q.is_identity():
            raise WitnessGenError("s*T + U is the point at infinity")

        signals = dict(inputs)
        signals["Qx"] = str(q.x)
        signals["Qy"] = str(q.y)

        if self.leaf_type != LeafKind.NONE:
            node = derive_leaf(self.leaf_type, q, self.hasher)
            for sibling, position in zip(inputs["siblings"], inputs["pathIndices"]):
                if position:
                    node = self.hasher([int(sibling), node])
                else:
                    node = self.hasher([node, int(sibling)])
            if node != int(inputs["root"]):
                raise WitnessGenError("Assert failed: computed root does not match")

        return json.dumps(signals, sort_keys=True).encode()


@pytest.fixture(scope="session")
def poseidon() -> Poseidon:
    return Poseidon()


@pytest.fixture(scope="session")
def wizard_key():
    return load_private_key(WIZARD_KEY)


@pytest.fixture
def circuit_files(tmp_path: Path) -> Dict[str, Path]:
    circuit = tmp_path / "pubkey_membership.circuit"
    circuit.write_bytes(b"spartan-circuit-v1")
    program = tmp_path / "pubkey_membership.wasm"
    program.write_bytes(b"\x00asm")
    return {"circuit": circuit, "program": program}


def make_configs(circuit_files: Dict[str, Path], leaf_type: LeafKind = LeafKind.PUBKEY_HASH,
                 depth: int = TREE_DEPTH, enable_profiler: bool = False):
    prover = ProverConfig(
        witness_gen_program=str(circuit_files["program"]),
        circuit=str(circuit_files["circuit"]),
        leaf_type=leaf_type,
        tree_depth=depth,
        enable_profiler=enable_profiler,
    )
    verifier = VerifierConfig(
        circuit=str(circuit_files["circuit"]),
        leaf_type=leaf_type,
        enable_profiler=enable_profiler,
    )
    return prover, verifier
