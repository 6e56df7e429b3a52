"""
ECDSA Membership Proof System
Proves knowledge of a signature by a key in a Merkle set without revealing the key
"""

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from config.config import (
    DEFAULT_CIRCUIT_SOURCES,
    BackendConfig,
    ProverConfig,
    SystemConfig,
    VerifierConfig,
)
from ec.secp256k1 import SCALAR_BYTES
from ec.signing import Signature
from merkle.merkle_tree import MerkleProof
from utils.utils import PerformanceMonitor, format_duration

from .backend import (
    CircuitLoader,
    ProvingBackend,
    SnarkJsWitnessGenerator,
    SubprocessProvingBackend,
    WitnessGenerator,
)
from .eff_ecdsa import derive_circuit_public_input, verify_eff_ecdsa_pub_input
from .errors import (
    BindingInvalid,
    CircuitUnavailable,
    DepthMismatch,
    MalformedInput,
    ProofInvalid,
)
from .public_input import FullPublicInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NIZK:
    """Proof bytes plus the public input they were produced for"""
    proof: bytes
    public_input: FullPublicInput

    def public_input_bytes(self) -> bytes:
        return self.public_input.serialize()


def _warn_if_default_circuits(role: str, sources: Iterable[Optional[str]]):
    if any(source in DEFAULT_CIRCUIT_SOURCES for source in sources):
        logger.warning(
            f"{role} is using the published default circuits; "
            f"host your own copies for production use")


def _log_detached_failure(task: asyncio.Future):
    """Done-callback for a prove call whose caller was cancelled"""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Proving finished after cancellation and failed: {error}")


# ============================================================================
# PROVER
# ============================================================================


class MembershipProver:
    """Builds the witness and drives the proving backend"""

    def __init__(
        self,
        config: ProverConfig,
        backend: Optional[ProvingBackend] = None,
        witness_generator: Optional[WitnessGenerator] = None,
        loader: Optional[CircuitLoader] = None,
        backend_config: Optional[BackendConfig] = None
    ):
        backend_config = backend_config or BackendConfig()
        self.config = config
        self.loader = loader or CircuitLoader(
            backend_config.cache_dir, backend_config.fetch_timeout)
        self.backend = backend or SubprocessProvingBackend(
            backend_config.command, config.prover_wasm, self.loader)
        self.witness_generator = witness_generator or SnarkJsWitnessGenerator(
            config.witness_gen_program, self.loader, backend_config.snarkjs_bin)
        self.profiler = PerformanceMonitor(enabled=config.enable_profiler)

        _warn_if_default_circuits(
            "Prover", [config.witness_gen_program, config.circuit])

    async def prove(
        self,
        sig: Union[str, Signature],
        msg_hash: bytes,
        merkle_proof: Optional[MerkleProof] = None
    ) -> NIZK:
        start_time = time.time()

        signature = Signature.from_rpc(sig) if isinstance(sig, str) else sig
        if len(msg_hash) != SCALAR_BYTES:
            raise ValueError(
                f"Message hash must be {SCALAR_BYTES} bytes, got {len(msg_hash)}")
        self._check_merkle_proof(merkle_proof)

        with self.profiler.start_operation("public_input"):
            circuit_input = derive_circuit_public_input(
                signature.r.value, signature.recovery_id, msg_hash)
            if merkle_proof is not None:
                circuit_input = dataclasses.replace(
                    circuit_input, merkle_root=merkle_proof.root)

        public_input = FullPublicInput(
            r=signature.r.value,
            recovery_id=signature.recovery_id,
            circuit_input=circuit_input,
            msg_hash=bytes(msg_hash),
        )

        witness_input = {"s": str(signature.s.value)}
        witness_input.update(circuit_input.to_witness_input())
        if merkle_proof is not None:
            witness_input.update(merkle_proof.to_witness_input())

        with self.profiler.start_operation("witness_generation"):
            witness = await self.witness_generator.generate(witness_input)

        with self.profiler.start_operation("load_circuit"):
            circuit = await self.loader.load(self.config.circuit)

        await self.backend.initialize()

        with self.profiler.start_operation("prove"):
            # The backend finishes even if the caller stops waiting
            proving = asyncio.ensure_future(
                self.backend.prove(circuit, witness, circuit_input.serialize()))
            try:
                proof = await asyncio.shield(proving)
            except asyncio.CancelledError:
                proving.add_done_callback(_log_detached_failure)
                raise

        logger.info(
            f"Generated membership proof in {format_duration(time.time() - start_time)}")

        return NIZK(proof=proof, public_input=public_input)

    def _check_merkle_proof(self, merkle_proof: Optional[MerkleProof]):
        if not self.config.with_root:
            if merkle_proof is not None:
                raise ValueError(
                    "Merkle proof given for a circuit without membership")
            return

        if merkle_proof is None:
            raise ValueError(
                f"{self.config.leaf_type.value} membership requires a Merkle proof")

        depth = self.config.tree_depth
        if len(merkle_proof.siblings) != depth or len(merkle_proof.path_indices) != depth:
            raise DepthMismatch(
                f"Merkle proof has {len(merkle_proof.siblings)} siblings and "
                f"{len(merkle_proof.path_indices)} path indices, circuit expects {depth}")


# ============================================================================
# VERIFIER
# ============================================================================


class MembershipVerifier:
    """Checks the signature binding, then the proof itself"""

    def __init__(
        self,
        config: VerifierConfig,
        backend: Optional[ProvingBackend] = None,
        loader: Optional[CircuitLoader] = None,
        backend_config: Optional[BackendConfig] = None
    ):
        backend_config = backend_config or BackendConfig()
        self.config = config
        self.loader = loader or CircuitLoader(
            backend_config.cache_dir, backend_config.fetch_timeout)
        self.backend = backend or SubprocessProvingBackend(
            backend_config.command, config.prover_wasm, self.loader)
        self.profiler = PerformanceMonitor(enabled=config.enable_profiler)

        _warn_if_default_circuits("Verifier", [config.circuit])

    async def check(self, proof: bytes, public_input_bytes: bytes) -> FullPublicInput:
        """Raise instead of returning False; returns the decoded public input on success"""
        with self.profiler.start_operation("load_circuit"):
            circuit = await self.loader.load(self.config.circuit)

        public_input = FullPublicInput.deserialize(
            bytes(public_input_bytes), self.config.with_root)

        with self.profiler.start_operation("binding_check"):
            bound = verify_eff_ecdsa_pub_input(public_input)
        if not bound:
            raise BindingInvalid("Public input is not bound to the signature")

        await self.backend.initialize()
        with self.profiler.start_operation("verify"):
            valid = await self.backend.verify(
                circuit, bytes(proof), public_input.circuit_input.serialize())
        if not valid:
            raise ProofInvalid("Proving backend rejected the proof")

        return public_input

    async def verify(self, proof: bytes, public_input_bytes: bytes) -> bool:
        """True only when the public input is bound to its signature and the proof holds.

        Malformed or tampered bytes yield False. A circuit that cannot be
        loaded raises CircuitUnavailable, and a backend that fails to
        initialize raises its own error.
        """
        start_time = time.time()

        # Initialization errors propagate
        await self.backend.initialize()

        try:
            await self.check(proof, public_input_bytes)
        except CircuitUnavailable:
            raise
        except (MalformedInput, ProofInvalid) as e:
            logger.warning(f"Rejected proof: {e}")
            return False
        except Exception as e:
            logger.error(f"Verification failed: {e}")
            return False

        logger.info(
            f"Verified membership proof in {format_duration(time.time() - start_time)}")
        return True

    async def verify_nizk(self, nizk: NIZK) -> bool:
        return await self.verify(nizk.proof, nizk.public_input_bytes())


# ============================================================================
# PROOF SYSTEM
# ============================================================================


class MembershipProofSystem:
    """Prover and verifier sharing one backend and circuit cache"""

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        backend: Optional[ProvingBackend] = None,
        witness_generator: Optional[WitnessGenerator] = None
    ):
        self.config = config or SystemConfig()
        backend_config = self.config.backend

        self.loader = CircuitLoader(backend_config.cache_dir, backend_config.fetch_timeout)
        self.backend = backend or SubprocessProvingBackend(
            backend_config.command, self.config.prover.prover_wasm, self.loader)
        self.prover = MembershipProver(
            self.config.prover,
            backend=self.backend,
            witness_generator=witness_generator,
            loader=self.loader,
            backend_config=backend_config
        )
        self.verifier = MembershipVerifier(
            self.config.verifier,
            backend=self.backend,
            loader=self.loader,
            backend_config=backend_config
        )
        self._initialized = False
        self._setup_lock = asyncio.Lock()

    async def initialize(self):
        async with self._setup_lock:
            if self._initialized:
                return

            logger.info("Initializing membership proof system")
            await self.backend.initialize()

            self._initialized = True
            logger.info("Membership proof system initialized")

    async def prove(
        self,
        sig: Union[str, Signature],
        msg_hash: bytes,
        merkle_proof: Optional[MerkleProof] = None
    ) -> NIZK:
        if not self._initialized:
            await self.initialize()

        return await self.prover.prove(sig, msg_hash, merkle_proof)

    async def verify(self, nizk: NIZK) -> bool:
        if not self._initialized:
            await self.initialize()

        return await self.verifier.verify_nizk(nizk)
