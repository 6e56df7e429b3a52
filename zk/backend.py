"""
Proving Backend Boundary
Circuit loading, witness generation and the external proving system
"""

import asyncio
import hashlib
import json
import logging
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .errors import CircuitUnavailable, ProvingError, WitnessGenError

logger = logging.getLogger(__name__)


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


# ============================================================================
# CIRCUIT LOADING
# ============================================================================


class CircuitLoader:
    """Loads circuit binaries and witness programs from a path or URL.

    Loaded blobs are cached by source for the lifetime of the loader and are
    never modified.
    """

    def __init__(self, cache_dir: Optional[Path] = None, timeout: int = 60):
        self.cache_dir = Path(cache_dir) if cache_dir is not None else \
            Path(tempfile.gettempdir()) / "membership-circuits"
        self.timeout = timeout
        self._cache: Dict[str, bytes] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def load(self, source: str) -> bytes:
        # One lock per source: concurrent loads of it share a fetch
        async with self._locks.setdefault(source, asyncio.Lock()):
            if source in self._cache:
                logger.debug(f"Circuit cache hit for {source}")
                return self._cache[source]

            loop = asyncio.get_event_loop()
            data = await loop.run_in_executor(None, self._read, source)
            self._cache[source] = data
            logger.info(f"Loaded {len(data)} bytes from {source}")
            return data

    def _read(self, source: str) -> bytes:
        if is_url(source):
            try:
                response = requests.get(source, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise CircuitUnavailable(f"Could not fetch {source}: {e}") from e
            return response.content

        try:
            return Path(source).read_bytes()
        except OSError as e:
            raise CircuitUnavailable(f"Could not read {source}: {e}") from e

    async def materialize(self, source: str) -> Path:
        """Local file path for `source`, downloading URLs into the cache directory"""
        if not is_url(source):
            path = Path(source)
            if not path.is_file():
                raise CircuitUnavailable(f"{source} does not exist")
            return path

        data = await self.load(source)
        digest = hashlib.sha256(source.encode()).hexdigest()[:16]
        path = self.cache_dir / f"{digest}_{Path(source).name}"

        if not path.exists():
            try:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
                path.write_bytes(data)
            except OSError as e:
                raise CircuitUnavailable(f"Could not cache {source}: {e}") from e

        return path


# ============================================================================
# WITNESS GENERATION
# ============================================================================


class WitnessGenerator(ABC):

    @abstractmethod
    async def generate(self, inputs: Dict[str, Any]) -> bytes:
        """Witness bytes for circom-style inputs; WitnessGenError on constraint violation"""


class SnarkJsWitnessGenerator(WitnessGenerator):
    """Runs `snarkjs wtns calculate` against the compiled witness program"""

    def __init__(self, program: str, loader: CircuitLoader, snarkjs_bin: str = "snarkjs"):
        self.program = program
        self.loader = loader
        self.snarkjs_bin = snarkjs_bin

    async def generate(self, inputs: Dict[str, Any]) -> bytes:
        program_path = await self.loader.materialize(self.program)
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._calculate, program_path, inputs)

    def _calculate(self, program_path: Path, inputs: Dict[str, Any]) -> bytes:
        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)

            input_file = temp_path / "input.json"
            with open(input_file, 'w') as f:
                json.dump(inputs, f)

            wtns_file = temp_path / "witness.wtns"
            cmd = [
                self.snarkjs_bin, 'wtns', 'calculate',
                str(program_path),
                str(input_file),
                str(wtns_file)
            ]

            try:
                result = subprocess.run(cmd, capture_output=True, text=True)
            except OSError as e:
                raise WitnessGenError(f"Could not run {self.snarkjs_bin}: {e}") from e

            if result.returncode != 0:
                raise WitnessGenError(
                    f"Witness generation failed: {result.stderr.strip()}")

            return wtns_file.read_bytes()


# ============================================================================
# PROVING SYSTEM
# ============================================================================


class ProvingBackend(ABC):
    """Proves and verifies circuit satisfiability for serialized public inputs"""

    def __init__(self):
        self._initialized = False
        self._setup_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self):
        """One-time setup; concurrent callers wait for the first one"""
        async with self._setup_lock:
            if self._initialized:
                return

            await self._initialize()
            self._initialized = True
            logger.info(f"{type(self).__name__} initialized")

    async def _initialize(self):
        pass

    @abstractmethod
    async def prove(self, circuit: bytes, witness: bytes, public_input: bytes) -> bytes:
        ...

    @abstractmethod
    async def verify(self, circuit: bytes, proof: bytes, public_input: bytes) -> bool:
        ...


class SubprocessProvingBackend(ProvingBackend):
    """Drives an external prover executable.

    Invocation is `<command> [prover module] prove <circuit> <witness>
    <public input> <proof out>` and `... verify <circuit> <proof> <public
    input>`; exit status 0 means success.
    """

    def __init__(self, command: Optional[List[str]] = None, prover_module: Optional[str] = None,
                 loader: Optional[CircuitLoader] = None):
        super().__init__()
        self.command = list(command or ["spartan-ecdsa"])
        self.prover_module = prover_module
        self.loader = loader or CircuitLoader()
        self._base_cmd: List[str] = []

    async def _initialize(self):
        if shutil.which(self.command[0]) is None:
            raise ProvingError(f"Prover command not found: {self.command[0]}")

        self._base_cmd = list(self.command)
        if self.prover_module:
            module_path = await self.loader.materialize(self.prover_module)
            self._base_cmd.append(str(module_path))

    async def prove(self, circuit: bytes, witness: bytes, public_input: bytes) -> bytes:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._prove, circuit, witness, public_input)

    async def verify(self, circuit: bytes, proof: bytes, public_input: bytes) -> bool:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._verify, circuit, proof, public_input)

    def _prove(self, circuit: bytes, witness: bytes, public_input: bytes) -> bytes:
        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)
            circuit_file = self._write(temp_path / "circuit.bin", circuit)
            witness_file = self._write(temp_path / "witness.wtns", witness)
            public_file = self._write(temp_path / "public_input.bin", public_input)
            proof_file = temp_path / "proof.bin"

            result = self._run([
                'prove',
                str(circuit_file),
                str(witness_file),
                str(public_file),
                str(proof_file)
            ])
            if result.returncode != 0:
                raise ProvingError(f"Proof generation failed: {result.stderr.strip()}")

            try:
                return proof_file.read_bytes()
            except OSError as e:
                raise ProvingError(f"Prover produced no proof: {e}") from e

    def _verify(self, circuit: bytes, proof: bytes, public_input: bytes) -> bool:
        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)
            circuit_file = self._write(temp_path / "circuit.bin", circuit)
            proof_file = self._write(temp_path / "proof.bin", proof)
            public_file = self._write(temp_path / "public_input.bin", public_input)

            result = self._run([
                'verify',
                str(circuit_file),
                str(proof_file),
                str(public_file)
            ])
            return result.returncode == 0

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        if not self._initialized:
            raise ProvingError("Backend used before initialize()")

        cmd = self._base_cmd + args
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise ProvingError(f"Could not run prover: {e}") from e

        if result.returncode < 0:
            raise ProvingError(f"Prover killed by signal {-result.returncode}")
        return result

    @staticmethod
    def _write(path: Path, data: bytes) -> Path:
        path.write_bytes(data)
        return path
