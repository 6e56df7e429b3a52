from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

import yaml

logger = logging.getLogger(__name__)

CIRCUIT_STORAGE_URL = "https://storage.googleapis.com/personae-proving-keys/membership"
DEFAULT_TREE_DEPTH = 20


class LeafKind(Enum):
    NONE = "none"
    PUBKEY_HASH = "pubkey_hash"
    ADDRESS = "address"


@dataclass
class BackendConfig:
    command: List[str] = field(default_factory=lambda: ["spartan-ecdsa"])
    snarkjs_bin: str = "snarkjs"
    cache_dir: Path = field(default_factory=lambda: Path("circuits/cache"))
    fetch_timeout: int = 60

    def __post_init__(self):
        self.cache_dir = Path(self.cache_dir)
        if isinstance(self.command, str):
            self.command = self.command.split()


@dataclass
class ProverConfig:
    witness_gen_program: str
    circuit: str
    prover_wasm: Optional[str] = None
    leaf_type: LeafKind = LeafKind.PUBKEY_HASH
    tree_depth: int = DEFAULT_TREE_DEPTH
    enable_profiler: bool = False

    def __post_init__(self):
        self.leaf_type = LeafKind(self.leaf_type)
        self.witness_gen_program = str(self.witness_gen_program)
        self.circuit = str(self.circuit)

    @property
    def with_root(self) -> bool:
        return self.leaf_type != LeafKind.NONE


@dataclass
class VerifierConfig:
    circuit: str
    prover_wasm: Optional[str] = None
    leaf_type: LeafKind = LeafKind.PUBKEY_HASH
    enable_profiler: bool = False

    def __post_init__(self):
        self.leaf_type = LeafKind(self.leaf_type)
        self.circuit = str(self.circuit)

    @property
    def with_root(self) -> bool:
        return self.leaf_type != LeafKind.NONE


# Published circuits. Production deployments should host their own copies.
DEFAULT_PUBKEY_PROVER_CONFIG = ProverConfig(
    witness_gen_program=f"{CIRCUIT_STORAGE_URL}/pubkey_membership.wasm",
    circuit=f"{CIRCUIT_STORAGE_URL}/pubkey_membership.circuit",
    leaf_type=LeafKind.PUBKEY_HASH,
)

DEFAULT_PUBKEY_VERIFIER_CONFIG = VerifierConfig(
    circuit=DEFAULT_PUBKEY_PROVER_CONFIG.circuit,
    leaf_type=LeafKind.PUBKEY_HASH,
)

DEFAULT_ADDRESS_PROVER_CONFIG = ProverConfig(
    witness_gen_program=f"{CIRCUIT_STORAGE_URL}/addr_membership.wasm",
    circuit=f"{CIRCUIT_STORAGE_URL}/addr_membership.circuit",
    leaf_type=LeafKind.ADDRESS,
)

DEFAULT_ADDRESS_VERIFIER_CONFIG = VerifierConfig(
    circuit=DEFAULT_ADDRESS_PROVER_CONFIG.circuit,
    leaf_type=LeafKind.ADDRESS,
)

DEFAULT_CIRCUIT_SOURCES = {
    DEFAULT_PUBKEY_PROVER_CONFIG.witness_gen_program,
    DEFAULT_PUBKEY_PROVER_CONFIG.circuit,
    DEFAULT_ADDRESS_PROVER_CONFIG.witness_gen_program,
    DEFAULT_ADDRESS_PROVER_CONFIG.circuit,
}


def default_prover_config(leaf_type: LeafKind) -> ProverConfig:
    if leaf_type == LeafKind.ADDRESS:
        template = DEFAULT_ADDRESS_PROVER_CONFIG
    else:
        template = DEFAULT_PUBKEY_PROVER_CONFIG
    return ProverConfig(
        witness_gen_program=template.witness_gen_program,
        circuit=template.circuit,
        leaf_type=template.leaf_type,
    )


def default_verifier_config(leaf_type: LeafKind) -> VerifierConfig:
    if leaf_type == LeafKind.ADDRESS:
        template = DEFAULT_ADDRESS_VERIFIER_CONFIG
    else:
        template = DEFAULT_PUBKEY_VERIFIER_CONFIG
    return VerifierConfig(circuit=template.circuit, leaf_type=template.leaf_type)


@dataclass
class SystemConfig:
    prover: ProverConfig = field(
        default_factory=lambda: default_prover_config(LeafKind.PUBKEY_HASH))
    verifier: VerifierConfig = field(
        default_factory=lambda: default_verifier_config(LeafKind.PUBKEY_HASH))
    backend: BackendConfig = field(default_factory=BackendConfig)

    log_dir: Path = field(default_factory=lambda: Path("logs"))
    log_level: str = "INFO"
    results_dir: Path = field(default_factory=lambda: Path("results"))
    max_root_history: int = 16

    def __post_init__(self):
        self.log_dir = Path(self.log_dir)
        self.results_dir = Path(self.results_dir)

        if self.prover.leaf_type != self.verifier.leaf_type:
            raise ValueError(
                f"Prover leaf type {self.prover.leaf_type.value} does not match "
                f"verifier leaf type {self.verifier.leaf_type.value}")


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """Load configuration from file or return default"""
    if config_path is None:
        config_path = Path("config.yaml")
    config_path = Path(config_path)

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}

            leaf_type = LeafKind(config_data.get('leaf_type', LeafKind.PUBKEY_HASH.value))

            prover_data = config_data.get('prover', {})
            prover_default = default_prover_config(leaf_type)
            prover = ProverConfig(
                witness_gen_program=prover_data.get(
                    'witness_gen_program', prover_default.witness_gen_program),
                circuit=prover_data.get('circuit', prover_default.circuit),
                prover_wasm=prover_data.get('prover_wasm'),
                leaf_type=leaf_type,
                tree_depth=prover_data.get('tree_depth', DEFAULT_TREE_DEPTH),
                enable_profiler=prover_data.get('enable_profiler', False)
            )

            verifier_data = config_data.get('verifier', {})
            verifier = VerifierConfig(
                circuit=verifier_data.get('circuit', prover.circuit),
                prover_wasm=verifier_data.get('prover_wasm', prover.prover_wasm),
                leaf_type=leaf_type,
                enable_profiler=verifier_data.get('enable_profiler', False)
            )

            backend_data = config_data.get('backend', {})
            backend = BackendConfig(
                command=backend_data.get('command', ["spartan-ecdsa"]),
                snarkjs_bin=backend_data.get('snarkjs_bin', 'snarkjs'),
                cache_dir=Path(backend_data.get('cache_dir', 'circuits/cache')),
                fetch_timeout=backend_data.get('fetch_timeout', 60)
            )

            return SystemConfig(
                prover=prover,
                verifier=verifier,
                backend=backend,
                log_dir=Path(config_data.get('log_dir', 'logs')),
                log_level=config_data.get('log_level', 'INFO'),
                results_dir=Path(config_data.get('results_dir', 'results')),
                max_root_history=config_data.get('max_root_history', 16)
            )
        except (OSError, yaml.YAMLError, ValueError, AttributeError) as e:
            logger.warning(f"Could not load config file {config_path}: {e}")
            logger.warning("Using default configuration")

    return SystemConfig()


def config_to_dict(config: SystemConfig) -> Dict[str, Any]:
    return {
        'leaf_type': config.prover.leaf_type.value,
        'prover': {
            'witness_gen_program': config.prover.witness_gen_program,
            'circuit': config.prover.circuit,
            'prover_wasm': config.prover.prover_wasm,
            'tree_depth': config.prover.tree_depth,
            'enable_profiler': config.prover.enable_profiler
        },
        'verifier': {
            'circuit': config.verifier.circuit,
            'prover_wasm': config.verifier.prover_wasm,
            'enable_profiler': config.verifier.enable_profiler
        },
        'backend': {
            'command': list(config.backend.command),
            'snarkjs_bin': config.backend.snarkjs_bin,
            'cache_dir': str(config.backend.cache_dir),
            'fetch_timeout': config.backend.fetch_timeout
        },
        'log_dir': str(config.log_dir),
        'log_level': config.log_level,
        'results_dir': str(config.results_dir),
        'max_root_history': config.max_root_history
    }


def save_config(config: SystemConfig, config_path: Optional[Path] = None):
    """Save configuration to YAML file"""
    if config_path is None:
        config_path = Path("config.yaml")
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.dump(config_to_dict(config), f, default_flow_style=False)
