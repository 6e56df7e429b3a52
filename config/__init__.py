"""Configuration management for membership proofs."""

from .config import (
    LeafKind,
    BackendConfig,
    ProverConfig,
    VerifierConfig,
    SystemConfig,
    DEFAULT_PUBKEY_PROVER_CONFIG,
    DEFAULT_PUBKEY_VERIFIER_CONFIG,
    DEFAULT_ADDRESS_PROVER_CONFIG,
    DEFAULT_ADDRESS_VERIFIER_CONFIG,
    default_prover_config,
    default_verifier_config,
    load_config,
    save_config,
)

__all__ = [
    'LeafKind',
    'BackendConfig',
    'ProverConfig',
    'VerifierConfig',
    'SystemConfig',
    'DEFAULT_PUBKEY_PROVER_CONFIG',
    'DEFAULT_PUBKEY_VERIFIER_CONFIG',
    'DEFAULT_ADDRESS_PROVER_CONFIG',
    'DEFAULT_ADDRESS_VERIFIER_CONFIG',
    'default_prover_config',
    'default_verifier_config',
    'load_config',
    'save_config',
]
