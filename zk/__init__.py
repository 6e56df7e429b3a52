"""
Zero-Knowledge Module for ECDSA Set Membership
Efficient-ECDSA public inputs, proving backend boundary, prover and verifier
"""

from .zk_proofs import (
    # Core classes
    NIZK,
    MembershipProver,
    MembershipVerifier,
    MembershipProofSystem,
)
from .eff_ecdsa import (
    derive_circuit_public_input,
    compute_eff_ecdsa_pub_input,
    verify_binding,
    verify_eff_ecdsa_pub_input,
)
from .public_input import CircuitPublicInput, FullPublicInput
from .backend import (
    CircuitLoader,
    WitnessGenerator,
    SnarkJsWitnessGenerator,
    ProvingBackend,
    SubprocessProvingBackend,
)
from .errors import (
    ZKError,
    MalformedInput,
    DepthMismatch,
    WitnessGenError,
    CircuitUnavailable,
    ProvingError,
    ProofInvalid,
    BindingInvalid,
)

__version__ = "0.1.0"

__all__ = [
    # Classes
    'NIZK',
    'MembershipProver',
    'MembershipVerifier',
    'MembershipProofSystem',
    'CircuitPublicInput',
    'FullPublicInput',
    'CircuitLoader',
    'WitnessGenerator',
    'SnarkJsWitnessGenerator',
    'ProvingBackend',
    'SubprocessProvingBackend',

    # Efficient ECDSA
    'derive_circuit_public_input',
    'compute_eff_ecdsa_pub_input',
    'verify_binding',
    'verify_eff_ecdsa_pub_input',

    # Exceptions
    'ZKError',
    'MalformedInput',
    'DepthMismatch',
    'WitnessGenError',
    'CircuitUnavailable',
    'ProvingError',
    'ProofInvalid',
    'BindingInvalid',
]
