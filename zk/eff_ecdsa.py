"""
Efficient ECDSA Transform
Moves the r^-1 and h terms of ECDSA verification out of the circuit so it only
checks s*T + U == Q
"""

import logging

from ec.secp256k1 import (
    G,
    N,
    SCALAR_BYTES,
    ECError,
    InvalidEncoding,
    NotInvertible,
    Scalar,
    decompress_point,
)

from .public_input import CircuitPublicInput, FullPublicInput

logger = logging.getLogger(__name__)


def derive_circuit_public_input(r: int, recovery_id: int, digest: bytes) -> CircuitPublicInput:
    """T = r^-1 * R and U = -(r^-1 * h) * G, with R recovered from r and its parity"""
    if len(digest) != SCALAR_BYTES:
        raise ValueError(f"Digest must be {SCALAR_BYTES} bytes, got {len(digest)}")
    if r % N == 0:
        raise NotInvertible("r must be non-zero modulo N")
    if not 0 < r < N:
        raise InvalidEncoding("r outside [1, N)")

    h = Scalar.from_bytes(digest)
    big_r = decompress_point(r, recovery_id)
    r_inv = Scalar(r).inverse()

    w = -(r_inv * h)
    u = w * G
    t = r_inv * big_r

    return CircuitPublicInput(tx=t.x, ty=t.y, ux=u.x, uy=u.y)


# Name used by the circuit tooling
compute_eff_ecdsa_pub_input = derive_circuit_public_input


def verify_binding(claimed: CircuitPublicInput, r: int, recovery_id: int, digest: bytes) -> bool:
    """Recompute T and U and compare coordinates; the root is not part of the binding"""
    try:
        expected = derive_circuit_public_input(r, recovery_id, digest)
    except (ECError, ValueError) as e:
        logger.warning(f"Binding recomputation failed: {e}")
        return False

    return (
        claimed.tx == expected.tx
        and claimed.ty == expected.ty
        and claimed.ux == expected.ux
        and claimed.uy == expected.uy
    )


def verify_eff_ecdsa_pub_input(full: FullPublicInput) -> bool:
    return verify_binding(full.circuit_input, full.r, full.recovery_id, full.msg_hash)
