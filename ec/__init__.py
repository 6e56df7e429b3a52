"""secp256k1 arithmetic and ECDSA signature helpers."""

from .secp256k1 import (
    P,
    N,
    G,
    Scalar,
    Point,
    ECError,
    InvalidEncoding,
    NotInvertible,
    decompress_point,
    mod_inverse,
    scalar_mul,
    point_add,
    point_negate,
)
from .signing import (
    Signature,
    keccak256,
    hash_personal_message,
    load_private_key,
    generate_private_key,
    public_key_point,
    public_key_bytes,
    public_key_to_address,
    recover_public_key,
    sign_digest,
    sign_message,
)

__all__ = [
    # Curve arithmetic
    'P',
    'N',
    'G',
    'Scalar',
    'Point',
    'decompress_point',
    'mod_inverse',
    'scalar_mul',
    'point_add',
    'point_negate',

    # Signatures
    'Signature',
    'keccak256',
    'hash_personal_message',
    'load_private_key',
    'generate_private_key',
    'public_key_point',
    'public_key_bytes',
    'public_key_to_address',
    'recover_public_key',
    'sign_digest',
    'sign_message',

    # Exceptions
    'ECError',
    'InvalidEncoding',
    'NotInvertible',
]
