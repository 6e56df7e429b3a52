"""
ECDSA Signatures over secp256k1
RPC wire format, signing with recovery ids, key recovery and Ethereum-style hashing
"""

from dataclasses import dataclass
from typing import Dict, Union

from Crypto.Hash import keccak
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, decode_dss_signature
from ecdsa import SECP256k1, VerifyingKey
from ecdsa.ecdsa import InvalidPointError
from ecdsa.errors import MalformedPointError
from ecdsa.keys import BadDigestError
from ecdsa.numbertheory import SquareRootError
from ecdsa.util import sigencode_string

from .secp256k1 import G, N, SCALAR_BYTES, InvalidEncoding, Point, Scalar

PERSONAL_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"
RPC_SIGNATURE_BYTES = 2 * SCALAR_BYTES + 1
ADDRESS_BYTES = 20


def keccak256(data: bytes) -> bytes:
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def hash_personal_message(message: bytes) -> bytes:
    """Digest signed by `personal_sign` / `eth_sign`"""
    prefix = PERSONAL_MESSAGE_PREFIX + str(len(message)).encode()
    return keccak256(prefix + message)


# ============================================================================
# SIGNATURE WIRE FORMAT
# ============================================================================


@dataclass(frozen=True)
class Signature:
    """ECDSA signature with the parity bit of its ephemeral point R"""
    r: Scalar
    s: Scalar
    recovery_id: int

    def __post_init__(self):
        if self.recovery_id not in (0, 1):
            raise InvalidEncoding(
                f"Recovery id must be 0 or 1, got {self.recovery_id}")
        if self.r.is_zero() or self.s.is_zero():
            raise InvalidEncoding("Signature scalars must be non-zero")

    @classmethod
    def from_rpc(cls, sig: str) -> 'Signature':
        """Parse `0x || r || s || v` as returned by eth_sign"""
        body = sig[2:] if sig.startswith(("0x", "0X")) else sig
        if len(body) != 2 * RPC_SIGNATURE_BYTES:
            raise InvalidEncoding(
                f"Signature must be {RPC_SIGNATURE_BYTES} bytes, got {len(body) / 2:g}")
        try:
            raw = bytes.fromhex(body)
        except ValueError as e:
            raise InvalidEncoding(f"Signature is not valid hex: {e}") from e

        r = int.from_bytes(raw[:SCALAR_BYTES], "big")
        s = int.from_bytes(raw[SCALAR_BYTES:2 * SCALAR_BYTES], "big")
        v = raw[-1]

        if not (0 < r < N and 0 < s < N):
            raise InvalidEncoding("Signature scalar outside [1, N)")

        if v in (27, 28):
            recovery_id = v - 27
        elif v in (0, 1):
            recovery_id = v
        else:
            raise InvalidEncoding(f"Unsupported recovery byte {v}")

        return cls(Scalar(r), Scalar(s), recovery_id)

    def to_rpc(self) -> str:
        return "0x" + self.r.to_bytes().hex() + self.s.to_bytes().hex() + \
            f"{27 + self.recovery_id:02x}"


# ============================================================================
# KEYS
# ============================================================================


def load_private_key(secret: Union[int, bytes]) -> ec.EllipticCurvePrivateKey:
    """secp256k1 private key from a 32-byte secret or its integer value"""
    if isinstance(secret, bytes):
        if len(secret) != SCALAR_BYTES:
            raise ValueError(
                f"Private key must be {SCALAR_BYTES} bytes, got {len(secret)}")
        secret = int.from_bytes(secret, "big")
    if not 0 < secret < N:
        raise ValueError("Private key outside [1, N)")
    return ec.derive_private_key(secret, ec.SECP256K1())


def generate_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256K1())


def public_key_point(key: Union[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]) -> Point:
    if isinstance(key, ec.EllipticCurvePrivateKey):
        key = key.public_key()
    numbers = key.public_numbers()
    return Point(numbers.x, numbers.y)


def public_key_bytes(public_key: Point) -> bytes:
    """64-byte x || y encoding (uncompressed, no SEC1 prefix)"""
    return public_key.x.to_bytes(32, "big") + public_key.y.to_bytes(32, "big")


def public_key_to_address(public_key: Point) -> int:
    """Low 160 bits of keccak256(x || y)"""
    return int.from_bytes(keccak256(public_key_bytes(public_key))[-ADDRESS_BYTES:], "big")


# ============================================================================
# SIGNING AND RECOVERY
# ============================================================================


def _recovery_candidates(r: Scalar, s: Scalar, digest: bytes) -> Dict[int, Point]:
    """Recovered public keys keyed by the y parity of their R"""
    try:
        keys = VerifyingKey.from_public_key_recovery_with_digest(
            sigencode_string(r.value, s.value, N), digest, SECP256k1)
    except SquareRootError as e:
        raise InvalidEncoding(f"r = {r.value:#x} is not the x-coordinate of a curve point") from e
    except (BadDigestError, InvalidPointError, MalformedPointError) as e:
        raise InvalidEncoding(f"No public key recoverable from signature: {e}") from e
    h = Scalar.from_bytes(digest)
    s_inv = s.inverse()
    candidates = {}
    for key in keys:
        q = Point.from_ecdsa(key.pubkey.point)
        # R = s^-1 (h*G + r*Q)
        big_r = s_inv * (h * G + r * q)
        candidates[big_r.y & 1] = q
    return candidates


def recover_public_key(signature: Signature, digest: bytes) -> Point:
    """Q = r^-1 (s*R - h*G)"""
    candidates = _recovery_candidates(signature.r, signature.s, digest)
    if signature.recovery_id not in candidates:
        raise InvalidEncoding("Signature does not recover a key for its recovery id")
    return candidates[signature.recovery_id]


def sign_digest(private_key: ec.EllipticCurvePrivateKey, digest: bytes) -> Signature:
    """Low-s ECDSA signature over a 32-byte digest, with its recovery id"""
    if len(digest) != SCALAR_BYTES:
        raise ValueError(f"Digest must be {SCALAR_BYTES} bytes, got {len(digest)}")

    der = private_key.sign(digest, ec.ECDSA(Prehashed(hashes.SHA256())))
    r, s = decode_dss_signature(der)
    if s > N // 2:
        s = N - s

    expected = public_key_point(private_key)
    candidates = _recovery_candidates(Scalar(r), Scalar(s), digest)
    for recovery_id, candidate in sorted(candidates.items()):
        if candidate == expected:
            return Signature(Scalar(r), Scalar(s), recovery_id)

    # Only reachable when R.x >= N, which has negligible probability
    raise InvalidEncoding("Could not determine a recovery id for signature")


def sign_message(private_key: ec.EllipticCurvePrivateKey, message: bytes) -> Signature:
    return sign_digest(private_key, hash_personal_message(message))
