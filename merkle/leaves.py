"""
Membership Leaf Derivation
Maps a secp256k1 public key to the tree leaf for each supported set kind
"""

from typing import Callable, Sequence

from config.config import LeafKind
from ec.secp256k1 import Point
from ec.signing import public_key_to_address


def hash_public_key(hasher: Callable[[Sequence[int]], int], public_key: Point) -> int:
    """H(Qx, Qy)"""
    return hasher([public_key.x, public_key.y])


def address_leaf(public_key: Point) -> int:
    return public_key_to_address(public_key)


def derive_leaf(kind: LeafKind, public_key: Point, hasher: Callable[[Sequence[int]], int]) -> int:
    if kind == LeafKind.PUBKEY_HASH:
        return hash_public_key(hasher, public_key)
    if kind == LeafKind.ADDRESS:
        return address_leaf(public_key)
    raise ValueError(f"Leaf kind {kind.value} has no membership leaf")
