"""
Public Input Model
Circuit-facing inputs (T, U, optional root) and the full binding that ties them
to a signature's r, recovery id and message digest
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ec.secp256k1 import Point

from .errors import MalformedInput

FIELD_BYTES = 32

CIRCUIT_INPUT_BYTES = 4 * FIELD_BYTES
CIRCUIT_INPUT_WITH_ROOT_BYTES = 5 * FIELD_BYTES
# r || recovery id || circuit input || msg hash
FULL_INPUT_BYTES = FIELD_BYTES + 1 + CIRCUIT_INPUT_BYTES + FIELD_BYTES
FULL_INPUT_WITH_ROOT_BYTES = FIELD_BYTES + 1 + CIRCUIT_INPUT_WITH_ROOT_BYTES + FIELD_BYTES


def field_to_bytes(value: int) -> bytes:
    """32-byte big-endian encoding"""
    if value < 0 or value >= 1 << (8 * FIELD_BYTES):
        raise ValueError(f"Value does not fit in {FIELD_BYTES} bytes")
    return value.to_bytes(FIELD_BYTES, "big")


def bytes_to_field(data: bytes) -> int:
    return int.from_bytes(data, "big")


@dataclass(frozen=True)
class CircuitPublicInput:
    """Public signals seen by the circuit. T = r^-1 R and U = -(r^-1 h) G"""
    tx: int
    ty: int
    ux: int
    uy: int
    merkle_root: Optional[int] = None

    @property
    def t(self) -> Point:
        return Point(self.tx, self.ty)

    @property
    def u(self) -> Point:
        return Point(self.ux, self.uy)

    @property
    def has_root(self) -> bool:
        return self.merkle_root is not None

    def serialize(self) -> bytes:
        values = [self.tx, self.ty, self.ux, self.uy]
        if self.merkle_root is not None:
            values.insert(0, self.merkle_root)
        return b"".join(field_to_bytes(v) for v in values)

    @classmethod
    def deserialize(cls, data: bytes, with_root: bool) -> 'CircuitPublicInput':
        expected = CIRCUIT_INPUT_WITH_ROOT_BYTES if with_root else CIRCUIT_INPUT_BYTES
        if len(data) != expected:
            raise MalformedInput(
                f"Circuit public input must be {expected} bytes, got {len(data)}")

        values = [
            bytes_to_field(data[i:i + FIELD_BYTES])
            for i in range(0, len(data), FIELD_BYTES)
        ]
        root = values.pop(0) if with_root else None
        tx, ty, ux, uy = values
        return cls(tx, ty, ux, uy, merkle_root=root)

    def to_witness_input(self) -> Dict[str, str]:
        """Circom signal names, decimal strings"""
        signals = {
            "Tx": str(self.tx),
            "Ty": str(self.ty),
            "Ux": str(self.ux),
            "Uy": str(self.uy),
        }
        if self.merkle_root is not None:
            signals["root"] = str(self.merkle_root)
        return signals


@dataclass(frozen=True)
class FullPublicInput:
    """Everything a verifier needs to re-check the signature binding"""
    r: int
    recovery_id: int
    circuit_input: CircuitPublicInput
    msg_hash: bytes

    def __post_init__(self):
        if self.recovery_id not in (0, 1):
            raise MalformedInput(f"Recovery id must be 0 or 1, got {self.recovery_id}")
        if len(self.msg_hash) != FIELD_BYTES:
            raise MalformedInput(
                f"Message hash must be {FIELD_BYTES} bytes, got {len(self.msg_hash)}")

    def serialize(self) -> bytes:
        return (
            field_to_bytes(self.r)
            + bytes([self.recovery_id])
            + self.circuit_input.serialize()
            + self.msg_hash
        )

    @classmethod
    def deserialize(cls, data: bytes, with_root: bool) -> 'FullPublicInput':
        expected = FULL_INPUT_WITH_ROOT_BYTES if with_root else FULL_INPUT_BYTES
        if len(data) != expected:
            raise MalformedInput(
                f"Public input must be {expected} bytes, got {len(data)}")

        r = bytes_to_field(data[:FIELD_BYTES])
        recovery_id = data[FIELD_BYTES]
        if recovery_id not in (0, 1):
            raise MalformedInput(f"Recovery id byte must be 0 or 1, got {recovery_id}")

        circuit_end = expected - FIELD_BYTES
        circuit_input = CircuitPublicInput.deserialize(
            data[FIELD_BYTES + 1:circuit_end], with_root)

        return cls(
            r=r,
            recovery_id=recovery_id,
            circuit_input=circuit_input,
            msg_hash=bytes(data[circuit_end:]),
        )
