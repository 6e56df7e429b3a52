"""
Poseidon Hash Oracle
x^5 Poseidon permutation with Grain-LFSR generated round constants and Cauchy MDS matrix
"""

import logging
from collections import deque
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Sequence, Tuple

logger = logging.getLogger(__name__)

# secp256k1 base field; public key coordinates are native elements here
SECP256K1_BASE_FIELD = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
# BN254 scalar field (circomlib / snarkjs default)
BN254_SCALAR_FIELD = 21888242871839275222246405745257275088548364400416034343698204186575808495617

FULL_ROUNDS = 8
# Partial rounds indexed by width t - 2, as in circomlib
PARTIAL_ROUNDS = [56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68]
ALPHA = 5


@dataclass(frozen=True)
class PoseidonParameters:
    """Round constants and MDS matrix for one (prime, width) instance"""
    prime: int
    width: int
    full_rounds: int
    partial_rounds: int
    round_constants: Tuple[int, ...]
    mds: Tuple[Tuple[int, ...], ...]


class GrainLFSR:
    """80-bit Grain LFSR used by the Poseidon reference parameter script"""

    def __init__(self, field_bits: int, width: int, full_rounds: int, partial_rounds: int):
        bits = (
            self._to_bits(1, 2)           # prime field
            + self._to_bits(0, 4)         # x^alpha S-box
            + self._to_bits(field_bits, 12)
            + self._to_bits(width, 12)
            + self._to_bits(full_rounds, 10)
            + self._to_bits(partial_rounds, 10)
            + [1] * 30
        )
        self._state = deque(bits)
        for _ in range(160):
            self._clock()

    @staticmethod
    def _to_bits(value: int, length: int) -> List[int]:
        return [int(b) for b in bin(value)[2:].zfill(length)]

    def _clock(self) -> int:
        s = self._state
        bit = s[62] ^ s[51] ^ s[38] ^ s[23] ^ s[13] ^ s[0]
        s.popleft()
        s.append(bit)
        return bit

    def next_bit(self) -> int:
        # Bits come in pairs; the second is kept only when the first is 1
        while True:
            first = self._clock()
            second = self._clock()
            if first:
                return second

    def next_int(self, num_bits: int) -> int:
        value = 0
        for _ in range(num_bits):
            value = (value << 1) | self.next_bit()
        return value


@lru_cache(maxsize=None)
def generate_parameters(prime: int, width: int) -> PoseidonParameters:
    """Derive constants exactly once per (prime, width)"""
    if width < 2 or width - 2 >= len(PARTIAL_ROUNDS):
        raise ValueError(f"Unsupported Poseidon width {width}")

    partial_rounds = PARTIAL_ROUNDS[width - 2]
    field_bits = prime.bit_length()
    grain = GrainLFSR(field_bits, width, FULL_ROUNDS, partial_rounds)

    constants = []
    for _ in range((FULL_ROUNDS + partial_rounds) * width):
        c = grain.next_int(field_bits)
        while c >= prime:
            c = grain.next_int(field_bits)
        constants.append(c)

    while True:
        samples = [grain.next_int(field_bits) % prime for _ in range(2 * width)]
        if len(set(samples)) != len(samples):
            continue
        xs, ys = samples[:width], samples[width:]
        if any((x + y) % prime == 0 for x in xs for y in ys):
            continue
        mds = tuple(
            tuple(pow(x + y, -1, prime) for y in ys)
            for x in xs
        )
        break

    logger.debug(
        f"Generated Poseidon parameters: width={width}, R_F={FULL_ROUNDS}, R_P={partial_rounds}")

    return PoseidonParameters(
        prime=prime,
        width=width,
        full_rounds=FULL_ROUNDS,
        partial_rounds=partial_rounds,
        round_constants=tuple(constants),
        mds=mds,
    )


class Poseidon:
    """Poseidon hash over a prime field; inputs and output are field elements"""

    def __init__(self, prime: int = SECP256K1_BASE_FIELD):
        self.prime = prime

    @classmethod
    def bn254(cls) -> 'Poseidon':
        return cls(BN254_SCALAR_FIELD)

    def ark(self, state: List[int], params: PoseidonParameters, offset: int) -> List[int]:
        """Add round constants"""
        return [(s + params.round_constants[offset + i]) % self.prime for i, s in enumerate(state)]

    def sbox(self, state: List[int], full_round: bool) -> List[int]:
        """Apply S-box (x^5 mod p)"""
        if full_round:
            return [pow(x, ALPHA, self.prime) for x in state]
        return [pow(state[0], ALPHA, self.prime)] + state[1:]

    def mix(self, state: List[int], params: PoseidonParameters) -> List[int]:
        """Apply MDS matrix multiplication"""
        return [
            sum(m * s for m, s in zip(row, state)) % self.prime
            for row in params.mds
        ]

    def permute(self, state: List[int]) -> List[int]:
        params = generate_parameters(self.prime, len(state))
        half_full = params.full_rounds // 2
        offset = 0

        for round_number in range(params.full_rounds + params.partial_rounds):
            full_round = round_number < half_full or \
                round_number >= half_full + params.partial_rounds
            state = self.ark(state, params, offset)
            offset += params.width
            state = self.sbox(state, full_round)
            state = self.mix(state, params)

        return state

    def hash(self, inputs: Sequence[int]) -> int:
        """Hash field elements; capacity element is zero"""
        if not inputs:
            raise ValueError("Poseidon expects at least one input")
        for value in inputs:
            if not 0 <= value < self.prime:
                raise ValueError(f"Input {value:#x} outside field bounds")

        state = [0] + [int(v) for v in inputs]
        return self.permute(state)[0]

    def __call__(self, inputs: Sequence[int]) -> int:
        return self.hash(inputs)
