"""
Tests for the Poseidon hash oracle and its parameter generation
"""

import pytest

from merkle.poseidon import (
    BN254_SCALAR_FIELD,
    FULL_ROUNDS,
    PARTIAL_ROUNDS,
    SECP256K1_BASE_FIELD,
    GrainLFSR,
    Poseidon,
    generate_parameters,
)


def test_parameters_shape():
    params = generate_parameters(SECP256K1_BASE_FIELD, 3)

    assert params.full_rounds == FULL_ROUNDS
    assert params.partial_rounds == PARTIAL_ROUNDS[1]
    assert len(params.round_constants) == (FULL_ROUNDS + params.partial_rounds) * 3
    assert all(0 <= c < SECP256K1_BASE_FIELD for c in params.round_constants)
    assert len(params.mds) == 3 and all(len(row) == 3 for row in params.mds)


def test_parameters_are_cached():
    assert generate_parameters(SECP256K1_BASE_FIELD, 3) is \
        generate_parameters(SECP256K1_BASE_FIELD, 3)


def test_unsupported_width():
    with pytest.raises(ValueError):
        generate_parameters(SECP256K1_BASE_FIELD, 1)
    with pytest.raises(ValueError):
        generate_parameters(SECP256K1_BASE_FIELD, len(PARTIAL_ROUNDS) + 2)


def test_grain_lfsr_is_deterministic():
    a = GrainLFSR(256, 3, 8, 57)
    b = GrainLFSR(256, 3, 8, 57)
    assert [a.next_int(256) for _ in range(4)] == [b.next_int(256) for _ in range(4)]
    assert GrainLFSR(255, 3, 8, 57).next_int(255) != GrainLFSR(256, 3, 8, 57).next_int(255)


def test_hash_is_deterministic_and_order_sensitive(poseidon):
    assert poseidon([1, 2]) == poseidon([1, 2])
    assert poseidon([1, 2]) != poseidon([2, 1])
    assert 0 <= poseidon([1, 2]) < SECP256K1_BASE_FIELD


def test_hash_depends_on_arity(poseidon):
    assert poseidon([1]) != poseidon([1, 0])


def test_fields_give_different_hashes(poseidon):
    bn254 = Poseidon.bn254()
    assert bn254.prime == BN254_SCALAR_FIELD
    assert bn254([1, 2]) != poseidon([1, 2])


def test_hash_rejects_invalid_inputs(poseidon):
    with pytest.raises(ValueError):
        poseidon([])
    with pytest.raises(ValueError):
        poseidon([SECP256K1_BASE_FIELD, 0])
    with pytest.raises(ValueError):
        poseidon([-1, 0])


def test_permutation_is_not_identity(poseidon):
    state = [0, 1, 2]
    assert poseidon.permute(list(state)) != state
