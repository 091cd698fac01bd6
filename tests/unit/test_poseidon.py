"""
Unit Tests for the Poseidon hash
"""

import pytest

from zkmail.params import FIELD_MODULUS
from zkmail.poseidon import (
    FULL_ROUNDS,
    hash2,
    poseidon_hash,
    poseidon_params,
    poseidon_permutation,
)

# circomlibjs: poseidon([1, 2])
POSEIDON_1_2 = 7853200120776062878684798364095072458815029376092732009249414926327459813530


class TestPoseidonParams:
    def test_width_three_shape(self):
        params = poseidon_params(3)

        assert params.t == 3
        assert params.full_rounds == FULL_ROUNDS
        assert params.partial_rounds == 57
        assert len(params.round_constants) == 65 * 3
        assert len(params.mds) == 3
        assert all(len(row) == 3 for row in params.mds)

    def test_constants_in_field(self):
        params = poseidon_params(3)
        assert all(0 <= c < FIELD_MODULUS for c in params.round_constants)
        assert all(0 < m < FIELD_MODULUS for row in params.mds for m in row)

    def test_params_are_cached(self):
        assert poseidon_params(3) is poseidon_params(3)

    def test_round_layout(self):
        params = poseidon_params(3)
        full = [r for r in range(params.total_rounds) if params.is_full_round(r)]

        assert full == [0, 1, 2, 3, 61, 62, 63, 64]

    @pytest.mark.parametrize("t", [1, 18])
    def test_unsupported_width(self, t):
        with pytest.raises(ValueError, match="Unsupported Poseidon width"):
            poseidon_params(t)


class TestPoseidonHash:
    def test_known_vector(self):
        """Matches circomlib's Poseidon(2) on inputs (1, 2)"""
        assert poseidon_hash([1, 2]) == POSEIDON_1_2

    def test_hash2_is_poseidon_of_pair(self):
        assert hash2(1, 2) == POSEIDON_1_2

    def test_order_matters(self):
        assert hash2(1, 2) != hash2(2, 1)

    def test_inputs_reduced_mod_field(self):
        assert hash2(1 + FIELD_MODULUS, 2) == POSEIDON_1_2

    def test_permutation_rejects_wrong_width(self):
        with pytest.raises(ValueError, match="does not match"):
            poseidon_permutation([0, 1], poseidon_params(3))
