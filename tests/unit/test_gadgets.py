"""
Unit Tests for the pysnark constraint gadgets
"""

import pytest

from zkmail.gadgets import (
    ConstraintRecorder,
    num2bits,
    one_hot_selector,
    pin_constants,
    poseidon,
    substring_match,
    value_of,
)
from zkmail.params import FIELD_MODULUS
from zkmail.poseidon import hash2


class TestConstraintRecorder:
    def test_private_values_reduced_into_field(self):
        rec = ConstraintRecorder()

        assert value_of(rec.private(FIELD_MODULUS + 5)) == 5
        assert value_of(rec.private(-1)) == FIELD_MODULUS - 1

    def test_mul_reduces_product(self):
        rec = ConstraintRecorder()
        a = rec.private(FIELD_MODULUS - 1)

        product = rec.mul(a, a, "square")

        assert value_of(product) == 1
        assert rec.satisfied
        assert rec.multiplications == 1

    def test_mul_constant_folds(self):
        rec = ConstraintRecorder()

        assert rec.mul(3, 4, "const") == 12
        assert rec.constraints == 0

    def test_assert_equal_reports_label(self):
        rec = ConstraintRecorder()

        rec.assert_equal(rec.private(3), 4, "three is four")

        assert rec.failed == ["three is four"]
        assert rec.assertions == 0

    def test_assert_equal_modulo_field(self):
        rec = ConstraintRecorder()

        rec.assert_equal(rec.private(2) + FIELD_MODULUS, 2, "wraps")

        assert rec.satisfied
        assert rec.assertions == 1

    def test_limit_caps_reported_failures(self):
        rec = ConstraintRecorder(limit=2)
        x = rec.private(1)

        for i in range(5):
            rec.assert_equal(x, 0, f"c{i}")

        assert rec.failed == ["c0", "c1"]

    def test_assert_bool(self):
        rec = ConstraintRecorder()

        rec.assert_bool(rec.private(0), "zero")
        rec.assert_bool(rec.private(1), "one")
        rec.assert_bool(rec.private(2), "two")

        assert rec.failed == ["two boolean"]


class TestGadgets:
    def test_num2bits_accepts_byte(self):
        rec = ConstraintRecorder()

        bits = num2bits(rec, rec.private(0b10100101), 8, "v")

        assert [value_of(b) for b in bits] == [1, 0, 1, 0, 0, 1, 0, 1]
        assert rec.satisfied
        assert rec.multiplications == 8
        assert rec.assertions == 9

    @pytest.mark.parametrize("value", [256, 1000, FIELD_MODULUS - 1])
    def test_num2bits_rejects_out_of_range(self, value):
        rec = ConstraintRecorder()

        num2bits(rec, rec.private(value), 8, "v")

        assert rec.failed == ["v recomposition"]

    def test_poseidon_gadget_matches_native_hash(self):
        rec = ConstraintRecorder()

        out = poseidon(rec, [rec.private(1), rec.private(2)], "h")

        assert value_of(out) == hash2(1, 2)
        assert rec.satisfied

    def test_poseidon_gadget_with_constant_input(self):
        rec = ConstraintRecorder()

        out = poseidon(rec, [0, rec.private(7)], "h")

        assert value_of(out) == hash2(0, 7)
        assert rec.satisfied

    def _selector_run(self, text, selector, pattern=b"ab", window=range(0, 5)):
        rec = ConstraintRecorder(limit=None)
        sel = [rec.private(v) for v in selector]
        one_hot_selector(rec, sel, window, "sel")
        substring_match(
            rec,
            [rec.private(v) for v in text],
            [rec.private(v) for v in pattern],
            sel,
            window,
            "match",
        )
        return rec

    def test_selector_accepts_true_offset(self):
        rec = self._selector_run(b"xxabxx", [0, 0, 1, 0, 0, 0])

        assert rec.satisfied

    @pytest.mark.parametrize(
        "selector, label",
        [
            ([0, 1, 0, 0, 0, 0], "match[1][0]"),  # wrong offset
            ([0, 0, 1, 1, 0, 0], "sel one-hot"),  # two ones
            ([0, 0, 0, 0, 0, 0], "sel one-hot"),  # no one
            ([0, 0, 2, 0, 0, 0], "sel[2] boolean"),  # not boolean
            ([0, 0, 0, 0, 0, 1], "sel[5] outside window"),
        ],
    )
    def test_selector_rejects_bad_selector(self, selector, label):
        rec = self._selector_run(b"xxabxx", selector)

        assert label in rec.failed

    def test_match_at_buffer_edges(self):
        assert self._selector_run(b"abxxxx", [1, 0, 0, 0, 0, 0]).satisfied
        assert self._selector_run(b"xxxxab", [0, 0, 0, 0, 1, 0]).satisfied

    def test_pin_constants(self):
        rec = ConstraintRecorder()
        signals = [rec.private(v) for v in b"To:"]

        pin_constants(rec, signals, list(b"Cc:"), "pattern_to")

        assert rec.failed == ["pattern_to[0] constant", "pattern_to[1] constant"]

    def test_pin_constants_length_mismatch(self):
        rec = ConstraintRecorder()

        with pytest.raises(ValueError, match="pattern_to"):
            pin_constants(rec, [rec.private(1)], [1, 2], "pattern_to")
