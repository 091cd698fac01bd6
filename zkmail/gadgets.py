"""
Constraint gadgets for the email receiver circuit, written on pysnark

pysnark records a rank-1 constraint for every product of two ``LinComb``
values and for every ``assert_zero``. Its runtime tracks exact integer
values, so every intermediate is kept in [0, p) by an explicit reduction:
for ``r = a * b mod p`` the recorded constraint is ``a * b - r - q * p == 0``,
which is the field constraint ``a * b == r`` because ``p`` vanishes in BN254.

Loop bounds depend only on the circuit parameters, never on witness values,
so every buffer yields the same constraint topology.
"""

import logging
from collections.abc import Sequence
from typing import Union

from pysnark.runtime import LinComb, PrivVal, PubVal

from .encoding import COMMITMENT_SEED, chunk_bounds, chunk_weights
from .params import FIELD_MODULUS, CircuitParams
from .poseidon import poseidon_params

logger = logging.getLogger(__name__)

Value = Union[LinComb, int]


def value_of(x: Value) -> int:
    return x.value if isinstance(x, LinComb) else int(x)


class ConstraintRecorder:
    """Runs gadgets on pysnark and keeps the labels of violated constraints

    A violated constraint is reported instead of handed to pysnark, so one
    evaluation lists every failure rather than stopping at the first.
    """

    def __init__(self, limit: int | None = None):
        self.limit = limit
        self.failed: list[str] = []
        self.multiplications = 0
        self.assertions = 0

    @property
    def constraints(self) -> int:
        return self.multiplications + self.assertions

    @property
    def satisfied(self) -> bool:
        return not self.failed

    def private(self, value: int) -> LinComb:
        return PrivVal(int(value) % FIELD_MODULUS)

    def public(self, value: int) -> LinComb:
        return PubVal(int(value) % FIELD_MODULUS)

    def _fail(self, label: str) -> None:
        if self.limit is None or len(self.failed) < self.limit:
            self.failed.append(label)
        logger.debug(f"Unsatisfied constraint: {label}")

    def assert_equal(self, left: Value, right: Value, label: str) -> None:
        if not isinstance(left, LinComb):
            left, right = right, left

        delta = value_of(left) - value_of(right)
        if delta % FIELD_MODULUS:
            self._fail(label)
            return
        if not isinstance(left, LinComb):
            return

        offset = delta // FIELD_MODULUS
        (left - right - offset * FIELD_MODULUS).assert_zero()
        self.assertions += 1

    def mul(self, a: Value, b: Value, label: str) -> Value:
        """``a * b mod p`` as a new private value"""
        if not isinstance(a, LinComb) and not isinstance(b, LinComb):
            return value_of(a) * value_of(b) % FIELD_MODULUS
        if not isinstance(a, LinComb):
            return self.reduce(b * value_of(a), label)
        if not isinstance(b, LinComb):
            return self.reduce(a * value_of(b), label)

        product = a * b
        self.multiplications += 1
        reduced = self.private(a.value * b.value)
        self.assert_equal(product, reduced, label)
        return reduced

    def reduce(self, x: Value, label: str) -> Value:
        """Linear combination ``x`` as a new private value in [0, p)"""
        if not isinstance(x, LinComb):
            return value_of(x) % FIELD_MODULUS
        reduced = self.private(x.value)
        self.assert_equal(x, reduced, label)
        return reduced

    def assert_product_zero(self, a: LinComb, b: LinComb, label: str) -> None:
        if a.value * b.value % FIELD_MODULUS:
            self._fail(label)
            return
        product = a * b
        self.multiplications += 1
        self.assert_equal(product, 0, label)

    def assert_bool(self, x: LinComb, label: str) -> None:
        self.assert_product_zero(x, x - 1, f"{label} boolean")


def num2bits(rec: ConstraintRecorder, value: LinComb, n: int, name: str) -> list[LinComb]:
    """Decompose ``value`` into ``n`` boolean signals (little-endian)

    Satisfiable only when ``value`` lies in [0, 2**n).
    """
    bits = []
    for i in range(n):
        bit = rec.private((value.value >> i) & 1)
        rec.assert_bool(bit, f"{name}.bits[{i}]")
        bits.append(bit)

    recomposed = sum(bit * (1 << i) for i, bit in enumerate(bits))
    rec.assert_equal(recomposed, value, f"{name} recomposition")
    return bits


def range_check_bytes(rec: ConstraintRecorder, values: Sequence[LinComb], name: str) -> None:
    for i, value in enumerate(values):
        num2bits(rec, value, 8, f"{name}[{i}]")


def _sbox(rec: ConstraintRecorder, x: Value, name: str) -> Value:
    # x^5 = ((x^2)^2) * x
    x2 = rec.mul(x, x, f"{name}.x2")
    x4 = rec.mul(x2, x2, f"{name}.x4")
    return rec.mul(x4, x, f"{name}.x5")


def poseidon(rec: ConstraintRecorder, inputs: Sequence[Value], name: str) -> Value:
    """In-circuit Poseidon permutation, same parameters as ``poseidon_hash``"""
    params = poseidon_params(len(inputs) + 1)
    state: list[Value] = [0, *inputs]

    for r in range(params.total_rounds):
        state = [s + c for s, c in zip(state, params.round_constants_for(r))]

        if params.is_full_round(r):
            state = [_sbox(rec, s, f"{name}.r{r}.s{j}") for j, s in enumerate(state)]
        else:
            state[0] = _sbox(rec, state[0], f"{name}.r{r}.s0")

        state = [
            rec.reduce(sum(s * m for s, m in zip(state, row)), f"{name}.r{r}.mix{j}")
            for j, row in enumerate(params.mds)
        ]

    return state[0]


def chunked_commitment(
    rec: ConstraintRecorder, buffer: Sequence[LinComb], params: CircuitParams, name: str
) -> Value:
    """Fold the range-checked buffer into its commitment

    Every byte is decomposed into bits first, then each chunk is packed
    little-endian and absorbed as ``h = Poseidon(h, chunk)`` starting from 0.
    """
    if len(buffer) != params.max_len:
        raise ValueError(f"Buffer has {len(buffer)} signals, expected {params.max_len}")

    range_check_bytes(rec, buffer, f"{name}.byte")

    weights = chunk_weights(params.chunk_size)
    h: Value = COMMITMENT_SEED
    for k, (start, stop) in enumerate(chunk_bounds(params)):
        chunk = sum(buffer[start + i] * weights[i] for i in range(stop - start))
        h = poseidon(rec, [h, chunk], f"{name}.h[{k}]")
    return h


def one_hot_selector(
    rec: ConstraintRecorder, selector: Sequence[LinComb], window: range, name: str
) -> None:
    """Boolean entries, exactly one 1 inside ``window``, zeros outside it"""
    for t, sel in enumerate(selector):
        rec.assert_bool(sel, f"{name}[{t}]")

    rec.assert_equal(sum(selector[t] for t in window), 1, f"{name} one-hot")

    for t in range(window.stop, len(selector)):
        rec.assert_equal(selector[t], 0, f"{name}[{t}] outside window")


def substring_match(
    rec: ConstraintRecorder,
    text: Sequence[LinComb],
    pattern: Sequence[LinComb],
    selector: Sequence[LinComb],
    window: range,
    name: str,
) -> None:
    """``selector[t] * (text[t + i] - pattern[i]) == 0`` for every (t, i)

    With a one-hot selector this pins the substring at the selected offset to
    the pattern using only degree-2 constraints.
    """
    for t in window:
        for i, pattern_byte in enumerate(pattern):
            rec.assert_product_zero(
                selector[t], text[t + i] - pattern_byte, f"{name}[{t}][{i}]"
            )


def pin_constants(
    rec: ConstraintRecorder, signals: Sequence[LinComb], values: Sequence[int], name: str
) -> None:
    if len(signals) != len(values):
        raise ValueError(f"{name}: {len(signals)} signals for {len(values)} values")
    for i, (signal, value) in enumerate(zip(signals, values)):
        rec.assert_equal(signal, value, f"{name}[{i}] constant")
