"""
Poseidon hash over the BN254 scalar field

This is the same instance circomlib's ``Poseidon(n)`` template and
circomlibjs ``buildPoseidon()`` implement: x^5 S-box, 8 full rounds, a
width-dependent number of partial rounds, round constants and a Cauchy MDS
matrix drawn from the Grain LFSR of the Poseidon reference parameter script.

The same parameters are consumed in two places:
1. ``poseidon_hash`` below, used off-circuit by the input builder
2. ``zkmail.gadgets.poseidon``, which lays the permutation out as constraints
"""

import logging
from collections import deque
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from functools import lru_cache

from .params import FIELD_MODULUS

logger = logging.getLogger(__name__)

FULL_ROUNDS = 8
ALPHA = 5

# Partial rounds for state width t = 2 .. 17 (circomlib N_ROUNDS_P)
PARTIAL_ROUNDS = [56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68]


@dataclass(frozen=True)
class PoseidonParams:
    """Round constants and MDS matrix for one state width"""

    t: int
    full_rounds: int
    partial_rounds: int
    round_constants: tuple[int, ...]
    mds: tuple[tuple[int, ...], ...]

    @property
    def total_rounds(self) -> int:
        return self.full_rounds + self.partial_rounds

    def is_full_round(self, r: int) -> bool:
        half = self.full_rounds // 2
        return r < half or r >= half + self.partial_rounds

    def round_constants_for(self, r: int) -> tuple[int, ...]:
        return self.round_constants[r * self.t : (r + 1) * self.t]


def _to_bits(value: int, width: int) -> list[int]:
    return [int(b) for b in bin(value)[2:].zfill(width)]


def _grain_stream(field_size: int, t: int, full_rounds: int, partial_rounds: int) -> Iterator[int]:
    """Self-shrinking Grain LFSR from the Poseidon parameter generation script"""
    state = deque(
        _to_bits(1, 2)  # prime field
        + _to_bits(0, 4)  # x^alpha S-box
        + _to_bits(field_size, 12)
        + _to_bits(t, 12)
        + _to_bits(full_rounds, 10)
        + _to_bits(partial_rounds, 10)
        + [1] * 30
    )

    def step() -> int:
        bit = state[62] ^ state[51] ^ state[38] ^ state[23] ^ state[13] ^ state[0]
        state.popleft()
        state.append(bit)
        return bit

    for _ in range(160):
        step()

    while True:
        # Bits come in pairs; the second is kept only if the first is 1
        bit = step()
        while bit == 0:
            step()
            bit = step()
        yield step()


def _take_int(stream: Iterator[int], num_bits: int) -> int:
    value = 0
    for _ in range(num_bits):
        value = (value << 1) | next(stream)
    return value


@lru_cache(maxsize=None)
def poseidon_params(t: int) -> PoseidonParams:
    """Generate (once) the Poseidon parameters for state width ``t``"""
    if not 2 <= t <= len(PARTIAL_ROUNDS) + 1:
        raise ValueError(f"Unsupported Poseidon width: {t}")

    p = FIELD_MODULUS
    n = p.bit_length()
    partial_rounds = PARTIAL_ROUNDS[t - 2]
    stream = _grain_stream(n, t, FULL_ROUNDS, partial_rounds)

    constants = []
    for _ in range((FULL_ROUNDS + partial_rounds) * t):
        value = _take_int(stream, n)
        while value >= p:
            value = _take_int(stream, n)
        constants.append(value)

    while True:
        candidates = [_take_int(stream, n) % p for _ in range(2 * t)]
        while len(set(candidates)) != len(candidates):
            candidates = [_take_int(stream, n) % p for _ in range(2 * t)]
        xs, ys = candidates[:t], candidates[t:]
        if any((x + y) % p == 0 for x in xs for y in ys):
            continue
        mds = tuple(tuple(pow(x + y, -1, p) for y in ys) for x in xs)
        break

    logger.debug(
        f"Generated Poseidon parameters t={t} (RF={FULL_ROUNDS}, RP={partial_rounds})"
    )
    return PoseidonParams(
        t=t,
        full_rounds=FULL_ROUNDS,
        partial_rounds=partial_rounds,
        round_constants=tuple(constants),
        mds=mds,
    )


def poseidon_permutation(state: Sequence[int], params: PoseidonParams) -> list[int]:
    p = FIELD_MODULUS
    state = [s % p for s in state]
    if len(state) != params.t:
        raise ValueError(f"State width {len(state)} does not match t={params.t}")

    for r in range(params.total_rounds):
        rc = params.round_constants_for(r)
        state = [(s + c) % p for s, c in zip(state, rc)]
        if params.is_full_round(r):
            state = [pow(s, ALPHA, p) for s in state]
        else:
            state[0] = pow(state[0], ALPHA, p)
        state = [
            sum(m * s for m, s in zip(row, state)) % p for row in params.mds
        ]

    return state


def poseidon_hash(inputs: Sequence[int]) -> int:
    """Poseidon hash of ``inputs`` (capacity element 0 first, output lane 0)"""
    params = poseidon_params(len(inputs) + 1)
    return poseidon_permutation([0, *inputs], params)[0]


def hash2(left: int, right: int) -> int:
    """Two-to-one Poseidon compression used by the commitment fold"""
    return poseidon_hash([left, right])
