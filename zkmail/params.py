"""
Circuit parameters shared by the input builder, the pysnark circuit and
the circom renderer.

All sizes are fixed at construction time. Two different parameter sets can
live side by side in one process (e.g. a small test circuit and the 8192-byte
reference circuit), nothing here is global mutable state.
"""

import math
from dataclasses import dataclass, field

from py_ecc.bn128 import curve_order

# BN254 scalar field, the native field of circom/snarkjs
FIELD_MODULUS = curve_order

CIRCUIT_NAME = "eml_receiver"
CHUNK_SIZE = 31
MAX_LEN = 8192


@dataclass(frozen=True)
class Pattern:
    """A fixed byte pattern that must occur somewhere in the buffer"""

    name: str
    literal: bytes

    def __post_init__(self):
        if not self.name.isidentifier():
            raise ValueError(f"Pattern name must be an identifier: {self.name!r}")
        if len(self.literal) == 0:
            raise ValueError(f"Pattern {self.name!r} is empty")

    def __len__(self) -> int:
        return len(self.literal)

    @property
    def values(self) -> list[int]:
        return list(self.literal)

    @property
    def text(self) -> str:
        return self.literal.decode("ascii", errors="replace")


DEFAULT_PATTERNS = (
    Pattern("from", b"From:"),
    Pattern("to", b"To:"),
    Pattern("domain", b"@gmail.com"),
)


@dataclass(frozen=True)
class CircuitParams:
    """Fixed-size configuration of one circuit variant.

    Args:
        max_len: Buffer length in bytes (inputs are padded/truncated to it)
        chunk_size: Bytes packed into one field element before hashing
        patterns: Ordered patterns; the order fixes signal order everywhere
    """

    max_len: int = MAX_LEN
    chunk_size: int = CHUNK_SIZE
    patterns: tuple[Pattern, ...] = field(default=DEFAULT_PATTERNS)

    def __post_init__(self):
        if self.max_len < 1:
            raise ValueError(f"max_len must be positive: {self.max_len}")

        # 256**chunk_size must stay below the field modulus so packing is injective
        if not 1 <= self.chunk_size or 256**self.chunk_size >= FIELD_MODULUS:
            raise ValueError(f"chunk_size out of range: {self.chunk_size}")

        names = [p.name for p in self.patterns]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate pattern names: {names}")

        for pattern in self.patterns:
            if len(pattern) > self.max_len:
                raise ValueError(
                    f"Pattern {pattern.name!r} ({len(pattern)} bytes) "
                    f"does not fit in max_len={self.max_len}"
                )

    @property
    def chunk_count(self) -> int:
        return math.ceil(self.max_len / self.chunk_size)

    def last_offset(self, pattern: Pattern) -> int:
        """Last valid start offset for ``pattern`` (inclusive)"""
        return self.max_len - len(pattern)

    def valid_window(self, pattern: Pattern) -> range:
        """Start offsets at which ``pattern`` fits inside the buffer"""
        return range(0, self.last_offset(pattern) + 1)

    def pattern(self, name: str) -> Pattern:
        for pattern in self.patterns:
            if pattern.name == name:
                return pattern
        raise KeyError(f"Unknown pattern: {name}")

    def describe(self) -> dict:
        return {
            "max_len": self.max_len,
            "chunk_size": self.chunk_size,
            "chunk_count": self.chunk_count,
            "patterns": {p.name: p.text for p in self.patterns},
        }


REFERENCE_PARAMS = CircuitParams()
