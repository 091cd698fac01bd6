"""
Input Builder

Turns a raw byte buffer (typically an .eml file) into the exact assignment the
email receiver circuit expects:

1. Truncate/pad the input to ``max_len`` bytes
2. Find the first occurrence of every pattern in the padded buffer
3. Build one-hot selectors and validate each offset against its window
4. Fold the padded buffer into the Poseidon commitment
5. Emit the Assignment

The builder is a pure function of its input and parameters; calling it twice
on the same bytes yields equal assignments.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

import numpy as np

from .assignment import Assignment
from .encoding import compute_commitment, pad_buffer
from .exceptions import PatternNotFound, SelectorWindowViolation
from .params import REFERENCE_PARAMS, CircuitParams, Pattern

logger = logging.getLogger(__name__)


def find_first(buffer: bytes, pattern: Pattern) -> int:
    """Offset of the first occurrence of ``pattern`` in ``buffer``, or -1"""
    return buffer.find(pattern.literal)


def one_hot(length: int, index: int) -> np.ndarray:
    vector = np.zeros(length, dtype=np.uint8)
    vector[index] = 1
    return vector


class InputBuilder:
    """Builds circuit assignments for one fixed set of circuit parameters"""

    def __init__(self, params: CircuitParams = REFERENCE_PARAMS):
        self.params = params

    def pad(self, raw: Iterable[int]) -> np.ndarray:
        return pad_buffer(raw, self.params.max_len)

    def locate(self, buffer: bytes) -> dict[str, int]:
        """Offsets of every pattern in the padded buffer

        Raises:
            PatternNotFound: for the first pattern (in parameter order) that is absent
            SelectorWindowViolation: if an offset falls outside its valid window
        """
        offsets = {}
        for pattern in self.params.patterns:
            offset = find_first(buffer, pattern)
            if offset < 0:
                logger.warning(f"Pattern {pattern.text!r} not found in buffer")
                raise PatternNotFound(pattern.text)

            window = self.params.valid_window(pattern)
            if offset not in window:
                raise SelectorWindowViolation(pattern.text, offset, window)

            offsets[pattern.name] = offset
        return offsets

    def build(self, raw: Iterable[int]) -> Assignment:
        """Build the assignment for ``raw`` bytes"""
        padded = self.pad(raw)
        buffer = padded.tobytes()

        # Search before hashing: a missing pattern makes the proof impossible
        offsets = self.locate(buffer)

        selectors = {
            name: tuple(one_hot(self.params.max_len, offset).tolist())
            for name, offset in offsets.items()
        }
        commitment = compute_commitment(padded, self.params)

        logger.info(
            f"Built assignment: commitment={commitment}, "
            f"offsets={', '.join(f'{k}@{v}' for k, v in offsets.items())}"
        )

        return Assignment(
            commitment=commitment,
            buffer=tuple(padded.tolist()),
            patterns={p.name: tuple(p.values) for p in self.params.patterns},
            selectors=selectors,
            offsets=offsets,
        )

    def build_from_file(self, path: str | Path) -> Assignment:
        path = Path(path)
        logger.info(f"Reading {path} ({path.stat().st_size} bytes)")
        return self.build(path.read_bytes())


def build(raw: Iterable[int], params: CircuitParams = REFERENCE_PARAMS) -> Assignment:
    """Build an assignment with the given (default: reference) parameters"""
    return InputBuilder(params).build(raw)
