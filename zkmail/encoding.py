"""
Buffer encoding shared by the input builder, the pysnark circuit and the
circom renderer

Everything that decides how bytes become the public commitment lives here:
padding policy, chunk boundaries, little-endian chunk weights and fold order.
The builder and the circuit both import these helpers instead of carrying
their own copies.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from itertools import islice

import numpy as np

from .exceptions import ByteOutOfRange
from .params import CircuitParams
from .poseidon import hash2

logger = logging.getLogger(__name__)

COMMITMENT_SEED = 0


def validate_bytes(values: Iterable[int]) -> list[int]:
    """Return ``values`` as a list of ints, rejecting anything outside [0, 255]"""
    if isinstance(values, (bytes, bytearray, memoryview)):
        return list(bytes(values))
    if isinstance(values, np.ndarray) and values.dtype == np.uint8:
        return values.tolist()

    result = []
    for index, value in enumerate(values):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise ByteOutOfRange(index, value)
        if not 0 <= int(value) <= 255:
            raise ByteOutOfRange(index, value)
        result.append(int(value))
    return result


def truncate(raw: Iterable[int], max_len: int) -> Iterable[int]:
    """First ``max_len`` items of ``raw``; later items are never read"""
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw[:max_len])
    if isinstance(raw, (np.ndarray, Sequence)):
        return raw[:max_len]
    return islice(raw, max_len)


def pad_buffer(raw: Iterable[int], max_len: int) -> np.ndarray:
    """Truncate or right-pad ``raw`` with zeros to exactly ``max_len`` bytes

    Only the bytes that survive truncation are validated.
    """
    values = validate_bytes(truncate(raw, max_len))
    buffer = np.zeros(max_len, dtype=np.uint8)
    buffer[: len(values)] = values
    return buffer


def chunk_weights(chunk_size: int) -> list[int]:
    """Positional weights of a chunk: byte i contributes byte * 256**i"""
    return [256**i for i in range(chunk_size)]


def chunk_bounds(params: CircuitParams) -> Iterator[tuple[int, int]]:
    """Yield ``(start, stop)`` buffer offsets of each chunk, in fold order

    The final chunk stops at ``max_len``; its missing tail counts as zero.
    """
    for start in range(0, params.max_len, params.chunk_size):
        yield start, min(start + params.chunk_size, params.max_len)


def pack_chunk(chunk: Sequence[int], chunk_size: int) -> int:
    """Encode up to ``chunk_size`` bytes as one field element (little-endian)"""
    if len(chunk) > chunk_size:
        raise ValueError(f"Chunk of {len(chunk)} bytes exceeds {chunk_size}")
    values = validate_bytes(chunk)
    return sum(b * w for b, w in zip(values, chunk_weights(chunk_size)))


def chunk_elements(buffer: Sequence[int], params: CircuitParams) -> list[int]:
    """Field-element encodings of every chunk of a padded buffer"""
    if len(buffer) != params.max_len:
        raise ValueError(
            f"Buffer length {len(buffer)} does not match max_len={params.max_len}"
        )
    values = validate_bytes(buffer)
    return [
        pack_chunk(values[start:stop], params.chunk_size)
        for start, stop in chunk_bounds(params)
    ]


def fold_commitment(elements: Iterable[int]) -> int:
    """h_0 = 0, h_{i+1} = Poseidon(h_i, chunk_i); returns the final accumulator"""
    h = COMMITMENT_SEED
    for element in elements:
        h = hash2(h, element)
    return h


def compute_commitment(buffer: Sequence[int], params: CircuitParams) -> int:
    """Commitment of an already padded buffer"""
    elements = chunk_elements(buffer, params)
    commitment = fold_commitment(elements)
    logger.debug(f"Folded {len(elements)} chunks into commitment {commitment}")
    return commitment
