"""
Email receiver circuit

Public input:
    commitment - chunked Poseidon commitment of the buffer

Private inputs:
    buffer[max_len]           - padded message bytes
    pattern_<name>[len]       - pattern bytes, one array per pattern
    selector_<name>[max_len]  - one-hot start offset, one array per pattern

Constraints:
    1. every buffer byte is an 8-bit value, the chunked commitment of the
       buffer equals ``commitment``
    2. each selector is one-hot within its pattern's valid window and
       selects an offset where the buffer equals the pattern
    3. (optional, on by default) pattern signals equal the configured literals

The circuit is expressed with pysnark values: each evaluation wraps the
assignment in ``PrivVal`` / ``PubVal`` and runs the gadgets over them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .assignment import Assignment, pattern_signal, selector_signal
from .gadgets import (
    ConstraintRecorder,
    chunked_commitment,
    one_hot_selector,
    pin_constants,
    substring_match,
    value_of,
)
from .params import CIRCUIT_NAME, REFERENCE_PARAMS, CircuitParams
from .poseidon import poseidon_params

logger = logging.getLogger(__name__)


def estimate_constraints(params: CircuitParams, pin_patterns: bool = True) -> int:
    """Constraint count of the compiled circom circuit for ``params``"""
    poseidon = poseidon_params(3)
    sboxes = poseidon.full_rounds * poseidon.t + poseidon.partial_rounds
    per_hash = 3 * sboxes + poseidon.total_rounds * poseidon.t

    total = params.max_len * 9 + params.chunk_count * per_hash + 1
    for p in params.patterns:
        window = len(params.valid_window(p))
        total += len(p) if pin_patterns else 0
        total += params.max_len + 1 + (params.max_len - window)
        total += window * len(p)
    return total


@dataclass
class CircuitRun:
    """Outcome of evaluating the circuit on one assignment"""

    failed: list[str] = field(default_factory=list)
    public_signals: list[int] = field(default_factory=list)
    multiplications: int = 0
    assertions: int = 0

    @property
    def satisfied(self) -> bool:
        return not self.failed

    @property
    def constraints(self) -> int:
        return self.multiplications + self.assertions


class EmailCircuit:
    def __init__(self, params: CircuitParams = REFERENCE_PARAMS, pin_patterns: bool = True):
        self.params = params
        self.pin_patterns = pin_patterns

    def _inputs(self, assignment: Assignment) -> dict[str, Any]:
        values = assignment.to_signal_values()
        expected = {"commitment": None, "buffer": self.params.max_len}
        for p in self.params.patterns:
            expected[pattern_signal(p.name)] = len(p)
            expected[selector_signal(p.name)] = self.params.max_len

        for name, size in expected.items():
            if name not in values:
                raise KeyError(f"Missing input signal: {name}")
            if size is not None and len(values[name]) != size:
                raise ValueError(
                    f"Input {name} expects {size} values, got {len(values[name])}"
                )
        return values

    def evaluate(self, assignment: Assignment, limit: int | None = 10) -> CircuitRun:
        """Run the circuit on ``assignment`` and collect violated constraints"""
        values = self._inputs(assignment)
        params = self.params
        rec = ConstraintRecorder(limit=limit)

        commitment = rec.public(values["commitment"])
        buffer = [rec.private(v) for v in values["buffer"]]
        patterns = {
            p.name: [rec.private(v) for v in values[pattern_signal(p.name)]]
            for p in params.patterns
        }
        selectors = {
            p.name: [rec.private(v) for v in values[selector_signal(p.name)]]
            for p in params.patterns
        }

        digest = chunked_commitment(rec, buffer, params, "commitment")
        rec.assert_equal(commitment, digest, "commitment matches")

        for p in params.patterns:
            window = params.valid_window(p)
            if self.pin_patterns:
                pin_constants(rec, patterns[p.name], p.values, pattern_signal(p.name))
            one_hot_selector(rec, selectors[p.name], window, selector_signal(p.name))
            substring_match(
                rec, buffer, patterns[p.name], selectors[p.name], window, f"match_{p.name}"
            )

        run = CircuitRun(
            failed=rec.failed,
            public_signals=[value_of(commitment)],
            multiplications=rec.multiplications,
            assertions=rec.assertions,
        )
        logger.info(
            f"EmailCircuit evaluated (max_len={params.max_len}, "
            f"constraints={run.constraints}, failed={len(run.failed)})"
        )
        return run

    def unsatisfied(self, assignment: Assignment, limit: int | None = 10) -> list[str]:
        """Labels of constraints violated by ``assignment`` (empty when accepted)"""
        return self.evaluate(assignment, limit=limit).failed

    def is_satisfied(self, assignment: Assignment) -> bool:
        return not self.unsatisfied(assignment, limit=1)

    def public_signals(self, assignment: Assignment) -> list[int]:
        return self.evaluate(assignment).public_signals

    def stats(self) -> dict[str, Any]:
        return {
            "name": CIRCUIT_NAME,
            **self.params.describe(),
            "pin_patterns": self.pin_patterns,
            "circom_constraints": estimate_constraints(self.params, self.pin_patterns),
        }
