"""
Circuit assignment: the complete input signal set for one proof attempt

Signal names and order are part of the backend contract:

    commitment, buffer,
    pattern_<name> for each pattern (in parameter order),
    selector_<name> for each pattern (in parameter order)

A misordered or misnamed signal still produces a witness, just for a
different statement, so every consumer goes through ``to_signal_values``.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .params import CircuitParams


def pattern_signal(name: str) -> str:
    return f"pattern_{name}"


def selector_signal(name: str) -> str:
    return f"selector_{name}"


def signal_order(params: CircuitParams) -> list[str]:
    """Input signal names in declaration order"""
    names = ["commitment", "buffer"]
    names += [pattern_signal(p.name) for p in params.patterns]
    names += [selector_signal(p.name) for p in params.patterns]
    return names


@dataclass(frozen=True)
class Assignment:
    """Public commitment plus every private input of the circuit"""

    commitment: int
    buffer: tuple[int, ...]
    patterns: dict[str, tuple[int, ...]]
    selectors: dict[str, tuple[int, ...]]
    offsets: dict[str, int] = field(default_factory=dict)

    def pattern_offset(self, name: str) -> int:
        """Start offset of ``name`` (position of the 1 in its selector)"""
        if name in self.offsets:
            return self.offsets[name]
        return self.selectors[name].index(1)

    def to_signal_values(self) -> dict[str, Any]:
        """Integer signal values keyed by signal name, in declaration order"""
        values: dict[str, Any] = {
            "commitment": self.commitment,
            "buffer": list(self.buffer),
        }
        for name, pattern in self.patterns.items():
            values[pattern_signal(name)] = list(pattern)
        for name, selector in self.selectors.items():
            values[selector_signal(name)] = list(selector)
        return values

    def to_circuit_inputs(self) -> dict[str, Any]:
        """``input.json`` payload for the witness calculator (decimal strings)"""

        def encode(value):
            if isinstance(value, list):
                return [str(v) for v in value]
            return str(value)

        return {k: encode(v) for k, v in self.to_signal_values().items()}

    def public_inputs(self) -> list[str]:
        return [str(self.commitment)]

    def to_json(self) -> str:
        return json.dumps(self.to_circuit_inputs())

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_circuit_inputs(), f)
        return path

    @classmethod
    def from_dict(cls, data: dict[str, Any], params: CircuitParams) -> "Assignment":
        missing = [name for name in signal_order(params) if name not in data]
        if missing:
            raise KeyError(f"Missing signals: {', '.join(missing)}")

        def ints(values) -> tuple[int, ...]:
            return tuple(int(v) for v in values)

        return cls(
            commitment=int(data["commitment"]),
            buffer=ints(data["buffer"]),
            patterns={
                p.name: ints(data[pattern_signal(p.name)]) for p in params.patterns
            },
            selectors={
                p.name: ints(data[selector_signal(p.name)]) for p in params.patterns
            },
        )

    @classmethod
    def from_json(cls, text: str, params: CircuitParams) -> "Assignment":
        return cls.from_dict(json.loads(text), params)

    @classmethod
    def load(cls, path: str | Path, params: CircuitParams) -> "Assignment":
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f), params)
