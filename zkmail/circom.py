"""
Circom source for the email receiver circuit

Renders the same constraint topology as ``zkmail.circuit.EmailCircuit`` as a
Circom 2 program, parameterised by CircuitParams. Signal names match
``zkmail.assignment.signal_order`` so the builder's ``input.json`` feeds the
compiled witness calculator directly.
"""

import logging
from pathlib import Path

from .assignment import pattern_signal, selector_signal
from .params import CIRCUIT_NAME, REFERENCE_PARAMS, CircuitParams

logger = logging.getLogger(__name__)

CIRCOM_VERSION = "2.1.6"

_COMMITMENT_TEMPLATE = [
    "template ChunkedCommitment(MAX_LEN, CHUNK_SIZE) {",
    "    var CHUNKS = (MAX_LEN + CHUNK_SIZE - 1) \\ CHUNK_SIZE;",
    "    signal input bytes[MAX_LEN];",
    "    signal output out;",
    "",
    "    // Range-check every byte before it is packed",
    "    component bits[MAX_LEN];",
    "    for (var i = 0; i < MAX_LEN; i++) {",
    "        bits[i] = Num2Bits(8);",
    "        bits[i].in <== bytes[i];",
    "    }",
    "",
    "    signal acc[CHUNKS + 1];",
    "    component hashers[CHUNKS];",
    "    acc[0] <== 0;",
    "    for (var k = 0; k < CHUNKS; k++) {",
    "        var chunk = 0;",
    "        var weight = 1;",
    "        for (var i = 0; i < CHUNK_SIZE; i++) {",
    "            if (k * CHUNK_SIZE + i < MAX_LEN) {",
    "                chunk += bytes[k * CHUNK_SIZE + i] * weight;",
    "            }",
    "            weight *= 256;",
    "        }",
    "        hashers[k] = Poseidon(2);",
    "        hashers[k].inputs[0] <== acc[k];",
    "        hashers[k].inputs[1] <== chunk;",
    "        acc[k + 1] <== hashers[k].out;",
    "    }",
    "    out <== acc[CHUNKS];",
    "}",
]

_MATCH_TEMPLATE = [
    "template SubstringMatch(MAX_LEN, PAT_LEN) {",
    "    signal input text[MAX_LEN];",
    "    signal input pattern[PAT_LEN];",
    "    signal input sel[MAX_LEN];",
    "",
    "    var LAST = MAX_LEN - PAT_LEN;",
    "    var total = 0;",
    "    for (var t = 0; t < MAX_LEN; t++) {",
    "        sel[t] * (sel[t] - 1) === 0;",
    "        if (t <= LAST) {",
    "            total += sel[t];",
    "        } else {",
    "            sel[t] === 0;",
    "        }",
    "    }",
    "    total === 1;",
    "",
    "    // Degree-2 match: sel[t] * (text[t + i] - pattern[i]) == 0",
    "    for (var t = 0; t <= LAST; t++) {",
    "        for (var i = 0; i < PAT_LEN; i++) {",
    "            sel[t] * (text[t + i] - pattern[i]) === 0;",
    "        }",
    "    }",
    "}",
]


def template_name() -> str:
    return "".join(part.capitalize() for part in CIRCUIT_NAME.split("_"))


def render_circuit(params: CircuitParams = REFERENCE_PARAMS, pin_patterns: bool = True) -> str:
    """Circom source text for ``params``"""
    main = template_name()
    lines = [
        f"pragma circom {CIRCOM_VERSION};",
        "// Email receiver circuit: chunked Poseidon commitment + fixed pattern presence",
        "",
        'include "circomlib/circuits/poseidon.circom";',
        'include "circomlib/circuits/bitify.circom";',
        "",
        *_COMMITMENT_TEMPLATE,
        "",
        *_MATCH_TEMPLATE,
        "",
        f"template {main}(MAX_LEN, CHUNK_SIZE) {{",
        "    signal input commitment;",
        "    signal input buffer[MAX_LEN];",
    ]
    for p in params.patterns:
        lines.append(f"    signal input {pattern_signal(p.name)}[{len(p)}];")
    for p in params.patterns:
        lines.append(f"    signal input {selector_signal(p.name)}[MAX_LEN];")

    lines += [
        "",
        "    component commit = ChunkedCommitment(MAX_LEN, CHUNK_SIZE);",
        "    for (var i = 0; i < MAX_LEN; i++) {",
        "        commit.bytes[i] <== buffer[i];",
        "    }",
        "    commit.out === commitment;",
    ]

    for p in params.patterns:
        pattern, selector = pattern_signal(p.name), selector_signal(p.name)
        lines += ["", f"    // {p.text}"]
        if pin_patterns:
            lines += [
                f"    {pattern}[{i}] === {value};" for i, value in enumerate(p.values)
            ]
        lines += [
            f"    component match_{p.name} = SubstringMatch(MAX_LEN, {len(p)});",
            "    for (var i = 0; i < MAX_LEN; i++) {",
            f"        match_{p.name}.text[i] <== buffer[i];",
            f"        match_{p.name}.sel[i] <== {selector}[i];",
            "    }",
            f"    for (var i = 0; i < {len(p)}; i++) {{",
            f"        match_{p.name}.pattern[i] <== {pattern}[i];",
            "    }",
        ]

    lines += [
        "}",
        "",
        f"component main {{public [commitment]}} = {main}({params.max_len}, {params.chunk_size});",
    ]
    return "\n".join(lines) + "\n"


def write_circuit(
    circuit_path: str | Path,
    params: CircuitParams = REFERENCE_PARAMS,
    pin_patterns: bool = True,
) -> Path:
    """Write the circom source and check it landed intact"""
    circuit_path = Path(circuit_path)
    circuit_path.parent.mkdir(parents=True, exist_ok=True)

    with open(circuit_path, "w", newline="\n") as f:
        f.write(render_circuit(params, pin_patterns))

    with open(circuit_path, "rb") as f:
        content = f.read()

    if content.startswith(f"pragma circom {CIRCOM_VERSION};\n//".encode()):
        logger.info(f"✓ Circuit written and verified: {circuit_path}")
    else:
        raise RuntimeError(
            f"Circuit file has incorrect format! First 100 bytes: {content[:100]}"
        )
    return circuit_path
