"""
zkmail

Zero-knowledge proofs that a committed email buffer contains the expected
sender, recipient and domain markers.

Main components:
- InputBuilder: turns .eml bytes into a padded buffer, one-hot selectors and
  the chunked Poseidon commitment
- EmailCircuit: the receiver circuit evaluated on pysnark
- render_circuit / write_circuit: the same circuit as circom source
- SnarkjsProofManager: Groth16 setup, proving and verification via snarkjs
- Groth16Verifier: native pairing-based verification with py_ecc

Example usage:
    from zkmail import InputBuilder, EmailCircuit, REFERENCE_PARAMS

    assignment = InputBuilder(REFERENCE_PARAMS).build_from_file("mail.eml")
    print(assignment.commitment)

    # Prove with snarkjs (needs circom, snarkjs and a ptau file)
    from zkmail import SnarkjsProofManager

    manager = SnarkjsProofManager()
    artifact = manager.prove_file("mail.eml")
    assert manager.verify_proof(artifact)
"""

from ._version import __version__, get_build_info, print_version_info
from .assignment import Assignment, signal_order
from .builder import InputBuilder, build
from .circom import render_circuit, write_circuit
from .circuit import CircuitRun, EmailCircuit, estimate_constraints
from .config import ZKMailConfig, get_config
from .encoding import compute_commitment, pad_buffer
from .exceptions import (
    BackendError,
    BuildError,
    ByteOutOfRange,
    ConfigError,
    PatternNotFound,
    SelectorWindowViolation,
    ZKMailError,
)
from .params import (
    CHUNK_SIZE,
    DEFAULT_PATTERNS,
    FIELD_MODULUS,
    MAX_LEN,
    REFERENCE_PARAMS,
    CircuitParams,
    Pattern,
)
from .poseidon import poseidon_hash
from .proof_manager import ProofArtifact, ProofManagerBase, SnarkjsProofManager
from .verifier import Groth16Verifier, VerificationKey

__title__ = "zkmail"
__description__ = "Zero-knowledge proofs of email receipt over chunked Poseidon commitments"
__license__ = "MIT"

__all__ = [
    # Version information
    "__version__",
    "get_build_info",
    "print_version_info",
    # Parameters
    "CHUNK_SIZE",
    "MAX_LEN",
    "FIELD_MODULUS",
    "DEFAULT_PATTERNS",
    "REFERENCE_PARAMS",
    "CircuitParams",
    "Pattern",
    # Builder
    "Assignment",
    "InputBuilder",
    "build",
    "signal_order",
    "pad_buffer",
    "compute_commitment",
    "poseidon_hash",
    # Circuit
    "CircuitRun",
    "EmailCircuit",
    "estimate_constraints",
    "render_circuit",
    "write_circuit",
    # Proving
    "ProofArtifact",
    "ProofManagerBase",
    "SnarkjsProofManager",
    "Groth16Verifier",
    "VerificationKey",
    # Configuration
    "ZKMailConfig",
    "get_config",
    # Errors
    "ZKMailError",
    "ConfigError",
    "BuildError",
    "ByteOutOfRange",
    "PatternNotFound",
    "SelectorWindowViolation",
    "BackendError",
]


def print_system_info():
    """Print system information and component status"""
    import subprocess

    print(f"zkmail v{__version__}")
    print(f"Description: {__description__}")
    print()

    params = REFERENCE_PARAMS
    print("Reference circuit:")
    print(f"  max_len: {params.max_len} bytes")
    print(f"  chunks: {params.chunk_count} x {params.chunk_size} bytes")
    print(f"  patterns: {', '.join(p.text for p in params.patterns)}")
    print(f"  constraints: ~{estimate_constraints(params):,}")
    print()

    components = {"Node.js": False, "Circom": False, "SnarkJS": False}
    commands = {
        "Node.js": ["node", "--version"],
        "Circom": ["circom", "--version"],
        "SnarkJS": ["snarkjs", "--help"],
    }

    for component, command in commands.items():
        try:
            result = subprocess.run(command, capture_output=True, text=True, timeout=5)
            if component == "SnarkJS":
                components[component] = "snarkjs@" in result.stdout + result.stderr
            else:
                components[component] = result.returncode == 0
        except (subprocess.SubprocessError, OSError):
            pass

    print("Component Status:")
    for component, available in components.items():
        status = "✓ Available" if available else "✗ Not Found"
        print(f"  {component}: {status}")

    print()
    print("Note: Circom and SnarkJS are required for proof generation;")
    print("native verification only needs py_ecc")
