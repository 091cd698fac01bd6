"""
Proof Manager for the email receiver circuit

Drives the external proving backend (circom + snarkjs, Groth16) for one
circuit variant:

1. Circuit rendering, compilation and key setup
2. Proof generation from a builder Assignment
3. Proof verification (snarkjs, or natively through zkmail.verifier)

The manager owns the signal presentation: input.json is written from
``Assignment.to_circuit_inputs`` and the public output of every proof is
checked against the assignment's commitment before it is handed back.
"""

import hashlib
import json
import logging
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .assignment import Assignment
from .builder import InputBuilder
from .circom import write_circuit
from .config import ProverConfig
from .exceptions import BackendError
from .params import CIRCUIT_NAME, REFERENCE_PARAMS, CircuitParams
from .verifier import Groth16Verifier, VerificationKey

logger = logging.getLogger(__name__)


def run_backend(command: list[str], timeout: int) -> subprocess.CompletedProcess:
    """Run a backend command, raising BackendError with its stderr on failure"""
    logger.debug(f"Running: {' '.join(command)}")
    try:
        result = subprocess.run(command, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as e:
        raise BackendError(f"Backend tool not found: {command[0]}", command) from e
    except subprocess.TimeoutExpired as e:
        raise BackendError(f"Backend command timed out after {timeout}s", command) from e

    if result.returncode != 0:
        raise BackendError(
            f"Backend command failed: {' '.join(command[:3])}",
            command,
            result.returncode,
            (result.stderr or result.stdout or "").strip(),
        )
    return result


@dataclass
class ProofArtifact:
    """A proof plus the public commitment it attests to"""

    proof: dict[str, Any]
    public_signals: list[str]
    circuit: str = CIRCUIT_NAME
    proof_type: str = "groth16"
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @property
    def commitment(self) -> int:
        return int(self.public_signals[0])

    def to_dict(self) -> dict[str, Any]:
        return {
            "proof": self.proof,
            "publicSignals": self.public_signals,
            "circuit": self.circuit,
            "proofType": self.proof_type,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProofArtifact":
        return cls(
            proof=data["proof"],
            public_signals=[str(s) for s in data["publicSignals"]],
            circuit=data.get("circuit", CIRCUIT_NAME),
            proof_type=data.get("proofType", "groth16"),
            timestamp=data.get("timestamp", ""),
        )

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: str | Path) -> "ProofArtifact":
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))


class ProofManagerBase(ABC):
    """Base class for proof managers"""

    def __init__(self):
        self.setup_complete = False

    @abstractmethod
    def setup(self) -> bool:
        """Setup circuits and proving keys"""

    @abstractmethod
    def generate_proof(self, assignment: Assignment) -> ProofArtifact:
        """Generate a proof for a complete assignment"""

    @abstractmethod
    def verify_proof(self, artifact: ProofArtifact) -> bool:
        """Verify a proof against its public commitment"""

    def _hash_inputs(self, inputs: dict[str, Any]) -> str:
        """Create hash of inputs for request directory names"""
        input_str = json.dumps(inputs, sort_keys=True, default=str)
        return hashlib.sha256(input_str.encode()).hexdigest()


class SnarkjsProofManager(ProofManagerBase):
    """
    Groth16 proofs through circom and snarkjs

    Build layout (per circuit variant):
        <build_dir>/eml_receiver_<max_len>/
            eml_receiver.circom, eml_receiver.r1cs, eml_receiver_js/eml_receiver.wasm
            eml_receiver.zkey, verification_key.json
            requests/<hash>-XXXX/{input.json, witness.wtns, proof.json, public.json}
    """

    def __init__(
        self,
        params: CircuitParams = REFERENCE_PARAMS,
        config: ProverConfig | None = None,
        pin_patterns: bool = True,
    ):
        super().__init__()
        self.params = params
        self.config = config or ProverConfig()
        self.pin_patterns = pin_patterns
        self.builder = InputBuilder(params)

        self.circuit_dir = Path(self.config.build_dir) / f"{CIRCUIT_NAME}_{params.max_len}"
        self.circom_file = self.circuit_dir / f"{CIRCUIT_NAME}.circom"
        self.r1cs = self.circuit_dir / f"{CIRCUIT_NAME}.r1cs"
        self.wasm = self.circuit_dir / f"{CIRCUIT_NAME}_js" / f"{CIRCUIT_NAME}.wasm"
        self.proving_key = self.circuit_dir / f"{CIRCUIT_NAME}.zkey"
        self.verification_key = self.circuit_dir / "verification_key.json"

        logger.info(
            f"SnarkjsProofManager initialized (max_len={params.max_len}, "
            f"build_dir={self.circuit_dir})"
        )

    # ==================== Backend calls ====================

    def _run(self, command: list[str], timeout: int) -> subprocess.CompletedProcess:
        return run_backend(command, timeout)

    def _snarkjs(self, *args: str, timeout: int | None = None) -> subprocess.CompletedProcess:
        return self._run(
            [self.config.snarkjs_path, *args], timeout or self.config.proof_timeout
        )

    # ==================== Setup ====================

    def is_compiled(self) -> bool:
        return self.proving_key.exists() and self.verification_key.exists()

    def setup(self, force: bool = False) -> bool:
        """Render, compile and set up Groth16 keys (skipped when keys exist)"""
        if self.is_compiled() and not force:
            logger.info(f"✓ Reusing existing keys in {self.circuit_dir}")
            self.setup_complete = True
            return True

        ptau = Path(self.config.ptau_path) if self.config.ptau_path else None
        if ptau is None or not ptau.exists():
            raise BackendError(
                "Missing ptau file. Run: snarkjs powersoftau new & contribute, "
                "then set prover.ptau_path"
            )

        if self.circuit_dir.exists() and force:
            logger.info("Cleaning old build artifacts...")
            shutil.rmtree(self.circuit_dir)

        write_circuit(self.circom_file, self.params, self.pin_patterns)

        logger.info("Compiling Circom circuit...")
        self._run(
            [
                self.config.circom_path,
                str(self.circom_file),
                "--r1cs",
                "--wasm",
                "--sym",
                "-l",
                self.config.circomlib_path,
                "-o",
                str(self.circuit_dir),
            ],
            self.config.compile_timeout,
        )

        self._snarkjs(
            "groth16",
            "setup",
            str(self.r1cs),
            str(ptau),
            str(self.proving_key),
            timeout=self.config.compile_timeout,
        )
        self._snarkjs(
            "zkey",
            "export",
            "verificationkey",
            str(self.proving_key),
            str(self.verification_key),
        )

        self.setup_complete = True
        logger.info("✓ SNARK circuit compiled and setup complete")
        return True

    def export_verifier_contract(self, path: str | Path) -> Path:
        """Solidity verifier for the on-chain registry"""
        self._ensure_setup()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._snarkjs("zkey", "export", "solidityverifier", str(self.proving_key), str(path))
        logger.info(f"✓ Verifier contract written to {path}")
        return path

    def _ensure_setup(self) -> None:
        if not self.setup_complete:
            logger.warning("Proof setup not complete, attempting setup...")
            self.setup()

    # ==================== Proving ====================

    def generate_proof(self, assignment: Assignment) -> ProofArtifact:
        """Witness calculation and Groth16 proof for ``assignment``

        Request files (input.json, witness.wtns, proof.json, public.json) live
        in a per-request directory under ``requests/`` that is removed once
        the proof is read back, whether or not the backend succeeded.
        """
        self._ensure_setup()

        inputs = assignment.to_circuit_inputs()
        requests = self.circuit_dir / "requests"
        requests.mkdir(parents=True, exist_ok=True)
        prefix = self._hash_inputs(inputs)[:16]

        with tempfile.TemporaryDirectory(prefix=f"{prefix}-", dir=requests) as temp_dir:
            request_dir = Path(temp_dir)
            input_json = request_dir / "input.json"
            witness_wtns = request_dir / "witness.wtns"
            proof_json = request_dir / "proof.json"
            public_json = request_dir / "public.json"

            with open(input_json, "w") as f:
                json.dump(inputs, f)

            logger.info("Calculating witness...")
            self._snarkjs(
                "wtns", "calculate", str(self.wasm), str(input_json), str(witness_wtns)
            )

            logger.info("Generating Groth16 proof...")
            self._snarkjs(
                "groth16",
                "prove",
                str(self.proving_key),
                str(witness_wtns),
                str(proof_json),
                str(public_json),
            )

            with open(proof_json) as f:
                proof = json.load(f)

            with open(public_json) as f:
                public = [str(s) for s in json.load(f)]

        if public != assignment.public_inputs():
            raise BackendError(
                f"Public signals {public} do not match commitment {assignment.commitment}"
            )

        logger.info(f"✓ Proof generated for commitment {assignment.commitment}")
        return ProofArtifact(proof=proof, public_signals=public)

    def _setup_and_prove(self, assignment: Assignment, force_setup: bool) -> ProofArtifact:
        if force_setup or not self.setup_complete:
            self.setup(force=force_setup)
        return self.generate_proof(assignment)

    def prove(self, raw: bytes, force_setup: bool = False) -> ProofArtifact:
        """Build the assignment for ``raw`` and prove it (strictly in that order)"""
        return self._setup_and_prove(self.builder.build(raw), force_setup)

    def prove_file(self, path: str | Path, force_setup: bool = False) -> ProofArtifact:
        """``prove`` for an .eml file; build errors surface before any backend work"""
        return self._setup_and_prove(self.builder.build_from_file(path), force_setup)

    # ==================== Verification ====================

    def verify_proof(self, artifact: ProofArtifact) -> bool:
        """Verify with ``snarkjs groth16 verify``"""
        if not self.verification_key.exists():
            raise BackendError(f"Verification key not found: {self.verification_key}")

        with tempfile.TemporaryDirectory(prefix="verify-") as temp_dir:
            proof_json = Path(temp_dir) / "proof.json"
            public_json = Path(temp_dir) / "public.json"

            with open(proof_json, "w") as f:
                json.dump(artifact.proof, f)

            with open(public_json, "w") as f:
                json.dump(artifact.public_signals, f)

            command = [
                self.config.snarkjs_path,
                "groth16",
                "verify",
                str(self.verification_key),
                str(public_json),
                str(proof_json),
            ]
            try:
                # Exit status is non-zero for an invalid proof, so no _run here
                result = subprocess.run(
                    command,
                    capture_output=True,
                    text=True,
                    timeout=self.config.proof_timeout,
                )
            except FileNotFoundError as e:
                raise BackendError(f"Backend tool not found: {command[0]}", command) from e
            except subprocess.TimeoutExpired as e:
                raise BackendError("snarkjs verify timed out", command) from e

        accepted = "OK" in result.stdout
        logger.info(f"snarkjs verification: {'accepted' if accepted else 'rejected'}")
        return accepted

    def verify_native(self, artifact: ProofArtifact) -> bool:
        """Verify with the py_ecc pairing check instead of snarkjs"""
        verifier = Groth16Verifier(VerificationKey.load(self.verification_key))
        return verifier.verify(artifact.proof, artifact.public_signals)
