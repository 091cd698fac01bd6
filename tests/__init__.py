"""
Test Suite for zkmail

Test structure:
    tests/
    ├── __init__.py              # This file
    ├── conftest.py              # Pytest configuration and fixtures
    ├── unit/                    # Unit tests
    │   ├── test_poseidon.py
    │   ├── test_encoding.py
    │   ├── test_builder.py
    │   ├── test_gadgets.py
    │   ├── test_circuit.py
    │   ├── test_circom.py
    │   ├── test_config.py
    │   └── test_verifier.py
    ├── integration/             # Integration tests
    │   └── test_proof_manager.py
    └── e2e/                     # End-to-end tests
        └── test_cli_commands.py

Running tests:
    # All tests
    pytest

    # Unit tests only
    pytest tests/unit/

    # Specific markers
    pytest -m unit
    pytest -m "not slow"
    pytest -m zkp

Environment variables for testing:
    ZKMAIL_TEST_MODE=1        # Enable test mode
    ZKMAIL_TEST_LOG_LEVEL=DEBUG
    ZKMAIL_SKIP_ZKP=1         # Skip tests needing circom/snarkjs
    ZKMAIL_TEST_PTAU          # Powers of tau file for zkp tests
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path

TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent

TEST_CONFIG = {
    "test_mode": os.getenv("ZKMAIL_TEST_MODE", "0") == "1",
    "log_level": os.getenv("ZKMAIL_TEST_LOG_LEVEL", "INFO"),
    "skip_zkp": os.getenv("ZKMAIL_SKIP_ZKP", "0") == "1",
    "ptau_path": os.getenv("ZKMAIL_TEST_PTAU"),
    "timeout": int(os.getenv("ZKMAIL_TEST_TIMEOUT", "600")),
}

__all__ = ["TEST_CONFIG", "TEST_DIR", "PROJECT_ROOT", "check_optional_dependencies"]


def setup_test_environment():
    """Setup test environment with proper configuration"""
    logging.basicConfig(
        level=getattr(logging, TEST_CONFIG["log_level"]),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )
    return TEST_CONFIG


def check_optional_dependencies():
    """Availability of the external proving toolchain"""
    deps_status = {}

    deps_status["circom"] = shutil.which("circom") is not None
    deps_status["snarkjs"] = False
    if shutil.which("snarkjs"):
        try:
            result = subprocess.run(
                ["snarkjs", "--help"], capture_output=True, text=True, timeout=10
            )
            deps_status["snarkjs"] = "snarkjs@" in result.stdout + result.stderr
        except (subprocess.SubprocessError, OSError):
            pass

    deps_status["circomlib"] = (PROJECT_ROOT / "node_modules" / "circomlib").exists()
    deps_status["ptau"] = bool(
        TEST_CONFIG["ptau_path"] and Path(TEST_CONFIG["ptau_path"]).exists()
    )
    return deps_status


if TEST_CONFIG["test_mode"]:
    setup_test_environment()
