"""
Pytest Configuration and Fixtures for zkmail Tests

Most tests run against a small circuit variant (128-byte buffer) so the
pysnark circuit evaluates quickly; the 8192-byte
reference parameters are only used where no circuit is constructed.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path

import pytest

from tests import TEST_CONFIG, check_optional_dependencies
from zkmail.builder import InputBuilder
from zkmail.params import DEFAULT_PATTERNS, REFERENCE_PARAMS, CircuitParams

SAMPLE_EML = (
    b"From: alice@example.com\r\n"
    b"To: bob@gmail.com\r\n"
    b"Subject: lunch\r\n"
    b"\r\n"
    b"See you at noon.\r\n"
)

# ==================== Pytest Configuration ====================


def pytest_configure(config):
    """Configure pytest with custom settings"""
    markers = [
        "unit: Unit tests for individual components",
        "integration: Integration tests for component interactions",
        "e2e: End-to-end system tests",
        "slow: Tests that take longer than 5 seconds",
        "zkp: Tests requiring circom and snarkjs",
    ]

    for marker in markers:
        config.addinivalue_line("markers", marker)


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers and handle skips"""
    deps_status = None

    for item in items:
        # Auto-mark tests based on file location
        path = str(item.fspath)
        if f"{os.sep}unit{os.sep}" in path:
            item.add_marker(pytest.mark.unit)
        elif f"{os.sep}integration{os.sep}" in path:
            item.add_marker(pytest.mark.integration)
        elif f"{os.sep}e2e{os.sep}" in path:
            item.add_marker(pytest.mark.e2e)

        if not item.get_closest_marker("zkp"):
            continue

        if TEST_CONFIG["skip_zkp"]:
            item.add_marker(pytest.mark.skip(reason="ZKP tests disabled"))
            continue

        if deps_status is None:
            deps_status = check_optional_dependencies()
        missing = [name for name, ok in deps_status.items() if not ok]
        if missing:
            item.add_marker(
                pytest.mark.skip(reason=f"ZKP toolchain incomplete: {', '.join(missing)}")
            )


# ==================== Session-level Fixtures ====================


@pytest.fixture(scope="session")
def test_config():
    """Test configuration dictionary"""
    return TEST_CONFIG.copy()


@pytest.fixture(scope="session")
def temp_dir():
    """Create a temporary directory for the test session"""
    temp_path = tempfile.mkdtemp(prefix="zkmail_test_")
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


# ==================== Circuit Fixtures ====================


@pytest.fixture(scope="session")
def small_params():
    """128-byte variant with the default patterns"""
    return CircuitParams(max_len=128, chunk_size=31, patterns=DEFAULT_PATTERNS)


@pytest.fixture(scope="session")
def reference_params():
    return REFERENCE_PARAMS


@pytest.fixture
def sample_eml():
    return SAMPLE_EML


@pytest.fixture
def sample_eml_file(tmp_path):
    path = tmp_path / "sample.eml"
    path.write_bytes(SAMPLE_EML)
    return path


@pytest.fixture(scope="session")
def small_builder(small_params):
    return InputBuilder(small_params)


@pytest.fixture(scope="session")
def small_assignment(small_builder):
    return small_builder.build(SAMPLE_EML)


@pytest.fixture(scope="session")
def small_circuit(small_params):
    from zkmail.circuit import EmailCircuit

    return EmailCircuit(small_params)


# ==================== Logging and Cleanup ====================


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging for tests"""
    caplog.set_level(logging.INFO)


@pytest.fixture(autouse=True)
def cleanup_environment():
    """Restore environment variables and the cached configuration after each test"""
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)

    import zkmail.config

    zkmail.config._config = None
    zkmail.config.get_config_manager.cache_clear()
