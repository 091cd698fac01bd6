"""
Setup and Installation Module for zkmail

Checks and installs the external proving toolchain (circom, snarkjs,
circomlib), generates a powers-of-tau file sized for a circuit variant and
cleans build artifacts.
"""

import logging
import math
import platform
import shutil
import subprocess
import sys
from pathlib import Path

import psutil

from .circuit import estimate_constraints
from .exceptions import BackendError
from .params import REFERENCE_PARAMS, CircuitParams
from .proof_manager import run_backend

logger = logging.getLogger(__name__)


def required_ptau_power(params: CircuitParams, pin_patterns: bool = True) -> int:
    """Smallest powers-of-tau exponent that fits the circuit's constraints"""
    constraints = estimate_constraints(params, pin_patterns)
    return max(8, math.ceil(math.log2(constraints + 1)))


class ZKMailSetup:
    """Setup and installation manager for the proving toolchain"""

    def __init__(self, root_dir: Path | None = None):
        self.root_dir = Path(root_dir) if root_dir else Path.cwd()
        self.system = platform.system().lower()
        self.python_version = f"{sys.version_info.major}.{sys.version_info.minor}"

        logger.info(
            f"zkmail Setup - System: {self.system}, Python: {self.python_version}"
        )

    def check_system_requirements(self) -> dict[str, bool]:
        """Check system requirements and return status"""
        checks = {}

        checks["python_version"] = sys.version_info >= (3, 10)

        # The reference circuit needs several GB for key generation
        memory_gb = psutil.virtual_memory().total / (1024**3)
        checks["memory"] = memory_gb >= 8
        checks["memory_gb"] = memory_gb

        try:
            disk_space = shutil.disk_usage(self.root_dir).free / (1024**3)
            checks["disk_space"] = disk_space >= 2
            checks["disk_space_gb"] = disk_space
        except OSError:
            checks["disk_space"] = None

        checks["nodejs"] = self._check_command_exists("node")
        checks["npm"] = self._check_command_exists("npm")
        checks["circom"] = self._check_command_exists("circom")
        checks["snarkjs"] = self._check_command_exists("snarkjs")
        checks["circomlib"] = (self.root_dir / "node_modules" / "circomlib").exists()

        self._print_system_check(checks)
        return checks

    def _print_system_check(self, checks: dict[str, bool]) -> None:
        """Print formatted system check results"""
        print("\n🔍 System Requirements Check:")
        print("=" * 50)

        status = "✓" if checks.get("python_version") else "✗"
        print(f"  Python 3.10+: {status} (Current: {self.python_version})")

        if checks.get("memory") is not None:
            status = "✓" if checks["memory"] else "⚠"
            gb = checks.get("memory_gb", 0)
            print(f"  Memory (8GB+): {status} ({gb:.1f}GB available)")

        if checks.get("disk_space") is not None:
            status = "✓" if checks["disk_space"] else "⚠"
            gb = checks.get("disk_space_gb", 0)
            print(f"  Disk Space (2GB+): {status} ({gb:.1f}GB free)")

        print("\n🛡️ ZKP Tools:")
        for name, label in [
            ("nodejs", "Node.js"),
            ("npm", "npm"),
            ("circom", "Circom"),
            ("snarkjs", "SnarkJS"),
            ("circomlib", "circomlib"),
        ]:
            status = "✓" if checks.get(name) else "✗"
            print(f"  {label}: {status}")

    def _check_command_exists(self, command: str) -> bool:
        """Check if a command exists in PATH"""
        try:
            # snarkjs --help exits with code 1 but prints its banner
            if command == "snarkjs":
                result = subprocess.run(
                    [command, "--help"], capture_output=True, text=True, timeout=5
                )
                return "snarkjs@" in result.stdout or "snarkjs@" in result.stderr

            result = subprocess.run(
                [command, "--version"], capture_output=True, text=True, timeout=5
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return False

    def setup_zkp_tools(self) -> bool:
        """Install snarkjs globally and circomlib into the project"""
        logger.info("Setting up ZKP tools...")

        if not self._check_command_exists("npm"):
            logger.error("npm not found. Please install Node.js first:")
            logger.info("  - Visit: https://nodejs.org/")
            return False

        try:
            if not self._check_command_exists("snarkjs"):
                logger.info("Installing SnarkJS...")
                run_backend(["npm", "install", "-g", "snarkjs"], 600)

            if not (self.root_dir / "node_modules" / "circomlib").exists():
                logger.info("Installing circomlib...")
                run_backend(
                    ["npm", "install", "circomlib", "--prefix", str(self.root_dir)], 600
                )

        except BackendError as e:
            logger.error(f"Failed to install ZKP tools: {e}")
            return False

        if not self._check_command_exists("circom"):
            logger.warning("Circom not found. Install the Rust compiler from source:")
            logger.info("  git clone https://github.com/iden3/circom.git")
            logger.info("  cd circom && cargo build --release && cargo install --path circom")
            return False

        logger.info("✓ ZKP tools setup completed successfully")
        return True

    def generate_ptau(
        self,
        output: Path,
        params: CircuitParams = REFERENCE_PARAMS,
        snarkjs_path: str = "snarkjs",
        timeout: int = 3600,
    ) -> Path:
        """Local (single contributor) powers of tau, prepared for phase 2

        Fine for development; production keys need a multi-party ceremony file.
        """
        power = required_ptau_power(params)
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        stage0 = output.with_suffix(".0000.ptau")
        stage1 = output.with_suffix(".0001.ptau")

        logger.info(f"Generating powers of tau (2^{power})...")
        try:
            run_backend(
                [snarkjs_path, "powersoftau", "new", "bn128", str(power), str(stage0)],
                timeout,
            )
            run_backend(
                [
                    snarkjs_path,
                    "powersoftau",
                    "contribute",
                    str(stage0),
                    str(stage1),
                    "--name=zkmail-dev",
                    "-e=zkmail development entropy",
                ],
                timeout,
            )
            run_backend(
                [snarkjs_path, "powersoftau", "prepare", "phase2", str(stage1), str(output)],
                timeout,
            )
        finally:
            stage0.unlink(missing_ok=True)
            stage1.unlink(missing_ok=True)

        logger.info(f"✓ Powers of tau written to {output}")
        return output

    def clean(self, build_dir: Path | None = None) -> int:
        """Remove circuit build artifacts and caches"""
        logger.info("Cleaning up temporary files...")

        patterns_to_clean = [
            "**/__pycache__",
            "**/.pytest_cache",
            "**/requests/*",
            "**/*.wtns",
        ]

        cleaned_count = 0
        base = Path(build_dir) if build_dir else self.root_dir
        for pattern in patterns_to_clean:
            for path in base.glob(pattern):
                try:
                    if path.is_file():
                        path.unlink()
                        cleaned_count += 1
                    elif path.is_dir():
                        shutil.rmtree(path)
                        cleaned_count += 1
                except OSError as e:
                    logger.warning(f"Could not clean {path}: {e}")

        logger.info(f"✓ Cleaned {cleaned_count} files/directories")
        return cleaned_count
