"""
Development versioning for zkmail

Format: YYYY.MM.DD.dev.INCREMENT
"""

import os
from datetime import datetime
from pathlib import Path

# Static version for hatchling - replaced by get_version() at import time
__version__ = "2026.10.19.dev.1"

BUILD_FILE = Path(__file__).parent / ".build_number"


def _read_build_file() -> tuple[str, int] | None:
    if not BUILD_FILE.exists():
        return None
    try:
        stored_date, stored_increment = BUILD_FILE.read_text().strip().split(":", 1)
        return stored_date, int(stored_increment)
    except ValueError:
        return None


def _get_build_increment() -> int:
    """Build increment stored for today, 1 for a new date"""
    stored = _read_build_file()
    if stored and stored[0] == datetime.now().strftime("%Y.%m.%d"):
        return stored[1]
    return 1


def get_version() -> str:
    """
    Generate development version string.

    Examples:
        - 2026.10.19.dev.1
        - 2026.10.19.dev.5
    """
    now = datetime.now()
    return f"{now.year}.{now.month}.{now.day}.dev.{_get_build_increment()}"


def get_build_info() -> dict:
    now = datetime.now()

    return {
        "version": get_version(),
        "build_date": now.strftime("%Y-%m-%d"),
        "build_time": now.strftime("%H:%M:%S"),
        "build_increment": _get_build_increment(),
        "is_dev": True,
        "git_ref": os.getenv("GITHUB_REF", "unknown"),
        "git_sha": os.getenv("GITHUB_SHA", "unknown"),
    }


def print_version_info():
    """Print version information."""
    info = get_build_info()

    print(f"zkmail Version: {info['version']}")
    print(f"Build Date: {info['build_date']} {info['build_time']}")
    print(f"Build Increment: {info['build_increment']}")


__version__ = get_version()

__all__ = [
    "__version__",
    "get_version",
    "get_build_info",
    "print_version_info",
]
