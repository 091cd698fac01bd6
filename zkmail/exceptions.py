"""
Error types raised by zkmail

Build errors are detected before any proving attempt. Backend errors carry
the external tool's output verbatim.
"""


class ZKMailError(Exception):
    """Base class for all zkmail errors"""


class ConfigError(ZKMailError):
    """Invalid configuration"""


class BuildError(ZKMailError):
    """The input builder could not produce an assignment"""


class ByteOutOfRange(BuildError):
    """A buffer element is not an integer in [0, 255]"""

    def __init__(self, index: int, value):
        self.index = index
        self.value = value
        super().__init__(f"Byte at index {index} out of range: {value!r}")


class PatternNotFound(BuildError):
    """A required pattern does not occur in the padded buffer"""

    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__(f"Required pattern not found: {pattern!r}")


class SelectorWindowViolation(BuildError):
    """A pattern offset falls outside the pattern's valid window"""

    def __init__(self, pattern: str, offset: int, window: range):
        self.pattern = pattern
        self.offset = offset
        self.window = window
        super().__init__(
            f"Offset {offset} for pattern {pattern!r} outside valid window "
            f"[{window.start}, {window.stop - 1}]"
        )


class BackendError(ZKMailError):
    """The proving backend (circom/snarkjs) failed"""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message if not stderr else f"{message}\n{stderr}")
