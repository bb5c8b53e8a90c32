"""Error taxonomy for web3scaffold.

Every failure the tool can report derives from :class:`ScaffoldError` so the
CLI entry point can turn it into a printed diagnostic and a non-zero exit.
"""

from __future__ import annotations

from typing import Any


class ScaffoldError(Exception):
    """Base class for all web3scaffold errors."""


class ValidationError(ScaffoldError):
    """Raised when user input is missing or invalid."""


class AbortedError(ScaffoldError):
    """Raised when the user cancels an interactive prompt."""


class RegistryError(ScaffoldError):
    """Raised when a generated step sequence breaks a registry guarantee."""


class FileSystemError(ScaffoldError):
    """Raised when a filesystem step fails."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class ManifestParseError(FileSystemError):
    """Raised when a JSON manifest cannot be parsed or merged into."""


class ProcessError(ScaffoldError):
    """Raised when an external command exits non-zero or cannot be spawned."""

    def __init__(
        self,
        message: str,
        command: str = "",
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message)


class StepError(ScaffoldError):
    """Raised by the pipeline when a generation step fails.

    Wraps the underlying error with the failing step's position and
    description so a partially-built project can be diagnosed.
    """

    def __init__(self, index: int, step: Any, cause: Exception) -> None:
        self.index = index
        self.step = step
        self.cause = cause
        self.__cause__ = cause
        super().__init__(
            f"Step {index + 1} ({step.kind}: {step.describe()}) failed: {cause}"
        )
