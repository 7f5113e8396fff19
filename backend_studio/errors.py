"""Exception hierarchy for backend-studio.

Every failure that reaches the CLI is a ``StudioError`` subclass so that the
entry point can print one human-readable line and exit non-zero.
"""

from __future__ import annotations

from pathlib import Path


class StudioError(Exception):
    """Base class for all backend-studio failures."""


class ValidationError(StudioError):
    """Raised when configuration input is rejected.

    Attributes:
        field: Dotted name of the offending field (e.g. ``network.port``).
        reason: Human-readable explanation.
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class WriteError(StudioError):
    """Raised when a directory or file cannot be created."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to write {self.path}: {reason}")


class DependencyInstallError(StudioError):
    """Raised when an external install command exits non-zero."""

    def __init__(self, command: list[str], returncode: int, output: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"Command '{' '.join(command)}' failed with exit code {returncode}"
        )


class BootstrapStateError(StudioError):
    """Raised when stage 2 finds the on-disk bootstrap state inconsistent."""

    def __init__(self, directory: str | Path, reason: str) -> None:
        self.directory = Path(directory)
        self.reason = reason
        super().__init__(
            f"{reason} in {self.directory}. "
            f"Delete the folder and run backend-studio again to regenerate it."
        )


class GenerationError(StudioError):
    """Raised when a generated file batch violates a consistency rule."""
