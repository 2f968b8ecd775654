"""
Error taxonomy for the installation orchestrator.

Only two errors are run-fatal: ``ClassificationError`` (no valid
Environment means no resolution decision is meaningful) and
``MissingDependencyError`` (the orchestrator itself cannot run).

``ExecutionTimeout`` and ``ExecutionFailure`` are raised per strategy
attempt by the subprocess runner and never leave the executor:
they are converted into an ``ErrorDetail`` and trigger fallback.

``ConfigError`` lives with the config loader.
"""

from __future__ import annotations


class OrchestratorError(Exception):
    """Base class for all orchestrator errors."""


class ClassificationError(OrchestratorError):
    """Raised when the host signals needed to classify it cannot be read."""


class MissingDependencyError(OrchestratorError):
    """Raised when a tool the orchestrator itself needs is missing."""

    def __init__(self, dependency: str, message: str = "") -> None:
        self.dependency = dependency
        super().__init__(message or f"Required dependency not found: {dependency}")


class ExecutionError(OrchestratorError):
    """Base for a failed strategy attempt."""

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        stderr: str = "",
        stdout: str = "",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout


class ExecutionFailure(ExecutionError):
    """The package manager reported a non-zero outcome."""


class ExecutionTimeout(ExecutionError):
    """The strategy attempt exceeded its timeout."""
