"""
Error types raised by the staging pipeline.

Every error carries a human-readable message and, optionally, the underlying
exception that caused it. Callers raise them with ``raise ... from cause`` so
the standard ``__cause__`` chain is populated as well.
"""

from typing import Optional


class BufStageError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class ManifestReadError(BufStageError):
    """A manifest file could not be opened or read."""


class ManifestParseError(BufStageError):
    """A manifest is not valid YAML or does not have the expected shape."""


class ExternalToolError(BufStageError):
    """The ``buf`` CLI could not be spawned, exited non-zero, or produced undecodable output."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message, cause)
        self.returncode = returncode
        self.stderr = stderr


class GeneratorError(BufStageError):
    """The downstream schema compiler failed."""


class StagingDirectoryError(BufStageError):
    """The per-run staging directory could not be created."""
