"""Shared data types for fortify-setup."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

__all__ = ["BootstrapResult", "BootstrapSource", "InvocationResult"]


class BootstrapSource(str, Enum):
    """Where the fcli binary used for an invocation came from."""

    CONFIGURED = "configured"
    PREINSTALLED = "preinstalled"
    CACHED = "cached"
    DOWNLOADED = "downloaded"

    def __str__(self) -> str:
        return self.value

    @property
    def is_user_supplied(self) -> bool:
        """True for binaries the user pointed at rather than ones we fetched."""
        return self in (BootstrapSource.CONFIGURED, BootstrapSource.PREINSTALLED)


@dataclass(frozen=True)
class BootstrapResult:
    """Result of a successful bootstrap.

    Attributes:
        binary_path: Path to the runnable fcli executable.
        version: Self-reported version (``vX.Y.Z``) or ``unknown``.
        source: Resolution strategy that produced the binary.
    """

    binary_path: Path
    version: str
    source: BootstrapSource

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.version:
            raise ValueError("version cannot be empty")


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of running the fcli binary.

    Attributes:
        exit_code: Process exit code (127 if the process could not start).
        output: Captured stdout (None in relay mode).
        error_output: Captured stderr, or the spawn error (None in relay mode).
        bootstrap: Bootstrap result that produced the binary, if known.
    """

    exit_code: int
    output: str | None = None
    error_output: str | None = None
    bootstrap: BootstrapResult | None = None

    @property
    def success(self) -> bool:
        """True if the process exited with code 0."""
        return self.exit_code == 0
