"""Protocol definitions for core abstractions.

This module defines abstract interfaces (Protocols) for the services the
bootstrapper depends on. Designing to interfaces enables:
- Loose coupling between components
- Easy substitution of test doubles (e.g. an in-memory config store)
- Clear contracts for implementations

All concrete implementations satisfy these protocols structurally (duck typing).
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from fortify_setup.config import EffectiveConfig, PersistedConfig
    from fortify_setup.types import BootstrapResult, InvocationResult


@runtime_checkable
class ConfigStore(Protocol):
    """Protocol for persisted configuration storage."""

    def load(self) -> PersistedConfig:
        """Load the stored configuration, or defaults if none is stored."""
        ...

    def save(self, config: PersistedConfig) -> None:
        """Replace the stored configuration.

        Args:
            config: Configuration to store.
        """
        ...

    def reset(self) -> bool:
        """Delete the stored configuration.

        Returns:
            True if something was removed, False otherwise.
        """
        ...


@runtime_checkable
class BinaryDownloader(Protocol):
    """Protocol for fetching and unpacking release archives."""

    def download(self, url: str, dest: Path) -> None:
        """Download a URL to a file.

        Args:
            url: URL to fetch.
            dest: Destination file.
        """
        ...

    def extract(self, archive_path: Path, dest_dir: Path) -> None:
        """Extract an archive into a directory.

        Args:
            archive_path: Archive to extract.
            dest_dir: Target directory.
        """
        ...


@runtime_checkable
class ArchiveVerifier(Protocol):
    """Protocol for detached signature verification."""

    def verify(self, file_path: Path, signature_path: Path) -> None:
        """Verify a file against a detached signature.

        Args:
            file_path: Signed file.
            signature_path: Signature file.
        """
        ...


@runtime_checkable
class BinaryResolver(Protocol):
    """Protocol for resolving the fcli executable."""

    def bootstrap(self, config: EffectiveConfig) -> BootstrapResult:
        """Resolve fcli for a configuration.

        Args:
            config: Effective configuration.

        Returns:
            BootstrapResult describing the executable.
        """
        ...

    def refresh(self, config: EffectiveConfig) -> BootstrapResult:
        """Discard any cached download and resolve again."""
        ...


@runtime_checkable
class ProcessInvoker(Protocol):
    """Protocol for running the resolved executable."""

    def invoke(
        self,
        binary_path: Path,
        argv: Sequence[str],
        relay_output: bool = False,
        bootstrap: BootstrapResult | None = None,
    ) -> InvocationResult:
        """Run the executable.

        Args:
            binary_path: Executable to run.
            argv: Argument vector.
            relay_output: Inherit standard streams instead of capturing.
            bootstrap: Bootstrap result to attach.

        Returns:
            InvocationResult with the exit code.
        """
        ...
