"""Bootstrap fcli and set up Fortify tools in CI/CD pipelines."""

__version__ = "0.1.0"

# Export protocol interfaces for type hints and dependency injection
from fortify_setup.protocols import (
    ArchiveVerifier,
    BinaryDownloader,
    BinaryResolver,
    ConfigStore,
    ProcessInvoker,
)

__all__ = [
    "__version__",
    "ArchiveVerifier",
    "BinaryDownloader",
    "BinaryResolver",
    "ConfigStore",
    "ProcessInvoker",
]
