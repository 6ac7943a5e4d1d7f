"""Host platform mapping for fcli release archives."""

from __future__ import annotations

import sys

WINDOWS = "win32"
MACOS = "darwin"

_ARCHIVE_NAMES = {
    WINDOWS: "fcli-windows.zip",
    MACOS: "fcli-mac.tgz",
}
_DEFAULT_ARCHIVE_NAME = "fcli-linux.tgz"


def _system(system: str | None) -> str:
    return system if system is not None else sys.platform


def is_windows(system: str | None = None) -> bool:
    """Check whether the (given or current) platform is Windows."""
    return _system(system) == WINDOWS


def archive_name_for_platform(system: str | None = None) -> str:
    """Get the fcli release archive name for a platform.

    Args:
        system: Platform identifier as reported by ``sys.platform``.
            Defaults to the current host.

    Returns:
        Archive file name; Linux and unknown systems get the Linux archive.
    """
    return _ARCHIVE_NAMES.get(_system(system), _DEFAULT_ARCHIVE_NAME)


def binary_name_for_platform(system: str | None = None) -> str:
    """Get the fcli executable name for a platform."""
    return "fcli.exe" if is_windows(system) else "fcli"
