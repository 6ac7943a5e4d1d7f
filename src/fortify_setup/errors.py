"""Error types raised while configuring and bootstrapping fcli."""

from __future__ import annotations

__all__ = [
    "BootstrapError",
    "ConfigurationError",
    "DownloadError",
    "FortifySetupError",
    "SignatureVerificationError",
    "UnsupportedFormatError",
]

NO_VERIFY_HINT = (
    "If you trust the source, you can disable verification with: "
    "fortify-setup config --no-verify-signature"
)


class FortifySetupError(Exception):
    """Base class for errors raised before fcli is invoked."""

    pass


class ConfigurationError(FortifySetupError):
    """Malformed URL, missing configured path or conflicting options."""

    pass


class DownloadError(FortifySetupError):
    """Network or HTTP failure while fetching an archive or signature."""

    def __init__(self, url: str, status: int | None = None, reason: str = "") -> None:
        self.url = url
        self.status = status
        self.reason = reason
        detail = f"HTTP {status}" if status is not None else "network error"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(f"Failed to download {url} ({detail})")


class SignatureVerificationError(FortifySetupError):
    """Downloaded archive does not match its detached signature."""

    pass


class UnsupportedFormatError(FortifySetupError):
    """Archive extension not recognized, or an entry escapes the target."""

    pass


class BootstrapError(FortifySetupError):
    """No resolution strategy produced a usable fcli binary."""

    pass
