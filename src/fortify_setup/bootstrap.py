"""fcli bootstrap: locate, download, verify and cache the fcli executable.

Resolution order, first success wins:

1. Configured path (config file, FCLI_PATH or call-time option). A missing
   file is an error, never a reason to fall through to a download.
2. Preinstalled fcli declared through FCLI, FCLI_CMD or FCLI_HOME.
3. Previously downloaded fcli whose configuration fingerprint still matches.
4. Fresh download of the release archive, optionally signature-verified.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
from collections.abc import Callable, Mapping
from pathlib import Path
from urllib.parse import urlparse

from fortify_setup.cache import BinaryCache, CacheMetadata
from fortify_setup.config import (
    FCLI_VERSION,
    SIGNATURE_SUFFIX,
    EffectiveConfig,
    config_fingerprint,
    default_binary_url,
)
from fortify_setup.download import TAR_SUFFIXES, ZIP_SUFFIXES, Downloader, make_executable
from fortify_setup.errors import (
    NO_VERIFY_HINT,
    BootstrapError,
    ConfigurationError,
    DownloadError,
    SignatureVerificationError,
)
from fortify_setup.platforms import archive_name_for_platform, binary_name_for_platform
from fortify_setup.protocols import ArchiveVerifier, BinaryDownloader
from fortify_setup.signature import SignatureVerifier
from fortify_setup.types import BootstrapResult, BootstrapSource

logger = logging.getLogger(__name__)

VERSION_PROBE_TIMEOUT = 5
UNKNOWN_VERSION = "unknown"

_VERSION_PATTERN = re.compile(r"(\d+\.\d+\.\d+)")


def probe_version(binary_path: Path, timeout: float = VERSION_PROBE_TIMEOUT) -> str | None:
    """Ask an fcli executable for its version.

    Args:
        binary_path: Executable to run with ``--version``.
        timeout: Seconds to wait before giving up.

    Returns:
        Version as ``vX.Y.Z``, or None if the probe fails or times out.
    """
    try:
        result = subprocess.run(
            [str(binary_path), "--version"],
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Version probe of %s failed: %s", binary_path, e)
        return None

    match = _VERSION_PATTERN.search(result.stdout or "")
    return f"v{match.group(1)}" if match else None


def _binary_or_home(value: str, binary_name: str) -> Path:
    """Resolve a variable holding either the executable or its home dir."""
    path = Path(value)
    if path.is_dir():
        return path / "bin" / binary_name
    return path


def _home_dir(value: str, binary_name: str) -> Path:
    """Resolve a variable holding the fcli home directory."""
    return Path(value) / "bin" / binary_name


# Environment variables declaring a preinstalled fcli, in priority order
PREINSTALLED_ENV_STRATEGIES: tuple[tuple[str, Callable[[str, str], Path]], ...] = (
    ("FCLI", _binary_or_home),
    ("FCLI_CMD", _binary_or_home),
    ("FCLI_HOME", _home_dir),
)


def find_preinstalled_binary(
    environ: Mapping[str, str] | None = None, system: str | None = None
) -> Path | None:
    """Find a preinstalled fcli declared through environment variables.

    Args:
        environ: Environment mapping. Defaults to ``os.environ``.
        system: Platform identifier for the binary name.

    Returns:
        Path of the first declared executable that exists, or None.
    """
    environ = os.environ if environ is None else environ
    binary_name = binary_name_for_platform(system)
    for variable, resolve in PREINSTALLED_ENV_STRATEGIES:
        value = environ.get(variable)
        if not value:
            continue
        candidate = resolve(value, binary_name)
        if candidate.is_file():
            logger.debug("Using fcli from %s: %s", variable, candidate)
            return candidate
        logger.debug("Ignoring %s, %s does not exist", variable, candidate)
    return None


class Bootstrapper:
    """Resolves a runnable fcli for an effective configuration.

    Follows Separate Use from Creation: use factory method `create()` or
    `create_default()` for production instantiation with defaults.
    """

    def __init__(
        self,
        cache: BinaryCache,
        downloader: BinaryDownloader,
        verifier: ArchiveVerifier,
        environ: Mapping[str, str] | None = None,
        system: str | None = None,
        version_probe: Callable[[Path], str | None] = probe_version,
    ) -> None:
        """Initialize the bootstrapper with required dependencies.

        Args:
            cache: Cache owning downloaded binaries.
            downloader: Fetches and extracts archives.
            verifier: Checks archive signatures.
            environ: Environment for preinstalled lookup. Defaults to ``os.environ``.
            system: Platform identifier. Defaults to the current host.
            version_probe: Callable returning a binary's version or None.
        """
        self.cache = cache
        self.downloader = downloader
        self.verifier = verifier
        self.system = system
        self._environ = environ
        self._version_probe = version_probe

    @classmethod
    def create(
        cls,
        cache: BinaryCache,
        downloader: BinaryDownloader | None = None,
        verifier: ArchiveVerifier | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Bootstrapper:
        """Create a bootstrapper with default downloader and verifier.

        Args:
            cache: Cache owning downloaded binaries.
            downloader: Optional downloader. Defaults to a urllib Downloader.
            verifier: Optional verifier. Defaults to the Fortify key.
            environ: Environment searched for a preinstalled fcli.
                Defaults to os.environ.

        Returns:
            Configured Bootstrapper instance.
        """
        return cls(
            cache=cache,
            downloader=downloader or Downloader.create_default(),
            verifier=verifier or SignatureVerifier(),
            environ=environ,
        )

    @classmethod
    def create_default(cls) -> Bootstrapper:
        """Create a bootstrapper using the default cache location."""
        return cls.create(BinaryCache.create_default())

    def bootstrap(self, config: EffectiveConfig) -> BootstrapResult:
        """Resolve the fcli executable to use.

        Args:
            config: Effective configuration for this call.

        Returns:
            BootstrapResult tagged with the strategy that succeeded.

        Raises:
            ConfigurationError: If a configured path does not exist.
            DownloadError: If the archive or signature cannot be fetched.
            SignatureVerificationError: If the archive signature is invalid.
            UnsupportedFormatError: If the archive cannot be extracted.
            BootstrapError: If the archive does not contain fcli.
        """
        if config.preinstalled_path is not None:
            return self._use_configured(config.preinstalled_path)

        preinstalled = find_preinstalled_binary(self._environ, self.system)
        if preinstalled is not None:
            return BootstrapResult(
                binary_path=preinstalled,
                version=self._version_of(preinstalled),
                source=BootstrapSource.PREINSTALLED,
            )

        fingerprint = config_fingerprint(config)
        cached = self.cache.lookup(fingerprint)
        if cached is not None:
            logger.debug("Using cached fcli %s", cached)
            metadata = self.cache.load_metadata()
            fallback = metadata.version if metadata else UNKNOWN_VERSION
            return BootstrapResult(
                binary_path=cached,
                version=self._version_of(cached, fallback),
                source=BootstrapSource.CACHED,
            )

        return self._download(config, fingerprint)

    def refresh(self, config: EffectiveConfig) -> BootstrapResult:
        """Clear the cache and bootstrap again."""
        self.cache.clear()
        return self.bootstrap(config)

    def _version_of(self, binary_path: Path, fallback: str = UNKNOWN_VERSION) -> str:
        return self._version_probe(binary_path) or fallback

    def _use_configured(self, path: Path) -> BootstrapResult:
        if not path.exists():
            raise ConfigurationError(f"Configured fcli path does not exist: {path}")
        return BootstrapResult(
            binary_path=path,
            version=self._version_of(path),
            source=BootstrapSource.CONFIGURED,
        )

    def _archive_name(self, url: str) -> str:
        """Local archive name; keeps the URL's name when its format is known."""
        name = Path(urlparse(url).path).name
        if name.lower().endswith(ZIP_SUFFIXES + TAR_SUFFIXES):
            return name
        return archive_name_for_platform(self.system)

    def _download(self, config: EffectiveConfig, fingerprint: str) -> BootstrapResult:
        url = config.binary_url or default_binary_url(self.system)
        self.cache.ensure_cache_dir()
        archive_path = self.cache.cache_dir / self._archive_name(url)
        signature_path = archive_path.with_name(archive_path.name + SIGNATURE_SUFFIX)

        logger.info("Downloading fcli from %s", url)
        try:
            self.downloader.download(url, archive_path)
            if config.verify_signature:
                self._verify(config.effective_signature_url or "", archive_path, signature_path)
            binary_path, version = self._extract_and_install(url, archive_path, fingerprint)
        finally:
            archive_path.unlink(missing_ok=True)
            signature_path.unlink(missing_ok=True)

        logger.info("fcli bootstrapped to %s", self.cache.cache_dir)
        return BootstrapResult(
            binary_path=binary_path,
            version=version,
            source=BootstrapSource.DOWNLOADED,
        )

    def _verify(self, signature_url: str, archive_path: Path, signature_path: Path) -> None:
        logger.info("Verifying signature from %s", signature_url)
        try:
            self.downloader.download(signature_url, signature_path)
        except DownloadError as e:
            raise DownloadError(e.url, e.status, f"{e.reason}. {NO_VERIFY_HINT}") from e
        try:
            self.verifier.verify(archive_path, signature_path)
        except SignatureVerificationError as e:
            raise SignatureVerificationError(f"{e}\n{NO_VERIFY_HINT}") from e
        logger.info("Signature verification successful")

    def _extract_and_install(
        self, url: str, archive_path: Path, fingerprint: str
    ) -> tuple[Path, str]:
        staging_dir = self.cache.staging_dir()
        try:
            self.downloader.extract(archive_path, staging_dir)
            staged_binary = staging_dir / binary_name_for_platform(self.system)
            if not staged_binary.is_file():
                raise BootstrapError(
                    f"Archive from {url} does not contain {staged_binary.name}"
                )
            make_executable(staged_binary, self.system)
            version = self._version_of(staged_binary, FCLI_VERSION)
            metadata = CacheMetadata(url=url, version=version, config_hash=fingerprint)
            return self.cache.install(staging_dir, metadata), version
        finally:
            if staging_dir.exists():
                shutil.rmtree(staging_dir)
