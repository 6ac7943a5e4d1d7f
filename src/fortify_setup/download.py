"""Archive download and extraction."""

from __future__ import annotations

import logging
import os
import shutil
import ssl
import tarfile
import urllib.error
import urllib.request
import zipfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from fortify_setup.errors import DownloadError, UnsupportedFormatError
from fortify_setup.platforms import is_windows

logger = logging.getLogger(__name__)

# Checked in order; the first one set is used for both http and https
PROXY_ENV_VARS = ("HTTPS_PROXY", "https_proxy", "HTTP_PROXY", "http_proxy")

DOWNLOAD_TIMEOUT = 300
CHUNK_SIZE = 64 * 1024

TAR_SUFFIXES = (".tgz", ".tar.gz")
ZIP_SUFFIXES = (".zip",)


def get_proxy_url(environ: Mapping[str, str] | None = None) -> str | None:
    """Get the proxy URL from the standard proxy environment variables.

    Args:
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        Proxy URL, or None if no proxy variable is set.
    """
    environ = os.environ if environ is None else environ
    for name in PROXY_ENV_VARS:
        value = environ.get(name)
        if value:
            return value
    return None


def make_executable(path: Path, system: str | None = None) -> None:
    """Mark a file as executable (755) on non-Windows platforms."""
    if not is_windows(system):
        path.chmod(0o755)


class Downloader:
    """Fetches URLs to disk and unpacks release archives."""

    def __init__(
        self,
        opener: Any | None = None,
        environ: Mapping[str, str] | None = None,
        timeout: float = DOWNLOAD_TIMEOUT,
    ) -> None:
        """Initialize the downloader.

        Args:
            opener: Object with an ``open(url, timeout=...)`` method returning a
                readable response. Defaults to a urllib opener honoring proxy
                environment variables.
            environ: Environment used for proxy lookup. Defaults to ``os.environ``.
            timeout: Socket timeout in seconds for each request.

        Note:
            Prefer using factory methods `create()` or `create_default()` for construction.
        """
        self._opener = opener
        self._environ = environ
        self.timeout = timeout

    @classmethod
    def create(cls, opener: Any, timeout: float = DOWNLOAD_TIMEOUT) -> Downloader:
        """Create a downloader using a custom opener."""
        return cls(opener=opener, timeout=timeout)

    @classmethod
    def create_default(cls) -> Downloader:
        """Create a downloader using urllib with proxy support."""
        return cls()

    def build_opener(self) -> Any:
        """Build the urllib opener, routing through a proxy when configured.

        Returns:
            Opener used for downloads.
        """
        if self._opener is not None:
            return self._opener

        handlers: list[urllib.request.BaseHandler] = [
            urllib.request.HTTPSHandler(context=ssl.create_default_context())
        ]
        proxy = get_proxy_url(self._environ)
        if proxy:
            logger.debug("Using proxy %s", proxy)
            handlers.append(urllib.request.ProxyHandler({"http": proxy, "https": proxy}))
        else:
            handlers.append(urllib.request.ProxyHandler({}))
        return urllib.request.build_opener(*handlers)

    def download(self, url: str, dest: Path) -> None:
        """Download a URL to a file, following redirects.

        The response body is streamed to disk. A partially written file is
        removed on failure.

        Args:
            url: URL to fetch.
            dest: Destination file. Parent directories are created.

        Raises:
            DownloadError: On a non-2xx status or network failure.
        """
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Downloading %s to %s", url, dest)

        try:
            with self.build_opener().open(url, timeout=self.timeout) as response:
                status = getattr(response, "status", None)
                if status is not None and not 200 <= status < 300:
                    raise DownloadError(url, status, str(getattr(response, "reason", "")))
                with dest.open("wb") as stream:
                    shutil.copyfileobj(response, stream, CHUNK_SIZE)
        except urllib.error.HTTPError as e:
            self._discard(dest)
            raise DownloadError(url, e.code, str(e.reason)) from e
        except urllib.error.URLError as e:
            self._discard(dest)
            raise DownloadError(url, reason=str(e.reason)) from e
        except OSError as e:
            self._discard(dest)
            raise DownloadError(url, reason=str(e)) from e

    def _discard(self, path: Path) -> None:
        """Remove a partially downloaded file."""
        path.unlink(missing_ok=True)

    def extract(self, archive_path: Path, dest_dir: Path) -> None:
        """Extract a zip or gzip-compressed tar archive.

        Args:
            archive_path: Archive to extract; the format follows its extension.
            dest_dir: Target directory. Created if needed.

        Raises:
            UnsupportedFormatError: If the extension is not recognized, the
                archive is unreadable, or an entry would land outside dest_dir.
        """
        name = archive_path.name.lower()
        if name.endswith(ZIP_SUFFIXES):
            extractor = self._extract_zip
        elif name.endswith(TAR_SUFFIXES):
            extractor = self._extract_tar
        else:
            raise UnsupportedFormatError(f"Unsupported archive format: {archive_path.name}")

        dest_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Extracting %s to %s", archive_path, dest_dir)
        extractor(archive_path, dest_dir)

    def _extract_zip(self, archive_path: Path, dest_dir: Path) -> None:
        """Stream zip entries out one by one, restoring unix modes."""
        root = dest_dir.resolve()
        try:
            with zipfile.ZipFile(archive_path) as archive:
                for info in archive.infolist():
                    target = (root / info.filename).resolve()
                    if target != root and root not in target.parents:
                        raise UnsupportedFormatError(
                            f"Archive entry outside target directory: {info.filename}"
                        )
                    if info.is_dir():
                        target.mkdir(parents=True, exist_ok=True)
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with archive.open(info) as source, target.open("wb") as sink:
                        shutil.copyfileobj(source, sink, CHUNK_SIZE)
                    mode = (info.external_attr >> 16) & 0o777
                    if mode:
                        target.chmod(mode)
        except zipfile.BadZipFile as e:
            raise UnsupportedFormatError(f"Unreadable zip archive: {archive_path.name}") from e

    def _extract_tar(self, archive_path: Path, dest_dir: Path) -> None:
        """Extract a tar.gz archive, keeping file modes."""
        try:
            with tarfile.open(archive_path, "r:gz") as archive:
                archive.extractall(dest_dir, filter="tar")
        except tarfile.TarError as e:
            raise UnsupportedFormatError(
                f"Unreadable tar archive {archive_path.name}: {e}"
            ) from e
