"""Cache of the downloaded fcli binary."""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fortify_setup.platforms import binary_name_for_platform, is_windows

logger = logging.getLogger(__name__)

BIN_DIR_NAME = "bin"
METADATA_FILE_NAME = "metadata.json"


def default_cache_dir(system: str | None = None) -> Path:
    """Get the default cache directory for the downloaded fcli.

    Windows uses %LOCALAPPDATA%/fortify/fcli-temp, other platforms use
    <tmpdir>/fortify/fcli.
    """
    if is_windows(system):
        local_app_data = os.environ.get("LOCALAPPDATA") or str(
            Path.home() / "AppData" / "Local"
        )
        return Path(local_app_data) / "fortify" / "fcli-temp"
    return Path(tempfile.gettempdir()) / "fortify" / "fcli"


class CacheMetadata(BaseModel):
    """Metadata stored next to a downloaded fcli binary."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    version: str
    downloaded_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="downloadedAt"
    )
    config_hash: str = Field(alias="configHash")


class BinaryCache:
    """Owns the cache directory holding the downloaded fcli.

    Directory structure:
        <cache_dir>/
            bin/fcli        - extracted executable
            metadata.json   - CacheMetadata, written last
    """

    def __init__(self, cache_dir: Path | None = None, system: str | None = None) -> None:
        """Initialize the binary cache.

        Args:
            cache_dir: Cache directory. Defaults to the platform temp location.
            system: Platform identifier for the binary name.

        Note:
            Prefer using factory methods `create()` or `create_default()` for construction.
        """
        self.system = system
        self.cache_dir = cache_dir or default_cache_dir(system)
        self.bin_dir = self.cache_dir / BIN_DIR_NAME
        self.metadata_file = self.cache_dir / METADATA_FILE_NAME

    @classmethod
    def create(cls, cache_dir: Path) -> BinaryCache:
        """Create a binary cache in a custom directory."""
        return cls(cache_dir=cache_dir)

    @classmethod
    def create_default(cls) -> BinaryCache:
        """Create a binary cache in the default location."""
        return cls()

    @property
    def binary_path(self) -> Path:
        """Location of the cached fcli executable."""
        return self.bin_dir / binary_name_for_platform(self.system)

    def ensure_cache_dir(self) -> None:
        """Create cache directory if it doesn't exist."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def load_metadata(self) -> CacheMetadata | None:
        """Load cache metadata.

        Returns:
            CacheMetadata, or None if missing or unreadable.
        """
        if not self.metadata_file.exists():
            return None
        try:
            data = json.loads(self.metadata_file.read_text(encoding="utf-8"))
            return CacheMetadata.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.debug("Ignoring unreadable cache metadata %s: %s", self.metadata_file, e)
            return None

    def save_metadata(self, metadata: CacheMetadata) -> None:
        """Write cache metadata.

        Args:
            metadata: Metadata to store.
        """
        self.ensure_cache_dir()
        data = metadata.model_dump(mode="json", by_alias=True)
        self.metadata_file.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def cached_binary(self) -> Path | None:
        """Get the cached binary path if one exists, ignoring the fingerprint."""
        return self.binary_path if self.binary_path.is_file() else None

    def lookup(self, fingerprint: str) -> Path | None:
        """Find a cached binary downloaded with a matching configuration.

        A binary whose metadata is missing or carries another fingerprint is
        stale: the cache is cleared so the next download starts clean.

        Args:
            fingerprint: Configuration fingerprint of the current call.

        Returns:
            Path to the cached binary, or None on a cache miss.
        """
        if not self.binary_path.is_file():
            return None

        metadata = self.load_metadata()
        if metadata is None or metadata.config_hash != fingerprint:
            logger.debug("Cached fcli does not match current configuration, clearing cache")
            self.clear()
            return None
        return self.binary_path

    def staging_dir(self) -> Path:
        """Create a fresh directory for extracting an archive into."""
        self.ensure_cache_dir()
        return Path(tempfile.mkdtemp(prefix="staging-", dir=self.cache_dir))

    def install(self, staging_dir: Path, metadata: CacheMetadata) -> Path:
        """Move an extracted archive into place and record its metadata.

        Metadata is written last, so an interrupted install is never seen as
        a valid cache entry.

        Args:
            staging_dir: Directory containing the extracted binary.
            metadata: Metadata describing the download.

        Returns:
            Path to the cached binary.
        """
        self.metadata_file.unlink(missing_ok=True)
        if self.bin_dir.exists():
            shutil.rmtree(self.bin_dir)
        staging_dir.rename(self.bin_dir)
        self.save_metadata(metadata)
        return self.binary_path

    def clear(self) -> bool:
        """Remove the cache directory.

        Returns:
            True if removed, False if there was nothing to remove.
        """
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
            return True
        return False
