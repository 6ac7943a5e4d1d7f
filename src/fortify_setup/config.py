"""Configuration management for fcli bootstrapping.

Configuration is layered, lowest precedence first:

1. Built-in platform default (GitHub release archive for the host OS)
2. Persisted config file (~/.config/fortify/setup/config.json)
3. Environment variables (FCLI_URL, FCLI_RSA_SHA256_URL, FCLI_PATH,
   FCLI_VERIFY_SIGNATURE)
4. Call-time options

Download mode (``fcli_url``) and preinstalled mode (``fcli_path``) are
mutually exclusive: a layer that selects one mode drops the other mode's
fields from the layers below it.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fortify_setup.errors import ConfigurationError
from fortify_setup.platforms import archive_name_for_platform
from fortify_setup.validation import parse_bool, validate_url

if TYPE_CHECKING:
    from fortify_setup.protocols import ConfigStore

logger = logging.getLogger(__name__)

# Fixed fcli release tag providing the `tool env` commands
FCLI_VERSION = "v3"

# Minimum fcli version a preinstalled binary must have
MIN_FCLI_VERSION = "3.14.0"

RELEASE_URL_TEMPLATE = "https://github.com/fortify/fcli/releases/download/{version}/{archive}"
SIGNATURE_SUFFIX = ".rsa_sha256"

# Default config location
CONFIG_DIR = Path.home() / ".config" / "fortify" / "setup"
CONFIG_FILE_NAME = "config.json"

ENV_FCLI_URL = "FCLI_URL"
ENV_FCLI_RSA_SHA256_URL = "FCLI_RSA_SHA256_URL"
ENV_FCLI_VERIFY_SIGNATURE = "FCLI_VERIFY_SIGNATURE"
ENV_FCLI_PATH = "FCLI_PATH"

# Field labels per layer, used in validation errors
_FILE_LABELS = {
    "fcli_url": "fcliUrl in config file",
    "fcli_rsa_sha256_url": "fcliRsaSha256Url in config file",
}
_ENV_LABELS = {
    "fcli_url": ENV_FCLI_URL,
    "fcli_rsa_sha256_url": ENV_FCLI_RSA_SHA256_URL,
}
_OPTION_LABELS = {
    "fcli_url": "fcli-url",
    "fcli_rsa_sha256_url": "fcli-rsa-sha256-url",
}
_URL_FIELDS = ("fcli_url", "fcli_rsa_sha256_url")


class PersistedConfig(BaseModel):
    """User preferences written by the ``config`` command."""

    model_config = ConfigDict(populate_by_name=True)

    fcli_url: str | None = Field(default=None, alias="fcliUrl")
    fcli_rsa_sha256_url: str | None = Field(default=None, alias="fcliRsaSha256Url")
    verify_signature: bool = Field(default=True, alias="verifySignature")
    fcli_path: str | None = Field(default=None, alias="fcliPath")


class ConfigOptions(BaseModel):
    """Call-time overrides. ``None`` means not specified."""

    model_config = ConfigDict(frozen=True)

    fcli_url: str | None = None
    fcli_rsa_sha256_url: str | None = None
    verify_signature: bool | None = None
    fcli_path: str | None = None


class EffectiveConfig(BaseModel):
    """Fully merged configuration for one bootstrap call."""

    model_config = ConfigDict(frozen=True)

    binary_url: str | None = None
    signature_url: str | None = None
    verify_signature: bool = True
    preinstalled_path: Path | None = None

    @property
    def effective_signature_url(self) -> str | None:
        """Signature URL, defaulting to the archive URL plus suffix."""
        if self.signature_url:
            return self.signature_url
        if self.binary_url:
            return f"{self.binary_url}{SIGNATURE_SUFFIX}"
        return None


def default_binary_url(system: str | None = None) -> str:
    """Get the default fcli archive URL for a platform."""
    return RELEASE_URL_TEMPLATE.format(
        version=FCLI_VERSION, archive=archive_name_for_platform(system)
    )


def default_config() -> PersistedConfig:
    """Get the configuration used when nothing has been configured."""
    return PersistedConfig()


class JsonConfigStore:
    """Stores the persisted configuration as a JSON file."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize the config store.

        Args:
            config_dir: Directory holding config.json. Defaults to
                ~/.config/fortify/setup.

        Note:
            Prefer using factory methods `create()` or `create_default()` for construction.
        """
        self.config_dir = config_dir or CONFIG_DIR
        self.config_file = self.config_dir / CONFIG_FILE_NAME

    @classmethod
    def create(cls, config_dir: Path) -> JsonConfigStore:
        """Create a config store with a custom directory."""
        return cls(config_dir=config_dir)

    @classmethod
    def create_default(cls) -> JsonConfigStore:
        """Create a config store at ~/.config/fortify/setup."""
        return cls()

    def ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> PersistedConfig:
        """Load configuration from disk.

        A missing file yields defaults. An unreadable or malformed file is
        reported as a warning and also yields defaults.

        Returns:
            Stored PersistedConfig.
        """
        if not self.config_file.exists():
            return default_config()

        try:
            data = json.loads(self.config_file.read_text(encoding="utf-8"))
            return PersistedConfig.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Failed to load config from %s: %s", self.config_file, e)
            return default_config()

    def save(self, config: PersistedConfig) -> None:
        """Save configuration to disk.

        Args:
            config: PersistedConfig to save.

        Raises:
            ConfigurationError: If the file cannot be written.
        """
        data = config.model_dump(by_alias=True, exclude_none=True)
        try:
            self.ensure_config_dir()
            self.config_file.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"Failed to save configuration to {self.config_file}: {e}"
            ) from e

    def reset(self) -> bool:
        """Delete the config file.

        Returns:
            True if a file was removed, False if none existed.

        Raises:
            ConfigurationError: If the file cannot be removed.
        """
        if not self.config_file.exists():
            return False
        try:
            self.config_file.unlink()
        except OSError as e:
            raise ConfigurationError(
                f"Failed to remove configuration file {self.config_file}: {e}"
            ) from e
        return True


class InMemoryConfigStore:
    """Config store kept in memory, for tests and embedding."""

    def __init__(self, config: PersistedConfig | None = None) -> None:
        self._config = config

    def load(self) -> PersistedConfig:
        if self._config is None:
            return default_config()
        return self._config.model_copy()

    def save(self, config: PersistedConfig) -> None:
        self._config = config.model_copy()

    def reset(self) -> bool:
        existed = self._config is not None
        self._config = None
        return existed


def _check_layer(layer: dict[str, Any], labels: Mapping[str, str]) -> dict[str, Any]:
    """Validate URL fields of one layer and reject mixed modes."""
    if layer.get("fcli_url") and layer.get("fcli_path"):
        raise ConfigurationError(
            f"Conflicting options: {labels['fcli_url']} and fcli path cannot both be set"
        )
    for field in _URL_FIELDS:
        if layer.get(field):
            validate_url(layer[field], labels[field])
    return layer


def _file_layer(persisted: PersistedConfig) -> dict[str, Any]:
    return _check_layer(persisted.model_dump(exclude_none=True), _FILE_LABELS)


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    if environ.get(ENV_FCLI_URL):
        layer["fcli_url"] = environ[ENV_FCLI_URL]
    if environ.get(ENV_FCLI_RSA_SHA256_URL):
        layer["fcli_rsa_sha256_url"] = environ[ENV_FCLI_RSA_SHA256_URL]
    if environ.get(ENV_FCLI_VERIFY_SIGNATURE):
        layer["verify_signature"] = parse_bool(
            environ[ENV_FCLI_VERIFY_SIGNATURE], ENV_FCLI_VERIFY_SIGNATURE
        )
    if environ.get(ENV_FCLI_PATH):
        layer["fcli_path"] = environ[ENV_FCLI_PATH]
    return _check_layer(layer, _ENV_LABELS)


def _options_layer(options: ConfigOptions) -> dict[str, Any]:
    return _check_layer(options.model_dump(exclude_none=True), _OPTION_LABELS)


def _apply_layer(merged: dict[str, Any], layer: dict[str, Any]) -> None:
    # Switching mode drops the other mode's fields from lower layers,
    # including a signature URL paired with an older archive URL.
    if "fcli_path" in layer or "fcli_url" in layer:
        merged.pop("fcli_rsa_sha256_url", None)
    if "fcli_path" in layer:
        merged.pop("fcli_url", None)
    if "fcli_url" in layer:
        merged.pop("fcli_path", None)
    merged.update(layer)


def resolve_config(
    persisted: PersistedConfig | None = None,
    options: ConfigOptions | None = None,
    environ: Mapping[str, str] | None = None,
    system: str | None = None,
) -> EffectiveConfig:
    """Merge persisted config, environment and call-time options.

    Args:
        persisted: Stored configuration. Defaults to an empty configuration.
        options: Call-time overrides.
        environ: Environment mapping. Defaults to ``os.environ``.
        system: Platform identifier used for the default archive URL.

    Returns:
        The EffectiveConfig for one bootstrap call.

    Raises:
        ConfigurationError: If a URL is malformed, a boolean variable cannot
            be parsed, or one layer selects both modes.
    """
    environ = os.environ if environ is None else environ
    merged: dict[str, Any] = {}
    for layer in (
        _file_layer(persisted or default_config()),
        _env_layer(environ),
        _options_layer(options or ConfigOptions()),
    ):
        _apply_layer(merged, layer)

    verify_signature = merged.get("verify_signature", True)
    if merged.get("fcli_path"):
        return EffectiveConfig(
            preinstalled_path=Path(merged["fcli_path"]),
            verify_signature=verify_signature,
        )
    return EffectiveConfig(
        binary_url=merged.get("fcli_url") or default_binary_url(system),
        signature_url=merged.get("fcli_rsa_sha256_url"),
        verify_signature=verify_signature,
    )


def configure(
    store: ConfigStore,
    *,
    fcli_url: str | None = None,
    fcli_rsa_sha256_url: str | None = None,
    fcli_path: str | None = None,
    verify_signature: bool | None = None,
) -> PersistedConfig:
    """Update the persisted configuration.

    When any field is specified, the stored configuration is reset to
    defaults first and only the specified fields are applied, so that a
    custom signature URL never outlives the archive URL it belongs to.

    Args:
        store: ConfigStore to update.
        fcli_url: Archive URL override.
        fcli_rsa_sha256_url: Signature URL override.
        fcli_path: Preinstalled fcli path.
        verify_signature: Signature verification toggle.

    Returns:
        The saved PersistedConfig.

    Raises:
        ConfigurationError: If a URL is malformed or both modes are given.
    """
    updates = {
        key: value
        for key, value in {
            "fcli_url": fcli_url,
            "fcli_rsa_sha256_url": fcli_rsa_sha256_url,
            "fcli_path": fcli_path,
            "verify_signature": verify_signature,
        }.items()
        if value is not None
    }
    if fcli_url and fcli_path:
        raise ConfigurationError("--fcli-url and --fcli-path are mutually exclusive")
    _check_layer(updates, _OPTION_LABELS)

    config = PersistedConfig(**updates) if updates else store.load()
    store.save(config)
    return config


def config_fingerprint(config: EffectiveConfig) -> str:
    """Short hash of the fields a cached download depends on.

    Args:
        config: Effective configuration.

    Returns:
        First 16 hex characters of a SHA256 digest.
    """
    relevant = {
        "fcliVersion": FCLI_VERSION,
        "fcliUrl": config.binary_url,
        "verifySignature": config.verify_signature,
    }
    payload = json.dumps(relevant, sort_keys=True).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()[:16]
