"""Validation utilities for configuration values.

Shared by the configuration resolver and the ``config`` command so that
malformed values are rejected before any network activity.
"""

from __future__ import annotations

from urllib.parse import urlparse

from fortify_setup.errors import ConfigurationError

ALLOWED_URL_SCHEMES = ("http", "https", "file")

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def validate_url(value: str, field: str = "URL") -> str:
    """Validate that a string is an absolute download URL.

    Args:
        value: URL to check.
        field: Name of the option or variable the value came from, used in
            the error message.

    Returns:
        The URL, unchanged.

    Raises:
        ConfigurationError: If the URL has no supported scheme or no host.

    Example:
        >>> validate_url("https://example.com/fcli-linux.tgz", "fcli-url")
        'https://example.com/fcli-linux.tgz'
    """
    try:
        parsed = urlparse(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {field}: {value}") from e

    if parsed.scheme not in ALLOWED_URL_SCHEMES:
        raise ConfigurationError(f"Invalid {field}: {value}")
    if parsed.scheme != "file" and not parsed.netloc:
        raise ConfigurationError(f"Invalid {field}: {value}")
    return value


def parse_bool(value: str, field: str) -> bool:
    """Parse a boolean flag from an environment variable value.

    Args:
        value: Raw value, compared case-insensitively.
        field: Variable name for the error message.

    Returns:
        Parsed boolean.

    Raises:
        ConfigurationError: If the value is not a recognized boolean.
    """
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid {field}: {value!r} (expected true or false)")
