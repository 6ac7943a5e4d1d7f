"""Tests for the validation module."""

import pytest

from fortify_setup.errors import ConfigurationError
from fortify_setup.validation import parse_bool, validate_url


class TestValidateUrl:
    """Tests for validate_url function."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/fortify/fcli/releases/download/v3/fcli-linux.tgz",
            "http://mirror.internal:8080/fcli-linux.tgz",
            "file:///opt/archives/fcli-linux.tgz",
        ],
    )
    def test_valid_urls_returned_unchanged(self, url: str) -> None:
        """Accepted URLs are returned as given."""
        assert validate_url(url, "fcli-url") == url

    @pytest.mark.parametrize(
        "url",
        ["not-a-url", "ftp://example.com/fcli.tgz", "https://", "/opt/fcli-linux.tgz"],
    )
    def test_invalid_urls_rejected(self, url: str) -> None:
        """Malformed or unsupported URLs raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Invalid fcli-url"):
            validate_url(url, "fcli-url")

    def test_error_names_field_and_value(self) -> None:
        """The error message identifies the source of the bad value."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_url("bogus", "FCLI_URL")
        assert str(exc_info.value) == "Invalid FCLI_URL: bogus"


class TestParseBool:
    """Tests for parse_bool function."""

    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "yes", "on", " True "])
    def test_true_values(self, value: str) -> None:
        """Truthy spellings parse to True."""
        assert parse_bool(value, "FCLI_VERIFY_SIGNATURE") is True

    @pytest.mark.parametrize("value", ["false", "False", "0", "no", "off"])
    def test_false_values(self, value: str) -> None:
        """Falsy spellings parse to False."""
        assert parse_bool(value, "FCLI_VERIFY_SIGNATURE") is False

    def test_unrecognized_value(self) -> None:
        """Anything else raises ConfigurationError naming the variable."""
        with pytest.raises(ConfigurationError, match="FCLI_VERIFY_SIGNATURE"):
            parse_bool("maybe", "FCLI_VERIFY_SIGNATURE")
