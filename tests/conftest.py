"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from fortify_setup.cache import BinaryCache
from fortify_setup.download import Downloader
from fortify_setup.signature import SignatureVerifier
from helpers import ARCHIVE_URL, FAKE_FCLI_SCRIPT, SIGNATURE_URL, FakeOpener, make_tgz

# ============================================================================
# Signing Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    """Generate a throwaway RSA key for signing test archives."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_key_pem(private_key: rsa.RSAPrivateKey) -> bytes:
    """PEM encoding of the test public key."""
    return private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture
def sign(private_key: rsa.RSAPrivateKey) -> Callable[[bytes], bytes]:
    """Sign data the way fcli releases are signed (RSA, PKCS#1 v1.5, SHA256)."""

    def _sign(data: bytes) -> bytes:
        return private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())

    return _sign


@pytest.fixture
def verifier(public_key_pem: bytes) -> SignatureVerifier:
    """Verifier trusting the test key."""
    return SignatureVerifier(public_key_pem)


# ============================================================================
# Download Fixtures
# ============================================================================


@pytest.fixture
def fcli_archive() -> bytes:
    """Release archive containing the fake fcli executable."""
    return make_tgz({"fcli": FAKE_FCLI_SCRIPT}, mode=0o755)


@pytest.fixture
def opener(fcli_archive: bytes, sign: Callable[[bytes], bytes]) -> FakeOpener:
    """Opener serving a signed release archive."""
    return FakeOpener({ARCHIVE_URL: fcli_archive, SIGNATURE_URL: sign(fcli_archive)})


@pytest.fixture
def downloader(opener: FakeOpener) -> Downloader:
    """Downloader using the in-memory opener."""
    return Downloader.create(opener)


@pytest.fixture
def temp_cache_dir(tmp_path: Path) -> Path:
    """Location for the binary cache (not created)."""
    return tmp_path / "cache" / "fortify" / "fcli"


@pytest.fixture
def binary_cache(temp_cache_dir: Path) -> BinaryCache:
    """Binary cache in a temporary directory, using Linux names."""
    return BinaryCache(cache_dir=temp_cache_dir, system="linux")


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Path:
    """Location for config.json (not created)."""
    return tmp_path / ".config" / "fortify" / "setup"
