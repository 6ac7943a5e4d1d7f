"""Tests for RSA-SHA256 signature verification."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from fortify_setup.errors import SignatureVerificationError
from fortify_setup.signature import CHUNK_SIZE, SignatureVerifier


@pytest.fixture
def signed_file(tmp_path: Path, sign: Callable[[bytes], bytes]) -> tuple[Path, Path]:
    """Write a file and its detached signature."""
    data = b"fcli release archive" * 10_000
    file_path = tmp_path / "fcli-linux.tgz"
    file_path.write_bytes(data)
    signature_path = tmp_path / "fcli-linux.tgz.rsa_sha256"
    signature_path.write_bytes(sign(data))
    return file_path, signature_path


class TestSignatureVerifier:
    """Tests for SignatureVerifier class."""

    def test_default_key_loads(self) -> None:
        """The embedded Fortify key is a valid RSA public key."""
        SignatureVerifier()

    def test_rejects_non_rsa_key(self) -> None:
        key = ec.generate_private_key(ec.SECP256R1()).public_key()
        pem = key.public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        with pytest.raises(TypeError, match="RSA"):
            SignatureVerifier(pem)

    def test_file_digest_matches_hashlib(
        self, tmp_path: Path, verifier: SignatureVerifier
    ) -> None:
        """Chunked hashing equals a one-shot SHA256 for multi-chunk files."""
        data = bytes(range(256)) * (CHUNK_SIZE // 64)
        path = tmp_path / "data.bin"
        path.write_bytes(data)

        assert verifier.file_digest(path) == hashlib.sha256(data).digest()

    def test_valid_signature(
        self, signed_file: tuple[Path, Path], verifier: SignatureVerifier
    ) -> None:
        file_path, signature_path = signed_file
        verifier.verify(file_path, signature_path)

    def test_tampered_file(
        self, signed_file: tuple[Path, Path], verifier: SignatureVerifier
    ) -> None:
        file_path, signature_path = signed_file
        file_path.write_bytes(file_path.read_bytes() + b"!")

        with pytest.raises(SignatureVerificationError, match="fcli-linux.tgz"):
            verifier.verify(file_path, signature_path)

    def test_garbage_signature(
        self, signed_file: tuple[Path, Path], verifier: SignatureVerifier
    ) -> None:
        file_path, signature_path = signed_file
        signature_path.write_bytes(b"garbage")

        with pytest.raises(SignatureVerificationError):
            verifier.verify(file_path, signature_path)

    def test_wrong_key(self, signed_file: tuple[Path, Path]) -> None:
        """A signature from another key fails against the Fortify key."""
        file_path, signature_path = signed_file

        with pytest.raises(SignatureVerificationError):
            SignatureVerifier().verify(file_path, signature_path)
