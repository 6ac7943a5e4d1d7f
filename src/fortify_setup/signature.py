"""Detached RSA-SHA256 signature verification for fcli archives."""

from __future__ import annotations

import logging
from pathlib import Path

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa, utils

from fortify_setup.errors import SignatureVerificationError

logger = logging.getLogger(__name__)

# Fortify public key used to sign fcli release archives
FORTIFY_PUBLIC_KEY = b"""-----BEGIN PUBLIC KEY-----
MIIBIjANBgkqhkiG9w0BAQEFAAOCAQ8AMIIBCgKCAQEArij9U9yJVNc53oEMFWYp
NrXUG1UoRZseDh/p34q1uywD70RGKKWZvXIcUAZZwbZtCu4i0UzsrKRJeUwqanbc
woJvYanp6lc3DccXUN1w1Y0WOHOaBxiiK3B1TtEIH1cK/X+ZzazPG5nX7TSGh8Tp
/uxQzUFli2mDVLqaP62/fB9uJ2joX9Gtw8sZfuPGNMRoc8IdhjagbFkhFT7WCZnk
FH/4Co007lmXLAe12lQQqR/pOTeHJv1sfda1xaHtj4/Tcrq04Kx0ZmGAd5D9lA92
8pdBbzoe/mI5/Sk+nIY3AHkLXB9YAaKJf//Wb1yiP1/hchtVkfXyIaGM+cVyn7AN
VQIDAQAB
-----END PUBLIC KEY-----
"""

CHUNK_SIZE = 64 * 1024


class SignatureVerifier:
    """Verifies files against the embedded Fortify public key."""

    def __init__(self, public_key_pem: bytes = FORTIFY_PUBLIC_KEY) -> None:
        """Initialize the verifier.

        Args:
            public_key_pem: PEM-encoded RSA public key. Only tests pass
                anything other than the Fortify key.
        """
        key = serialization.load_pem_public_key(public_key_pem)
        if not isinstance(key, rsa.RSAPublicKey):
            raise TypeError("Signature verification requires an RSA public key")
        self._public_key = key

    def file_digest(self, path: Path) -> bytes:
        """Compute the SHA256 digest of a file in fixed-size chunks.

        Args:
            path: File to hash.

        Returns:
            Raw digest bytes.
        """
        hasher = hashes.Hash(hashes.SHA256())
        with path.open("rb") as stream:
            for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
                hasher.update(chunk)
        return hasher.finalize()

    def verify(self, file_path: Path, signature_path: Path) -> None:
        """Verify a file against a detached RSA-SHA256 signature.

        Args:
            file_path: Signed file.
            signature_path: Raw signature bytes as published next to the file.

        Raises:
            SignatureVerificationError: If the signature does not validate.
        """
        digest = self.file_digest(file_path)
        signature = signature_path.read_bytes()
        try:
            self._public_key.verify(
                signature,
                digest,
                padding.PKCS1v15(),
                utils.Prehashed(hashes.SHA256()),
            )
        except (InvalidSignature, UnsupportedAlgorithm, ValueError) as e:
            raise SignatureVerificationError(
                f"Signature verification failed for {file_path.name}"
            ) from e
        logger.debug("Signature of %s verified", file_path)
