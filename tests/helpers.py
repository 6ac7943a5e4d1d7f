"""Archive builders and a fake opener shared by the tests."""

from __future__ import annotations

import io
import tarfile
import urllib.error
import zipfile

# Shell script standing in for the fcli executable
FAKE_FCLI_SCRIPT = b"#!/bin/sh\necho 'fcli version 3.14.1'\n"

ARCHIVE_URL = "https://downloads.example.com/fcli/fcli-linux.tgz"
SIGNATURE_URL = ARCHIVE_URL + ".rsa_sha256"


def make_tgz(files: dict[str, bytes], mode: int = 0o644) -> bytes:
    """Build a gzip-compressed tar archive in memory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = mode
            archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def make_zip(files: dict[str, bytes], mode: int = 0o644) -> bytes:
    """Build a zip archive in memory, recording unix modes."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            info = zipfile.ZipInfo(name)
            info.external_attr = mode << 16
            archive.writestr(info, content)
    return buffer.getvalue()


class FakeOpener:
    """In-memory stand-in for a urllib opener.

    Responses map URLs to bytes, or to an int for an HTTP error status.
    Every requested URL is recorded in ``calls``.
    """

    def __init__(self, responses: dict[str, bytes | int] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[str] = []

    def open(self, url: str, timeout: float | None = None) -> io.BytesIO:
        self.calls.append(url)
        response = self.responses.get(url, 404)
        if isinstance(response, int):
            raise urllib.error.HTTPError(url, response, "Not Found", {}, None)  # type: ignore[arg-type]
        return io.BytesIO(response)
