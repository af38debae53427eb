"""Content sniffing for archive files.

Only the leading bytes are inspected. This is a cheap pre-filter before
handing a file to the zip codec, not a structural validation.
"""

from __future__ import annotations

import os

SNIFF_LEN = 512

MIME_ZIP = "application/zip"
MIME_OCTET_STREAM = "application/octet-stream"

# (signature, mime) checked in order against the start of the data.
_SIGNATURES: list[tuple[bytes, str]] = [
    # ZIP local file header; jar, war and ear files carry the same one.
    (b"PK\x03\x04", MIME_ZIP),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"7z\xbc\xaf\x27\x1c", "application/x-7z-compressed"),
    (b"\xfd7zXZ\x00", "application/x-xz"),
    (b"%PDF-", "application/pdf"),
]


def sniff_content_type(data: bytes) -> str:
    """Return the MIME type suggested by the first bytes of data.

    Always returns a value; 'application/octet-stream' when nothing matched.
    """
    head = data[:SNIFF_LEN]
    for signature, mime in _SIGNATURES:
        if head.startswith(signature):
            return mime
    return MIME_OCTET_STREAM


def read_prefix(path: str, n: int = SNIFF_LEN) -> bytes:
    """Read at most n bytes from the start of path.

    Raises OSError if the file cannot be opened or read.
    """
    with open(path, "rb") as f:
        return f.read(n)


def is_valid_zip(path: str | os.PathLike[str]) -> bool:
    """Check whether the file is detected as a zip container.

    Java jar, war and ear files are zip. A non-matching file is a plain False;
    OSError is raised only when the file cannot be opened or read.
    """
    return sniff_content_type(read_prefix(os.fspath(path))) == MIME_ZIP
