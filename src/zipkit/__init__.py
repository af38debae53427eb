"""zipkit - pack directories into zip/jar/war/ear archives, extract and inspect them.

Usage:
    import zipkit

    zipkit.pack("build/site", "dist/site.zip")          # entries under "site/"
    zipkit.pack_flat("build/site", "dist/flat.zip")     # entries at the root
    zipkit.pack_excluding("build/site", "dist/site.zip", [r".*\\.tmp$"])
    zipkit.extract("dist/site.zip", "/tmp/out")
    zipkit.walk("dist/site.zip", lambda entry, err: err)  # entry.open() reads content
    zipkit.is_valid_zip("dist/site.zip")
"""

from __future__ import annotations

import zipfile
from collections.abc import Iterable, Iterator

from zipkit.archive import (
    ArchiveEntry,
    ArchiveService,
    BaseDirPolicy,
    ExtractResult,
    PackResult,
    WalkVisitor,
)
from zipkit.archive.service import PathArg
from zipkit.core.errors import (
    ArchiveIOError,
    CodecError,
    ConfigError,
    FileError,
    InvalidArgumentError,
    InvalidDestinationError,
    NotFoundError,
    ZipKitError,
)
from zipkit.runtime import configure, get_service

__version__ = "1.0.0"


def pack(source_path: PathArg, archive_path: PathArg) -> PackResult:
    """Zip source_path into archive_path, keeping the directory's name as prefix."""
    return get_service().pack(source_path, archive_path)


def pack_flat(source_path: PathArg, archive_path: PathArg) -> PackResult:
    """Zip source_path into archive_path with the directory's contents at the root."""
    return get_service().pack_flat(source_path, archive_path)


def pack_excluding(
    source_path: PathArg, archive_path: PathArg, exclusions: Iterable[str]
) -> PackResult:
    """Like pack, leaving out files whose internal path matches an exclusion regex."""
    return get_service().pack_excluding(source_path, archive_path, exclusions)


def extract(archive_path: PathArg, destination_dir: PathArg) -> ExtractResult:
    """Extract archive_path into destination_dir without overwriting existing files."""
    return get_service().extract(archive_path, destination_dir)


def walk(archive_path: PathArg, visitor: WalkVisitor) -> None:
    """Call visitor(entry, error) for each entry; a returned error stops the walk."""
    get_service().walk(archive_path, visitor)


def iter_entries(archive_path: PathArg) -> Iterator[zipfile.ZipInfo]:
    """Lazily yield the entries of archive_path."""
    return get_service().iter_entries(archive_path)


def is_valid_zip(path: PathArg) -> bool:
    """True if the first bytes of path carry the zip signature."""
    return get_service().is_valid_zip(path)


__all__ = [
    "__version__",
    # Operations
    "configure",
    "extract",
    "is_valid_zip",
    "iter_entries",
    "pack",
    "pack_excluding",
    "pack_flat",
    "walk",
    # Types
    "ArchiveEntry",
    "ArchiveService",
    "BaseDirPolicy",
    "ExtractResult",
    "PackResult",
    "WalkVisitor",
    # Errors
    "ZipKitError",
    "ConfigError",
    "FileError",
    "InvalidArgumentError",
    "NotFoundError",
    "InvalidDestinationError",
    "CodecError",
    "ArchiveIOError",
]
