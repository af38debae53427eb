"""Archive capability types.

All values here are immutable; a request is built once and consumed by a
single pack or extract pass.
"""

from __future__ import annotations

import zipfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import IO, BinaryIO

from zipkit.core.errors import CodecError


class BaseDirPolicy(StrEnum):
    """Whether the source directory's own name prefixes every internal path."""

    FLAT = "flat"
    PRESERVE = "preserve"


class OpenOutcome(StrEnum):
    OPENED = "opened"
    SKIPPED_BROKEN_LINK = "skipped_broken_link"
    FAILED = "failed"


@dataclass(frozen=True)
class PackRequest:
    source_path: str
    archive_path: str
    policy: BaseDirPolicy = BaseDirPolicy.PRESERVE
    exclusions: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtractRequest:
    archive_path: str
    destination_dir: str


@dataclass(frozen=True)
class FileInfo:
    size: int
    mtime: float
    is_regular: bool
    is_symlink: bool


@dataclass(frozen=True)
class EntryRecord:
    """One file selected for packing, with the name it receives in the archive."""

    internal_name: str
    source_path: str
    info: FileInfo


@dataclass(frozen=True)
class OpenResult:
    """Outcome of opening a source file for packing.

    Exactly one of `handle` (OPENED) or `error` (FAILED) is set; a
    SKIPPED_BROKEN_LINK result carries neither.
    """

    outcome: OpenOutcome
    handle: BinaryIO | None = None
    error: OSError | None = None


@dataclass(frozen=True)
class PackResult:
    archive_path: str
    files_packed: int
    total_bytes: int
    excluded: tuple[str, ...] = ()
    skipped_links: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtractResult:
    destination_dir: str
    files_extracted: int
    files_skipped: int
    total_bytes: int


@dataclass(frozen=True)
class ArchiveEntry:
    """One entry of an archive being walked.

    Valid only while the walk that produced it is running; the underlying
    archive is closed afterwards.
    """

    archive: zipfile.ZipFile
    info: zipfile.ZipInfo

    @property
    def name(self) -> str:
        return self.info.filename

    @property
    def file_size(self) -> int:
        return self.info.file_size

    @property
    def compress_size(self) -> int:
        return self.info.compress_size

    @property
    def date_time(self) -> tuple[int, int, int, int, int, int]:
        return self.info.date_time

    def is_dir(self) -> bool:
        return self.info.is_dir()

    def open(self) -> IO[bytes]:
        """Open the entry's decompressed content for reading."""
        try:
            return self.archive.open(self.info, "r")
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            raise CodecError(str(self.archive.filename), f"{self.name}: {e}") from e


# Called with (entry, None) per entry, or once with (None, error) when the
# archive cannot be opened. A non-None return aborts the walk.
WalkVisitor = Callable[[ArchiveEntry | None, BaseException | None], BaseException | None]
