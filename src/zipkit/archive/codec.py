"""Thin adapter over the stdlib zip codec.

Translates zipfile/OS failures at open time into the zipkit error taxonomy and
builds entry headers from source file metadata.
"""

from __future__ import annotations

import stat
import time
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager

from zipkit.core.errors import ArchiveIOError, CodecError, NotFoundError

from .types import FileInfo

COMPRESSIONS: dict[str, int] = {
    "deflated": zipfile.ZIP_DEFLATED,
    "stored": zipfile.ZIP_STORED,
}

CODEC_ERRORS = (zipfile.BadZipFile, zipfile.LargeZipFile)

# Range the zip DOS date format can hold.
_MIN_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_MAX_DATE_TIME = (2107, 12, 31, 23, 59, 58)


def compression_for(name: str) -> int:
    return COMPRESSIONS[name]


@contextmanager
def open_reader(path: str) -> Iterator[zipfile.ZipFile]:
    """Open a zip for reading; the archive is closed when the block exits."""
    try:
        zf = zipfile.ZipFile(path, "r")
    except CODEC_ERRORS as e:
        raise CodecError(path, str(e)) from e
    except FileNotFoundError as e:
        raise NotFoundError(path) from e
    except OSError as e:
        raise ArchiveIOError(f"Cannot open archive '{path}': {e}") from e
    with zf:
        yield zf


@contextmanager
def open_writer(path: str, compression: int = zipfile.ZIP_DEFLATED) -> Iterator[zipfile.ZipFile]:
    """Create or truncate a zip for writing; finalized when the block exits."""
    try:
        zf = zipfile.ZipFile(path, "w", compression=compression, allowZip64=True)
    except OSError as e:
        raise ArchiveIOError(f"Cannot create archive '{path}': {e}") from e
    with zf:
        yield zf


def _date_time(mtime: float) -> tuple[int, int, int, int, int, int]:
    dt = time.localtime(mtime)[:6]
    if dt < _MIN_DATE_TIME:
        return _MIN_DATE_TIME
    if dt > _MAX_DATE_TIME:
        return _MAX_DATE_TIME
    return (dt[0], dt[1], dt[2], dt[3], dt[4], dt[5])


def entry_header(name: str, info: FileInfo, compression: int) -> zipfile.ZipInfo:
    """Build the header for a new entry named `name` from source metadata."""
    zi = zipfile.ZipInfo(filename=name, date_time=_date_time(info.mtime))
    zi.compress_type = compression
    zi.file_size = info.size
    zi.external_attr = (stat.S_IFREG | 0o644) << 16
    return zi
