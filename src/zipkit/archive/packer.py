"""Directory packing.

Walks a source directory depth-first in filesystem enumeration order and
writes every file into a zip under its internal name:

- FLAT: the path relative to the source directory.
- PRESERVE: the source directory's base name followed by the relative path.

A single-file source becomes one entry named after the file's base name,
regardless of policy. Argument validation lives in ArchiveService; the packer
assumes its request has already been checked.
"""

from __future__ import annotations

import os
import stat
import zipfile
from collections.abc import Iterator
from typing import IO

from zipkit.core.config import DEFAULT_COPY_CHUNK_SIZE
from zipkit.core.errors import ArchiveIOError
from zipkit.core.logging import get_logger

from .codec import CODEC_ERRORS, entry_header, open_writer
from .exclusions import compile_exclusions, is_excluded
from .paths import is_dir, is_same_path, is_symlink, to_slash
from .types import (
    BaseDirPolicy,
    EntryRecord,
    FileInfo,
    OpenOutcome,
    OpenResult,
    PackRequest,
    PackResult,
)

log = get_logger(__name__)


def file_info(path: str) -> FileInfo:
    """Stat path, following a symlink when its target exists."""
    st = os.lstat(path)
    link = stat.S_ISLNK(st.st_mode)
    if link:
        try:
            st = os.stat(path)
        except OSError:
            pass
    return FileInfo(
        size=int(st.st_size),
        mtime=float(st.st_mtime),
        is_regular=stat.S_ISREG(st.st_mode),
        is_symlink=link,
    )


def open_source(path: str) -> OpenResult:
    """Open a source file for reading.

    A symlink whose target is missing yields SKIPPED_BROKEN_LINK; any other
    failure yields FAILED with the OSError attached.
    """
    try:
        handle = open(path, "rb")
    except OSError as e:
        if is_symlink(path) and not os.path.exists(path):
            return OpenResult(OpenOutcome.SKIPPED_BROKEN_LINK)
        return OpenResult(OpenOutcome.FAILED, error=e)
    return OpenResult(OpenOutcome.OPENED, handle=handle)


def internal_name(path: str, base_path: str, base_name: str) -> str:
    """Map an absolute slash path under base_path to its archive name."""
    rel = path[len(base_path) :] if path.startswith(base_path) else path
    return (base_name + rel).lstrip("/")


def _list_dir(dir_path: str) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(dir_path) as it:
            return list(it)
    except OSError as e:
        raise ArchiveIOError(f"Cannot read directory '{dir_path}': {e}") from e


class DirectoryPacker:
    """Single-use packer for one PackRequest."""

    def __init__(
        self,
        request: PackRequest,
        *,
        compression: int = zipfile.ZIP_DEFLATED,
        chunk_size: int = DEFAULT_COPY_CHUNK_SIZE,
    ) -> None:
        self._request = request
        self._exclusions = compile_exclusions(request.exclusions)
        self._compression = compression
        self._chunk_size = chunk_size

    def iter_records(self) -> Iterator[EntryRecord]:
        """Yield every file under the source directory with its internal name.

        Exclusions are not applied here. Entries resolving to the destination
        archive are skipped. Directories are descended but never yielded;
        symlinks are not followed into directories.
        """
        base_path = to_slash(os.path.abspath(self._request.source_path)).rstrip("/") or "/"
        base_name = ""
        if self._request.policy == BaseDirPolicy.PRESERVE:
            base_name = os.path.basename(base_path)
        archive_path = self._request.archive_path

        stack: list[Iterator[os.DirEntry[str]]] = [iter(_list_dir(base_path))]
        while stack:
            entry = next(stack[-1], None)
            if entry is None:
                stack.pop()
                continue

            cur_path = to_slash(entry.path)
            if is_same_path(cur_path, archive_path):
                log.debug(f"pack skip destination archive {cur_path!r}")
                continue

            if entry.is_dir(follow_symlinks=False):
                stack.append(iter(_list_dir(cur_path)))
                continue

            try:
                info = file_info(cur_path)
            except OSError as e:
                raise ArchiveIOError(f"Cannot stat '{cur_path}': {e}") from e

            yield EntryRecord(
                internal_name=internal_name(cur_path, base_path, base_name),
                source_path=cur_path,
                info=info,
            )

    def pack(self) -> PackResult:
        source = self._request.source_path
        excluded: list[str] = []
        skipped: list[str] = []
        files = 0
        total = 0

        with open_writer(self._request.archive_path, self._compression) as zf:
            walk_tree = is_dir(source)
            if walk_tree:
                records: Iterator[EntryRecord] = self.iter_records()
            else:
                records = iter([self._single_file_record(source)])

            for record in records:
                if walk_tree and is_excluded(record.internal_name, self._exclusions):
                    log.debug(f"pack exclude {record.internal_name!r}")
                    excluded.append(record.internal_name)
                    continue
                written = self._add(zf, record)
                if written is None:
                    skipped.append(record.source_path)
                    continue
                files += 1
                total += written

        return PackResult(
            archive_path=self._request.archive_path,
            files_packed=files,
            total_bytes=total,
            excluded=tuple(excluded),
            skipped_links=tuple(skipped),
        )

    def _single_file_record(self, source: str) -> EntryRecord:
        try:
            info = file_info(source)
        except OSError as e:
            raise ArchiveIOError(f"Cannot stat '{source}': {e}") from e
        return EntryRecord(
            internal_name=os.path.basename(to_slash(source).rstrip("/")),
            source_path=source,
            info=info,
        )

    def _add(self, zf: zipfile.ZipFile, record: EntryRecord) -> int | None:
        """Write one record; returns bytes written, or None for a skipped link."""
        opened = open_source(record.source_path)
        if opened.outcome == OpenOutcome.SKIPPED_BROKEN_LINK:
            log.debug(f"pack skip broken link {record.source_path!r}")
            return None
        if opened.outcome == OpenOutcome.FAILED or opened.handle is None:
            raise ArchiveIOError(
                f"Cannot read '{record.source_path}': {opened.error}"
            ) from opened.error

        header = entry_header(record.internal_name, record.info, self._compression)
        with opened.handle as src:
            try:
                with zf.open(header, "w") as dst:
                    written = self._copy(src, dst)
            except (OSError, *CODEC_ERRORS) as e:
                raise ArchiveIOError(
                    f"Cannot add '{record.source_path}' as {record.internal_name!r}: {e}"
                ) from e
        log.debug(f"pack add {record.internal_name!r} bytes={written}")
        return written

    def _copy(self, src: IO[bytes], dst: IO[bytes]) -> int:
        written = 0
        while True:
            chunk = src.read(self._chunk_size)
            if not chunk:
                return written
            dst.write(chunk)
            written += len(chunk)
