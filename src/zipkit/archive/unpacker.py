"""Archive extraction.

Entries are written in archive order to `<destination>/<entry name>`. A file
that already exists at its destination is left untouched, so extracting the
same archive twice is a per-file no-op. Nothing is rolled back on failure.
"""

from __future__ import annotations

import os
import zipfile

from zipkit.core.config import DEFAULT_COPY_CHUNK_SIZE
from zipkit.core.errors import ArchiveIOError, CodecError, InvalidDestinationError
from zipkit.core.logging import get_logger

from .codec import CODEC_ERRORS, open_reader
from .paths import dirname, exists, is_dir, to_slash
from .types import ExtractRequest, ExtractResult

log = get_logger(__name__)


def _within(path: str, root: str) -> bool:
    real = os.path.realpath(path)
    real_root = os.path.realpath(root)
    return real == real_root or real.startswith(real_root.rstrip(os.sep) + os.sep)


class ArchiveUnpacker:
    """Single-use extractor for one ExtractRequest."""

    def __init__(
        self, request: ExtractRequest, *, chunk_size: int = DEFAULT_COPY_CHUNK_SIZE
    ) -> None:
        self._request = request
        self._chunk_size = chunk_size

    def extract(self) -> ExtractResult:
        archive_path = self._request.archive_path
        base_dir = to_slash(self._request.destination_dir).rstrip("/") or "/"
        extracted = 0
        skipped = 0
        total = 0

        with open_reader(archive_path) as zf:
            if exists(base_dir) and not is_dir(base_dir):
                raise InvalidDestinationError(
                    f"'{self._request.destination_dir}' exists but is not a directory"
                )
            self._mkdir(base_dir)

            for info in zf.infolist():
                destination = f"{base_dir}/{info.filename}"
                if not _within(destination, base_dir):
                    raise InvalidDestinationError(
                        f"Archive entry {info.filename!r} escapes '{base_dir}'"
                    )

                if info.is_dir():
                    self._mkdir(destination.rstrip("/"))
                    continue

                self._mkdir(dirname(destination))
                if exists(destination):
                    log.debug(f"extract skip existing {destination!r}")
                    skipped += 1
                    continue

                total += self._write_entry(zf, info, destination)
                extracted += 1

        return ExtractResult(
            destination_dir=self._request.destination_dir,
            files_extracted=extracted,
            files_skipped=skipped,
            total_bytes=total,
        )

    def _mkdir(self, path: str) -> None:
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise ArchiveIOError(f"Cannot create directory '{path}': {e}") from e

    def _write_entry(self, zf: zipfile.ZipFile, info: zipfile.ZipInfo, destination: str) -> int:
        written = 0
        try:
            with zf.open(info, "r") as src, open(destination, "wb") as dst:
                while True:
                    chunk = src.read(self._chunk_size)
                    if not chunk:
                        break
                    dst.write(chunk)
                    written += len(chunk)
        except CODEC_ERRORS as e:
            raise CodecError(self._request.archive_path, f"{info.filename}: {e}") from e
        except OSError as e:
            raise ArchiveIOError(f"Cannot extract {info.filename!r} to '{destination}': {e}") from e
        log.debug(f"extract write {info.filename!r} bytes={written}")
        return written
