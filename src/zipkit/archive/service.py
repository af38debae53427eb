"""Archive service: the public pack/extract/walk/sniff operations.

Each operation validates its arguments, runs one packer/unpacker/walker pass
and is observed: `operation.start` / `operation.end` envelopes go to the event
bus and a one-line summary is logged at debug level when the operation ends.
Failures are raised to the caller and never logged above debug level.

The service holds only values resolved from configuration at construction
time, so one instance can be shared across threads as long as calls target
different paths.
"""

from __future__ import annotations

import os
import time
import traceback
import zipfile
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from zipkit.core.config import ConfigResolver
from zipkit.core.diagnostics import COMPONENT, build_envelope
from zipkit.core.errors import (
    ArchiveIOError,
    InvalidArgumentError,
    InvalidDestinationError,
    NotFoundError,
    ZipKitError,
)
from zipkit.core.events import get_event_bus
from zipkit.core.logging import get_logger

from . import detect, walker
from .codec import compression_for
from .packer import DirectoryPacker
from .paths import dirname, exists, is_dir, trim
from .types import (
    ArchiveEntry,
    BaseDirPolicy,
    ExtractRequest,
    ExtractResult,
    PackRequest,
    PackResult,
    WalkVisitor,
)
from .unpacker import ArchiveUnpacker

_logger = get_logger(__name__)

PathArg = str | os.PathLike[str] | None


def _short_traceback(*, max_lines: int = 20) -> str:
    tb_lines = traceback.format_exc().strip().splitlines()
    return "\n".join(tb_lines[-max_lines:])


def _safe_publish(event: str, payload: dict[str, Any]) -> None:
    try:
        get_event_bus().publish(event, payload)
    except Exception:
        # Diagnostics emission must never change an operation's outcome.
        return


def _summary_line(operation: str, fields: dict[str, Any]) -> str:
    parts = [operation]
    for key, value in fields.items():
        parts.append(f"{key}={value!r}" if isinstance(value, str) else f"{key}={value}")
    return " ".join(parts)


@contextmanager
def _observe_operation(
    *,
    operation: str,
    base: dict[str, Any],
    wrap_errors: bool = True,
) -> Iterator[dict[str, Any]]:
    """Publish start/end envelopes around an operation and log its outcome.

    With wrap_errors, exceptions that are not ZipKitError are re-raised as
    ArchiveIOError with the original chained.
    """
    start = time.perf_counter()
    _safe_publish(
        "operation.start",
        build_envelope(
            event="operation.start", component=COMPONENT, operation=operation, data=dict(base)
        ),
    )

    summary: dict[str, Any] = {}
    try:
        yield summary
    except Exception as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        end_data = dict(base)
        end_data.update(
            {
                "status": "failed",
                "duration_ms": duration_ms,
                "error_type": type(e).__name__,
                "error_message": str(e),
                "traceback": _short_traceback(),
            }
        )
        _safe_publish(
            "operation.end",
            build_envelope(
                event="operation.end", component=COMPONENT, operation=operation, data=end_data
            ),
        )
        failed = {"status": "failed", "duration_ms": duration_ms, **base}
        failed["error_type"] = type(e).__name__
        _logger.debug(_summary_line(operation, failed))
        if wrap_errors and not isinstance(e, ZipKitError):
            raise ArchiveIOError(str(e)) from e
        raise
    else:
        duration_ms = int((time.perf_counter() - start) * 1000)
        end_data = dict(base)
        end_data.update(summary)
        end_data.update({"status": "succeeded", "duration_ms": duration_ms})
        _safe_publish(
            "operation.end",
            build_envelope(
                event="operation.end", component=COMPONENT, operation=operation, data=end_data
            ),
        )
        succeeded = {"status": "succeeded", "duration_ms": duration_ms, **base, **summary}
        _logger.debug(_summary_line(operation, succeeded))


class ArchiveService:
    """Pack, extract, walk and sniff zip containers.

    Example:
        svc = ArchiveService()
        svc.pack("build/site", "dist/site.zip")
        svc.extract("dist/site.zip", "/tmp/site")
    """

    def __init__(self, resolver: ConfigResolver | None = None) -> None:
        self._resolver = resolver or ConfigResolver.builtin()
        self._compression = compression_for(self._resolver.resolve_compression())
        self._chunk_size = self._resolver.resolve_copy_chunk_size()

    @property
    def compression(self) -> int:
        return self._compression

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def pack(self, source_path: PathArg, archive_path: PathArg) -> PackResult:
        """Zip source_path; a directory's own name prefixes every entry."""
        return self._pack(source_path, archive_path, BaseDirPolicy.PRESERVE, ())

    def pack_flat(self, source_path: PathArg, archive_path: PathArg) -> PackResult:
        """Zip source_path; a directory's contents sit at the archive root."""
        return self._pack(source_path, archive_path, BaseDirPolicy.FLAT, ())

    def pack_excluding(
        self, source_path: PathArg, archive_path: PathArg, exclusions: Iterable[str]
    ) -> PackResult:
        """Like pack, skipping files whose internal path matches any exclusion."""
        return self._pack(source_path, archive_path, BaseDirPolicy.PRESERVE, tuple(exclusions))

    def extract(self, archive_path: PathArg, destination_dir: PathArg) -> ExtractResult:
        """Extract archive_path into destination_dir, keeping existing files."""
        base = {"archive": trim(archive_path), "destination": trim(destination_dir)}
        with _observe_operation(operation="zipkit.extract", base=base) as summary:
            request = self._extract_request(archive_path, destination_dir)
            result = ArchiveUnpacker(request, chunk_size=self._chunk_size).extract()
            summary.update(
                {
                    "files": result.files_extracted,
                    "skipped": result.files_skipped,
                    "bytes": result.total_bytes,
                }
            )
            return result

    def walk(self, archive_path: PathArg, visitor: WalkVisitor) -> None:
        """Visit each entry of archive_path; see walker.walk for the contract.

        Errors returned by the visitor propagate unchanged.
        """
        entries = 0

        def _counting(
            entry: ArchiveEntry | None, err: BaseException | None
        ) -> BaseException | None:
            nonlocal entries
            if entry is not None:
                entries += 1
            return visitor(entry, err)

        base = {"archive": trim(archive_path)}
        with _observe_operation(operation="zipkit.walk", base=base, wrap_errors=False) as summary:
            walker.walk(archive_path, _counting)
            summary["entries"] = entries

    def iter_entries(self, archive_path: PathArg) -> Iterator[zipfile.ZipInfo]:
        """Lazily yield the entries of archive_path (not observed)."""
        return walker.iter_entries(archive_path)

    def is_valid_zip(self, path: PathArg) -> bool:
        """Sniff the first bytes of path; True only for a zip signature.

        Raises only when the file cannot be opened or read.
        """
        base = {"path": trim(path)}
        with _observe_operation(operation="zipkit.sniff", base=base) as summary:
            target = trim(path)
            if not target:
                raise InvalidArgumentError("path is empty")
            try:
                valid = detect.is_valid_zip(target)
            except FileNotFoundError as e:
                raise NotFoundError(target) from e
            except OSError as e:
                raise ArchiveIOError(f"Cannot read '{target}': {e}") from e
            summary["valid"] = valid
            return valid

    def _pack(
        self,
        source_path: PathArg,
        archive_path: PathArg,
        policy: BaseDirPolicy,
        exclusions: tuple[str, ...],
    ) -> PackResult:
        base = {
            "source": trim(source_path),
            "archive": trim(archive_path),
            "policy": policy.value,
        }
        with _observe_operation(operation="zipkit.pack", base=base) as summary:
            request = self._pack_request(source_path, archive_path, policy, exclusions)
            packer = DirectoryPacker(
                request, compression=self._compression, chunk_size=self._chunk_size
            )
            result = packer.pack()
            summary.update(
                {
                    "files": result.files_packed,
                    "bytes": result.total_bytes,
                    "excluded": len(result.excluded),
                    "skipped_links": len(result.skipped_links),
                }
            )
            return result

    def _pack_request(
        self,
        source_path: PathArg,
        archive_path: PathArg,
        policy: BaseDirPolicy,
        exclusions: tuple[str, ...],
    ) -> PackRequest:
        in_path = trim(source_path)
        out_path = trim(archive_path)
        if not in_path or not out_path:
            raise InvalidArgumentError("path or destination is empty")
        if not exists(in_path):
            raise NotFoundError(in_path)
        if not is_dir(dirname(out_path)):
            raise InvalidDestinationError(
                f"invalid path {out_path}", "The archive's parent directory must exist"
            )
        return PackRequest(
            source_path=in_path,
            archive_path=out_path,
            policy=policy,
            exclusions=exclusions,
        )

    def _extract_request(self, archive_path: PathArg, destination_dir: PathArg) -> ExtractRequest:
        zip_path = trim(archive_path)
        dest_path = trim(destination_dir)
        if not zip_path or not dest_path:
            raise InvalidArgumentError("path or destination is empty")
        if not exists(zip_path):
            raise NotFoundError(zip_path)
        if not is_dir(dirname(dest_path)):
            raise InvalidDestinationError(
                f"{dest_path} invalid path", "The destination's parent directory must exist"
            )
        return ExtractRequest(archive_path=zip_path, destination_dir=dest_path)

