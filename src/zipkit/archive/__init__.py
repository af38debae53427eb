"""Archive capability package: pack, extract, walk and sniff zip containers."""

from .detect import MIME_ZIP, is_valid_zip, sniff_content_type
from .packer import DirectoryPacker
from .service import ArchiveService
from .types import (
    ArchiveEntry,
    BaseDirPolicy,
    EntryRecord,
    ExtractRequest,
    ExtractResult,
    FileInfo,
    OpenOutcome,
    OpenResult,
    PackRequest,
    PackResult,
    WalkVisitor,
)
from .unpacker import ArchiveUnpacker
from .walker import iter_entries, walk

__all__ = [
    "MIME_ZIP",
    "ArchiveEntry",
    "ArchiveService",
    "ArchiveUnpacker",
    "BaseDirPolicy",
    "DirectoryPacker",
    "EntryRecord",
    "ExtractRequest",
    "ExtractResult",
    "FileInfo",
    "OpenOutcome",
    "OpenResult",
    "PackRequest",
    "PackResult",
    "WalkVisitor",
    "is_valid_zip",
    "iter_entries",
    "sniff_content_type",
    "walk",
]
