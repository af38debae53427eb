"""Read-only traversal of archive entries."""

from __future__ import annotations

import contextlib
import os
import zipfile
from collections.abc import Iterator

from zipkit.core.errors import InvalidArgumentError, ZipKitError

from .codec import open_reader
from .paths import trim
from .types import ArchiveEntry, WalkVisitor


def _checked_path(path: str | os.PathLike[str] | None) -> str:
    root = trim(path)
    if not root:
        raise InvalidArgumentError("Archive path is empty")
    return root


def walk(path: str | os.PathLike[str] | None, visitor: WalkVisitor) -> None:
    """Call visitor for each entry of the zip at path, in central-directory order.

    Entries are passed as ArchiveEntry handles whose open() reads the content
    while the walk is running.

    If the archive cannot be opened, visitor is called once with (None, error)
    and whatever it returns is raised. A non-None return from visitor for an
    entry stops the walk and is raised unchanged. The archive is always closed.
    """
    with contextlib.ExitStack() as stack:
        try:
            zf = stack.enter_context(open_reader(_checked_path(path)))
        except ZipKitError as e:
            err = visitor(None, e)
            if err is not None:
                raise err
            return

        for info in zf.infolist():
            err = visitor(ArchiveEntry(zf, info), None)
            if err is not None:
                raise err


def iter_entries(path: str | os.PathLike[str] | None) -> Iterator[zipfile.ZipInfo]:
    """Lazily yield entries of the zip at path.

    Open failures raise when the first entry is requested. The archive is
    closed once the generator is exhausted or closed.
    """
    with open_reader(_checked_path(path)) as zf:
        yield from zf.infolist()
