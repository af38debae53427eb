"""Path helpers shared by the packer, unpacker and walker.

Paths are handled as strings with forward slashes; zip entry names always use
'/' regardless of platform.
"""

from __future__ import annotations

import os


def trim(path: str | os.PathLike[str] | None) -> str:
    if path is None:
        return ""
    return os.fspath(path).strip()


def to_slash(path: str) -> str:
    if os.sep == "/":
        return path
    return path.replace(os.sep, "/")


def dirname(path: str) -> str:
    """Return everything before the last '/', or '.' when there is none.

    Unlike os.path.dirname, a bare file name yields '.' so the result can be
    checked with is_dir directly.
    """
    path = to_slash(path)
    idx = path.rfind("/")
    if idx == -1:
        return "."
    if idx == 0:
        return "/"
    return path[:idx]


def exists(path: str) -> bool:
    """True if something is at path, including a dangling symlink."""
    return os.path.lexists(path)


def is_dir(path: str) -> bool:
    return os.path.isdir(path)


def is_symlink(path: str) -> bool:
    return os.path.islink(path)


def is_same_path(a: str, b: str) -> bool:
    """True when both paths resolve to the same location.

    Falls back to comparing normalized absolute paths when either side does
    not exist yet.
    """
    if not a or not b:
        return False
    try:
        return os.path.samefile(a, b)
    except OSError:
        pass
    return os.path.normcase(os.path.realpath(a)) == os.path.normcase(os.path.realpath(b))
