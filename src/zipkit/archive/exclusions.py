"""Exclusion patterns for packing.

Patterns are matched against the internal (already normalized) archive path
of each file. Directories are never tested.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from zipkit.core.errors import InvalidArgumentError


def compile_exclusions(patterns: Iterable[str]) -> tuple[re.Pattern[str], ...]:
    """Compile exclusion patterns, skipping empty ones.

    Raises:
        InvalidArgumentError: a pattern is not a valid regular expression.
    """
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        if not pattern:
            continue
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise InvalidArgumentError(
                f"Invalid exclusion pattern {pattern!r}: {e}",
                "Exclusions are regular expressions, e.g. '.*\\.tmp$'",
            ) from e
    return tuple(compiled)


def is_excluded(internal_path: str, exclusions: Iterable[re.Pattern[str]]) -> bool:
    if not internal_path:
        return False
    return any(rx.search(internal_path) for rx in exclusions)
