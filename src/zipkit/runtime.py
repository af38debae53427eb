"""Process-level setup for applications embedding zipkit.

`configure()` applies the resolved logging policy, optionally installs the
diagnostics JSONL sink and replaces the service used by the module-level
functions in `zipkit`.
"""

from __future__ import annotations

from zipkit.archive.service import ArchiveService
from zipkit.core.config import ConfigResolver
from zipkit.core.diagnostics import install_jsonl_sink
from zipkit.core.errors import ConfigError
from zipkit.core.logging import apply_logging_policy, set_colors

_default_service: ArchiveService | None = None


def configure(
    resolver: ConfigResolver | None = None, *, diagnostics_sink: bool = True
) -> ArchiveService:
    """Apply configuration and return the new default ArchiveService.

    Args:
        resolver: Config resolver. Pass `ConfigResolver()` to honor ZIPKIT_*
            env vars and the user/system YAML files; when omitted only the
            built-in defaults apply.
        diagnostics_sink: Install the JSONL sink (it still honors
            diagnostics.enabled).
    """
    global _default_service

    resolver = resolver or ConfigResolver.builtin()
    apply_logging_policy(resolver.resolve_logging_policy())

    try:
        color, _src = resolver.resolve("logging.color")
    except ConfigError:
        color = True
    if isinstance(color, str):
        color = color.strip().lower() not in {"0", "false", "no", "off"}
    set_colors(bool(color))

    if diagnostics_sink:
        install_jsonl_sink(resolver=resolver)

    _default_service = ArchiveService(resolver)
    return _default_service


def get_service() -> ArchiveService:
    """Return the default ArchiveService, creating it on first use."""
    global _default_service
    if _default_service is None:
        _default_service = ArchiveService()
    return _default_service


def reset() -> None:
    """Drop the default service so the next call builds a fresh one."""
    global _default_service
    _default_service = None
