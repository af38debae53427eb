"""Diagnostics envelope + optional JSONL sink.

The sink is installed at most once per process and self-filters when
`diagnostics.enabled` resolves to false.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from zipkit.core.config import ConfigError, ConfigResolver
from zipkit.core.events import AnyEventCallback, get_event_bus
from zipkit.core.logging import get_logger

_logger = get_logger(__name__)

COMPONENT = "zipkit"
SINK_FILENAME = "diagnostics.jsonl"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

_ENVELOPE_KEYS = frozenset({"event", "component", "operation", "timestamp", "data"})


def build_envelope(
    *,
    event: str,
    component: str,
    operation: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Build the canonical diagnostics envelope.

    Schema:
        {
          "event": "<string>",
          "component": "<string>",
          "operation": "<string>",
          "timestamp": "<iso8601 utc>",
          "data": { ... }
        }

    Timestamp is emitted in UTC with a trailing 'Z'.
    """
    ts = datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return {
        "event": event,
        "component": component,
        "operation": operation,
        "timestamp": ts,
        "data": data,
    }


def is_envelope(obj: Any) -> bool:
    if not isinstance(obj, dict) or set(obj.keys()) != _ENVELOPE_KEYS:
        return False
    if not all(
        isinstance(obj.get(k), str) for k in ("event", "component", "operation", "timestamp")
    ):
        return False
    return isinstance(obj.get("data"), dict)


def is_diagnostics_enabled(resolver: ConfigResolver) -> bool:
    """Return whether diagnostics are enabled (key: diagnostics.enabled).

    Environment values are strings and are normalized here.
    """
    try:
        value, src = resolver.resolve("diagnostics.enabled")
    except ConfigError:
        return False

    if isinstance(value, bool):
        return value

    if isinstance(value, (int, float)):
        return bool(value)

    s = str(value).strip().lower()
    if s in _TRUE_VALUES:
        return True
    if s in _FALSE_VALUES:
        return False

    if src == "env":
        _logger.warning(
            f"Invalid ZIPKIT_DIAGNOSTICS_ENABLED value; treating as disabled. value={value!r}"
        )

    return False


_SINK: AnyEventCallback | None = None


def install_jsonl_sink(*, resolver: ConfigResolver) -> None:
    """Install the JSONL diagnostics subscriber.

    Sink path:
        <diagnostics.dir>/diagnostics.jsonl

    Idempotent. When diagnostics are disabled the subscriber performs no IO.
    """
    global _SINK
    if _SINK is not None:
        return

    def _on_any_event(event: str, data: dict[str, Any]) -> None:
        if not is_diagnostics_enabled(resolver):
            return

        try:
            out_dir, _src = resolver.resolve("diagnostics.dir")
        except ConfigError:
            _logger.warning("Missing diagnostics.dir; cannot write diagnostics JSONL.")
            return
        out_path = Path(str(out_dir)).expanduser() / SINK_FILENAME

        payload = data
        if not is_envelope(data):
            payload = build_envelope(
                event=event, component="unknown", operation="unknown", data=data
            )

        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            line = json.dumps(payload, ensure_ascii=True, separators=(",", ":"), sort_keys=True)
            with out_path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")
        except Exception as e:
            _logger.warning(f"Diagnostics sink write failed: {type(e).__name__}: {e}")

    get_event_bus().subscribe_all(_on_any_event)
    _SINK = _on_any_event


def uninstall_jsonl_sink() -> None:
    """Detach the JSONL sink installed by install_jsonl_sink, if any."""
    global _SINK
    if _SINK is None:
        return
    get_event_bus().unsubscribe_all(_SINK)
    _SINK = None
