"""LogBus for publishing zipkit log records.

Embedding applications subscribe here to route zipkit log lines into their own
logging setup. Subscriber exceptions never propagate into the publisher.
"""

from __future__ import annotations

import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass

LogListener = Callable[["LogRecord"], None]


@dataclass(frozen=True)
class LogRecord:
    level_name: str  # DEBUG | VERBOSE | INFO | WARNING | ERROR
    message: str
    logger_name: str

    @property
    def plain(self) -> str:
        """Uncolored console form, e.g. "[info] zipkit.pack status='succeeded'"."""
        return f"[{self.level_name.lower()}] {self.message}"


class LogBus:
    def __init__(self) -> None:
        self._listeners: list[LogListener] = []

    def subscribe_all(self, listener: LogListener) -> None:
        self._listeners.append(listener)

    def unsubscribe_all(self, listener: LogListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, record: LogRecord) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(record)
            except Exception:
                # Reported on stderr directly; the core logger would recurse.
                sys.stderr.write(
                    f"zipkit log listener {listener!r} failed:\n{traceback.format_exc()}"
                )

    def clear(self) -> None:
        self._listeners.clear()


_LOG_BUS: LogBus | None = None


def get_log_bus() -> LogBus:
    global _LOG_BUS
    if _LOG_BUS is None:
        _LOG_BUS = LogBus()
    return _LOG_BUS
