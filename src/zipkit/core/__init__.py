"""zipkit core: errors, logging, configuration and diagnostics."""

from zipkit.core.config import ConfigResolver, LoggingPolicy
from zipkit.core.errors import (
    ArchiveIOError,
    CodecError,
    ConfigError,
    FileError,
    InvalidArgumentError,
    InvalidDestinationError,
    NotFoundError,
    ZipKitError,
)
from zipkit.core.events import EventBus, get_event_bus
from zipkit.core.logging import (
    VerbosityLevel,
    apply_logging_policy,
    get_logger,
    get_verbosity,
    set_colors,
    set_log_sink,
    set_verbosity,
)

__all__ = [
    # Config
    "ConfigResolver",
    "LoggingPolicy",
    # Errors
    "ZipKitError",
    "ConfigError",
    "FileError",
    "InvalidArgumentError",
    "NotFoundError",
    "InvalidDestinationError",
    "CodecError",
    "ArchiveIOError",
    # Events
    "EventBus",
    "get_event_bus",
    # Logging
    "VerbosityLevel",
    "apply_logging_policy",
    "get_logger",
    "get_verbosity",
    "set_colors",
    "set_log_sink",
    "set_verbosity",
]
