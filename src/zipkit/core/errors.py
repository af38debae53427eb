"""Error handling with friendly messages."""

from __future__ import annotations


class ZipKitError(Exception):
    """Base exception for all zipkit errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(ZipKitError):
    """Configuration error."""

    pass


class FileError(ZipKitError):
    """File operation error."""

    pass


class InvalidArgumentError(FileError):
    """A path argument is blank or an exclusion pattern does not compile."""

    pass


class NotFoundError(FileError):
    """Source path or archive does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"'{path}' not found")
        self.path = path


class InvalidDestinationError(FileError):
    """Destination is not usable as the target of a pack or extract."""

    pass


class CodecError(FileError):
    """Archive could not be opened or is corrupt."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            f"'{path}' is not a readable zip archive: {reason}",
            "Check that the file is a zip, jar, war or ear and is not truncated",
        )
        self.path = path


class ArchiveIOError(FileError):
    """Read, write, copy or mkdir failure while packing or extracting."""

    pass
