"""Exception types shared across embedscan."""

from __future__ import annotations


class EmbedScanError(Exception):
    """Base class for all embedscan errors."""


class ParseError(EmbedScanError):
    """A source file could not be read or parsed.  Fatal for its scan."""

    def __init__(self, path: str, message: str, line: int | None = None, column: int | None = None):
        self.path = path
        self.message = message
        self.line = line
        self.column = column
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.line is None:
            return f"{self.path}: {self.message}"
        return f"{self.path}:{self.line}:{self.column}: {self.message}"


class PathSyntaxError(EmbedScanError, ValueError):
    """Malformed resource path text."""


class ScanError(EmbedScanError):
    """A recoverable problem at one call site.

    Raised while classifying a single node and recorded in the scan's error
    log; the traversal itself always continues.
    """

    def __init__(self, message: str, path: str = "", line: int = 0, column: int = 0):
        self.message = message
        self.path = path
        self.line = line
        self.column = column
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.path:
            return self.message
        return f"{self.path}:{self.line}:{self.column}: {self.message}"

    @property
    def key(self) -> tuple:
        return (self.message, self.path, self.line, self.column)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "file": self.path,
            "line": self.line,
            "column": self.column,
        }


class ConfigError(EmbedScanError, ValueError):
    """Invalid ``.embedscan.yml`` contents."""


class ModuleError(EmbedScanError):
    """No usable ``go.mod`` could be found or read."""
