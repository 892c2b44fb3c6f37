"""Standardized CLI exit codes for embedscan.

Exit code scheme:

    0  SUCCESS        -- scan completed, no recoverable errors (or not --strict)
    1  GENERAL_ERROR  -- unexpected failure, crash, unhandled exception
    2  USAGE_ERROR    -- invalid arguments, bad flags, unknown command (Click default)
    3  PARSE_ERROR    -- a Go file could not be read or parsed
    4  CONFIG_ERROR   -- .embedscan.yml or go.mod is invalid or missing
    6  PARTIAL        -- paths were found but some call sites could not be resolved

Build tooling can tell "the manifest is incomplete" (6) apart from "the
scan never ran" (3, 4).
"""

from __future__ import annotations

import click

# ---------------------------------------------------------------------------
# Exit code constants
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_ERROR: int = 1
EXIT_USAGE: int = 2
EXIT_PARSE_ERROR: int = 3
EXIT_CONFIG_ERROR: int = 4
EXIT_PARTIAL: int = 6

DESCRIPTIONS: dict[int, str] = {
    EXIT_SUCCESS: "success",
    EXIT_ERROR: "unexpected error",
    EXIT_USAGE: "invalid usage (bad arguments or flags)",
    EXIT_PARSE_ERROR: "source file could not be parsed",
    EXIT_CONFIG_ERROR: "invalid configuration or go.mod",
    EXIT_PARTIAL: "partial results (unresolved call sites)",
}

# ---------------------------------------------------------------------------
# Custom exceptions (caught by Click's error handler)
# ---------------------------------------------------------------------------


class EmbedScanCLIError(click.ClickException):
    """Base class for CLI errors with exit codes."""

    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.exit_code = exit_code

    def format_message(self) -> str:
        return self.message


class ParseFailedError(EmbedScanCLIError):
    """Raised when a Go file cannot be parsed."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_PARSE_ERROR)


class ConfigFailedError(EmbedScanCLIError):
    """Raised on invalid .embedscan.yml or an unusable go.mod."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_CONFIG_ERROR)


class PartialResultError(EmbedScanCLIError):
    """Raised under --strict when recoverable errors were recorded."""

    def __init__(self, message: str = "Some call sites could not be resolved."):
        super().__init__(message, EXIT_PARTIAL)
