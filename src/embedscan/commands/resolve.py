"""Shared helpers for subcommands: config loading and result reporting."""

from __future__ import annotations

from pathlib import Path

import click

from embedscan.config import Config, load_config
from embedscan.errors import ConfigError
from embedscan.exit_codes import ConfigFailedError, PartialResultError
from embedscan.output.formatter import format_error
from embedscan.package import find_module_root


def project_config(start: str | Path) -> tuple[Path | None, Config]:
    """Find the enclosing module root and load its ``.embedscan.yml``."""
    root = find_module_root(start)
    try:
        return root, load_config(root)
    except ConfigError as e:
        raise ConfigFailedError(str(e)) from e


def echo_errors(errors) -> None:
    for error in errors:
        click.echo(format_error(error), err=True)


def check_strict(errors, strict: bool) -> None:
    """Under --strict, turn recorded recoverable errors into exit code 6."""
    if strict and errors:
        raise PartialResultError(f"{len(errors)} call site(s) could not be resolved.")
