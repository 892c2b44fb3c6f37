"""Scan a single Go file for embedded-resource references."""

from __future__ import annotations

from pathlib import Path

import click

from embedscan.commands.resolve import check_strict, echo_errors, project_config
from embedscan.errors import ModuleError, ParseError
from embedscan.exit_codes import ConfigFailedError, ParseFailedError
from embedscan.output.formatter import json_envelope, to_json
from embedscan.package import package_import_path, read_module_path
from embedscan.scanner import Scanner


def _file_package(file_path: Path, module_root: Path | None, module: str | None) -> str:
    """Import path of the package *file_path* belongs to."""
    if module_root is None:
        raise ConfigFailedError(f"No go.mod found for {file_path}; pass --package.")
    try:
        module_path = module or read_module_path(module_root / "go.mod")
        return package_import_path(file_path.parent, module_root, module_path)
    except ModuleError as e:
        raise ConfigFailedError(str(e)) from e


@click.command("scan")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-p", "--package", "package", default=None,
              help="Import path of the file's package (default: derived from go.mod)")
@click.option("--namespace", default=None, help="Identifier of the embed API package (default: pkger)")
@click.option("--strict", is_flag=True, help="Exit with code 6 when any call site could not be resolved")
@click.pass_context
def scan(ctx, file, package, namespace, strict):
    """List the resources FILE references through Open/Walk calls."""
    json_mode = ctx.obj.get("json") if ctx.obj else False
    module_root, config = project_config(file.parent)
    config = config.merged(namespace=namespace)
    if package is None:
        package = _file_package(file.resolve(), module_root, config.module)

    try:
        result = Scanner(file, package, namespace=config.namespace).run()
    except ParseError as e:
        raise ParseFailedError(str(e)) from e

    if json_mode:
        click.echo(
            to_json(
                json_envelope(
                    "scan",
                    summary={"paths": len(result.paths), "errors": len(result.errors)},
                    **result.to_dict(),
                )
            )
        )
    else:
        for path in result.paths:
            click.echo(str(path))
        echo_errors(result.errors)

    check_strict(result.errors, strict)
