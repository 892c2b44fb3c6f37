"""List every embedded resource referenced by a Go package or module."""

from __future__ import annotations

from pathlib import Path

import click

from embedscan.commands.resolve import check_strict, echo_errors, project_config
from embedscan.errors import ModuleError, ParseError
from embedscan.exit_codes import ConfigFailedError, ParseFailedError
from embedscan.output.formatter import json_envelope, to_json
from embedscan.package import scan_package


@click.command("list")
@click.argument("directory", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("-r", "--recursive", is_flag=True, help="Scan every package below DIRECTORY")
@click.option("--include-tests", is_flag=True, default=None, help="Also scan *_test.go files")
@click.option("--exclude", "exclude", multiple=True, help="Glob of files to skip (repeatable)")
@click.option("-p", "--package", "package", default=None,
              help="Import path of DIRECTORY's package (default: derived from go.mod)")
@click.option("--namespace", default=None, help="Identifier of the embed API package (default: pkger)")
@click.option("--strict", is_flag=True, help="Exit with code 6 when any call site could not be resolved")
@click.pass_context
def list_cmd(ctx, directory, recursive, include_tests, exclude, package, namespace, strict):
    """List the resources referenced by the Go files in DIRECTORY."""
    json_mode = ctx.obj.get("json") if ctx.obj else False
    _, config = project_config(directory)
    config = config.merged(
        namespace=namespace,
        include_tests=include_tests,
        exclude=exclude or None,
    )

    try:
        result = scan_package(
            directory,
            package=package,
            namespace=config.namespace,
            include_tests=config.include_tests,
            exclude=config.exclude,
            recursive=recursive,
            module=config.module,
        )
    except ParseError as e:
        raise ParseFailedError(str(e)) from e
    except ModuleError as e:
        raise ConfigFailedError(str(e)) from e

    errors = result.errors
    if json_mode:
        click.echo(
            to_json(
                json_envelope(
                    "list",
                    summary={
                        "files": len(result.files),
                        "paths": len(result.paths),
                        "errors": len(errors),
                    },
                    root=result.root,
                    paths=[str(p) for p in result.paths],
                    errors=[e.to_dict() for e in errors],
                )
            )
        )
    else:
        for path in result.paths:
            click.echo(str(path))
        echo_errors(errors)

    check_strict(errors, strict)
