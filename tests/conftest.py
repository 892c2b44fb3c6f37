"""Shared test fixtures and helpers for embedscan tests.

Provides:
- CliRunner fixtures: cli_runner, invoke
- Go module factory: go_module for custom file layouts
- JSON validation helpers: parse_json_output(), assert_json_envelope()
"""

from __future__ import annotations

import json
import os

import pytest
from click.testing import CliRunner

MODULE_PATH = "example.com/app"


# ===========================================================================
# CliRunner helpers
# ===========================================================================


@pytest.fixture
def cli_runner():
    """Provide a Click CliRunner for in-process CLI testing."""
    return CliRunner()


@pytest.fixture
def invoke(cli_runner):
    """Invoke the embedscan CLI in-process.

    Usage:
        result = invoke(["list", "-r"], cwd=proj, json_mode=True)
    """
    from embedscan.cli import cli

    def _invoke(args, cwd=None, json_mode=False):
        full_args = []
        if json_mode:
            full_args.append("--json")
        full_args.extend(str(a) for a in args)

        old_cwd = os.getcwd()
        try:
            if cwd:
                os.chdir(str(cwd))
            return cli_runner.invoke(cli, full_args, catch_exceptions=False)
        finally:
            os.chdir(old_cwd)

    return _invoke


# ===========================================================================
# JSON validation helpers
# ===========================================================================


def parse_json_output(result, command=None):
    """Parse JSON from a CliRunner result.

    Fails the test with the command output when the exit code is non-zero
    or stdout is not valid JSON.
    """
    assert result.exit_code == 0, f"Command {command or '?'} failed (exit {result.exit_code}):\n{result.output}"
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        pytest.fail(f"Invalid JSON from {command or '?'}: {e}\nOutput was:\n{result.output[:500]}")


def assert_json_envelope(data, command=None):
    """Validate that a parsed JSON dict follows the embedscan envelope contract."""
    assert isinstance(data, dict), f"Expected dict, got {type(data)}"
    for key in ("schema", "schema_version", "command", "version", "summary"):
        assert key in data, f"Missing {key!r} key in envelope"
    assert "timestamp" in data.get("_meta", {}), "Missing 'timestamp' in _meta"
    if command:
        assert data["command"] == command, f"Expected command={command}, got {data['command']}"
    assert isinstance(data["summary"], dict)


# ===========================================================================
# Go module fixtures
# ===========================================================================


@pytest.fixture
def go_module(tmp_path_factory):
    """Factory fixture for creating Go module layouts.

    Usage:
        def test_something(go_module):
            mod = go_module({
                "main.go": 'package main\\n...',
                "web/web.go": 'package web\\n...',
            })

    A ``go.mod`` declaring *module* is written unless *module* is None.
    Returns the module directory.
    """

    def _create(files, *, module=MODULE_PATH):
        root = tmp_path_factory.mktemp("mod")
        if module is not None:
            (root / "go.mod").write_text(f"module {module}\n\ngo 1.21\n")
        for rel_path, content in files.items():
            fp = root / rel_path
            fp.parent.mkdir(parents=True, exist_ok=True)
            fp.write_text(content)
        return root

    return _create
