"""Text and JSON formatting for CLI output."""

from __future__ import annotations

import json as _json
from datetime import datetime, timezone

# Envelope schema versioning (semver: major.minor.patch)
ENVELOPE_SCHEMA_VERSION = "1.0.0"
ENVELOPE_SCHEMA_NAME = "embedscan-envelope-v1"


def loc(path: str, line: int | None = None, column: int | None = None) -> str:
    if line is None:
        return path
    if column is None:
        return f"{path}:{line}"
    return f"{path}:{line}:{column}"


def format_error(error) -> str:
    """Render a ScanError as ``file:line:col: message``."""
    return f"{loc(error.path, error.line, error.column)}: {error.message}"


def to_json(data) -> str:
    """Serialize data to a JSON string with deterministic key ordering.

    Uses ``sort_keys=True`` so that identical scans always produce
    byte-identical manifests.
    """
    return _json.dumps(data, indent=2, default=str, sort_keys=True)


def json_envelope(command: str, summary: dict | None = None, **payload) -> dict:
    """Wrap command output in a self-describing envelope.

    Non-deterministic metadata (``timestamp``) is placed in a ``_meta``
    sub-dict so the content keys stay stable across invocations::

        {
            "schema":  "embedscan-envelope-v1",
            "command": "list",
            "version": "<current>",
            "summary": { ... },
            "_meta":   {"timestamp": "2026-02-12T14:30:00Z"},
            ...payload
        }
    """
    ts = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    out: dict = {
        "schema": ENVELOPE_SCHEMA_NAME,
        "schema_version": ENVELOPE_SCHEMA_VERSION,
        "command": command,
        "version": _get_version(),
        "summary": summary or {},
    }
    out.update(payload)
    out["_meta"] = {"timestamp": ts}
    return out


def _get_version() -> str:
    from embedscan import __version__

    return __version__
