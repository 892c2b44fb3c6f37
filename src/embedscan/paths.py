"""Canonical resource paths: ``<package>:<name>``.

A path names one embeddable resource (or directory) inside a Go package.
Raw strings come in a few forms::

    ""  ":"  "."                   -> <package>:/
    "/static/index.html"           -> <package>:/static/index.html
    ":/static/index.html"          -> <package>:/static/index.html
    "github.com/org/app:/public"   -> github.com/org/app:/public
    "github.com/org/app"           -> github.com/org/app:/

``<package>`` is the parser's own package.  The reference scanner replaces
it with the scanned file's package for the ``:`` (package-relative) form.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass

from embedscan.errors import PathSyntaxError

PACKAGE_MARKER = ":"

_PATH_RE = re.compile(r"^(?P<pkg>[^:\s]+)?(?::(?P<name>/.*))?$")


@dataclass(frozen=True, order=True)
class Path:
    pkg: str
    name: str

    def __str__(self) -> str:
        return f"{self.pkg}:{self.name}"

    def to_dict(self) -> dict:
        return {"pkg": self.pkg, "name": self.name, "path": str(self)}


class PathParser:
    """Parses raw path text relative to one package import path."""

    def __init__(self, package: str = ""):
        self.package = package

    def parse(self, text: str) -> Path:
        p = text.strip().replace("\\", "/")
        if p in ("", PACKAGE_MARKER, "."):
            return self._build("", "")

        m = _PATH_RE.match(p)
        if m is None:
            raise PathSyntaxError(f"could not parse {text!r}")
        return self._build(m.group("pkg") or "", m.group("name") or "")

    def _build(self, pkg: str, name: str) -> Path:
        if not pkg or pkg.startswith("/"):
            # "/name" without a package
            name, pkg = (pkg or name), self.package
        return Path(pkg=pkg, name=_clean_name(name))


def _clean_name(name: str) -> str:
    if not name:
        return "/"
    cleaned = posixpath.normpath("/" + name.lstrip("/"))
    # normpath keeps a leading "//"
    return "/" + cleaned.lstrip("/")


_SIMPLE_ESCAPES = {
    "a": b"\a",
    "b": b"\b",
    "f": b"\f",
    "n": b"\n",
    "r": b"\r",
    "t": b"\t",
    "v": b"\v",
    "\\": b"\\",
    '"': b'"',
}

_ESCAPE_RE = re.compile(r"\\(x[0-9a-fA-F]{2}|[0-7]{3}|u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|.)", re.S)


def unquote(raw: str) -> str:
    """Return the string value of a Go string literal's source text.

    Interpreted literals are decoded with Go's escapes; raw (backquoted)
    literals are taken verbatim minus carriage returns.
    """
    if len(raw) >= 2 and raw[0] == raw[-1] == "`":
        return raw[1:-1].replace("\r", "")
    if len(raw) >= 2 and raw[0] == raw[-1] == '"':
        return _decode_interpreted(raw[1:-1], raw)
    raise PathSyntaxError(f"{raw} is not a string literal")


def _decode_interpreted(body: str, raw: str) -> str:
    # \x and octal escapes denote single bytes, so decode through bytes.
    out = bytearray()
    pos = 0
    for m in _ESCAPE_RE.finditer(body):
        out += body[pos : m.start()].encode("utf-8")
        pos = m.end()
        esc = m.group(1)
        if esc in _SIMPLE_ESCAPES:
            out += _SIMPLE_ESCAPES[esc]
        elif esc[0] == "x":
            out.append(int(esc[1:], 16))
        elif len(esc) == 3 and esc.isdigit():
            value = int(esc, 8)
            if value > 0xFF:
                raise PathSyntaxError(f"invalid string literal {raw}")
            out.append(value)
        elif esc[0] in "uU" and len(esc) > 1:
            cp = int(esc[1:], 16)
            if cp > 0x10FFFF or 0xD800 <= cp <= 0xDFFF:
                raise PathSyntaxError(f"invalid string literal {raw}")
            out += chr(cp).encode("utf-8")
        else:
            raise PathSyntaxError(f"invalid string literal {raw}")
    out += body[pos:].encode("utf-8")
    return out.decode("utf-8", errors="replace")
