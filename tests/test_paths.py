"""Tests for resource path parsing and Go string unquoting."""

from __future__ import annotations

import pytest

from embedscan.errors import PathSyntaxError
from embedscan.paths import Path, PathParser, unquote

PKG = "github.com/example/app"


class TestPathParser:
    @pytest.mark.parametrize("text", ["", ":", ".", "  "])
    def test_root_forms(self, text):
        assert PathParser(PKG).parse(text) == Path(PKG, "/")

    def test_absolute_name(self):
        assert PathParser(PKG).parse("/static/index.html") == Path(PKG, "/static/index.html")

    def test_package_relative(self):
        assert PathParser(PKG).parse(":/static") == Path(PKG, "/static")

    def test_qualified(self):
        path = PathParser(PKG).parse("github.com/other/lib:/public/css")
        assert path == Path("github.com/other/lib", "/public/css")

    def test_package_only(self):
        assert PathParser(PKG).parse("github.com/other/lib") == Path("github.com/other/lib", "/")

    def test_name_is_cleaned(self):
        parser = PathParser(PKG)
        assert parser.parse("/a/./b/../c/").name == "/a/c"
        assert parser.parse("//double").name == "/double"
        assert parser.parse("/..").name == "/"

    def test_backslashes(self):
        assert PathParser(PKG).parse("\\static\\app.js") == Path(PKG, "/static/app.js")

    def test_parser_without_package(self):
        assert PathParser().parse("/x") == Path("", "/x")

    def test_malformed(self):
        with pytest.raises(PathSyntaxError):
            PathParser(PKG).parse("a:b:c")

    def test_path_is_a_value_error(self):
        with pytest.raises(ValueError):
            PathParser(PKG).parse("pkg:relative")


class TestPath:
    def test_str(self):
        assert str(Path(PKG, "/x")) == f"{PKG}:/x"

    def test_hashable_and_ordered(self):
        paths = {Path(PKG, "/b"), Path(PKG, "/a"), Path(PKG, "/a")}
        assert sorted(paths) == [Path(PKG, "/a"), Path(PKG, "/b")]

    def test_to_dict(self):
        assert Path(PKG, "/x").to_dict() == {"pkg": PKG, "name": "/x", "path": f"{PKG}:/x"}


class TestUnquote:
    def test_interpreted(self):
        assert unquote('"/static/index.html"') == "/static/index.html"

    def test_raw(self):
        assert unquote("`/raw\\n`") == "/raw\\n"

    def test_raw_drops_carriage_returns(self):
        assert unquote("`a\r\nb`") == "a\nb"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (r'"a\tb"', "a\tb"),
            (r'"\"q\""', '"q"'),
            (r'"\\"', "\\"),
            (r'"\x2f"', "/"),
            (r'"\101"', "A"),
            (r'"é"', "é"),
            (r'"\U0001F600"', "\U0001F600"),
            (r'"\xc3\xa9"', "é"),
        ],
    )
    def test_escapes(self, raw, expected):
        assert unquote(raw) == expected

    @pytest.mark.parametrize("raw", [r'"\q"', r'"\400"', r'"\uD800"', r'"\u12"', r'"\8"'])
    def test_invalid_escapes(self, raw):
        with pytest.raises(PathSyntaxError):
            unquote(raw)

    @pytest.mark.parametrize("raw", ["42", "'a'", "ident", '"'])
    def test_not_a_string(self, raw):
        with pytest.raises(PathSyntaxError):
            unquote(raw)
