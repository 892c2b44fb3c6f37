"""Tests for the reference scanner on single Go files."""

from __future__ import annotations

import pytest

from embedscan.errors import ParseError
from embedscan.paths import Path, PathParser
from embedscan.scanner import Scanner, scan_file, scan_source
from embedscan.syntax import parse_source

PKG = "github.com/example/app"

HEADER = 'package main\n\nimport "github.com/markbates/pkger"\n\n'


def _scan(body, **options):
    """Scan *body* below a four-line package/import header (body starts on line 5)."""
    return scan_source(HEADER + body, PKG, path="main.go", **options)


def _paths(result):
    return [str(p) for p in result.paths]


def _messages(result):
    return [e.message for e in result.errors]


# ===========================================================================
# Literal arguments
# ===========================================================================


class TestLiteralArguments:
    def test_empty_file(self):
        result = scan_source("package main\n", PKG)
        assert result.paths == []
        assert result.errors == []
        assert result.ok

    def test_open_literal(self):
        result = _scan('func main() {\n\tpkger.Open("/static/index.html")\n}\n')
        assert result.paths == [Path(PKG, "/static/index.html")]
        assert result.errors == []

    def test_walk_literal(self):
        result = _scan(
            "func main() {\n"
            '\tpkger.Walk("/public", func(path string, info os.FileInfo, err error) error {\n'
            "\t\treturn nil\n"
            "\t})\n"
            "}\n"
        )
        assert _paths(result) == [f"{PKG}:/public"]
        assert result.errors == []

    def test_open_inspects_only_first_argument(self):
        result = _scan('func main() {\n\tpkger.Open("/a", "/b", "/c")\n}\n')
        assert _paths(result) == [f"{PKG}:/a"]

    def test_open_without_arguments_is_ignored(self):
        result = _scan("func main() {\n\tpkger.Open()\n}\n")
        assert result.paths == []
        assert result.errors == []

    def test_raw_string_literal(self):
        result = _scan("func main() {\n\tpkger.Open(`/raw/file.txt`)\n}\n")
        assert _paths(result) == [f"{PKG}:/raw/file.txt"]

    def test_escapes_are_decoded(self):
        result = _scan(r'func main() { pkger.Open("/static/café\x2etxt") }' + "\n")
        assert _paths(result) == [f"{PKG}:/static/café.txt"]

    def test_invalid_escape_is_recorded(self):
        result = _scan(r'func main() { pkger.Open("/bad\q") }' + "\n")
        assert result.paths == []
        assert len(result.errors) == 1
        assert "invalid string literal" in result.errors[0].message

    def test_package_qualified_path(self):
        result = _scan('func main() {\n\tpkger.Open("github.com/other/lib:/assets")\n}\n')
        assert _paths(result) == ["github.com/other/lib:/assets"]

    def test_root_forms_collapse(self):
        result = _scan('func main() {\n\tpkger.Open("")\n\tpkger.Open(":")\n\tpkger.Open(".")\n}\n')
        assert _paths(result) == [f"{PKG}:/"]

    def test_duplicates_are_collapsed(self):
        result = _scan('func main() {\n\tpkger.Open("/a")\n\tpkger.Open("/a")\n\tpkger.Open("/a/../a")\n}\n')
        assert _paths(result) == [f"{PKG}:/a"]

    def test_results_are_sorted(self):
        result = _scan('func main() {\n\tpkger.Open("/z")\n\tpkger.Open("/b")\n\tpkger.Open("/m")\n}\n')
        assert _paths(result) == [f"{PKG}:/b", f"{PKG}:/m", f"{PKG}:/z"]

    def test_package_level_var_initializer(self):
        result = _scan('var index = pkger.Open("/index.html")\n')
        assert _paths(result) == [f"{PKG}:/index.html"]

    def test_other_receivers_are_ignored(self):
        result = _scan('func main() {\n\tos.Open("/etc/passwd")\n\tpkger.Stat("/x")\n}\n')
        assert result.paths == []
        assert result.errors == []

    def test_custom_namespace(self):
        source = 'package main\n\nfunc main() {\n\tembed.Open("/x")\n\tpkger.Open("/y")\n}\n'
        result = scan_source(source, PKG, namespace="embed")
        assert _paths(result) == [f"{PKG}:/x"]


# ===========================================================================
# Walk arity and unsupported arguments
# ===========================================================================


class TestWalkErrors:
    def test_walk_with_one_argument(self):
        result = _scan('func main() {\n\tpkger.Walk("/a")\n}\n')
        assert result.paths == []
        assert _messages(result) == ["`Walk` requires two arguments"]
        error = result.errors[0]
        assert (error.path, error.line, error.column) == ("main.go", 6, 2)

    def test_walk_with_three_arguments(self):
        result = _scan('func main() {\n\tpkger.Walk("/a", fn, extra)\n}\n')
        assert _messages(result) == ["`Walk` requires two arguments"]

    def test_scan_continues_after_error(self):
        result = _scan('func main() {\n\tpkger.Walk("/a")\n\tpkger.Open("/b")\n}\n')
        assert _paths(result) == [f"{PKG}:/b"]
        assert len(result.errors) == 1
        assert not result.ok

    def test_selector_argument(self):
        result = _scan("func main() {\n\tpkger.Walk(cfg.Root, fn)\n}\n")
        assert result.paths == []
        assert _messages(result) == ["can't handle selector_expression"]

    def test_non_string_literal(self):
        result = _scan("func main() {\n\tpkger.Walk(42, fn)\n}\n")
        assert result.paths == []
        assert len(result.errors) == 1
        assert "not a string literal" in result.errors[0].message

    def test_same_error_reported_once(self):
        result = _scan('func main() {\n\tpkger.Walk("/a")\n}\n')
        assert len(result.errors) == 1


# ===========================================================================
# Identifier arguments
# ===========================================================================


class TestIdentifiers:
    def test_short_variable(self):
        result = _scan('func main() {\n\tdir := "/templates"\n\tpkger.Open(dir)\n}\n')
        assert _paths(result) == [f"{PKG}:/templates"]

    def test_walk_through_variable(self):
        result = _scan('func main() {\n\troot := "/assets"\n\tpkger.Walk(root, walkFn)\n}\n')
        assert _paths(result) == [f"{PKG}:/assets"]

    def test_multi_value_variable(self):
        result = _scan('func main() {\n\ta, b := "/x", "/y"\n\tpkger.Open(a)\n\t_ = b\n}\n')
        assert result.paths == []
        assert _messages(result) == ["unable to find value from variable a"]
        assert result.errors[0].line == 7

    def test_variable_from_call(self):
        result = _scan('func main() {\n\tdir := os.Getenv("DIR")\n\tpkger.Open(dir)\n}\n')
        assert result.paths == []
        assert _messages(result) == ["unable to find value from variable dir"]

    def test_constant(self):
        result = _scan('const assets = "/assets"\n\nfunc main() {\n\tpkger.Walk(assets, walkFn)\n}\n')
        assert _paths(result) == [f"{PKG}:/assets"]

    def test_constant_declared_after_use(self):
        result = _scan('func main() {\n\tpkger.Open(page)\n}\n\nconst page = "/page.html"\n')
        assert _paths(result) == [f"{PKG}:/page.html"]

    def test_grouped_constant(self):
        result = _scan('const (\n\ta = "/a"\n\tb = "/b"\n)\n\nfunc main() {\n\tpkger.Open(b)\n}\n')
        assert _paths(result) == [f"{PKG}:/b"]

    def test_multi_value_constant(self):
        result = _scan('const x, y = "/x", "/y"\n\nfunc main() {\n\tpkger.Open(x)\n}\n')
        assert result.paths == []
        assert _messages(result) == ["unable to find value from constant x"]

    def test_constant_without_value(self):
        result = _scan('const (\n\tfirst = "/first"\n\tsecond\n)\n\nfunc main() {\n\tpkger.Open(second)\n}\n')
        assert result.paths == []
        assert _messages(result) == ["unable to find value from constant second"]

    def test_var_declaration_is_not_followed(self):
        result = _scan('var v = "/v"\n\nfunc main() {\n\tpkger.Open(v)\n}\n')
        assert result.paths == []
        assert result.errors == []

    def test_plain_assignment_is_not_followed(self):
        result = _scan('func main() {\n\tvar p string\n\tp = "/p"\n\tpkger.Open(p)\n}\n')
        assert result.paths == []
        assert result.errors == []

    def test_unbound_identifier_is_silent(self):
        result = _scan("func main() {\n\tpkger.Open(unknown)\n\tpkger.Walk(other, fn)\n}\n")
        assert result.paths == []
        assert result.errors == []

    def test_parameter_shadows_constant(self):
        result = _scan('const dir = "/const"\n\nfunc load(dir string) {\n\tpkger.Open(dir)\n}\n')
        assert result.paths == []
        assert result.errors == []

    def test_block_scoped_variable_is_not_visible(self):
        result = _scan(
            "func main() {\n"
            "\t{\n"
            '\t\tp := "/inner"\n'
            "\t\t_ = p\n"
            "\t}\n"
            "\tpkger.Open(p)\n"
            "}\n"
        )
        assert result.paths == []
        assert result.errors == []

    def test_mixed_literal_and_unresolvable_variable(self):
        result = _scan(
            "func main() {\n"
            '\tpkger.Open("/static/index.html")\n'
            '\tmissingVar := strings.ToLower("X")\n'
            "\tpkger.Open(missingVar)\n"
            "}\n"
        )
        assert _paths(result) == [f"{PKG}:/static/index.html"]
        assert _messages(result) == ["unable to find value from variable missingVar"]
        assert result.errors[0].line == 8


# ===========================================================================
# Nested calls and composite values
# ===========================================================================


class TestNestedCalls:
    def test_nested_call_borrows_outer_member(self):
        result = _scan('func main() {\n\tpkger.Open(filepath.Join("/public", "index.html"))\n}\n')
        assert _paths(result) == [f"{PKG}:/public"]

    def test_nested_call_with_unknown_root(self):
        result = _scan('func main() {\n\tpkger.Walk(filepath.Join(base, "x"), walkFn)\n}\n')
        assert result.paths == []
        assert result.errors == []

    def test_wrapped_call_in_assignment(self):
        result = _scan('func main() {\n\tf := must(pkger.Open("/wrapped.txt"))\n\t_ = f\n}\n')
        assert _paths(result) == [f"{PKG}:/wrapped.txt"]

    def test_call_inside_closure(self):
        result = _scan('func main() {\n\trun := func() {\n\t\tpkger.Open("/lazy")\n\t}\n\trun()\n}\n')
        assert _paths(result) == [f"{PKG}:/lazy"]

    def test_composite_literal_values(self):
        result = _scan(
            "var routes = []Route{\n"
            '\t{Name: "home", File: pkger.Open("/home.html")},\n'
            '\t{Name: "about", File: pkger.Open("/about.html")},\n'
            "}\n"
        )
        assert _paths(result) == [f"{PKG}:/about.html", f"{PKG}:/home.html"]

    def test_method_body(self):
        result = _scan('func (s *Server) Routes() {\n\tpkger.Walk("/views", s.walk)\n}\n')
        assert _paths(result) == [f"{PKG}:/views"]

    def test_walk_borrows_member_for_nested_walk_function(self):
        result = _scan('func main() {\n\tpkger.Walk("/a", makeWalker())\n}\n')
        assert result.paths == []
        assert _messages(result) == ["`Walk` requires two arguments"]
        error = result.errors[0]
        assert (error.line, error.column) == (6, 19)

    def test_mutually_recursive_package_values(self):
        result = _scan(
            "var a = wrap(b())\n"
            "var b = wrap(a())\n"
            "\n"
            "func main() {\n"
            "\tpkger.Open(a)\n"
            "\tpkger.Open(b)\n"
            '\tpkger.Open("/after")\n'
            "}\n"
        )
        assert _paths(result) == [f"{PKG}:/after"]
        assert result.errors == []

    def test_long_expression_before_call(self):
        terms = " + ".join(['"x"'] * 1000)
        result = _scan(f"var s = {terms}\n\nfunc main() {{\n\tpkger.Open(\"/a\")\n}}\n")
        assert _paths(result) == [f"{PKG}:/a"]


# ===========================================================================
# Package-relative paths
# ===========================================================================


class TestPackageRelative:
    def test_marker_uses_scanned_package(self):
        source = HEADER + 'func main() {\n\tpkger.Open(":/public/x")\n\tpkger.Open("/public/y")\n}\n'
        tree = parse_source(source, "main.go")
        scanner = Scanner("main.go", PKG, parser=PathParser("github.com/root/mod"))
        result = scanner.run(tree)
        assert result.paths == [
            Path(PKG, "/public/x"),
            Path("github.com/root/mod", "/public/y"),
        ]


# ===========================================================================
# Lifecycle and files
# ===========================================================================


class TestScannerLifecycle:
    def test_scanner_is_single_use(self):
        tree = parse_source("package main\n")
        scanner = Scanner("main.go", PKG)
        scanner.run(tree)
        with pytest.raises(RuntimeError):
            scanner.run(tree)

    def test_scan_file(self, tmp_path):
        go = tmp_path / "main.go"
        go.write_text(HEADER + 'func main() {\n\tpkger.Open("/f")\n}\n')
        result = scan_file(go, PKG)
        assert result.file == str(go)
        assert result.package == PKG
        assert _paths(result) == [f"{PKG}:/f"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ParseError):
            scan_file(tmp_path / "nope.go", PKG)

    def test_syntax_error_is_fatal(self):
        with pytest.raises(ParseError) as exc:
            scan_source("package main\n\nfunc main() {\n\tpkger.Open(\n", PKG, path="bad.go")
        assert exc.value.path == "bad.go"
        assert str(exc.value).startswith("bad.go:")

    def test_to_dict(self):
        result = _scan('func main() {\n\tpkger.Walk("/a")\n\tpkger.Open("/b")\n}\n')
        data = result.to_dict()
        assert data["file"] == "main.go"
        assert data["package"] == PKG
        assert data["paths"] == [f"{PKG}:/b"]
        assert data["errors"] == [
            {"message": "`Walk` requires two arguments", "file": "main.go", "line": 6, "column": 2}
        ]
