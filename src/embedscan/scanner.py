"""Reference scanner: finds embed-API call sites in one Go file.

The scanner walks every node of a lowered syntax tree in source order and,
at the nodes it cares about, looks for calls of the form ``pkger.Open(p)``
and ``pkger.Walk(p, fn)``.  The literal path ``p`` may be written inline,
held by a ``:=`` variable, or by a single-value constant; every path found
is parsed into a :class:`~embedscan.paths.Path` and added to a set.

Problems at one call site never stop the scan.  They are raised as
:class:`ScanError` inside the classification of a single node, caught by the
traversal, and kept in the result's error log.  Names that cannot be
resolved statically (unbound identifiers, nested calls) are skipped
silently.

Two resolution entry points cooperate:

* :meth:`Scanner.resolve_expression` handles a call seen directly (as a
  statement, a value, or a call site).  A call passed as an argument to a
  selector call is recognized with the *outer* member name, which is how
  ``pkger.Open(filepath.Join("/public", "x"))`` still yields ``/public``.
* :meth:`Scanner.resolve_nested_argument` handles expressions found on the
  right-hand side of assignments and inside other calls' arguments; it
  recognizes selector calls with their own member name, resolves
  identifier callees, and always descends into every argument.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path as FsPath

from embedscan.errors import PathSyntaxError, ScanError
from embedscan.paths import PACKAGE_MARKER, Path, PathParser, unquote
from embedscan.syntax import parse_file, parse_source
from embedscan.syntax.go_tree import SyntaxTree
from embedscan.syntax.nodes import (
    Assignment,
    Call,
    CompositeLiteral,
    DeclGroup,
    ExprStmt,
    FuncDecl,
    Ident,
    KeyValue,
    Literal,
    Node,
    Selector,
    ValueSpec,
    walk,
)

log = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "pkger"

WALK = "Walk"
OPEN = "Open"


@dataclass
class ScanResult:
    """Paths found in one file plus the recoverable errors hit on the way."""

    file: str
    package: str
    paths: list[Path] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "package": self.package,
            "paths": [str(p) for p in self.paths],
            "errors": [e.to_dict() for e in self.errors],
        }


class Scanner:
    """Single-use scanner for one Go source file.

    *package* is the import path of the package the file belongs to; it
    replaces the package of ``:``-prefixed (package-relative) paths.
    """

    def __init__(
        self,
        path: str | FsPath,
        package: str,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        parser: PathParser | None = None,
    ):
        self.path = str(path)
        self.package = package
        self.namespace = namespace
        self.parser = parser if parser is not None else PathParser(package)
        self.found: set[Path] = set()
        self.errors: list[ScanError] = []
        self._seen_errors: set[tuple] = set()
        self._tree: SyntaxTree | None = None
        self._active: set[int] = set()
        self._used = False

    def run(self, tree: SyntaxTree | None = None) -> ScanResult:
        """Scan the file (or an already parsed *tree*) and return the result.

        A file that cannot be parsed raises ParseError; nothing else does.
        """
        if self._used:
            raise RuntimeError("Scanner instances are single-use")
        self._used = True

        if tree is None:
            tree = parse_file(self.path)
        self._tree = tree

        for node in walk(tree.root):
            self.visit(node)

        log.debug("%s: %d path(s), %d error(s)", self.path, len(self.found), len(self.errors))
        return ScanResult(
            file=self.path,
            package=self.package,
            paths=sorted(self.found),
            errors=list(self.errors),
        )

    # ---- traversal ----

    def visit(self, node: Node) -> None:
        try:
            self.classify(node)
        except ScanError as e:
            self._record(e)

    def _record(self, error: ScanError) -> None:
        if error.key in self._seen_errors:
            return
        self._seen_errors.add(error.key)
        self.errors.append(error)
        log.debug("recoverable: %s", error)

    def classify(self, node: Node) -> None:
        if isinstance(node, Call):
            self.resolve_expression(node)
        elif isinstance(node, Ident):
            self.resolve_ident(node)
        elif isinstance(node, DeclGroup):
            for spec in node.specs:
                self.classify(spec)
        elif isinstance(node, FuncDecl):
            if node.body is None:
                return
            for stmt in node.body:
                self.resolve_statement(stmt)
        elif isinstance(node, ValueSpec):
            for value in node.values:
                self.resolve_expression(value)

    def resolve_statement(self, stmt: Node) -> None:
        if isinstance(stmt, ExprStmt):
            self.resolve_expression(stmt.x)
        elif isinstance(stmt, Assignment):
            for expr in stmt.rhs:
                self.resolve_nested_argument(expr)

    # ---- resolution ----

    def resolve_expression(self, expr: Node) -> None:
        """Primary path: a call seen directly, or a keyed element's value."""
        if isinstance(expr, Call):
            for arg in expr.args:
                if isinstance(arg, Call):
                    if isinstance(expr.fun, Selector):
                        # The nested call borrows the outer call's member.
                        self.recognize(arg, expr.fun)
                        return
                    self.resolve_nested_argument(arg)
                elif isinstance(arg, CompositeLiteral):
                    for elt in arg.elts:
                        self.resolve_expression(elt)
            if isinstance(expr.fun, Selector):
                self.recognize(expr, expr.fun)
        elif isinstance(expr, KeyValue):
            self.resolve_expression(expr.value)

    def resolve_nested_argument(self, expr: Node) -> None:
        """Secondary path: an assigned value or an argument of another call."""
        if isinstance(expr, CompositeLiteral):
            for elt in expr.elts:
                self.resolve_expression(elt)
        elif isinstance(expr, Call):
            if isinstance(expr.fun, Selector):
                self.recognize(expr, expr.fun)
            elif isinstance(expr.fun, Ident):
                self.resolve_ident(expr.fun)
            for arg in expr.args:
                self.resolve_nested_argument(arg)

    def resolve_ident(self, ident: Ident) -> None:
        """Re-resolve the values an identifier was declared with."""
        decl = self._tree.binding(ident)
        if not isinstance(decl, (Assignment, ValueSpec)):
            return
        # Package-level values may refer to each other in a cycle.
        if id(decl) in self._active:
            return
        self._active.add(id(decl))
        try:
            if isinstance(decl, Assignment):
                self.resolve_statement(decl)
            else:
                for value in decl.values:
                    self.resolve_expression(value)
        finally:
            self._active.discard(id(decl))

    # ---- call sites ----

    def recognize(self, call: Call, selector: Selector) -> None:
        """Handle ``<namespace>.Open`` / ``<namespace>.Walk`` with *call*'s arguments."""
        receiver = selector.x
        if not isinstance(receiver, Ident) or receiver.name != self.namespace:
            return
        if selector.sel == WALK:
            self._walk_call(call)
        elif selector.sel == OPEN:
            self._open_call(call)

    def _walk_call(self, call: Call) -> None:
        if len(call.args) != 2:
            raise self._error(f"`{WALK}` requires two arguments", call)
        root = call.args[0]
        raw = self.literal_value(root)
        if raw is not None:
            self.add_path(raw, root)

    def _open_call(self, call: Call) -> None:
        # Only the first argument is ever inspected.
        if not call.args:
            return
        first = call.args[0]
        if isinstance(first, Ident):
            decl = self._tree.binding(first)
            pending = None
            try:
                if isinstance(decl, Assignment) and decl.define:
                    self.add_path(self._from_variable(decl, first), first)
                elif isinstance(decl, ValueSpec) and decl.const:
                    self.add_path(self._from_constant(decl, first), first)
            except ScanError as e:
                pending = e
            self.resolve_ident(first)
            if pending is not None:
                raise pending
        elif isinstance(first, Literal):
            self.add_path(first.value, first)
        elif isinstance(first, Call):
            self.resolve_expression(first)

    # ---- literal values ----

    def literal_value(self, expr: Node) -> str | None:
        """Return the raw literal text *expr* denotes, or None if unknown."""
        if isinstance(expr, Ident):
            decl = self._tree.binding(expr)
            if isinstance(decl, Assignment) and decl.define:
                return self._from_variable(decl, expr)
            if isinstance(decl, ValueSpec) and decl.const:
                return self._from_constant(decl, expr)
            self.resolve_ident(expr)
            return None
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, Call):
            self.resolve_expression(expr)
            return None
        raise self._error(f"can't handle {expr.kind}", expr)

    def _from_variable(self, stmt: Assignment, ident: Ident) -> str:
        if len(stmt.rhs) == 1 and isinstance(stmt.rhs[0], Literal):
            return stmt.rhs[0].value
        raise self._error(f"unable to find value from variable {ident.name}", ident)

    def _from_constant(self, spec: ValueSpec, ident: Ident) -> str:
        if len(spec.values) == 1 and isinstance(spec.values[0], Literal):
            return spec.values[0].value
        raise self._error(f"unable to find value from constant {ident.name}", ident)

    # ---- registration ----

    def add_path(self, raw: str, node: Node) -> Path:
        """Unquote and parse *raw*, then add it to the found set."""
        try:
            text = unquote(raw)
            path = self.parser.parse(text)
        except PathSyntaxError as e:
            raise self._error(str(e), node) from e
        if text.startswith(PACKAGE_MARKER):
            path = replace(path, pkg=self.package)
        if path not in self.found:
            log.debug("%s:%d: found %s", self.path, node.line, path)
        self.found.add(path)
        return path

    def _error(self, message: str, node: Node) -> ScanError:
        return ScanError(message, self.path, node.line, node.column)


def scan_file(path: str | FsPath, package: str, **options) -> ScanResult:
    """Scan one Go file.  *options* are passed to :class:`Scanner`."""
    return Scanner(path, package, **options).run()


def scan_source(source: bytes | str, package: str, *, path: str = "<source>", **options) -> ScanResult:
    """Scan Go source text without touching the filesystem."""
    tree = parse_source(source, path)
    return Scanner(path, package, **options).run(tree)
