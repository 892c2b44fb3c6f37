"""Go tree provider: tree-sitter parse + lowering into :mod:`nodes`.

The concrete tree-sitter tree is reduced to the handful of node shapes the
scanner understands.  While lowering, identifiers are resolved against Go's
lexical scopes and recorded in a binding table keyed by byte offset, so the
resulting nodes never point back into the tree.

Scoping follows the go/parser resolver: block-like statements open a scope,
a function's parameters and body share one, a ``:=`` or ``const``/``var``
name becomes visible after its statement, and identifiers not found in any
local scope are resolved against the package scope once the whole file has
been read.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from tree_sitter_language_pack import get_parser

from embedscan.errors import ParseError
from embedscan.syntax.nodes import (
    Assignment,
    Binding,
    Call,
    CompositeLiteral,
    Declared,
    DeclGroup,
    ExprStmt,
    FuncDecl,
    Generic,
    Ident,
    KeyValue,
    Literal,
    Node,
    Selector,
    ValueSpec,
)

log = logging.getLogger(__name__)

GRAMMAR = "go"

LITERAL_KINDS = frozenset({
    "interpreted_string_literal",
    "raw_string_literal",
    "int_literal",
    "float_literal",
    "imaginary_literal",
    "rune_literal",
})

# Predeclared names tree-sitter gives their own node type; go/ast models
# them as plain identifiers.
PREDECLARED_KINDS = frozenset({"true", "false", "nil", "iota"})

SCOPE_KINDS = frozenset({
    "if_statement",
    "for_statement",
    "expression_switch_statement",
    "select_statement",
    "expression_case",
    "default_case",
    "type_case",
    "communication_case",
})


@dataclass
class SyntaxTree:
    """A lowered Go file plus its identifier binding table."""

    path: str
    root: Node
    package: str | None = None
    bindings: dict[int, Binding] = field(default_factory=dict)

    def binding(self, ident: Ident) -> Binding | None:
        """Return the declaration *ident* refers to, or None when unbound."""
        return self.bindings.get(ident.offset)


def parse_source(source: bytes | str, path: str = "<source>") -> SyntaxTree:
    """Parse Go *source* into a :class:`SyntaxTree`.

    Raises ParseError when tree-sitter reports any syntax error.
    """
    if isinstance(source, str):
        source = source.encode("utf-8")
    parser = get_parser(GRAMMAR)
    tree = parser.parse(source)
    root = tree.root_node
    if root.has_error:
        bad = _first_error(root)
        line, column = bad.start_point[0] + 1, bad.start_point[1] + 1
        message = f"missing {bad.type}" if bad.is_missing else "syntax error"
        raise ParseError(path, message, line, column)

    lowerer = _Lowerer(source)
    try:
        lowered = lowerer.lower(root)
    except RecursionError:
        # Deeply nested calls, literals or blocks still lower recursively.
        raise ParseError(path, "expression nesting too deep", 1, 1) from None
    lowerer.finish()
    return SyntaxTree(
        path=path,
        root=lowered,
        package=lowerer.package,
        bindings=lowerer.bindings,
    )


def parse_file(path: str | Path) -> SyntaxTree:
    """Read and parse a Go file.  Unreadable files raise ParseError."""
    path = str(path)
    try:
        with open(path, "rb") as f:
            source = f.read()
    except OSError as e:
        raise ParseError(path, e.strerror or str(e)) from e
    log.debug("parsing %s (%d bytes)", path, len(source))
    return parse_source(source, path)


def _first_error(root):
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        stack.extend(reversed(node.children))
    return root


def _same(a, b) -> bool:
    if a is None or b is None:
        return False
    return (a.start_byte, a.end_byte, a.type) == (b.start_byte, b.end_byte, b.type)


def _has_define(node) -> bool:
    return any(child.type == ":=" for child in node.children)


class _Lowerer:
    def __init__(self, source: bytes):
        self.source = source
        self.bindings: dict[int, Binding] = {}
        self.package: str | None = None
        self._package_scope: dict[str, Binding] = {}
        self._scopes: list[dict[str, Binding]] = []
        self._unresolved: list[tuple[int, str]] = []

    # ---- helpers ----

    def text(self, node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    @staticmethod
    def named(node) -> list:
        return [c for c in node.named_children if c.type != "comment"]

    @staticmethod
    def _pos(node) -> tuple[str, int, int]:
        return node.type, node.start_point[0] + 1, node.start_point[1] + 1

    @contextmanager
    def scope(self):
        self._scopes.append({})
        try:
            yield
        finally:
            self._scopes.pop()

    def declare(self, ident: Ident, target: Binding) -> None:
        if ident.name == "_":
            return
        current = self._scopes[-1] if self._scopes else self._package_scope
        existing = current.get(ident.name)
        if existing is not None:
            # Redeclaration (e.g. ``a, err := ...``) keeps the first object.
            self.bindings[ident.offset] = existing
            return
        current[ident.name] = target
        self.bindings[ident.offset] = target

    def resolve(self, ident: Ident) -> None:
        for scope in reversed(self._scopes):
            target = scope.get(ident.name)
            if target is not None:
                self.bindings[ident.offset] = target
                return
        self._unresolved.append((ident.offset, ident.name))

    def finish(self) -> None:
        for offset, name in self._unresolved:
            target = self._package_scope.get(name)
            if target is not None:
                self.bindings[offset] = target
        self._unresolved = []

    def ident(self, node, *, resolve: bool = True) -> Ident:
        ident = Ident(*self._pos(node), name=self.text(node), offset=node.start_byte)
        if resolve:
            self.resolve(ident)
        return ident

    def lower_all(self, nodes) -> tuple[Node, ...]:
        return tuple(self.lower(n) for n in nodes)

    def generic(self, node) -> Generic:
        """Lower *node* and every generic node nested directly under it.

        Runs of nodes without a dedicated shape (binary chains, parentheses,
        type expressions) can be thousands of levels deep, so they are
        lowered with an explicit stack instead of recursion.
        """
        # frame: [node, pending children, lowered children, opened scope]
        stack = [self._open_frame(node)]
        while True:
            frame = stack[-1]
            child = next(frame[1], None)
            if child is not None:
                if self._is_generic(child):
                    stack.append(self._open_frame(child))
                else:
                    frame[2].append(self.lower(child))
                continue
            stack.pop()
            if frame[3]:
                self._scopes.pop()
            lowered = Generic(*self._pos(frame[0]), nodes=tuple(frame[2]))
            if not stack:
                return lowered
            stack[-1][2].append(lowered)

    def _open_frame(self, node) -> list:
        scoped = node.type in SCOPE_KINDS
        if scoped:
            self._scopes.append({})
        return [node, iter(self.named(node)), [], scoped]

    @staticmethod
    def _is_generic(node) -> bool:
        kind = node.type
        return kind not in _HANDLERS and kind not in LITERAL_KINDS and kind not in PREDECLARED_KINDS

    def expressions(self, node) -> tuple[Node, ...]:
        """Lower an ``expression_list`` (or a lone expression)."""
        if node is None:
            return ()
        if node.type == "expression_list":
            return self.lower_all(self.named(node))
        return (self.lower(node),)

    def declared_names(self, node, kind: str) -> tuple[Node, ...]:
        """Lower the identifiers in *node* as names bound to Declared(kind)."""
        if node is None:
            return ()
        items = self.named(node) if node.type == "expression_list" else [node]
        out = []
        for item in items:
            if item.type == "identifier":
                ident = self.ident(item, resolve=False)
                self.declare(ident, Declared(kind))
                out.append(ident)
            else:
                out.append(self.lower(item))
        return tuple(out)

    # ---- dispatch ----

    def lower(self, node) -> Node:
        kind = node.type
        handler = _HANDLERS.get(kind)
        if handler is not None:
            return handler(self, node)
        if kind in LITERAL_KINDS:
            return Literal(*self._pos(node), value=self.text(node))
        if kind in PREDECLARED_KINDS:
            return self.ident(node)
        return self.generic(node)

    # ---- expressions ----

    def _identifier(self, node) -> Node:
        return self.ident(node)

    def _call_expression(self, node) -> Node:
        fun = self.lower(node.child_by_field_name("function"))
        arguments = node.child_by_field_name("arguments")
        args = self.lower_all(self.named(arguments)) if arguments is not None else ()
        return Call(*self._pos(node), fun=fun, args=args)

    def _selector_expression(self, node) -> Node:
        operand = self.lower(node.child_by_field_name("operand"))
        member = node.child_by_field_name("field")
        return Selector(*self._pos(node), x=operand, sel=self.text(member) if member is not None else "")

    def _composite_literal(self, node) -> Node:
        type_node = node.child_by_field_name("type")
        body = node.child_by_field_name("body")
        return CompositeLiteral(
            *self._pos(node),
            type=self.lower(type_node) if type_node is not None else None,
            elts=self._elements(body),
        )

    def _literal_value(self, node) -> Node:
        return CompositeLiteral(*self._pos(node), type=None, elts=self._elements(node))

    def _elements(self, body) -> tuple[Node, ...]:
        if body is None:
            return ()
        return self.lower_all(self.named(body))

    def _literal_element(self, node) -> Node:
        inner = self.named(node)
        if len(inner) == 1:
            return self.lower(inner[0])
        return self.generic(node)

    def _keyed_element(self, node) -> Node:
        parts = self.named(node)
        key_node, value_node = parts[0], parts[-1]
        return KeyValue(*self._pos(node), key=self._element_key(key_node), value=self.lower(value_node))

    def _element_key(self, node) -> Node:
        if node.type == "literal_element":
            inner = self.named(node)
            if len(inner) == 1:
                node = inner[0]
        # A bare key may name a struct field; leave it unresolved.
        if node.type in ("identifier", "field_identifier"):
            return self.ident(node, resolve=False)
        return self.lower(node)

    def _func_literal(self, node) -> Node:
        with self.scope():
            return self.generic(node)

    # ---- statements ----

    def _expression_statement(self, node) -> Node:
        inner = self.named(node)
        if len(inner) != 1:
            return self.generic(node)
        return ExprStmt(*self._pos(node), x=self.lower(inner[0]))

    def _short_var_declaration(self, node) -> Node:
        rhs = self.expressions(node.child_by_field_name("right"))
        left = node.child_by_field_name("left")
        lhs_nodes = self.named(left) if left.type == "expression_list" else [left]
        lhs = tuple(
            self.ident(n, resolve=False) if n.type == "identifier" else self.lower(n)
            for n in lhs_nodes
        )
        stmt = Assignment(*self._pos(node), lhs=lhs, rhs=rhs, define=True)
        for name in lhs:
            if isinstance(name, Ident):
                self.declare(name, stmt)
        return stmt

    def _assignment_statement(self, node) -> Node:
        lhs = self.expressions(node.child_by_field_name("left"))
        rhs = self.expressions(node.child_by_field_name("right"))
        return Assignment(*self._pos(node), lhs=lhs, rhs=rhs, define=False)

    def _block(self, node) -> Node:
        with self.scope():
            return Generic(*self._pos(node), nodes=self.lower_all(self._statements(node)))

    def _statements(self, block) -> list:
        out = []
        for child in self.named(block):
            if child.type == "statement_list":
                out.extend(self.named(child))
            else:
                out.append(child)
        return out

    def _range_clause(self, node) -> Node:
        if not _has_define(node):
            return self.generic(node)
        right = self.lower(node.child_by_field_name("right"))
        left = self.declared_names(node.child_by_field_name("left"), "range")
        return Generic(*self._pos(node), nodes=(*left, right))

    def _receive_statement(self, node) -> Node:
        if not _has_define(node):
            return self.generic(node)
        right = self.lower(node.child_by_field_name("right"))
        left = self.declared_names(node.child_by_field_name("left"), "receive")
        return Generic(*self._pos(node), nodes=(*left, right))

    def _type_switch_statement(self, node) -> Node:
        alias = node.child_by_field_name("alias")
        value = node.child_by_field_name("value")
        with self.scope():
            out: list[Node] = []
            alias_names: tuple[Node, ...] = ()
            for child in self.named(node):
                if _same(child, alias):
                    continue
                out.append(self.lower(child))
                if _same(child, value) and alias is not None:
                    alias_names = self.declared_names(alias, "type_switch")
                    out.extend(alias_names)
            return Generic(*self._pos(node), nodes=tuple(out))

    # ---- declarations ----

    def _package_clause(self, node) -> Node:
        for child in self.named(node):
            if child.type == "package_identifier":
                self.package = self.text(child)
        return self.generic(node)

    def _const_declaration(self, node) -> Node:
        return DeclGroup(*self._pos(node), specs=self.lower_all(self._specs(node)))

    _var_declaration = _const_declaration

    def _import_declaration(self, node) -> Node:
        return DeclGroup(*self._pos(node), specs=self.lower_all(self._specs(node)))

    _type_declaration = _import_declaration

    def _specs(self, node) -> list:
        out = []
        for child in self.named(node):
            if child.type.endswith("_spec_list"):
                out.extend(self._specs(child))
            else:
                out.append(child)
        return out

    def _value_spec(self, node) -> Node:
        type_node = node.child_by_field_name("type")
        type_lowered = self.lower(type_node) if type_node is not None else None
        values = self.expressions(node.child_by_field_name("value"))
        names = tuple(
            self.ident(n, resolve=False)
            for n in node.children_by_field_name("name")
            if n.type == "identifier"
        )
        spec = ValueSpec(
            *self._pos(node),
            names=names,
            type=type_lowered,
            values=values,
            const=node.type == "const_spec",
        )
        for name in names:
            self.declare(name, spec)
        return spec

    _const_spec = _value_spec
    _var_spec = _value_spec

    def _function_declaration(self, node) -> Node:
        name_node = node.child_by_field_name("name")
        name = self.text(name_node) if name_node is not None else ""
        if node.type == "function_declaration" and name_node is not None:
            self.declare(self.ident(name_node, resolve=False), Declared("func"))
        body = node.child_by_field_name("body")
        with self.scope():
            signature = self.lower_all(
                c for c in self.named(node) if c.type != "block" and not _same(c, name_node)
            )
            statements = self.lower_all(self._statements(body)) if body is not None else None
        return FuncDecl(*self._pos(node), name=name, signature=signature, body=statements)

    _method_declaration = _function_declaration

    def _parameter_declaration(self, node) -> Node:
        names = []
        for n in node.children_by_field_name("name"):
            ident = self.ident(n, resolve=False)
            self.declare(ident, Declared("param"))
            names.append(ident)
        type_node = node.child_by_field_name("type")
        rest = (self.lower(type_node),) if type_node is not None else ()
        return Generic(*self._pos(node), nodes=(*names, *rest))

    _variadic_parameter_declaration = _parameter_declaration


_HANDLERS = {
    "identifier": _Lowerer._identifier,
    "call_expression": _Lowerer._call_expression,
    "selector_expression": _Lowerer._selector_expression,
    "composite_literal": _Lowerer._composite_literal,
    "literal_value": _Lowerer._literal_value,
    "literal_element": _Lowerer._literal_element,
    "keyed_element": _Lowerer._keyed_element,
    "func_literal": _Lowerer._func_literal,
    "expression_statement": _Lowerer._expression_statement,
    "short_var_declaration": _Lowerer._short_var_declaration,
    "assignment_statement": _Lowerer._assignment_statement,
    "block": _Lowerer._block,
    "range_clause": _Lowerer._range_clause,
    "receive_statement": _Lowerer._receive_statement,
    "type_switch_statement": _Lowerer._type_switch_statement,
    "package_clause": _Lowerer._package_clause,
    "const_declaration": _Lowerer._const_declaration,
    "var_declaration": _Lowerer._var_declaration,
    "import_declaration": _Lowerer._import_declaration,
    "type_declaration": _Lowerer._type_declaration,
    "const_spec": _Lowerer._const_spec,
    "var_spec": _Lowerer._var_spec,
    "function_declaration": _Lowerer._function_declaration,
    "method_declaration": _Lowerer._method_declaration,
    "parameter_declaration": _Lowerer._parameter_declaration,
    "variadic_parameter_declaration": _Lowerer._variadic_parameter_declaration,
}
