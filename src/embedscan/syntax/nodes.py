"""Immutable syntax nodes produced by the Go tree provider.

Every node keeps the tree-sitter ``kind`` it was lowered from, its 1-based
``line``/``column``, and exposes ``children()`` in source order.  Only the
shapes the reference scanner inspects get a dedicated class; everything
else is a :class:`Generic` node that merely carries its children.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, eq=False)
class Node:
    kind: str
    line: int
    column: int

    def children(self) -> tuple[Node, ...]:
        return ()


@dataclass(frozen=True, eq=False)
class Generic(Node):
    nodes: tuple[Node, ...] = ()

    def children(self) -> tuple[Node, ...]:
        return self.nodes


@dataclass(frozen=True, eq=False)
class Ident(Node):
    """An identifier occurrence; ``offset`` is its byte offset in the file."""

    name: str
    offset: int


@dataclass(frozen=True, eq=False)
class Literal(Node):
    """A basic literal. ``value`` is the raw source text, quotes included."""

    value: str

    @property
    def is_string(self) -> bool:
        return self.kind in ("interpreted_string_literal", "raw_string_literal")


@dataclass(frozen=True, eq=False)
class Call(Node):
    fun: Node
    args: tuple[Node, ...]

    def children(self) -> tuple[Node, ...]:
        return (self.fun, *self.args)


@dataclass(frozen=True, eq=False)
class Selector(Node):
    """``x.sel`` member access; ``sel`` is the bare member name."""

    x: Node
    sel: str

    def children(self) -> tuple[Node, ...]:
        return (self.x,)


@dataclass(frozen=True, eq=False)
class CompositeLiteral(Node):
    type: Node | None
    elts: tuple[Node, ...]

    def children(self) -> tuple[Node, ...]:
        if self.type is None:
            return self.elts
        return (self.type, *self.elts)


@dataclass(frozen=True, eq=False)
class KeyValue(Node):
    key: Node
    value: Node

    def children(self) -> tuple[Node, ...]:
        return (self.key, self.value)


@dataclass(frozen=True, eq=False)
class Assignment(Node):
    """``lhs := rhs`` when ``define`` is set, plain ``lhs = rhs`` otherwise."""

    lhs: tuple[Node, ...]
    rhs: tuple[Node, ...]
    define: bool

    def children(self) -> tuple[Node, ...]:
        return (*self.lhs, *self.rhs)


@dataclass(frozen=True, eq=False)
class ValueSpec(Node):
    """One ``const`` or ``var`` spec: ``names [type] = values``."""

    names: tuple[Ident, ...]
    type: Node | None
    values: tuple[Node, ...]
    const: bool

    def children(self) -> tuple[Node, ...]:
        head = (*self.names, self.type) if self.type is not None else self.names
        return (*head, *self.values)


@dataclass(frozen=True, eq=False)
class DeclGroup(Node):
    """A ``const``/``var``/``import``/``type`` declaration and its specs."""

    specs: tuple[Node, ...]

    def children(self) -> tuple[Node, ...]:
        return self.specs


@dataclass(frozen=True, eq=False)
class FuncDecl(Node):
    """A function or method declaration.

    ``signature`` holds receiver, parameters and results; ``body`` is the
    tuple of top-level statements, or None for a declaration without body.
    """

    name: str
    signature: tuple[Node, ...]
    body: tuple[Node, ...] | None

    def children(self) -> tuple[Node, ...]:
        if self.body is None:
            return self.signature
        return (*self.signature, *self.body)


@dataclass(frozen=True, eq=False)
class ExprStmt(Node):
    x: Node

    def children(self) -> tuple[Node, ...]:
        return (self.x,)


@dataclass(frozen=True)
class Declared:
    """Binding target for names that shadow but never resolve to a value.

    Parameters, receivers, functions, range and type-switch variables.
    """

    kind: str


Binding = Assignment | ValueSpec | Declared


def walk(root: Node):
    """Yield every node under *root* (inclusive) in preorder, source order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children()))
