"""Go syntax tree provider."""

from embedscan.syntax.go_tree import SyntaxTree, parse_file, parse_source

__all__ = ["SyntaxTree", "parse_file", "parse_source"]
