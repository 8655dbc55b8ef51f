from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

from tree_sitter import Node, Query, QueryCursor, Tree
from tree_sitter_language_pack import SupportedLanguage, get_language, get_parser

from literal_lift.core.languages import detect_language_from_path, normalize_language

NodePredicate = Callable[[Node], bool]

FUNCTION_TYPES = frozenset(
    {
        "arrow_function",
        "function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "generator_function_declaration",
        "method_definition",
    }
)

DECLARATION_STATEMENT_TYPES = frozenset(
    {
        "lexical_declaration",
        "variable_declaration",
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "abstract_class_declaration",
    }
)


def _load_query(language: str, query_type: str) -> Query:
    queries_dir = Path(__file__).parent.parent / "queries"
    query_path = queries_dir / f"{language}_{query_type}.scm"
    if not query_path.exists():
        raise FileNotFoundError(f"Query file not found: {query_path}")
    query_text = query_path.read_text(encoding="utf-8")
    return Query(get_language(cast(SupportedLanguage, language)), query_text)


def parse_source(source_bytes: bytes, language: str) -> Tree:
    parser = get_parser(cast(SupportedLanguage, language))
    return parser.parse(source_bytes)


@dataclass
class SourceFile:
    """A parsed source file. The tree is never mutated after parsing."""

    path: Path
    source: bytes
    language: str
    tree: Tree = field(repr=False)

    @classmethod
    def from_source(cls, source: str | bytes, path: Path, language: str | None = None) -> SourceFile:
        source_bytes = source.encode("utf-8") if isinstance(source, str) else source
        resolved_language = normalize_language(language) if language else detect_language_from_path(path)
        return cls(path=path, source=source_bytes, language=resolved_language, tree=parse_source(source_bytes, resolved_language))

    @classmethod
    def from_file(cls, path: str | Path, language: str | None = None) -> SourceFile:
        file_path = Path(path)
        try:
            source_bytes = file_path.read_bytes()
        except FileNotFoundError:
            raise FileNotFoundError(f"File not found: {path}") from None
        return cls.from_source(source_bytes, file_path.resolve(), language)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def text(self) -> str:
        return self.source.decode("utf-8")

    def text_of(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8")

    def captures(self, query_type: str) -> list[dict[str, list[Node]]]:
        """Run the ``<language>_<query_type>.scm`` query and return its matches in document order."""
        cursor = QueryCursor(_load_query(self.language, query_type))
        return [captures for _, captures in cursor.matches(self.root)]


def node_text(node: Node) -> str:
    return node.text.decode("utf-8") if node.text is not None else ""


def find_ancestor(
    node: Node | None,
    match: NodePredicate,
    skip: NodePredicate | None = None,
) -> Node | None:
    """Return the nearest node, starting at ``node`` itself, that satisfies ``match``.

    Nodes that satisfy ``match`` but also satisfy ``skip`` are stepped over and the
    walk continues with their parent.
    """
    current = node
    while current is not None:
        if match(current) and (skip is None or not skip(current)):
            return current
        current = current.parent
    return None


def is_function(node: Node) -> bool:
    return node.type in FUNCTION_TYPES


def is_descendant(node: Node, ancestor: Node) -> bool:
    """True when ``node`` lies strictly inside ``ancestor``."""
    if node.start_byte < ancestor.start_byte or node.end_byte > ancestor.end_byte:
        return False
    current = node.parent
    while current is not None:
        if current == ancestor:
            return True
        current = current.parent
    return False


def contains(ancestor: Node, node: Node) -> bool:
    return node == ancestor or is_descendant(node, ancestor)


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of ``node`` and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def unwrap_parentheses(node: Node) -> Node:
    while node.type == "parenthesized_expression" and node.named_child_count == 1:
        inner = node.named_children[0]
        if inner is None:
            break
        node = inner
    return node


def line_indent(source: bytes, offset: int) -> str:
    """Leading whitespace of the line that contains ``offset``."""
    line_start = source.rfind(b"\n", 0, offset) + 1
    end = line_start
    while end < len(source) and source[end : end + 1] in (b" ", b"\t"):
        end += 1
    return source[line_start:end].decode("utf-8")


def indent_unit(source: bytes) -> str:
    """Guess the file's indentation unit from the first indented line."""
    for line in source.splitlines():
        stripped = line.lstrip(b" \t")
        if stripped and len(stripped) != len(line):
            prefix = line[: len(line) - len(stripped)]
            return "\t" if prefix.startswith(b"\t") else " " * min(len(prefix), 4)
    return "    "


def position_of(source: bytes, offset: int) -> tuple[int, int]:
    """1-based line and column of a byte offset."""
    line = source.count(b"\n", 0, offset) + 1
    line_start = source.rfind(b"\n", 0, offset) + 1
    column = len(source[line_start:offset].decode("utf-8", errors="replace")) + 1
    return line, column
