"""Unit tests for parsing, attribute queries and language detection."""

from collections.abc import Callable
from pathlib import Path

import pytest
from tree_sitter import Language, Node, Parser, Query, QueryCursor

from literal_lift.core.ast import SourceFile, indent_unit, line_indent, position_of, unwrap_parentheses
from literal_lift.core.languages import (
    collect_source_files,
    default_path_for,
    detect_language_from_path,
    is_supported_source,
    normalize_language,
    supports_jsx,
)


class TestAttributeQueries:
    @pytest.mark.parametrize("language", ["tsx", "javascript"])
    def test_query_file_exists(self, queries_dir: Path, language: str):
        assert (queries_dir / f"{language}_attributes.scm").is_file()

    def test_query_captures_expression_attributes(
        self, queries_dir: Path, tsx_parser: Parser, tsx_language: Language
    ):
        query = Query(tsx_language, (queries_dir / "tsx_attributes.scm").read_text())
        tree = tsx_parser.parse(b'const a = <Box style={{ a: 1 }} title="x" hidden />;')

        matches = QueryCursor(query).matches(tree.root_node)

        assert len(matches) == 1
        _, captures = matches[0]
        assert set(captures) == {"attribute", "attribute.name", "attribute.value"}
        assert captures["attribute.name"][0].text == b"style"

    def test_source_file_captures_in_document_order(self, tsx_file: Callable[..., SourceFile]):
        source_file = tsx_file("const a = <Box items={[1]} onPick={() => 1} />;\n")

        names = [m["attribute.name"][0].text for m in source_file.captures("attributes")]

        assert names == [b"items", b"onPick"]

    def test_missing_query_type(self, tsx_file: Callable[..., SourceFile]):
        with pytest.raises(FileNotFoundError, match="Query file not found"):
            tsx_file("a;\n").captures("unknown")


class TestSourceFile:
    def test_language_from_path(self, tmp_path: Path):
        assert SourceFile.from_source("a;", tmp_path / "a.jsx").language == "javascript"
        assert SourceFile.from_source("a;", tmp_path / "a.tsx").language == "tsx"

    def test_explicit_language_wins(self, tmp_path: Path):
        assert SourceFile.from_source("a;", tmp_path / "a.tsx", "jsx").language == "javascript"

    def test_from_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="File not found"):
            SourceFile.from_file(tmp_path / "missing.tsx")


class TestHelpers:
    def test_position_counts_characters(self):
        source = "const é = 1;\nf({ a });\n".encode()

        assert position_of(source, source.index(b"{")) == (2, 3)
        assert position_of(source, source.index(b"=")) == (1, 9)

    def test_line_indent(self):
        source = b"a\n\t  b\n"

        assert line_indent(source, source.index(b"b")) == "\t  "
        assert line_indent(source, 0) == ""

    @pytest.mark.parametrize(
        ("source", "expected"),
        [(b"a\n  b\n", "  "), (b"a\n\tb\n", "\t"), (b"a\n        b\n", "    "), (b"a\n", "    ")],
    )
    def test_indent_unit(self, source: bytes, expected: str):
        assert indent_unit(source) == expected

    def test_unwrap_parentheses(self, tsx_file: Callable[..., SourceFile], find_node: Callable[..., Node]):
        source_file = tsx_file("const a = ((b));\n")

        outer = find_node(source_file.root, "parenthesized_expression")

        assert unwrap_parentheses(outer).type == "identifier"


class TestLanguages:
    @pytest.mark.parametrize(
        ("name", "expected"), [("TSX", "tsx"), ("jsx", "javascript"), ("ts", "typescript"), ("js", "javascript")]
    )
    def test_normalize(self, name: str, expected: str):
        assert normalize_language(name) == expected

    def test_unsupported_language(self):
        with pytest.raises(ValueError, match="Unsupported language"):
            normalize_language("python")

    def test_detect_from_path(self):
        assert detect_language_from_path(Path("a.mts")) == "typescript"
        with pytest.raises(ValueError, match="Unsupported file extension"):
            detect_language_from_path(Path("a.py"))

    def test_jsx_support(self):
        assert supports_jsx("tsx")
        assert supports_jsx("javascript")
        assert not supports_jsx("typescript")

    def test_default_path(self, tmp_path: Path):
        assert default_path_for("javascript", tmp_path) == tmp_path / "__snippet__.jsx"

    def test_supported_sources(self):
        assert is_supported_source(Path("Card.TSX"))
        assert not is_supported_source(Path("README.md"))

    def test_collect_source_files(self, write_project: Callable[[dict[str, str]], Path]):
        root = write_project(
            {
                "src/Card.tsx": "",
                "src/util.js": "",
                "src/types.d.ts": "",
                "src/notes.md": "",
                "node_modules/react/index.js": "",
            }
        )

        assert collect_source_files([root]) == [root / "src/Card.tsx", root / "src/util.js"]

    def test_collect_explicit_file_and_missing_path(self, tmp_path: Path):
        card = tmp_path / "Card.tsx"
        card.write_text("")

        assert collect_source_files([card]) == [card]
        with pytest.raises(FileNotFoundError):
            collect_source_files([tmp_path / "missing"])
