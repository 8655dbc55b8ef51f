"""Shared fixtures and helpers for tests."""

from collections.abc import Callable
from pathlib import Path

import pytest
from tree_sitter import Language, Node, Parser
from tree_sitter_language_pack import get_language, get_parser

from literal_lift.core.ast import SourceFile

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def queries_dir() -> Path:
    """Return the path to the queries directory."""
    return Path(__file__).parent.parent / "src" / "literal_lift" / "queries"


@pytest.fixture
def tsx_parser() -> Parser:
    """Return a tree-sitter parser for TSX."""
    return get_parser("tsx")


@pytest.fixture
def tsx_language() -> Language:
    """Return the tree-sitter TSX language."""
    return get_language("tsx")


@pytest.fixture
def tsx_file(tmp_path: Path) -> Callable[[str, str], SourceFile]:
    """Parse TSX code as if it lived at ``tmp_path / name``."""

    def _parse(code: str, name: str = "component.tsx") -> SourceFile:
        return SourceFile.from_source(code, tmp_path / name)

    return _parse


@pytest.fixture
def write_project(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write a dict of relative path to content under ``tmp_path`` and return the root."""

    def _write(files: dict[str, str]) -> Path:
        for relative, content in files.items():
            target = tmp_path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture
def find_node() -> Callable[..., Node]:
    """Return a lookup of the first node of a type (and optionally text) in pre-order."""

    def _find(node: Node, node_type: str, text: str | None = None) -> Node:
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type == node_type and (text is None or current.text == text.encode()):
                return current
            stack.extend(reversed(current.children))
        raise LookupError(f"no {node_type} node matching {text!r}")

    return _find
