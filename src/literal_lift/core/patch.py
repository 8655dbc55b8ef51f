"""Anchor selection for generated declarations and assembly of file-wide patches."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from tree_sitter import Node

from literal_lift.core.ast import SourceFile, find_ancestor, indent_unit, line_indent
from literal_lift.core.dependencies import DependencySet
from literal_lift.core.imports import merge_entries, render_entry
from literal_lift.core.scopes import BindingKind
from literal_lift.errors import OverlappingEditsError
from literal_lift.models import BodyWrap, FixParts, ImportEntry, Insertion, TextEdit

logger = logging.getLogger(__name__)

_LEADING_STATEMENTS = frozenset({"return_statement", "expression_statement"})
_IMPORT_STATEMENTS = frozenset({"import_statement"})


def _direct_child_of(node: Node, block: Node) -> Node | None:
    return find_ancestor(node, lambda n: n.parent is not None and n.parent == block)


def _statements(block: Node) -> list[Node]:
    return [child for child in block.named_children if child.type != "comment"]


@dataclass(frozen=True)
class HookAnchor:
    """Where a memoized binding goes inside its component."""

    offset: int
    indent: str
    after: bool = False
    wrap: BodyWrap | None = None

    def insertion(self, declaration: str) -> Insertion:
        if self.wrap is not None:
            return Insertion(offset=self.offset, text=declaration, wrap=self.wrap)
        if self.after:
            return Insertion(offset=self.offset, text=f"\n{self.indent}{declaration}")
        return Insertion(offset=self.offset, text=f"{declaration}\n{self.indent}")


def hook_anchor(
    component: Node, site_expression: Node, dependencies: DependencySet, source: bytes
) -> HookAnchor | None:
    """Place a memoized binding inside ``component`` before its first use.

    Returns None when no position both follows every dependency and precedes the site.
    """
    if component.type == "method_definition":
        return None
    body = component.child_by_field_name("body")
    if body is None:
        return None
    if body.type != "statement_block":
        indent = line_indent(source, component.start_byte)
        unit = indent_unit(source)
        wrap = BodyWrap(start=body.start_byte, end=body.end_byte, indent=indent, unit=unit)
        return HookAnchor(offset=body.start_byte, indent=indent + unit, wrap=wrap)

    site_statement = _direct_child_of(site_expression, body)
    candidates = [s for s in _statements(body) if s.type in _LEADING_STATEMENTS][:1]
    if site_statement is not None:
        candidates.append(site_statement)
    if not candidates:
        return None
    anchor = min(candidates, key=lambda s: s.start_byte)

    latest: Node | None = None
    for reference in dependencies.component_local:
        if reference.symbol.kind is BindingKind.PARAMETER:
            continue
        statement = _direct_child_of(reference.declaring_node, body)
        if statement is None:
            logger.debug("'%s' is not declared at the top level of the component body", reference.name)
            return None
        if latest is None or statement.end_byte > latest.end_byte:
            latest = statement

    if latest is not None and latest.end_byte > anchor.start_byte:
        if site_statement is not None and latest.end_byte > site_statement.start_byte:
            return None
        return HookAnchor(offset=latest.end_byte, indent=line_indent(source, latest.start_byte), after=True)
    return HookAnchor(offset=anchor.start_byte, indent=line_indent(source, anchor.start_byte))


def _prologue_end(root: Node) -> int | None:
    """End of the last import statement, or of the leading directives when there is none."""
    end: int | None = None
    for child in root.named_children:
        if child.type in _IMPORT_STATEMENTS:
            end = child.end_byte
    if end is not None:
        return end
    for child in root.named_children:
        if child.type == "comment":
            continue
        if child.type == "expression_statement" and child.named_children and child.named_children[0].type == "string":
            end = child.end_byte
            continue
        break
    return end


def constant_insertion(source_file: SourceFile, declaration: str, position: str) -> Insertion:
    root = source_file.root
    if position == "start":
        end = _prologue_end(root)
        if end is None:
            return Insertion(offset=0, text=f"{declaration}\n\n")
        return Insertion(offset=end, text=f"\n{declaration}")
    children = [child for child in root.children if child.type != "comment"]
    offset = children[-1].end_byte if children else len(source_file.source)
    return Insertion(offset=offset, text=f"\n{declaration}")


def import_edits(source_file: SourceFile, entries: Iterable[ImportEntry]) -> tuple[list[TextEdit], list[Insertion]]:
    replacements: list[TextEdit] = []
    insertions: list[Insertion] = []
    for entry in entries:
        if not entry.changes_file:
            continue
        rendered = render_entry(entry)
        if entry.span is not None:
            replacements.append(TextEdit(start=entry.span[0], end=entry.span[1], text=rendered))
            continue
        end = _prologue_end(source_file.root)
        if end is None:
            insertions.append(Insertion(offset=0, text=f"{rendered}\n"))
        else:
            insertions.append(Insertion(offset=end, text=f"\n{rendered}"))
    return replacements, insertions


def merge_import_entries(entries: Iterable[ImportEntry]) -> list[ImportEntry]:
    merged: dict[tuple[str, tuple[int, int] | None], ImportEntry] = {}
    for entry in entries:
        key = (entry.module_key, entry.span)
        merged[key] = merge_entries(merged[key], entry) if key in merged else entry
    return list(merged.values())


def _wrap_edits(insertions: list[Insertion]) -> list[TextEdit]:
    groups: dict[tuple[int, int], tuple[BodyWrap, list[str]]] = {}
    for insertion in insertions:
        wrap = insertion.wrap
        if wrap is None:
            continue
        groups.setdefault((wrap.start, wrap.end), (wrap, []))[1].append(insertion.text)
    edits: list[TextEdit] = []
    for wrap, declarations in groups.values():
        inner = wrap.indent + wrap.unit
        opening = "{\n" + "".join(f"{inner}{d}\n" for d in declarations) + f"{inner}return "
        edits.append(TextEdit(start=wrap.start, end=wrap.start, text=opening))
        edits.append(TextEdit(start=wrap.end, end=wrap.end, text=f";\n{wrap.indent}}}"))
    return edits


def assemble(source_file: SourceFile, parts: Iterable[FixParts]) -> list[TextEdit]:
    """Merge the parts of several fixes into one ordered, non-overlapping list of edits.

    Identical insertions and replacements collapse into one. Insertions at the same
    offset are concatenated in the order they were produced, imports first.
    Raises ``OverlappingEditsError`` when two edits touch the same text differently.
    """
    replacements: list[TextEdit] = []
    insertions: list[Insertion] = []
    entries: list[ImportEntry] = []
    for part in parts:
        replacements.extend(part.replacements)
        insertions.extend(part.insertions)
        entries.extend(part.imports)

    import_replacements, import_insertions = import_edits(source_file, merge_import_entries(entries))
    unique: list[Insertion] = []
    for insertion in [*import_insertions, *insertions]:
        if insertion not in unique:
            unique.append(insertion)

    edits: list[TextEdit] = []
    for edit in [*import_replacements, *replacements]:
        if edit not in edits:
            edits.append(edit)
    edits.extend(_wrap_edits(unique))

    by_offset: dict[int, list[str]] = {}
    for insertion in unique:
        if insertion.wrap is None:
            by_offset.setdefault(insertion.offset, []).append(insertion.text)
    for offset, texts in by_offset.items():
        edits.append(TextEdit(start=offset, end=offset, text="".join(texts)))

    edits = _join_insertions(sorted(edits, key=lambda e: (e.start, 0 if e.is_insertion else 1)))
    for previous, current in zip(edits, edits[1:]):
        if current.start < previous.end:
            raise OverlappingEditsError(
                f"edit [{current.start}, {current.end}) overlaps [{previous.start}, {previous.end})"
            )
    return edits


def _join_insertions(edits: list[TextEdit]) -> list[TextEdit]:
    """Join insertions sharing an offset so that applying them keeps their order."""
    joined: list[TextEdit] = []
    for edit in edits:
        if joined and edit.is_insertion and joined[-1].is_insertion and joined[-1].start == edit.start:
            joined[-1] = TextEdit(start=edit.start, end=edit.end, text=joined[-1].text + edit.text)
        else:
            joined.append(edit)
    return joined


def apply_edits(source: bytes, edits: list[TextEdit]) -> bytes:
    """Apply non-overlapping edits, given in ascending order, to ``source``."""
    result = source
    for edit in reversed(edits):
        result = result[: edit.start] + edit.text.encode("utf-8") + result[edit.end :]
    return result
