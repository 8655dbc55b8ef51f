"""Render generated names, declarations and expression text."""

from __future__ import annotations

import re
from collections.abc import Iterable

from tree_sitter import Node

from literal_lift.core.ast import walk
from literal_lift.core.matcher import AttributeSite, pascal_case
from literal_lift.models import ExpressionCategory, Strategy

_EVENT_ATTRIBUTE = re.compile(r"^on[A-Z]")


def _upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def _lower_first(text: str) -> str:
    return text[:1].lower() + text[1:]


def canonical_name(site: AttributeSite, strategy: Strategy) -> str:
    """Name before collision avoidance, e.g. ``ModalInfo``, ``modalInfo`` or ``handleModalClose``."""
    component = site.host_element_name
    if strategy is Strategy.MODULE_CONSTANT:
        return component + pascal_case(site.attribute_name)
    if site.category is ExpressionCategory.FUNCTION and _EVENT_ATTRIBUTE.match(site.attribute_name):
        return "handle" + _upper_first(component) + pascal_case(site.attribute_name[2:])
    return _lower_first(component + pascal_case(site.attribute_name))


class NameRegistry:
    """Generated names reserved during one analysis pass."""

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._reserved = set(reserved)

    def __contains__(self, name: str) -> bool:
        return name in self._reserved

    def reserve(self, candidate: str, visible: set[str]) -> str:
        name = candidate
        suffix = 0
        while name in visible or name in self._reserved:
            suffix += 1
            name = f"{candidate}{suffix}"
        self._reserved.add(name)
        return name


def expression_text(source: bytes, expression: Node, indent: str) -> str:
    """Source of ``expression`` with continuation lines moved under ``indent``.

    Lines keep their indentation relative to each other. Lines that start inside a
    template literal are part of its value and stay untouched.
    """
    templates = [(n.start_byte, n.end_byte) for n in walk(expression) if n.type == "template_string"]
    lines: list[tuple[bytes, bool]] = []
    offset = expression.start_byte
    for index, line in enumerate(source[expression.start_byte : expression.end_byte].split(b"\n")):
        movable = index > 0 and not any(start < offset < end for start, end in templates)
        lines.append((line, movable))
        offset += len(line) + 1

    widths = [len(line) - len(line.lstrip(b" \t")) for line, movable in lines if movable and line.strip()]
    if not widths:
        return b"\n".join(line for line, _ in lines).decode("utf-8")
    common = min(widths)
    prefix = indent.encode("utf-8")
    rendered = []
    for line, movable in lines:
        if not movable:
            rendered.append(line)
        elif line.strip():
            rendered.append(prefix + line[common:])
        else:
            rendered.append(b"")
    return b"\n".join(rendered).decode("utf-8")


def render_hook(name: str, hook_name: str, annotation: str | None, expression: str, dependencies: list[str]) -> str:
    type_arguments = f"<{annotation}>" if annotation else ""
    deps = ", ".join(dependencies)
    if hook_name == "useCallback":
        return f"const {name} = useCallback{type_arguments}({expression}, [{deps}]);"
    return f"const {name} = useMemo{type_arguments}(() => {{ return {expression}; }}, [{deps}]);"


def render_constant(name: str, annotation: str | None, expression: str) -> str:
    type_annotation = f": {annotation}" if annotation else ""
    return f"const {name}{type_annotation} = {expression};"
