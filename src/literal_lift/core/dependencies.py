"""Which component-local bindings a liftable expression depends on."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from tree_sitter import Node

from literal_lift.core.ast import contains, find_ancestor, is_descendant, is_function, walk
from literal_lift.core.ports.oracle import TypeOracle
from literal_lift.core.scopes import BindingKind, Symbol
from literal_lift.errors import SiteSkipped

logger = logging.getLogger(__name__)

STATE_SETTER_TYPE = re.compile(r"Dispatch<SetStateAction<.*>>")
REF_HANDLE_TYPE = re.compile(r"(RefObject|MutableRefObject)<.*>")

_REFERENCE_NODES = frozenset({"identifier", "shorthand_property_identifier"})


class ReferenceClass(str, Enum):
    COMPONENT_LOCAL = "component-local"
    STATE_SETTER = "state-setter"
    REF_HANDLE = "ref-handle"
    EXTERNAL = "external"


@dataclass(frozen=True)
class ScopeReference:
    symbol: Symbol
    declaring_node: Node
    classification: ReferenceClass

    @property
    def name(self) -> str:
        return self.symbol.name


@dataclass(frozen=True)
class DependencySet:
    references: tuple[ScopeReference, ...]

    @property
    def component_local(self) -> tuple[ScopeReference, ...]:
        """References to bindings declared inside the component, stable ones included."""
        return tuple(r for r in self.references if r.classification is not ReferenceClass.EXTERNAL)

    @property
    def hook_dependencies(self) -> tuple[ScopeReference, ...]:
        return tuple(r for r in self.references if r.classification is ReferenceClass.COMPONENT_LOCAL)

    @property
    def has_component_local(self) -> bool:
        return bool(self.component_local)


def declaring_function(symbol: Symbol) -> Node | None:
    """Nearest function whose scope declares ``symbol``."""
    start = symbol.declaration.parent if symbol.kind is BindingKind.FUNCTION else symbol.binding
    return find_ancestor(start, is_function)


def outer_references(expression: Node, oracle: TypeOracle) -> list[tuple[Node, Symbol]]:
    """Identifiers in ``expression`` resolving to bindings declared outside of it, first use first."""
    found: list[tuple[Node, Symbol]] = []
    seen: set[int] = set()
    for node in walk(expression):
        if node.type not in _REFERENCE_NODES:
            continue
        symbol = oracle.resolve_symbol(node)
        if symbol is None or contains(expression, symbol.binding):
            continue
        if id(symbol) in seen:
            continue
        seen.add(id(symbol))
        found.append((node, symbol))
    return found


def classify_reference(symbol: Symbol, reference: Node, component: Node, oracle: TypeOracle) -> ReferenceClass:
    function = declaring_function(symbol)
    if function is None:
        return ReferenceClass.EXTERNAL
    if function != component:
        if is_descendant(function, component):
            raise SiteSkipped(f"'{symbol.name}' is declared by a callback nested in the component")
        raise SiteSkipped(f"'{symbol.name}' is declared by a function enclosing the component")
    descriptor = oracle.resolve_type_of_expression(reference)
    if descriptor is not None:
        rendered = descriptor.type.render()
        if STATE_SETTER_TYPE.search(rendered):
            return ReferenceClass.STATE_SETTER
        if REF_HANDLE_TYPE.search(rendered):
            return ReferenceClass.REF_HANDLE
    return ReferenceClass.COMPONENT_LOCAL


def analyze_dependencies(expression: Node, component: Node, oracle: TypeOracle) -> DependencySet:
    """Collect the references of ``expression`` and classify them relative to ``component``.

    Raises ``SiteSkipped`` when the expression reads a binding owned by a callback nested
    inside the component, such as the item parameter of a ``list.map`` callback.
    """
    references = tuple(
        ScopeReference(
            symbol=symbol,
            declaring_node=symbol.declaration,
            classification=classify_reference(symbol, node, component, oracle),
        )
        for node, symbol in outer_references(expression, oracle)
    )
    logger.debug(
        "Dependencies of expression at %d: %s",
        expression.start_byte,
        ", ".join(f"{r.name}={r.classification.value}" for r in references) or "none",
    )
    return DependencySet(references=references)
