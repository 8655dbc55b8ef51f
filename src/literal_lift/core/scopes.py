"""Lexical scope analysis over a tree-sitter tree.

The scope tree is built once per file. Declarations and references are joined by
tree-sitter node ids, so later lookups never walk the whole tree again.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from tree_sitter import Node

from literal_lift.core.ast import DECLARATION_STATEMENT_TYPES, FUNCTION_TYPES, find_ancestor, node_text


PathSegment = str | int


class BindingKind(str, Enum):
    VARIABLE = "variable"
    PARAMETER = "parameter"
    FUNCTION = "function"
    CLASS = "class"
    IMPORT = "import"
    TYPE = "type"
    ENUM = "enum"
    CATCH = "catch"


@dataclass(eq=False)
class Symbol:
    name: str
    kind: BindingKind
    binding: Node = field(repr=False)
    declaration: Node = field(repr=False)
    scope: Scope = field(repr=False)
    # Position of the binding inside a destructuring pattern, e.g. (1,) for
    # the setter in ``const [value, setValue] = ...``.
    path: tuple[PathSegment, ...] = ()

    @property
    def initializer(self) -> Node | None:
        if self.kind is not BindingKind.VARIABLE or self.declaration.type != "variable_declarator":
            return None
        return self.declaration.child_by_field_name("value")

    @property
    def annotation(self) -> Node | None:
        if self.path or self.kind not in (BindingKind.VARIABLE, BindingKind.PARAMETER):
            return None
        return self.declaration.child_by_field_name("type")

    @property
    def statement(self) -> Node | None:
        """The declaration statement, function or class that introduces the symbol."""
        if self.kind in (BindingKind.FUNCTION, BindingKind.CLASS):
            return self.declaration
        return find_ancestor(self.declaration, lambda n: n.type in DECLARATION_STATEMENT_TYPES)


@dataclass(eq=False)
class Scope:
    node: Node = field(repr=False)
    parent: Scope | None = field(default=None, repr=False)
    values: dict[str, Symbol] = field(default_factory=dict)
    types: dict[str, Symbol] = field(default_factory=dict)

    @property
    def is_function_scope(self) -> bool:
        return self.parent is None or self.node.type in FUNCTION_TYPES

    def lookup(self, name: str, namespace: str = "value") -> Symbol | None:
        scope: Scope | None = self
        while scope is not None:
            table = scope.values if namespace == "value" else scope.types
            if name in table:
                return table[name]
            scope = scope.parent
        return None

    def chain(self) -> Iterator[Scope]:
        scope: Scope | None = self
        while scope is not None:
            yield scope
            scope = scope.parent


def collect_bindings(pattern: Node, path: tuple[PathSegment, ...] = ()) -> list[tuple[Node, tuple[PathSegment, ...]]]:
    """Return every identifier bound by a declaration pattern with its destructuring path."""
    kind = pattern.type
    if kind in ("identifier", "shorthand_property_identifier_pattern"):
        return [(pattern, path)]
    if kind == "object_pattern":
        bindings: list[tuple[Node, tuple[PathSegment, ...]]] = []
        for child in pattern.named_children:
            if child.type == "shorthand_property_identifier_pattern":
                bindings.append((child, (*path, node_text(child))))
            elif child.type == "pair_pattern":
                key = child.child_by_field_name("key")
                value = child.child_by_field_name("value")
                if value is not None:
                    bindings.extend(collect_bindings(value, (*path, _key_text(key))))
            elif child.type == "object_assignment_pattern":
                left = child.child_by_field_name("left")
                if left is not None:
                    bindings.extend(collect_bindings(left, (*path, node_text(left))))
            elif child.type == "rest_pattern":
                bindings.extend(_rest(child, (*path, "...")))
        return bindings
    if kind == "array_pattern":
        bindings = []
        index = 0
        for child in pattern.children:
            if child.type == ",":
                index += 1
            elif child.is_named:
                bindings.extend(collect_bindings(child, (*path, index)))
        return bindings
    if kind in ("assignment_pattern", "object_assignment_pattern"):
        left = pattern.child_by_field_name("left")
        return collect_bindings(left, path) if left is not None else []
    if kind == "rest_pattern":
        return _rest(pattern, (*path, "..."))
    return []


def _rest(node: Node, path: tuple[PathSegment, ...]) -> list[tuple[Node, tuple[PathSegment, ...]]]:
    inner = next(iter(node.named_children), None)
    return collect_bindings(inner, path) if inner is not None else []


def _key_text(key: Node | None) -> str:
    if key is None:
        return ""
    text = node_text(key)
    if key.type == "string" and len(text) >= 2:
        return text[1:-1]
    return text


class ScopeTree:
    """Scopes and symbols of a single module."""

    def __init__(self, root: Node) -> None:
        self.root = Scope(node=root)
        self._scopes: dict[int, Scope] = {root.id: self.root}
        self._symbols: dict[int, Symbol] = {}
        for child in root.children:
            self._visit(child, self.root)

    @property
    def module_symbols(self) -> dict[str, Symbol]:
        return self.root.values

    @property
    def module_types(self) -> dict[str, Symbol]:
        return self.root.types

    def scope_for(self, node: Node) -> Scope:
        current: Node | None = node
        while current is not None:
            scope = self._scopes.get(current.id)
            if scope is not None:
                return scope
            current = current.parent
        return self.root

    def symbol_for_binding(self, node: Node) -> Symbol | None:
        return self._symbols.get(node.id)

    def resolve(self, identifier: Node, namespace: str = "value") -> Symbol | None:
        declared = self._symbols.get(identifier.id)
        if declared is not None:
            return declared
        return self.scope_for(identifier).lookup(node_text(identifier), namespace)

    def visible_names(self, node: Node) -> set[str]:
        names: set[str] = set()
        for scope in self.scope_for(node).chain():
            names.update(scope.values)
            names.update(scope.types)
        return names

    def _declare(
        self,
        scope: Scope,
        binding: Node,
        kind: BindingKind,
        declaration: Node,
        path: tuple[PathSegment, ...] = (),
        namespaces: tuple[str, ...] = ("value",),
    ) -> None:
        symbol = Symbol(name=node_text(binding), kind=kind, binding=binding, declaration=declaration, scope=scope, path=path)
        for namespace in namespaces:
            table = scope.values if namespace == "value" else scope.types
            table[symbol.name] = symbol
        self._symbols[binding.id] = symbol

    def _new_scope(self, node: Node, parent: Scope) -> Scope:
        scope = Scope(node=node, parent=parent)
        self._scopes[node.id] = scope
        return scope

    def _function_scope(self, scope: Scope) -> Scope:
        while not scope.is_function_scope and scope.parent is not None:
            scope = scope.parent
        return scope

    def _visit(self, node: Node, scope: Scope) -> None:
        kind = node.type
        if kind in FUNCTION_TYPES:
            self._visit_function(node, scope)
        elif kind in ("class_declaration", "abstract_class_declaration"):
            name = node.child_by_field_name("name")
            if name is not None:
                self._declare(scope, name, BindingKind.CLASS, node, namespaces=("value", "type"))
            self._visit_children(node, scope)
        elif kind in ("lexical_declaration", "variable_declaration"):
            self._visit_declaration(node, scope)
        elif kind == "import_statement":
            self._visit_import(node)
        elif kind in ("interface_declaration", "type_alias_declaration"):
            name = node.child_by_field_name("name")
            if name is not None:
                self._declare(scope, name, BindingKind.TYPE, node, namespaces=("type",))
        elif kind == "enum_declaration":
            name = node.child_by_field_name("name")
            if name is not None:
                self._declare(scope, name, BindingKind.ENUM, node, namespaces=("value", "type"))
        elif kind == "statement_block":
            self._visit_children(node, self._new_scope(node, scope))
        elif kind in ("for_statement", "for_in_statement"):
            self._visit_loop(node, self._new_scope(node, scope))
        elif kind == "catch_clause":
            inner = self._new_scope(node, scope)
            parameter = node.child_by_field_name("parameter")
            if parameter is not None:
                for binding, path in collect_bindings(parameter):
                    self._declare(inner, binding, BindingKind.CATCH, node, path)
            body = node.child_by_field_name("body")
            if body is not None:
                self._visit_children(body, inner)
        else:
            self._visit_children(node, scope)

    def _visit_children(self, node: Node, scope: Scope) -> None:
        for child in node.children:
            self._visit(child, scope)

    def _visit_function(self, node: Node, scope: Scope) -> None:
        inner = self._new_scope(node, scope)
        name = node.child_by_field_name("name")
        if name is not None and name.type == "identifier":
            if node.type.endswith("_declaration"):
                self._declare(scope, name, BindingKind.FUNCTION, node)
            else:
                self._declare(inner, name, BindingKind.FUNCTION, node)

        single = node.child_by_field_name("parameter")
        if single is not None:
            self._declare(inner, single, BindingKind.PARAMETER, single)
        params = node.child_by_field_name("parameters")
        if params is not None:
            for param in params.named_children:
                self._visit_parameter(param, inner)

        body = node.child_by_field_name("body")
        if body is None:
            return
        if body.type == "statement_block":
            self._scopes[body.id] = inner
            self._visit_children(body, inner)
        else:
            self._visit(body, inner)

    def _visit_parameter(self, param: Node, scope: Scope) -> None:
        if param.type in ("required_parameter", "optional_parameter"):
            pattern = param.child_by_field_name("pattern")
            default = param.child_by_field_name("value")
        elif param.type == "assignment_pattern":
            pattern = param.child_by_field_name("left")
            default = param.child_by_field_name("right")
        else:
            pattern, default = param, None
        if pattern is None or pattern.type == "this":
            return
        for binding, path in collect_bindings(pattern):
            self._declare(scope, binding, BindingKind.PARAMETER, param, path)
        if default is not None:
            self._visit(default, scope)

    def _visit_declaration(self, node: Node, scope: Scope) -> None:
        is_var = node.type == "variable_declaration"
        target = self._function_scope(scope) if is_var else scope
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is not None:
                for binding, path in collect_bindings(name):
                    self._declare(target, binding, BindingKind.VARIABLE, declarator, path)
            value = declarator.child_by_field_name("value")
            if value is not None:
                self._visit(value, scope)

    def _visit_loop(self, node: Node, scope: Scope) -> None:
        if node.type == "for_in_statement":
            left = node.child_by_field_name("left")
            if left is not None and node.child_by_field_name("kind") is not None:
                for binding, path in collect_bindings(left):
                    self._declare(scope, binding, BindingKind.VARIABLE, node, path)
            for field_name in ("right", "body"):
                child = node.child_by_field_name(field_name)
                if child is not None:
                    self._visit(child, scope)
            return
        self._visit_children(node, scope)

    def _visit_import(self, node: Node) -> None:
        clause = next((c for c in node.named_children if c.type == "import_clause"), None)
        if clause is None:
            return
        for child in clause.named_children:
            if child.type == "identifier":
                self._declare(self.root, child, BindingKind.IMPORT, node, namespaces=("value", "type"))
            elif child.type == "namespace_import":
                ident = next((c for c in child.named_children if c.type == "identifier"), None)
                if ident is not None:
                    self._declare(self.root, ident, BindingKind.IMPORT, child, namespaces=("value", "type"))
            elif child.type == "named_imports":
                for specifier in child.named_children:
                    if specifier.type != "import_specifier":
                        continue
                    local = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
                    if local is not None:
                        self._declare(self.root, local, BindingKind.IMPORT, specifier, namespaces=("value", "type"))
