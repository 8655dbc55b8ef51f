"""Structured TypeScript types built from type-annotation nodes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from tree_sitter import Node

from literal_lift.core.ast import node_text, walk


class TypeKind(str, Enum):
    REFERENCE = "reference"
    UNION = "union"
    INTERSECTION = "intersection"
    FUNCTION = "function"
    OBJECT = "object"
    ARRAY = "array"
    TUPLE = "tuple"
    KEYWORD = "keyword"
    LITERAL = "literal"
    INDEXED = "indexed"
    QUERY = "query"
    RAW = "raw"


class DeclarationKind(str, Enum):
    INTERFACE = "interface"
    ALIAS = "alias"
    CLASS = "class"
    ENUM = "enum"
    TYPE_PARAMETER = "type_parameter"
    EXTERNAL = "external"


@dataclass(frozen=True, eq=False)
class TypeDeclaration:
    """Where a named type comes from.

    ``module_path`` is set for declarations found in a parsed file;
    ``module_specifier`` for names exported by a package that was not parsed.
    ``export_name`` is the name under which the declaring module exports it,
    ``"default"`` for a default export and ``None`` when it is not exported.
    """

    name: str
    kind: DeclarationKind
    module_path: Path | None = None
    module_specifier: str | None = None
    export_name: str | None = None
    node: Node | None = field(default=None, repr=False)

    @property
    def identity(self) -> tuple[str, str]:
        module = str(self.module_path) if self.module_path is not None else (self.module_specifier or "")
        return module, self.name

    @property
    def is_default_export(self) -> bool:
        return self.export_name == "default"

    @property
    def is_exported(self) -> bool:
        return self.export_name is not None


@dataclass(frozen=True)
class TypeMember:
    name: str
    type: TsType | None
    optional: bool = False


@dataclass(frozen=True, eq=False)
class TsType:
    kind: TypeKind
    text: str
    name: str | None = None
    arguments: tuple[TsType, ...] = ()
    parameters: tuple[TypeMember, ...] = ()
    returns: TsType | None = None
    members: tuple[TypeMember, ...] = ()
    callable: bool = False
    declaration: TypeDeclaration | None = None

    def render(self) -> str:
        if self.kind is TypeKind.REFERENCE:
            name = self.name or self.text
            if self.declaration is not None and self.declaration.kind is not DeclarationKind.TYPE_PARAMETER:
                name = self.declaration.name if self.declaration.export_name in (None, "default") else self.declaration.export_name
            if self.arguments:
                return f"{name}<{', '.join(arg.render() for arg in self.arguments)}>"
            return name
        if self.kind is TypeKind.UNION:
            return " | ".join(_wrap(member, (TypeKind.FUNCTION,)) for member in self.arguments)
        if self.kind is TypeKind.INTERSECTION:
            return " & ".join(_wrap(member, (TypeKind.FUNCTION, TypeKind.UNION)) for member in self.arguments)
        if self.kind is TypeKind.ARRAY and self.arguments:
            element = _wrap(self.arguments[0], (TypeKind.FUNCTION, TypeKind.UNION, TypeKind.INTERSECTION))
            return f"{element}[]"
        return self.text

    def __str__(self) -> str:
        return self.render()


def _wrap(member: TsType, kinds: tuple[TypeKind, ...]) -> str:
    rendered = member.render()
    return f"({rendered})" if member.kind in kinds else rendered


def keyword(name: str) -> TsType:
    return TsType(kind=TypeKind.KEYWORD, text=name, name=name)


UNDEFINED = keyword("undefined")


def union_of(members: list[TsType]) -> TsType:
    """Build a flattened union, dropping duplicate members by rendered text."""
    flat: list[TsType] = []
    seen: set[str] = set()
    for member in members:
        for part in member.arguments if member.kind is TypeKind.UNION else (member,):
            rendered = part.render()
            if rendered not in seen:
                seen.add(rendered)
                flat.append(part)
    if len(flat) == 1:
        return flat[0]
    return TsType(kind=TypeKind.UNION, text=" | ".join(p.render() for p in flat), arguments=tuple(flat))


def with_optional(member_type: TsType) -> TsType:
    return union_of([member_type, UNDEFINED])


def union_members(t: TsType) -> tuple[TsType, ...]:
    return t.arguments if t.kind is TypeKind.UNION else (t,)


def filtered_union(t: TsType, keep: Callable[[TsType], bool]) -> TsType | None:
    kept = [member for member in union_members(t) if keep(member)]
    if not kept:
        return None
    if t.kind is not TypeKind.UNION:
        return t
    return union_of(kept)


def raw(text: str) -> TsType:
    return TsType(kind=TypeKind.RAW, text=text)


def rebind(t: TsType, declaration: TypeDeclaration) -> TsType:
    return replace(t, declaration=declaration)


Binder = Callable[[str, "str | None"], "TypeDeclaration | None"]


class TypeBuilder:
    """Convert tree-sitter type nodes of one module into ``TsType`` values.

    ``bind(name, qualifier)`` resolves a referenced type name in the module's scope.
    """

    def __init__(self, bind: Binder) -> None:
        self._bind = bind

    def build(self, node: Node) -> TsType:
        kind = node.type
        text = node_text(node)
        if kind in ("type_annotation", "opting_type_annotation", "omitting_type_annotation"):
            inner = _first_named(node)
            return self.build(inner) if inner is not None else raw(text)
        if kind == "parenthesized_type":
            inner = _first_named(node)
            return self.build(inner) if inner is not None else raw(text)
        if kind == "type_identifier":
            return self._reference(text, None, (), text)
        if kind == "nested_type_identifier":
            module = node.child_by_field_name("module")
            name = node.child_by_field_name("name")
            if module is None or name is None:
                return raw(text)
            return self._reference(node_text(name), node_text(module), (), text)
        if kind == "generic_type":
            return self._generic(node, text)
        if kind == "predefined_type":
            return keyword(text)
        if kind == "literal_type":
            inner = _first_named(node)
            if inner is not None and inner.type in ("undefined", "null"):
                return keyword(inner.type)
            return TsType(kind=TypeKind.LITERAL, text=text)
        if kind in ("union_type", "intersection_type"):
            members: list[TsType] = []
            for child in node.named_children:
                built = self.build(child)
                same = (kind == "union_type" and built.kind is TypeKind.UNION) or (
                    kind == "intersection_type" and built.kind is TypeKind.INTERSECTION
                )
                members.extend(built.arguments if same else (built,))
            type_kind = TypeKind.UNION if kind == "union_type" else TypeKind.INTERSECTION
            return TsType(kind=type_kind, text=text, arguments=tuple(members))
        if kind in ("function_type", "constructor_type"):
            return self._function(node, text)
        if kind == "object_type":
            return self._object(node, text)
        if kind == "array_type":
            inner = _first_named(node)
            element = self.build(inner) if inner is not None else raw("unknown")
            return TsType(kind=TypeKind.ARRAY, text=text, arguments=(element,))
        if kind == "tuple_type":
            return TsType(kind=TypeKind.TUPLE, text=text, arguments=tuple(self.build(c) for c in node.named_children))
        if kind == "lookup_type":
            return TsType(kind=TypeKind.INDEXED, text=text, arguments=tuple(self.build(c) for c in node.named_children))
        if kind == "type_query":
            return TsType(kind=TypeKind.QUERY, text=text)
        return self._opaque(node, text)

    def _reference(self, name: str, qualifier: str | None, arguments: tuple[TsType, ...], text: str) -> TsType:
        declaration = self._bind(name, qualifier)
        if declaration is None and qualifier:
            name = f"{qualifier}.{name}"
        return TsType(kind=TypeKind.REFERENCE, text=text, name=name, arguments=arguments, declaration=declaration)

    def _generic(self, node: Node, text: str) -> TsType:
        name_node = node.child_by_field_name("name")
        args_node = node.child_by_field_name("type_arguments")
        if name_node is None:
            name_node = _first_named(node)
        if args_node is None:
            args_node = next((c for c in node.named_children if c.type == "type_arguments"), None)
        arguments = tuple(self.build(arg) for arg in args_node.named_children) if args_node is not None else ()
        if name_node is None:
            return raw(text)
        if name_node.type == "nested_type_identifier":
            module = name_node.child_by_field_name("module")
            name = name_node.child_by_field_name("name")
            if module is not None and name is not None:
                return self._reference(node_text(name), node_text(module), arguments, text)
        return self._reference(node_text(name_node), None, arguments, text)

    def _function(self, node: Node, text: str) -> TsType:
        params_node = node.child_by_field_name("parameters")
        return_node = node.child_by_field_name("return_type")
        parameters = self.parameters(params_node) if params_node is not None else ()
        returns = self.build(return_node) if return_node is not None else None
        return TsType(kind=TypeKind.FUNCTION, text=text, parameters=parameters, returns=returns, callable=True)

    def parameters(self, params_node: Node) -> tuple[TypeMember, ...]:
        members: list[TypeMember] = []
        for param in params_node.named_children:
            if param.type not in ("required_parameter", "optional_parameter"):
                continue
            pattern = param.child_by_field_name("pattern")
            annotation = param.child_by_field_name("type")
            members.append(
                TypeMember(
                    name=node_text(pattern) if pattern is not None else "",
                    type=self.build(annotation) if annotation is not None else None,
                    optional=param.type == "optional_parameter",
                )
            )
        return tuple(members)

    def _object(self, node: Node, text: str) -> TsType:
        members: list[TypeMember] = []
        has_call_signature = False
        for child in node.named_children:
            if child.type == "call_signature":
                has_call_signature = True
            elif child.type == "property_signature":
                members.append(self.property_member(child))
            elif child.type == "method_signature":
                members.append(self.method_member(child))
        return TsType(kind=TypeKind.OBJECT, text=text, members=tuple(members), callable=has_call_signature)

    def property_member(self, node: Node) -> TypeMember:
        name_node = node.child_by_field_name("name")
        annotation = node.child_by_field_name("type")
        return TypeMember(
            name=_property_name(name_node),
            type=self.build(annotation) if annotation is not None else None,
            optional=any(c.type == "?" for c in node.children),
        )

    def method_member(self, node: Node) -> TypeMember:
        name_node = node.child_by_field_name("name")
        function = self._function(node, node_text(node))
        # method signatures carry the return type inside a type annotation
        return TypeMember(
            name=_property_name(name_node),
            type=replace(function, text=_method_as_function_text(node)),
            optional=any(c.type == "?" for c in node.children),
        )

    def _opaque(self, node: Node, text: str) -> TsType:
        references = tuple(
            self._reference(node_text(child), None, (), node_text(child))
            for child in walk(node)
            if child.type == "type_identifier"
        )
        return TsType(kind=TypeKind.RAW, text=text, arguments=references)


def _first_named(node: Node) -> Node | None:
    return next(iter(node.named_children), None)


def _property_name(name_node: Node | None) -> str:
    if name_node is None:
        return ""
    text = node_text(name_node)
    if name_node.type == "string" and len(text) >= 2:
        return text[1:-1]
    return text


def _method_as_function_text(node: Node) -> str:
    params = node.child_by_field_name("parameters")
    returns = node.child_by_field_name("return_type")
    params_text = node_text(params) if params is not None else "()"
    return_text = node_text(returns).lstrip(":").strip() if returns is not None else "void"
    return f"{params_text} => {return_text}"
