"""A type oracle that works from tree-sitter parses alone.

It understands annotated props, interface and alias declarations across modules,
the react intrinsic element table and the types of the common react hooks. It does
not infer types of arbitrary expressions.
"""

from __future__ import annotations

import logging
from pathlib import Path

from tree_sitter import Node

from literal_lift.core.ast import FUNCTION_TYPES, SourceFile, node_text, parse_source, unwrap_parentheses
from literal_lift.core.ports.oracle import DeclarationOrigin, TypeDescriptor
from literal_lift.core.scopes import BindingKind, Symbol
from literal_lift.core.types import (
    DeclarationKind,
    TsType,
    TypeBuilder,
    TypeDeclaration,
    TypeKind,
    union_members,
    union_of,
    with_optional,
)
from literal_lift.errors import TypeResolutionError
from literal_lift.models import ExistingImport
from literal_lift.oracle.intrinsic import REACT_MODULE, REACT_TYPE_EXPORTS, intrinsic_attribute_type, is_intrinsic
from literal_lift.oracle.modules import ModuleIndex, Project

logger = logging.getLogger(__name__)

_COMPONENT_TYPES = frozenset(
    {
        "ComponentType",
        "FC",
        "ForwardRefExoticComponent",
        "FunctionComponent",
        "MemoExoticComponent",
        "NamedExoticComponent",
        "VFC",
        "VoidFunctionComponent",
    }
)
_CLASS_COMPONENT_BASES = frozenset({"Component", "PureComponent"})
_PASS_THROUGH_UTILITIES = frozenset({"Partial", "Required", "Readonly", "Omit", "Pick"})
_CALLABLE_GLOBALS = frozenset({"Function", "VoidFunction", "CallableFunction", "Dispatch", "EventHandler"})


def _callee_name(call: Node) -> str:
    function = call.child_by_field_name("function")
    if function is None:
        return ""
    if function.type == "member_expression":
        prop = function.child_by_field_name("property")
        return node_text(prop) if prop is not None else ""
    return node_text(function)


def _type_arguments(call: Node) -> list[Node]:
    args = call.child_by_field_name("type_arguments")
    return list(args.named_children) if args is not None else []


class SyntacticTypeOracle:
    """Implements the ``TypeOracle`` port for one file."""

    def __init__(self, source_file: SourceFile, project: Project | None = None) -> None:
        self._file = source_file
        self._project = project or Project.for_file(source_file.path)
        self._index = self._project.add(source_file)

    @property
    def path(self) -> Path:
        return self._file.path

    @property
    def module(self) -> ModuleIndex:
        return self._index

    # -- symbols ------------------------------------------------------------

    def resolve_symbol(self, identifier: Node) -> Symbol | None:
        return self._index.scopes.resolve(identifier)

    def symbols_visible_at_scope(self, node: Node) -> set[str]:
        return self._index.scopes.visible_names(node)

    def resolve_type_of_expression(self, node: Node) -> TypeDescriptor | None:
        if node.type not in ("identifier", "shorthand_property_identifier"):
            return None
        symbol = self.resolve_symbol(node)
        if symbol is None:
            return None
        resolved = self._type_of_symbol(symbol)
        return TypeDescriptor(type=resolved) if resolved is not None else None

    def _type_of_symbol(self, symbol: Symbol) -> TsType | None:
        annotation = symbol.annotation
        if annotation is not None:
            return self._build(self._index, annotation)
        initializer = symbol.initializer
        if initializer is None or initializer.type != "call_expression":
            return None
        callee = _callee_name(initializer)
        type_args = _type_arguments(initializer)
        value_type = node_text(type_args[0]) if type_args else "unknown"
        if callee == "useState" and symbol.path == (1,):
            return self._react_type(f"Dispatch<SetStateAction<{value_type}>>")
        if callee == "useRef" and not symbol.path:
            return self._react_type(f"MutableRefObject<{value_type}>")
        if callee == "createRef" and not symbol.path:
            return self._react_type(f"RefObject<{value_type}>")
        return None

    # -- prop types ---------------------------------------------------------

    def resolve_declared_prop_type(self, tag: Node, attribute_name: str) -> TypeDescriptor | None:
        tag_name = node_text(tag)
        if tag.type == "identifier" and is_intrinsic(tag_name):
            text = intrinsic_attribute_type(tag_name, attribute_name)
            if text is None:
                return None
            return TypeDescriptor(type=with_optional(self._react_type(text)), origin_module=REACT_MODULE)

        component = self._component_declaration(tag)
        if component is None:
            raise TypeResolutionError(f"cannot find the declaration of <{tag_name}>")
        props = self._props_of_declaration(*component)
        if props is None:
            raise TypeResolutionError(f"<{tag_name}> has no typed props parameter")
        member = self._member_type(props, attribute_name, set())
        if member is None:
            raise TypeResolutionError(f"<{tag_name}> declares no prop '{attribute_name}'")
        member = self._collapse_aliases(member)
        declaration = member.declaration
        return TypeDescriptor(
            type=member,
            origin_module=declaration.module_path or declaration.module_specifier if declaration else None,
            is_default_export=declaration.is_default_export if declaration else False,
        )

    def _component_declaration(self, tag: Node) -> tuple[ModuleIndex, Node] | None:
        if tag.type == "member_expression":
            obj = tag.child_by_field_name("object")
            prop = tag.child_by_field_name("property")
            if obj is None or prop is None or obj.type != "identifier":
                return None
            found = self._index.import_of(node_text(obj))
            if found is None or found[1] not in ("*", "default"):
                return None
            target = self._project.index(found[0].resolved)
            exported = self._project.resolve_export(target, node_text(prop)) if target is not None else None
            if exported is None:
                return None
            symbol = exported[0].scopes.module_symbols.get(exported[1])
            return self._declaration_of_symbol(exported[0], symbol) if symbol is not None else None
        if tag.type != "identifier":
            return None
        symbol = self.resolve_symbol(tag)
        return self._declaration_of_symbol(self._index, symbol) if symbol is not None else None

    def _declaration_of_symbol(self, index: ModuleIndex, symbol: Symbol) -> tuple[ModuleIndex, Node] | None:
        if symbol.kind is BindingKind.IMPORT:
            followed = self._project.follow_import(index, symbol.name)
            if followed is None:
                return None
            target_index, local = followed
            target = target_index.scopes.module_symbols.get(local)
            if target is None or target.kind is BindingKind.IMPORT:
                return None
            return self._declaration_of_symbol(target_index, target)
        if symbol.kind in (BindingKind.FUNCTION, BindingKind.CLASS, BindingKind.VARIABLE):
            return index, symbol.declaration
        return None

    def _props_of_declaration(self, index: ModuleIndex, node: Node, depth: int = 0) -> TsType | None:
        if depth > 8:
            return None
        if node.type in FUNCTION_TYPES:
            return self._first_parameter_type(index, node)
        if node.type == "variable_declarator":
            annotation = node.child_by_field_name("type")
            if annotation is not None:
                props = self._props_of_component_type(self._build(index, annotation))
                if props is not None:
                    return props
            value = node.child_by_field_name("value")
            return self._props_of_expression(index, value, depth + 1) if value is not None else None
        if node.type in ("class_declaration", "abstract_class_declaration", "class"):
            return self._props_of_class(index, node)
        return None

    def _props_of_expression(self, index: ModuleIndex, expression: Node, depth: int) -> TsType | None:
        expression = unwrap_parentheses(expression)
        if expression.type in ("as_expression", "satisfies_expression"):
            inner = expression.named_children[0] if expression.named_children else None
            return self._props_of_expression(index, inner, depth + 1) if inner is not None else None
        if expression.type in FUNCTION_TYPES:
            return self._first_parameter_type(index, expression)
        if expression.type == "call_expression":
            callee = _callee_name(expression)
            type_args = _type_arguments(expression)
            if callee == "forwardRef" and len(type_args) >= 2:
                return self._build(index, type_args[1])
            if callee == "memo" and type_args:
                return self._build(index, type_args[0])
            args = expression.child_by_field_name("arguments")
            first = next(iter(args.named_children), None) if args is not None else None
            return self._props_of_expression(index, first, depth + 1) if first is not None else None
        if expression.type == "identifier" and depth <= 8:
            symbol = index.scopes.resolve(expression)
            declaration = self._declaration_of_symbol(index, symbol) if symbol is not None else None
            return self._props_of_declaration(*declaration, depth=depth + 1) if declaration is not None else None
        if expression.type == "class":
            return self._props_of_class(index, expression)
        return None

    def _props_of_class(self, index: ModuleIndex, node: Node) -> TsType | None:
        heritage = next((c for c in node.named_children if c.type == "class_heritage"), None)
        extends = next((c for c in heritage.named_children if c.type == "extends_clause"), None) if heritage else None
        if extends is None:
            return None
        base = extends.child_by_field_name("value")
        type_args = extends.child_by_field_name("type_arguments")
        if base is None or type_args is None:
            return None
        base_name = node_text(base).split(".")[-1]
        if base_name not in _CLASS_COMPONENT_BASES or not type_args.named_children:
            return None
        return self._build(index, type_args.named_children[0])

    def _props_of_component_type(self, component_type: TsType) -> TsType | None:
        if component_type.kind is TypeKind.FUNCTION:
            first = next(iter(component_type.parameters), None)
            return first.type if first is not None else None
        if component_type.kind is TypeKind.REFERENCE and component_type.arguments:
            name = (component_type.name or "").split(".")[-1]
            if name in _COMPONENT_TYPES:
                return component_type.arguments[0]
        return None

    def _first_parameter_type(self, index: ModuleIndex, function: Node) -> TsType | None:
        params = function.child_by_field_name("parameters")
        if params is None:
            return None
        first = next((p for p in params.named_children if p.type in ("required_parameter", "optional_parameter")), None)
        annotation = first.child_by_field_name("type") if first is not None else None
        return self._build(index, annotation) if annotation is not None else None

    def _member_type(self, t: TsType, name: str, seen: set[tuple[str, str]]) -> TsType | None:
        if t.kind is TypeKind.OBJECT:
            for member in t.members:
                if member.name == name and member.type is not None:
                    return with_optional(member.type) if member.optional else member.type
            return None
        if t.kind is TypeKind.INTERSECTION:
            for part in t.arguments:
                found = self._member_type(part, name, seen)
                if found is not None:
                    return found
            return None
        if t.kind is TypeKind.UNION:
            found_parts = [f for f in (self._member_type(p, name, seen) for p in t.arguments) if f is not None]
            return union_of(found_parts) if found_parts else None
        if t.kind is not TypeKind.REFERENCE:
            return None

        declaration = t.declaration
        if declaration is None:
            utility = (t.name or "").split(".")[-1]
            if utility in _PASS_THROUGH_UTILITIES and t.arguments:
                found = self._member_type(t.arguments[0], name, seen)
                if found is not None and utility == "Partial":
                    return with_optional(found)
                return found
            return None
        if declaration.identity in seen or declaration.node is None or declaration.module_path is None:
            return None
        seen.add(declaration.identity)
        index = self._project.index(declaration.module_path)
        if index is None:
            return None
        node = declaration.node
        if declaration.kind is DeclarationKind.INTERFACE:
            return self._interface_member(index, node, name, seen)
        if declaration.kind is DeclarationKind.ALIAS:
            value = node.child_by_field_name("value")
            return self._member_type(self._build(index, value), name, seen) if value is not None else None
        return None

    def _interface_member(self, index: ModuleIndex, node: Node, name: str, seen: set[tuple[str, str]]) -> TsType | None:
        builder = self._project.type_builder(index, node)
        body = node.child_by_field_name("body")
        if body is not None:
            for child in body.named_children:
                if child.type == "property_signature":
                    member = builder.property_member(child)
                elif child.type == "method_signature":
                    member = builder.method_member(child)
                else:
                    continue
                if member.name == name and member.type is not None:
                    return with_optional(member.type) if member.optional else member.type
        for clause in node.named_children:
            if clause.type not in ("extends_type_clause", "extends_clause"):
                continue
            for base in clause.named_children:
                found = self._member_type(builder.build(base), name, seen)
                if found is not None:
                    return found
        return None

    def _collapse_aliases(self, t: TsType) -> TsType:
        """Replace aliases of plain type references with their targets, as the checker prints them."""
        if t.kind is TypeKind.UNION:
            return union_of([self._collapse_aliases(m) for m in t.arguments])
        seen: set[tuple[str, str]] = set()
        while (
            t.kind is TypeKind.REFERENCE
            and not t.arguments
            and t.declaration is not None
            and t.declaration.kind is DeclarationKind.ALIAS
            and t.declaration.node is not None
            and t.declaration.module_path is not None
            and t.declaration.identity not in seen
        ):
            seen.add(t.declaration.identity)
            value = t.declaration.node.child_by_field_name("value")
            index = self._project.index(t.declaration.module_path)
            if value is None or index is None:
                break
            target = self._build(index, value)
            if target.kind is not TypeKind.REFERENCE:
                break
            t = target
        return t

    # -- assignability ------------------------------------------------------

    def is_callable(self, t: TsType, _seen: frozenset[tuple[str, str]] = frozenset()) -> bool:
        if t.kind is TypeKind.FUNCTION:
            return True
        if t.kind is TypeKind.OBJECT:
            return t.callable
        if t.kind is TypeKind.INTERSECTION:
            return any(self.is_callable(m, _seen) for m in t.arguments)
        if t.kind is TypeKind.UNION:
            return all(self.is_callable(m, _seen) for m in t.arguments)
        if t.kind is not TypeKind.REFERENCE:
            return False
        name = (t.name or "").split(".")[-1]
        declaration = t.declaration
        if name in _CALLABLE_GLOBALS or name.endswith("EventHandler"):
            return True
        if declaration is None or declaration.node is None or declaration.module_path is None:
            return False
        if declaration.identity in _seen:
            return False
        index = self._project.index(declaration.module_path)
        if index is None:
            return False
        seen = _seen | {declaration.identity}
        if declaration.kind is DeclarationKind.ALIAS:
            value = declaration.node.child_by_field_name("value")
            return value is not None and self.is_callable(self._build(index, value), seen)
        if declaration.kind is DeclarationKind.INTERFACE:
            body = declaration.node.child_by_field_name("body")
            return body is not None and any(c.type == "call_signature" for c in body.named_children)
        return False

    def is_assignable_to_callable(self, t: TsType) -> bool:
        return all(self.is_callable(member) for member in union_members(t))

    # -- imports ------------------------------------------------------------

    def declaration_origin_of(self, declaration: TypeDeclaration) -> DeclarationOrigin | None:
        if declaration.kind is DeclarationKind.TYPE_PARAMETER or declaration.export_name is None:
            return None
        if declaration.module_path is not None:
            specifier = self.module_specifier_for(declaration.module_path)
            file_path: Path | None = declaration.module_path
        elif declaration.module_specifier is not None:
            specifier = declaration.module_specifier
            file_path = self.resolve_module(specifier)
        else:
            return None
        return DeclarationOrigin(
            specifier=specifier,
            file_path=file_path,
            export_name=declaration.export_name,
            is_default_export=declaration.is_default_export,
            is_named_export=not declaration.is_default_export,
        )

    def binding_declaration(self, local_name: str) -> TypeDeclaration | None:
        return self._project.declare_type(self._index, local_name)

    def exported_type_name(self, module: Path, export_name: str) -> str | None:
        index = self._project.index(module)
        if index is None:
            return None
        found = self._project.resolve_export(index, export_name)
        if found is None:
            return None
        declared_index, local = found
        node = declared_index.type_declarations.get(local)
        name = node.child_by_field_name("name") if node is not None else None
        return node_text(name) if name is not None else None

    def resolve_module(self, specifier: str) -> Path | None:
        return self._project.resolver.resolve(specifier, self.path)

    def module_specifier_for(self, module: Path) -> str:
        return self._project.resolver.specifier_for(module, self.path)

    def existing_imports(self) -> list[ExistingImport]:
        return list(self._index.imports)

    def module_names(self) -> set[str]:
        """Names bound at the top level of the file, in either namespace."""
        return set(self._index.scopes.module_symbols) | set(self._index.scopes.module_types)

    # -- helpers ------------------------------------------------------------

    def _build(self, index: ModuleIndex, node: Node) -> TsType:
        return self._project.type_builder(index, node).build(node)

    def _react_type(self, text: str) -> TsType:
        def bind(name: str, qualifier: str | None) -> TypeDeclaration | None:
            if qualifier is None and name in REACT_TYPE_EXPORTS | {"Dispatch", "SetStateAction", "MutableRefObject", "RefObject"}:
                return TypeDeclaration(
                    name=name, kind=DeclarationKind.EXTERNAL, module_specifier=REACT_MODULE, export_name=name
                )
            return None

        tree = parse_source(f"type __T = {text};".encode(), "typescript")
        alias = tree.root_node.named_children[0]
        value = alias.child_by_field_name("value")
        if value is None:
            raise TypeResolutionError(f"cannot parse type text {text!r}")
        return TypeBuilder(bind).build(value)
