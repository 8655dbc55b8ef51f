from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from tree_sitter import Node

from literal_lift.core.scopes import Symbol
from literal_lift.core.types import TsType, TypeDeclaration
from literal_lift.models import ExistingImport


@dataclass(frozen=True)
class TypeDescriptor:
    type: TsType
    origin_module: Path | str | None = None
    is_default_export: bool = False


@dataclass(frozen=True)
class DeclarationOrigin:
    """Where an importable declaration lives, seen from the file under analysis."""

    specifier: str
    file_path: Path | None
    export_name: str
    is_default_export: bool
    is_named_export: bool


class TypeOracle(Protocol):
    @property
    def path(self) -> Path: ...

    def resolve_symbol(self, identifier: Node) -> Symbol | None: ...

    def resolve_type_of_expression(self, node: Node) -> TypeDescriptor | None: ...

    def resolve_declared_prop_type(self, tag: Node, attribute_name: str) -> TypeDescriptor | None: ...

    def symbols_visible_at_scope(self, node: Node) -> set[str]: ...

    def declaration_origin_of(self, declaration: TypeDeclaration) -> DeclarationOrigin | None: ...

    def is_assignable_to_callable(self, t: TsType) -> bool: ...

    def is_callable(self, t: TsType) -> bool: ...

    def binding_declaration(self, local_name: str) -> TypeDeclaration | None: ...

    def exported_type_name(self, module: Path, export_name: str) -> str | None: ...

    def resolve_module(self, specifier: str) -> Path | None: ...

    def module_specifier_for(self, module: Path) -> str: ...

    def existing_imports(self) -> list[ExistingImport]: ...

    def module_names(self) -> set[str]: ...
