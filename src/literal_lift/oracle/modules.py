"""Module resolution and per-module import/export indexes."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tree_sitter import Node

from literal_lift.core.ast import SourceFile, find_ancestor, node_text, parse_source
from literal_lift.core.imports import REACT_MODULE, runtime_specifier
from literal_lift.core.languages import is_supported_source
from literal_lift.core.scopes import ScopeTree
from literal_lift.core.types import DeclarationKind, TypeBuilder, TypeDeclaration
from literal_lift.models import ExistingImport, ImportedName

logger = logging.getLogger(__name__)

RESOLVABLE_EXTENSIONS = (".tsx", ".ts", ".d.ts", ".jsx", ".js")
_STRIPPED_EXTENSIONS = (".d.ts", ".tsx", ".ts", ".jsx", ".js")
_TYPE_DECLARATION_NODES = {
    "interface_declaration": DeclarationKind.INTERFACE,
    "type_alias_declaration": DeclarationKind.ALIAS,
    "class_declaration": DeclarationKind.CLASS,
    "abstract_class_declaration": DeclarationKind.CLASS,
    "enum_declaration": DeclarationKind.ENUM,
}


# ---------------------------------------------------------------------------
# tsconfig.json
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TsConfig:
    path: Path
    base_url: Path | None = None
    paths: dict[str, tuple[str, ...]] = field(default_factory=dict)
    paths_base: Path | None = None

    @property
    def alias_root(self) -> Path:
        return self.base_url or self.paths_base or self.path.parent


def _json_value(node: Node) -> Any:
    kind = node.type
    if kind == "document":
        child = next((c for c in node.named_children if c.type != "comment"), None)
        return _json_value(child) if child is not None else None
    if kind == "object":
        result: dict[str, Any] = {}
        for pair in node.named_children:
            if pair.type != "pair":
                continue
            key = pair.child_by_field_name("key")
            value = pair.child_by_field_name("value")
            if key is not None and value is not None:
                result[str(_json_value(key))] = _json_value(value)
        return result
    if kind == "array":
        return [_json_value(c) for c in node.named_children if c.type != "comment"]
    if kind in ("string", "number"):
        return json.loads(node_text(node))
    if kind == "true":
        return True
    if kind == "false":
        return False
    return None


def parse_jsonc(text: bytes) -> Any:
    """Parse JSON that may carry comments, as tsconfig files do."""
    return _json_value(parse_source(text, "json").root_node)


def find_tsconfig(start: Path) -> Path | None:
    directory = start if start.is_dir() else start.parent
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / "tsconfig.json"
        if candidate.is_file():
            return candidate
    return None


def load_tsconfig(path: Path, _seen: frozenset[Path] = frozenset()) -> TsConfig:
    path = path.resolve()
    data = parse_jsonc(path.read_bytes())
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")

    parent: TsConfig | None = None
    extends = data.get("extends")
    if isinstance(extends, str) and extends.startswith("."):
        parent_path = (path.parent / extends).resolve()
        if parent_path.suffix != ".json":
            parent_path = parent_path.with_name(parent_path.name + ".json")
        if parent_path.is_file() and parent_path not in _seen:
            parent = load_tsconfig(parent_path, _seen | {path})

    options = data.get("compilerOptions") or {}
    base_url = parent.base_url if parent else None
    if isinstance(options.get("baseUrl"), str):
        base_url = (path.parent / options["baseUrl"]).resolve()

    paths = dict(parent.paths) if parent else {}
    paths_base = parent.paths_base if parent else None
    if isinstance(options.get("paths"), dict):
        paths = {
            str(alias): tuple(str(t) for t in targets)
            for alias, targets in options["paths"].items()
            if isinstance(targets, list)
        }
        paths_base = path.parent
    return TsConfig(path=path, base_url=base_url, paths=paths, paths_base=paths_base)


# ---------------------------------------------------------------------------
# Module resolution
# ---------------------------------------------------------------------------


def _resolve_file(base: Path) -> Path | None:
    if base.is_file() and base.name.endswith(RESOLVABLE_EXTENSIONS):
        return base.resolve()
    for extension in RESOLVABLE_EXTENSIONS:
        candidate = base.with_name(base.name + extension)
        if candidate.is_file():
            return candidate.resolve()
    if base.is_dir():
        for extension in RESOLVABLE_EXTENSIONS:
            candidate = base / f"index{extension}"
            if candidate.is_file():
                return candidate.resolve()
    return None


def strip_module_extension(path: str) -> str:
    for extension in _STRIPPED_EXTENSIONS:
        if path.endswith(extension):
            path = path[: -len(extension)]
            break
    if path.endswith("/index"):
        path = path[: -len("/index")]
    return path


def _split_package(specifier: str) -> tuple[str, str]:
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2]), "/".join(parts[2:])
    return parts[0], "/".join(parts[1:])


def _types_package(package: str) -> str:
    return package[1:].replace("/", "__") if package.startswith("@") else package


class ModuleResolver:
    def __init__(self, tsconfig: TsConfig | None = None) -> None:
        self.tsconfig = tsconfig

    def resolve(self, specifier: str, from_file: Path) -> Path | None:
        if specifier.startswith((".", "/")):
            return _resolve_file(from_file.parent / specifier)
        for candidate in self._alias_candidates(specifier):
            resolved = _resolve_file(candidate)
            if resolved is not None:
                return resolved
        if self.tsconfig is not None and self.tsconfig.base_url is not None:
            resolved = _resolve_file(self.tsconfig.base_url / specifier)
            if resolved is not None:
                return resolved
        return self._resolve_package(specifier, from_file.parent)

    def _alias_candidates(self, specifier: str) -> list[Path]:
        if self.tsconfig is None:
            return []
        root = self.tsconfig.alias_root
        matches: list[tuple[int, list[Path]]] = []
        for pattern, targets in self.tsconfig.paths.items():
            if "*" in pattern:
                prefix, _, suffix = pattern.partition("*")
                if (
                    specifier.startswith(prefix)
                    and specifier.endswith(suffix)
                    and len(specifier) >= len(prefix) + len(suffix)
                ):
                    star = specifier[len(prefix) : len(specifier) - len(suffix)]
                    matches.append((len(prefix), [root / t.replace("*", star) for t in targets]))
            elif pattern == specifier:
                matches.append((len(pattern) + 1, [root / t for t in targets]))
        matches.sort(key=lambda m: m[0], reverse=True)
        return [candidate for _, candidates in matches for candidate in candidates]

    def _resolve_package(self, specifier: str, directory: Path) -> Path | None:
        package, subpath = _split_package(specifier)
        for candidate_dir in (directory, *directory.parents):
            node_modules = candidate_dir / "node_modules"
            if not node_modules.is_dir():
                continue
            for root in (node_modules / package, node_modules / "@types" / _types_package(package)):
                if root.is_dir():
                    resolved = self._resolve_package_root(root, subpath)
                    if resolved is not None:
                        return resolved
        return None

    def _resolve_package_root(self, root: Path, subpath: str) -> Path | None:
        if subpath:
            return _resolve_file(root / subpath)
        manifest = root / "package.json"
        if manifest.is_file():
            try:
                data = json.loads(manifest.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Cannot read %s: %s", manifest, exc)
                data = {}
            for key in ("types", "typings"):
                entry = data.get(key)
                if isinstance(entry, str):
                    resolved = _resolve_file(root / entry)
                    if resolved is not None:
                        return resolved
        return _resolve_file(root / "index")

    def specifier_for(self, target: Path, from_file: Path) -> str:
        """Return the module specifier ``from_file`` should use to import ``target``."""
        parts = target.parts
        if "node_modules" in parts:
            index = len(parts) - 1 - parts[::-1].index("node_modules")
            package_parts = parts[index + 1 : index + 3]
            if package_parts and package_parts[0] == "@types" and len(package_parts) > 1:
                return runtime_specifier(f"@types/{package_parts[1]}")
            if package_parts and package_parts[0].startswith("@") and len(package_parts) > 1:
                return "/".join(package_parts)
            if package_parts:
                return package_parts[0]

        alias = self._alias_for(target)
        if alias is not None:
            return alias

        relative = Path(os.path.relpath(target, from_file.parent)).as_posix()
        relative = strip_module_extension(relative)
        if not relative.startswith("."):
            relative = f"./{relative}"
        return relative

    def _alias_for(self, target: Path) -> str | None:
        if self.tsconfig is None or not self.tsconfig.paths:
            return None
        root = self.tsconfig.alias_root
        best: tuple[int, str] | None = None
        for pattern, targets in self.tsconfig.paths.items():
            for mapped in targets:
                if "*" in pattern and mapped.endswith("*"):
                    directory = (root / mapped[:-1]).resolve()
                    try:
                        remainder = target.relative_to(directory).as_posix()
                    except ValueError:
                        continue
                    candidate = (len(directory.parts), pattern.replace("*", strip_module_extension(remainder), 1))
                elif "*" not in pattern and _resolve_file(root / mapped) == target:
                    candidate = (len(target.parts) + 1, pattern)
                else:
                    continue
                if best is None or candidate[0] > best[0]:
                    best = candidate
        return best[1] if best is not None else None


# ---------------------------------------------------------------------------
# Module index
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExportEntry:
    name: str
    local: str | None = None
    source: str | None = None
    imported: str | None = None


def _string_value(node: Node | None) -> str:
    if node is None:
        return ""
    text = node_text(node)
    return text[1:-1] if len(text) >= 2 else text


class ModuleIndex:
    """Imports, exports and top-level type declarations of one parsed module."""

    def __init__(self, source_file: SourceFile, resolver: ModuleResolver) -> None:
        self.file = source_file
        self.path = source_file.path
        self.scopes = ScopeTree(source_file.root)
        self.imports: list[ExistingImport] = []
        self.exports: dict[str, ExportEntry] = {}
        self.star_exports: list[str] = []
        self.type_declarations: dict[str, Node] = {}
        for statement in source_file.root.named_children:
            self._index_statement(statement, resolver)

    def _index_statement(self, statement: Node, resolver: ModuleResolver) -> None:
        if statement.type == "import_statement":
            existing = self._read_import(statement, resolver)
            if existing is not None:
                self.imports.append(existing)
        elif statement.type == "export_statement":
            self._read_export(statement)
        elif statement.type in _TYPE_DECLARATION_NODES:
            self._record_type(statement)
        elif statement.type == "ambient_declaration":
            for child in statement.named_children:
                if child.type in _TYPE_DECLARATION_NODES:
                    self._record_type(child)

    def _record_type(self, node: Node) -> None:
        name = node.child_by_field_name("name")
        if name is not None:
            self.type_declarations.setdefault(node_text(name), node)

    def _read_import(self, statement: Node, resolver: ModuleResolver) -> ExistingImport | None:
        source = statement.child_by_field_name("source")
        if source is None:
            return None
        clause = next((c for c in statement.named_children if c.type == "import_clause"), None)
        specifier = _string_value(source)
        default = namespace = None
        named: list[ImportedName] = []
        if clause is not None:
            for child in clause.named_children:
                if child.type == "identifier":
                    default = node_text(child)
                elif child.type == "namespace_import":
                    ident = next((c for c in child.named_children if c.type == "identifier"), None)
                    namespace = node_text(ident) if ident is not None else None
                elif child.type == "named_imports":
                    for spec in child.named_children:
                        if spec.type != "import_specifier":
                            continue
                        name = spec.child_by_field_name("name")
                        alias = spec.child_by_field_name("alias")
                        if name is None:
                            continue
                        named.append(
                            ImportedName(
                                imported=node_text(name),
                                local=node_text(alias) if alias is not None else node_text(name),
                                type_only=any(c.type == "type" for c in spec.children),
                            )
                        )
        text = node_text(source)
        return ExistingImport(
            start=statement.start_byte,
            end=statement.end_byte,
            specifier=specifier,
            quote=text[0] if text[:1] in ("'", '"') else '"',
            resolved=resolver.resolve(specifier, self.path),
            type_only=any(c.type == "type" for c in statement.children),
            default=default,
            namespace=namespace,
            named=tuple(named),
            semicolon=node_text(statement).rstrip().endswith(";"),
        )

    def _read_export(self, statement: Node) -> None:
        source = statement.child_by_field_name("source")
        is_default = any(c.type == "default" for c in statement.children)
        declaration = statement.child_by_field_name("declaration")
        value = statement.child_by_field_name("value")

        if declaration is not None:
            if declaration.type in _TYPE_DECLARATION_NODES:
                self._record_type(declaration)
            for name in _declared_names(declaration):
                export_name = "default" if is_default else name
                self.exports.setdefault(export_name, ExportEntry(name=export_name, local=name))
            if is_default and not _declared_names(declaration):
                self.exports.setdefault("default", ExportEntry(name="default"))
            return
        if is_default:
            local = node_text(value) if value is not None and value.type == "identifier" else None
            self.exports.setdefault("default", ExportEntry(name="default", local=local))
            return

        clause = next((c for c in statement.named_children if c.type == "export_clause"), None)
        if clause is None:
            if source is not None:
                self.star_exports.append(_string_value(source))
            return
        for spec in clause.named_children:
            if spec.type != "export_specifier":
                continue
            name = spec.child_by_field_name("name")
            alias = spec.child_by_field_name("alias")
            if name is None:
                continue
            exported = node_text(alias) if alias is not None else node_text(name)
            if source is not None:
                entry = ExportEntry(name=exported, source=_string_value(source), imported=node_text(name))
            else:
                entry = ExportEntry(name=exported, local=node_text(name))
            self.exports.setdefault(exported, entry)

    def export_name_of(self, local: str) -> str | None:
        """Name under which a local binding is exported; named exports win over the default."""
        default: str | None = None
        for entry in self.exports.values():
            if entry.local != local:
                continue
            if entry.name != "default":
                return entry.name
            default = "default"
        return default

    def import_of(self, local: str) -> tuple[ExistingImport, str, bool] | None:
        for existing in self.imports:
            binding = existing.binding(local)
            if binding is not None:
                return existing, binding[0], binding[1]
        return None


def _declared_names(declaration: Node) -> list[str]:
    if declaration.type in ("lexical_declaration", "variable_declaration"):
        names = []
        for declarator in declaration.named_children:
            name = declarator.child_by_field_name("name") if declarator.type == "variable_declarator" else None
            if name is not None and name.type == "identifier":
                names.append(node_text(name))
        return names
    name = declaration.child_by_field_name("name")
    return [node_text(name)] if name is not None else []


# ---------------------------------------------------------------------------
# Project: lazily indexed modules sharing one resolver
# ---------------------------------------------------------------------------


class Project:
    def __init__(self, tsconfig: TsConfig | None = None) -> None:
        self.resolver = ModuleResolver(tsconfig)
        self._indexes: dict[Path, ModuleIndex | None] = {}

    @classmethod
    def for_file(cls, path: Path) -> Project:
        tsconfig_path = find_tsconfig(path)
        tsconfig: TsConfig | None = None
        if tsconfig_path is not None:
            try:
                tsconfig = load_tsconfig(tsconfig_path)
            except (OSError, ValueError) as exc:
                logger.warning("Ignoring unreadable %s: %s", tsconfig_path, exc)
        return cls(tsconfig)

    def add(self, source_file: SourceFile) -> ModuleIndex:
        index = ModuleIndex(source_file, self.resolver)
        self._indexes[source_file.path] = index
        return index

    def index(self, path: Path | None) -> ModuleIndex | None:
        if path is None:
            return None
        if path not in self._indexes:
            self._indexes[path] = self._load(path)
        return self._indexes[path]

    def _load(self, path: Path) -> ModuleIndex | None:
        if not is_supported_source(path):
            return None
        try:
            return ModuleIndex(SourceFile.from_file(path), self.resolver)
        except (OSError, ValueError) as exc:
            logger.debug("Cannot index %s: %s", path, exc)
            return None

    def resolve_export(
        self, index: ModuleIndex, name: str, _seen: frozenset[tuple[Path, str]] = frozenset()
    ) -> tuple[ModuleIndex, str] | None:
        """Follow an export of ``index`` to the module and local name that declare it."""
        key = (index.path, name)
        if key in _seen:
            return None
        seen = _seen | {key}
        entry = index.exports.get(name)
        if entry is not None:
            if entry.source is not None:
                target = self.index(self.resolver.resolve(entry.source, index.path))
                return self.resolve_export(target, entry.imported or name, seen) if target is not None else None
            if entry.local is None:
                return None
            followed = self.follow_import(index, entry.local, seen)
            return followed if followed is not None else (index, entry.local)
        if name == "default":
            return None
        for specifier in index.star_exports:
            target = self.index(self.resolver.resolve(specifier, index.path))
            if target is not None:
                found = self.resolve_export(target, name, seen)
                if found is not None:
                    return found
        return None

    def follow_import(
        self, index: ModuleIndex, local: str, _seen: frozenset[tuple[Path, str]] = frozenset()
    ) -> tuple[ModuleIndex, str] | None:
        found = index.import_of(local)
        if found is None:
            return None
        existing, imported, _ = found
        if imported == "*":
            return None
        target = self.index(existing.resolved)
        return self.resolve_export(target, imported, _seen) if target is not None else None

    def declare_type(self, index: ModuleIndex, name: str, context: Node | None = None) -> TypeDeclaration | None:
        """Resolve a type name as seen from ``context`` inside ``index``."""
        if context is not None and _is_type_parameter(context, name):
            return TypeDeclaration(name=name, kind=DeclarationKind.TYPE_PARAMETER, module_path=index.path)
        if name in index.type_declarations:
            node = index.type_declarations[name]
            return TypeDeclaration(
                name=name,
                kind=_TYPE_DECLARATION_NODES[node.type],
                module_path=index.path,
                export_name=index.export_name_of(name),
                node=node,
            )
        if context is not None:
            symbol = index.scopes.scope_for(context).lookup(name, "type")
            if symbol is not None and symbol.scope is not index.scopes.root:
                node = symbol.declaration
                kind = _TYPE_DECLARATION_NODES.get(node.type, DeclarationKind.ALIAS)
                return TypeDeclaration(name=name, kind=kind, module_path=index.path, node=node)

        found = index.import_of(name)
        if found is None:
            return None
        existing, imported, _ = found
        if imported == "*":
            return None
        target = self.index(existing.resolved)
        if target is not None:
            declared = self.resolve_export(target, imported)
            if declared is not None and declared[1] in declared[0].type_declarations:
                return self.declare_type(declared[0], declared[1])
        return _external_declaration(existing, imported, name)

    def declare_qualified(self, index: ModuleIndex, qualifier: str, name: str) -> TypeDeclaration | None:
        found = index.import_of(qualifier)
        if found is None:
            if qualifier == "React":
                # UMD global namespace of the react typings
                return TypeDeclaration(
                    name=name, kind=DeclarationKind.EXTERNAL, module_specifier=REACT_MODULE, export_name=name
                )
            return None
        existing, imported, _ = found
        if imported not in ("*", "default"):
            return None
        target = self.index(existing.resolved)
        if target is not None:
            declared = self.resolve_export(target, name)
            if declared is not None and declared[1] in declared[0].type_declarations:
                return self.declare_type(declared[0], declared[1])
            if runtime_specifier(existing.specifier) != REACT_MODULE:
                return None
        return TypeDeclaration(
            name=name,
            kind=DeclarationKind.EXTERNAL,
            module_specifier=runtime_specifier(existing.specifier),
            export_name=name,
        )

    def type_builder(self, index: ModuleIndex, context: Node) -> TypeBuilder:
        def bind(name: str, qualifier: str | None) -> TypeDeclaration | None:
            if qualifier is not None:
                return self.declare_qualified(index, qualifier, name)
            return self.declare_type(index, name, context)

        return TypeBuilder(bind)


def _external_declaration(existing: ExistingImport, imported: str, local: str) -> TypeDeclaration:
    """Best-effort declaration for a name imported from a module that was not indexed.

    Relative imports that cannot be resolved are not re-importable from another file.
    """
    name = local if imported == "default" else imported
    if existing.resolved is not None:
        return TypeDeclaration(
            name=name, kind=DeclarationKind.EXTERNAL, module_path=existing.resolved, export_name=imported
        )
    if existing.specifier.startswith("."):
        return TypeDeclaration(name=name, kind=DeclarationKind.EXTERNAL, module_specifier=existing.specifier)
    return TypeDeclaration(
        name=name,
        kind=DeclarationKind.EXTERNAL,
        module_specifier=runtime_specifier(existing.specifier),
        export_name=imported,
    )


def _is_type_parameter(context: Node, name: str) -> bool:
    def declares(node: Node) -> bool:
        params = node.child_by_field_name("type_parameters")
        if params is None:
            return False
        for param in params.named_children:
            param_name = param.child_by_field_name("name")
            if param_name is not None and node_text(param_name) == name:
                return True
        return False

    return find_ancestor(context, declares) is not None
