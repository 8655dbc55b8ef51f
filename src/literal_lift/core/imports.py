"""Plan the import declarations a generated binding needs."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path

from literal_lift.core.ports.oracle import DeclarationOrigin, TypeOracle
from literal_lift.core.types import DeclarationKind, TsType, TypeDeclaration
from literal_lift.models import ExistingImport, ImportEntry, ImportKind, ImportSpecifier

logger = logging.getLogger(__name__)

REACT_MODULE = "react"


def runtime_specifier(specifier: str) -> str:
    """Map a type-declaration package specifier to the runtime package name."""
    if not specifier.startswith("@types/"):
        return specifier
    name = specifier[len("@types/") :]
    if "__" in name:
        scope, _, package = name.partition("__")
        return f"@{scope}/{package}"
    return name


def prefer_specifier(first: str, second: str) -> str:
    """Of two specifiers for one module, keep the runtime package name over a typings package."""
    if first.startswith("@types/") and not second.startswith("@types/"):
        return second
    return first


@dataclass(frozen=True)
class ImportRequest:
    module_name: str
    imported_name: str
    import_kind: ImportKind
    local_name: str
    carried_type: TsType | None = None
    resolved_path: Path | None = None
    type_only: bool = True

    @property
    def module_key(self) -> str:
        return str(self.resolved_path) if self.resolved_path is not None else runtime_specifier(self.module_name)


@dataclass(frozen=True)
class ImportPlan:
    """Immutable accumulator threaded through the stages that need imports."""

    requests: tuple[ImportRequest, ...] = ()
    satisfied: tuple[str, ...] = ()
    unreachable: tuple[str, ...] = ()

    def add(self, request: ImportRequest) -> ImportPlan:
        for existing in self.requests:
            if existing.module_key == request.module_key and existing.local_name == request.local_name:
                return self
        return replace(self, requests=(*self.requests, request))

    def merge(self, other: ImportPlan) -> ImportPlan:
        plan = self
        for request in other.requests:
            plan = plan.add(request)
        return replace(
            plan,
            satisfied=_unique((*plan.satisfied, *other.satisfied)),
            unreachable=_unique((*plan.unreachable, *other.unreachable)),
        )

    @property
    def has_new_imports(self) -> bool:
        return bool(self.requests)

    @property
    def importable(self) -> bool:
        return not self.unreachable


def _unique(names: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(names))


def collect_declarations(t: TsType, visited: set[int] | None = None) -> list[TypeDeclaration]:
    """Every named declaration a type refers to, outermost first.

    Descends into union and intersection members, type arguments, function parameters and
    return types, and object literal members.
    """
    visited = set() if visited is None else visited
    if id(t) in visited:
        return []
    visited.add(id(t))
    found: list[TypeDeclaration] = []
    if t.declaration is not None:
        found.append(t.declaration)
    children: list[TsType] = list(t.arguments)
    children.extend(member.type for member in t.parameters if member.type is not None)
    children.extend(member.type for member in t.members if member.type is not None)
    if t.returns is not None:
        children.append(t.returns)
    for child in children:
        found.extend(collect_declarations(child, visited))
    unique: dict[tuple[str, str], TypeDeclaration] = {}
    for declaration in found:
        unique.setdefault(declaration.identity, declaration)
    return list(unique.values())


@dataclass
class ImportPlanner:
    oracle: TypeOracle
    existing: list[ExistingImport]
    module_names: set[str] = field(default_factory=set)

    # -- planning -----------------------------------------------------------

    def plan_type(self, t: TsType, plan: ImportPlan | None = None) -> ImportPlan:
        plan = plan or ImportPlan()
        for declaration in collect_declarations(t):
            plan = self.plan_declaration(declaration, plan)
        return plan

    def plan_hook(self, hook_name: str, plan: ImportPlan | None = None) -> ImportPlan:
        plan = plan or ImportPlan()
        for existing in self.existing:
            binding = existing.binding(hook_name)
            if binding is not None and binding[0] == hook_name and not binding[1]:
                if runtime_specifier(existing.specifier) == REACT_MODULE or existing.resolved == self.oracle.resolve_module(REACT_MODULE):
                    return replace(plan, satisfied=_unique((*plan.satisfied, hook_name)))
        return plan.add(
            ImportRequest(
                module_name=REACT_MODULE,
                imported_name=hook_name,
                import_kind=ImportKind.NAMED,
                local_name=hook_name,
                resolved_path=self.oracle.resolve_module(REACT_MODULE),
                type_only=False,
            )
        )

    def plan_declaration(self, declaration: TypeDeclaration, plan: ImportPlan | None = None) -> ImportPlan:
        plan = plan or ImportPlan()
        if declaration.kind is DeclarationKind.TYPE_PARAMETER:
            return replace(plan, unreachable=_unique((*plan.unreachable, declaration.name)))
        if declaration.module_path is not None and declaration.module_path == self.oracle.path:
            return replace(plan, satisfied=_unique((*plan.satisfied, declaration.name)))
        origin = self.oracle.declaration_origin_of(declaration)
        if origin is None:
            logger.debug("%s is not exported from its module", declaration.name)
            return replace(plan, unreachable=_unique((*plan.unreachable, declaration.name)))
        local_name = declaration.name if origin.is_default_export else origin.export_name

        state = self._existing_state(declaration, origin, local_name)
        if state == "satisfied":
            return replace(plan, satisfied=_unique((*plan.satisfied, local_name)))
        if state == "clash":
            logger.debug("%s is already bound to something else", local_name)
            return replace(plan, unreachable=_unique((*plan.unreachable, local_name)))
        return plan.add(
            ImportRequest(
                module_name=origin.specifier,
                imported_name=origin.export_name,
                import_kind=ImportKind.DEFAULT if origin.is_default_export else ImportKind.NAMED,
                local_name=local_name,
                resolved_path=origin.file_path,
            )
        )

    def _existing_state(self, declaration: TypeDeclaration, origin: DeclarationOrigin, local_name: str) -> str:
        for existing in self.existing:
            binding = existing.binding(local_name)
            if binding is None:
                continue
            imported, type_only = binding
            if type_only:
                # import type: the existing binding must denote the same declaration
                bound = self.oracle.binding_declaration(local_name)
                same = bound is not None and self._declaration_key(bound) == self._declaration_key(declaration)
            else:
                # value import: look the export up in the module it comes from
                same = self._exports_same_declaration(existing, imported, declaration, origin)
            return "satisfied" if same else "clash"
        if local_name in self.module_names:
            return "clash"
        return "new"

    def _exports_same_declaration(
        self, existing: ExistingImport, imported: str, declaration: TypeDeclaration, origin: DeclarationOrigin
    ) -> bool:
        if existing.resolved is not None:
            declared_name = self.oracle.exported_type_name(existing.resolved, imported)
            if declared_name is not None:
                return declared_name == declaration.name
        return _existing_key(existing) == _origin_key(origin) and imported == origin.export_name

    def _declaration_key(self, declaration: TypeDeclaration) -> tuple[str, str]:
        if declaration.module_path is not None:
            module = str(declaration.module_path)
        else:
            specifier = declaration.module_specifier or ""
            resolved = self.oracle.resolve_module(specifier) if specifier else None
            module = str(resolved) if resolved is not None else runtime_specifier(specifier)
        return module, declaration.name

    # -- entries ------------------------------------------------------------

    @property
    def quote(self) -> str:
        return self.existing[0].quote if self.existing else '"'

    @property
    def semicolon(self) -> bool:
        return self.existing[0].semicolon if self.existing else True

    def entries(self, plan: ImportPlan) -> list[ImportEntry]:
        """Group requests per module, attaching them to existing declarations where possible."""
        entries: dict[tuple[str, int | None], ImportEntry] = {}
        for request in plan.requests:
            existing = self._attachable(request)
            key = (request.module_key, existing.start if existing is not None else None)
            entry = entries.get(key)
            if entry is None:
                entry = _entry_from_existing(existing, request) if existing is not None else self._new_entry(request)
            entries[key] = add_request(entry, request)
        return list(entries.values())

    def _attachable(self, request: ImportRequest) -> ExistingImport | None:
        for existing in self.existing:
            if _existing_key(existing) != request.module_key:
                continue
            if existing.type_only and not request.type_only:
                continue
            if request.import_kind is ImportKind.NAMED and existing.namespace is not None:
                continue
            if request.import_kind is ImportKind.DEFAULT and existing.default not in (None, request.local_name):
                continue
            return existing
        return None

    def _new_entry(self, request: ImportRequest) -> ImportEntry:
        return ImportEntry(
            module_key=request.module_key,
            specifier=runtime_specifier(request.module_name),
            quote=self.quote,
            semicolon=self.semicolon,
        )


def _existing_key(existing: ExistingImport) -> str:
    return str(existing.resolved) if existing.resolved is not None else runtime_specifier(existing.specifier)


def _origin_key(origin: DeclarationOrigin) -> str:
    return str(origin.file_path) if origin.file_path is not None else runtime_specifier(origin.specifier)


def _entry_from_existing(existing: ExistingImport, request: ImportRequest) -> ImportEntry:
    return ImportEntry(
        module_key=request.module_key,
        specifier=prefer_specifier(existing.specifier, request.module_name),
        quote=existing.quote,
        semicolon=existing.semicolon,
        span=(existing.start, existing.end),
        type_only=existing.type_only,
        default=existing.default,
        namespace=existing.namespace,
        named=[ImportSpecifier(imported=n.imported, local=n.local, type_only=n.type_only) for n in existing.named],
    )


def add_request(entry: ImportEntry, request: ImportRequest) -> ImportEntry:
    if request.import_kind is ImportKind.DEFAULT:
        if entry.default is not None or entry.added_default is not None:
            return entry
        return entry.model_copy(update={"added_default": request.local_name})
    locals_ = {s.local for s in (*entry.named, *entry.added)}
    if request.local_name in locals_:
        return entry
    specifier = ImportSpecifier(imported=request.imported_name, local=request.local_name)
    return entry.model_copy(update={"added": [*entry.added, specifier]})


def merge_entries(first: ImportEntry, second: ImportEntry) -> ImportEntry:
    """Merge two entries for the same module and the same existing declaration."""
    added = list(first.added)
    seen = {s.local for s in (*first.named, *added)}
    for specifier in second.added:
        if specifier.local not in seen:
            added.append(specifier)
            seen.add(specifier.local)
    return first.model_copy(
        update={
            "specifier": prefer_specifier(first.specifier, second.specifier),
            "added": added,
            "added_default": first.added_default or second.added_default,
            "namespace": first.namespace or second.namespace,
        }
    )


def render_entry(entry: ImportEntry) -> str:
    default = entry.default or entry.added_default
    specifiers: list[ImportSpecifier] = []
    seen: set[str] = set()
    for specifier in (*entry.added, *entry.named):
        if specifier.local not in seen:
            seen.add(specifier.local)
            specifiers.append(specifier)
    source = f"{entry.quote}{entry.specifier}{entry.quote}"
    end = ";" if entry.semicolon else ""
    keyword = "import type" if entry.type_only else "import"

    if entry.namespace is not None:
        head = f"{default}, " if default else ""
        statement = f"{keyword} {head}* as {entry.namespace} from {source}{end}"
        if specifiers:
            named = ", ".join(s.render() for s in specifiers)
            statement += f"\n{keyword} {{ {named} }} from {source}{end}"
        return statement

    clause: list[str] = []
    if default:
        clause.append(default)
    if specifiers:
        clause.append("{ " + ", ".join(s.render() for s in specifiers) + " }")
    if not clause:
        return f"{keyword} {source}{end}"
    return f"{keyword} {', '.join(clause)} from {source}{end}"
