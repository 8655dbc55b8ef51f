from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class ExpressionCategory(str, Enum):
    OBJECT = "ObjectExpression"
    ARRAY = "ArrayExpression"
    FUNCTION = "FunctionExpression"
    NEW = "NewExpression"
    CALL = "CallExpression"
    REGEX = "RegExpLiteral"
    MEMBER = "MemberExpression"


class Strategy(str, Enum):
    HOOK = "hook"
    MODULE_CONSTANT = "top-level-constant"


class ImportKind(str, Enum):
    DEFAULT = "default"
    NAMED = "named"
    NAMESPACE = "namespace"


@dataclass(frozen=True)
class ImportedName:
    imported: str
    local: str
    type_only: bool = False


@dataclass(frozen=True)
class ExistingImport:
    """An import declaration already present in a file."""

    start: int
    end: int
    specifier: str
    quote: str = '"'
    resolved: Path | None = None
    type_only: bool = False
    default: str | None = None
    namespace: str | None = None
    named: tuple[ImportedName, ...] = ()
    semicolon: bool = True

    def binding(self, local: str) -> tuple[str, bool] | None:
        """Return (imported name, type_only) for a local name bound by this import."""
        if self.default == local:
            return "default", self.type_only
        if self.namespace == local:
            return "*", self.type_only
        for name in self.named:
            if name.local == local:
                return name.imported, self.type_only or name.type_only
        return None


class TextEdit(BaseModel):
    """Replace the UTF-8 byte range [start, end) with ``text``."""

    start: int
    end: int
    text: str

    @property
    def is_insertion(self) -> bool:
        return self.start == self.end


class BodyWrap(BaseModel):
    """Rewrites an expression-bodied arrow function into a block body."""

    start: int
    end: int
    indent: str
    unit: str


class Insertion(BaseModel):
    offset: int
    text: str
    wrap: BodyWrap | None = None


class ImportSpecifier(BaseModel):
    imported: str
    local: str
    type_only: bool = False

    def render(self) -> str:
        prefix = "type " if self.type_only else ""
        if self.imported == self.local:
            return f"{prefix}{self.local}"
        return f"{prefix}{self.imported} as {self.local}"


class ImportEntry(BaseModel):
    """All names one file imports, or will import, from a single module."""

    module_key: str
    specifier: str
    quote: str = '"'
    semicolon: bool = True
    span: tuple[int, int] | None = None
    type_only: bool = False
    default: str | None = None
    namespace: str | None = None
    named: list[ImportSpecifier] = Field(default_factory=list)
    added: list[ImportSpecifier] = Field(default_factory=list)
    added_default: str | None = None

    @property
    def changes_file(self) -> bool:
        return bool(self.added) or (self.added_default is not None and self.default is None)


class FixParts(BaseModel):
    """Structured edits of one suggestion, merged file-wide by the patch assembler."""

    replacements: list[TextEdit] = Field(default_factory=list)
    insertions: list[Insertion] = Field(default_factory=list)
    imports: list[ImportEntry] = Field(default_factory=list)


class Fix(BaseModel):
    edits: list[TextEdit]


class Suggestion(BaseModel):
    message_id: str
    message: str
    data: dict[str, str]
    strategy: Strategy
    fix: Fix
    parts: FixParts = Field(exclude=True)


class Finding(BaseModel):
    path: str
    message_id: str = "noInline"
    message: str
    data: dict[str, str]
    line: int
    column: int
    element: str
    start: int
    end: int
    suggestions: list[Suggestion]

    @property
    def fix(self) -> Fix | None:
        return self.suggestions[0].fix if self.suggestions else None


class FixResult(BaseModel):
    path: str
    output: str
    passes: int
    applied: int

    @property
    def changed(self) -> bool:
        return self.applied > 0
