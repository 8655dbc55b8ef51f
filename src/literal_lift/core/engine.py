"""Drive the lifting pipeline over one file: find sites, build suggestions, apply fixes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from tree_sitter import Node

from literal_lift.config import LiftOptions, compile_ignore_list
from literal_lift.core.ast import SourceFile, node_text, position_of
from literal_lift.core.codegen import NameRegistry, canonical_name, expression_text, render_constant, render_hook
from literal_lift.core.decision import decide
from literal_lift.core.dependencies import DependencySet, analyze_dependencies
from literal_lift.core.imports import ImportPlanner
from literal_lift.core.languages import default_path_for, normalize_language, supports_jsx
from literal_lift.core.matcher import AttributeSite, iter_attribute_sites
from literal_lift.core.patch import apply_edits, assemble, constant_insertion, hook_anchor
from literal_lift.core.ports.oracle import TypeOracle
from literal_lift.core.type_resolver import UNTYPED, resolve_binding_type
from literal_lift.errors import OverlappingEditsError, SiteSkipped
from literal_lift.models import Finding, Fix, FixParts, FixResult, Strategy, Suggestion, TextEdit
from literal_lift.oracle.adapter import SyntacticTypeOracle
from literal_lift.oracle.modules import Project

logger = logging.getLogger(__name__)

MAX_FIX_PASSES = 10

MESSAGES = {
    "noInline": "Avoid passing an inline {type} as '{propName}', it creates a new value on every render",
    "fixWithUseHook": 'Wrap it with "const {name} = {hookName}(...)"',
    "fixWithTopLevelScopeConstant": 'Move it to the top-level constant "{name}"',
}


def top_level_constants(source_file: SourceFile) -> dict[str, str]:
    """Initializer text to name, for every top-level ``const`` declaration."""
    constants: dict[str, str] = {}
    for statement in source_file.root.named_children:
        declaration = statement
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
        if declaration is None or declaration.type != "lexical_declaration":
            continue
        if not declaration.children or declaration.children[0].type != "const":
            continue
        for declarator in declaration.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if name is not None and value is not None and name.type == "identifier":
                constants.setdefault(source_file.text_of(value), node_text(name))
    return constants


@dataclass(frozen=True)
class _GeneratedConstant:
    name: str
    parts: FixParts


class FileAnalysis:
    """One analysis pass over one file.

    Generated names and module constants are shared by all sites of the pass, so that
    fixes applied together never declare the same identifier twice.
    """

    def __init__(
        self,
        source_file: SourceFile,
        options: LiftOptions,
        oracle: TypeOracle | None = None,
        project: Project | None = None,
    ) -> None:
        self.source_file = source_file
        self.options = options
        self.ignore = compile_ignore_list(options.ignored_components)
        self.oracle = oracle or SyntacticTypeOracle(source_file, project)
        self.module_names = self.oracle.module_names()
        self.planner = ImportPlanner(self.oracle, self.oracle.existing_imports(), self.module_names)
        self.names = NameRegistry()
        self.existing_constants = top_level_constants(source_file)
        self.generated_constants: dict[str, _GeneratedConstant] = {}

    def findings(self) -> list[Finding]:
        findings = []
        for site in iter_attribute_sites(self.source_file, self.options, self.ignore):
            finding = self.analyze_site(site)
            if finding is not None:
                findings.append(finding)
        return findings

    def analyze_site(self, site: AttributeSite) -> Finding | None:
        try:
            dependencies = analyze_dependencies(site.value_expression, site.enclosing_component, self.oracle)
        except SiteSkipped as e:
            logger.debug("Skipping %s of <%s>: %s", site.attribute_name, site.tag_name, e.reason)
            return None

        strategies = decide(site.category, dependencies)
        logger.debug(
            "%s of <%s>: %s", site.attribute_name, site.tag_name, ", ".join(s.value for s in strategies)
        )
        suggestions = []
        for strategy in strategies:
            if strategy is Strategy.HOOK:
                suggestion = self._hook_suggestion(site, dependencies)
            else:
                suggestion = self._constant_suggestion(site)
            if suggestion is None:
                logger.debug("No insertion point for the %s fix of %s", strategy.value, site.attribute_name)
                continue
            suggestions.append(suggestion)

        expression = site.value_expression
        line, column = position_of(self.source_file.source, expression.start_byte)
        data = {"type": site.category.value, "propName": site.attribute_name}
        return Finding(
            path=str(self.source_file.path),
            message=MESSAGES["noInline"].format(**data),
            data=data,
            line=line,
            column=column,
            element=site.tag_name,
            start=expression.start_byte,
            end=expression.end_byte,
            suggestions=suggestions,
        )

    def _visible_names(self, node: Node) -> set[str]:
        return self.oracle.symbols_visible_at_scope(node) | self.module_names

    def _replacement(self, site: AttributeSite, name: str) -> TextEdit:
        expression = site.value_expression
        return TextEdit(start=expression.start_byte, end=expression.end_byte, text=name)

    def _hook_suggestion(self, site: AttributeSite, dependencies: DependencySet) -> Suggestion | None:
        anchor = hook_anchor(site.enclosing_component, site.value_expression, dependencies, self.source_file.source)
        if anchor is None:
            return None
        name = self.names.reserve(canonical_name(site, Strategy.HOOK), self._visible_names(site.value_expression))
        typed = (
            resolve_binding_type(site, self.oracle, self.planner, callback=site.hook_name == "useCallback")
            if self.options.type_definitions
            else UNTYPED
        )
        plan = self.planner.plan_hook(site.hook_name).merge(typed.plan)
        declaration = render_hook(
            name,
            site.hook_name,
            typed.annotation,
            expression_text(self.source_file.source, site.value_expression, anchor.indent),
            [reference.name for reference in dependencies.hook_dependencies],
        )
        parts = FixParts(
            replacements=[self._replacement(site, name)],
            insertions=[anchor.insertion(declaration)],
            imports=self.planner.entries(plan),
        )
        return self._suggestion("fixWithUseHook", {"name": name, "hookName": site.hook_name}, Strategy.HOOK, parts)

    def _constant_suggestion(self, site: AttributeSite) -> Suggestion:
        text = self.source_file.text_of(site.value_expression)
        existing = self.existing_constants.get(text)
        if existing is not None:
            parts = FixParts(replacements=[self._replacement(site, existing)])
            return self._suggestion("fixWithTopLevelScopeConstant", {"name": existing}, Strategy.MODULE_CONSTANT, parts)

        generated = self.generated_constants.get(text)
        if generated is None:
            name = self.names.reserve(
                canonical_name(site, Strategy.MODULE_CONSTANT), self._visible_names(site.value_expression)
            )
            typed = resolve_binding_type(site, self.oracle, self.planner) if self.options.type_definitions else UNTYPED
            declaration = render_constant(
                name, typed.annotation, expression_text(self.source_file.source, site.value_expression, "")
            )
            insertion = constant_insertion(self.source_file, declaration, self.options.declarations_position)
            generated = _GeneratedConstant(
                name=name, parts=FixParts(insertions=[insertion], imports=self.planner.entries(typed.plan))
            )
            self.generated_constants[text] = generated

        parts = generated.parts.model_copy(update={"replacements": [self._replacement(site, generated.name)]})
        return self._suggestion(
            "fixWithTopLevelScopeConstant", {"name": generated.name}, Strategy.MODULE_CONSTANT, parts
        )

    def _suggestion(self, message_id: str, data: dict[str, str], strategy: Strategy, parts: FixParts) -> Suggestion:
        return Suggestion(
            message_id=message_id,
            message=MESSAGES[message_id].format(**data),
            data=data,
            strategy=strategy,
            fix=Fix(edits=assemble(self.source_file, [parts])),
            parts=parts,
        )


def _source_file(source: str | bytes, path: str | Path | None, language: str | None) -> SourceFile:
    file_path = Path(path).resolve() if path is not None else default_path_for(normalize_language(language or "tsx"))
    return SourceFile.from_source(source, file_path, language)


def analyze_source(
    source: str | bytes,
    path: str | Path | None = None,
    options: LiftOptions | None = None,
    language: str | None = None,
    project: Project | None = None,
) -> list[Finding]:
    """Report every inline allocation passed as a JSX attribute, with its suggested fixes."""
    source_file = _source_file(source, path, language)
    if not supports_jsx(source_file.language):
        return []
    return FileAnalysis(source_file, options or LiftOptions(), project=project).findings()


def analyze_file(path: str | Path, options: LiftOptions | None = None, project: Project | None = None) -> list[Finding]:
    file_path = Path(path).resolve()
    return analyze_source(file_path.read_bytes(), file_path, options, project=project)


def select_fixes(source_file: SourceFile, findings: list[Finding]) -> list[FixParts]:
    """Greedily pick primary fixes whose edits do not overlap those already picked."""
    chosen: list[FixParts] = []
    for finding in findings:
        if not finding.suggestions:
            continue
        parts = finding.suggestions[0].parts
        try:
            assemble(source_file, [*chosen, parts])
        except OverlappingEditsError as e:
            logger.debug("Deferring fix at %d:%d to the next pass: %s", finding.line, finding.column, e)
            continue
        chosen.append(parts)
    return chosen


def fix_source(
    source: str | bytes,
    path: str | Path | None = None,
    options: LiftOptions | None = None,
    language: str | None = None,
    project: Project | None = None,
) -> FixResult:
    """Apply primary fixes until none is left, for at most ``MAX_FIX_PASSES`` passes."""
    options = options or LiftOptions()
    source_file = _source_file(source, path, language)
    project = project or Project.for_file(source_file.path)
    passes = applied = 0
    while passes < MAX_FIX_PASSES and supports_jsx(source_file.language):
        findings = FileAnalysis(source_file, options, project=project).findings()
        chosen = select_fixes(source_file, findings)
        if not chosen:
            break
        output = apply_edits(source_file.source, assemble(source_file, chosen))
        passes += 1
        applied += len(chosen)
        logger.debug("Pass %d applied %d fixes to %s", passes, len(chosen), source_file.path)
        source_file = SourceFile.from_source(output, source_file.path, source_file.language)
    return FixResult(path=str(source_file.path), output=source_file.text, passes=passes, applied=applied)


def fix_file(path: str | Path, options: LiftOptions | None = None, write: bool = True) -> FixResult:
    file_path = Path(path).resolve()
    result = fix_source(file_path.read_bytes(), file_path, options)
    if write and result.changed:
        file_path.write_bytes(result.output.encode("utf-8"))
    return result
