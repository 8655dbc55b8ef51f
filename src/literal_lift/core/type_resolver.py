"""Derive the type annotation of a generated binding."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

from literal_lift.core.imports import REACT_MODULE, ImportPlan, ImportPlanner
from literal_lift.core.matcher import AttributeSite
from literal_lift.core.ports.oracle import TypeOracle
from literal_lift.core.types import DeclarationKind, TsType, TypeDeclaration, filtered_union
from literal_lift.errors import TypeResolutionError

logger = logging.getLogger(__name__)

COMPONENT_PROPS = TypeDeclaration(
    name="ComponentProps",
    kind=DeclarationKind.EXTERNAL,
    module_specifier=REACT_MODULE,
    export_name="ComponentProps",
)


@dataclass(frozen=True)
class ResolvedType:
    annotation: str | None = None
    plan: ImportPlan = field(default_factory=ImportPlan)
    fallback: bool = False


UNTYPED = ResolvedType()


def _is_intrinsic_tag(site: AttributeSite) -> bool:
    return site.tag.type == "identifier" and site.tag_name[:1].islower()


def indexed_access_type(site: AttributeSite, planner: ImportPlanner) -> tuple[str, ImportPlan] | None:
    """The type of the prop expressed through the component itself, as in ``Parameters<typeof Comp>[0]["prop"]``."""
    prop = json.dumps(site.attribute_name)
    if _is_intrinsic_tag(site):
        plan = planner.plan_declaration(COMPONENT_PROPS)
        if not plan.importable:
            return None
        return f"ComponentProps<{json.dumps(site.tag_name)}>[{prop}]", plan
    return f"Parameters<typeof {site.tag_name}>[0][{prop}]", ImportPlan()


def resolve_binding_type(
    site: AttributeSite,
    oracle: TypeOracle,
    planner: ImportPlanner,
    callback: bool = False,
) -> ResolvedType:
    """Resolve the annotation for the binding that replaces ``site``'s expression.

    ``callback`` selects the rules of the memoized callback primitive, whose type argument
    must be callable. Oracle failures are reported as an untyped binding.
    """
    try:
        descriptor = oracle.resolve_declared_prop_type(site.tag, site.attribute_name)
    except TypeResolutionError as e:
        logger.debug("No declared type for %s on <%s>: %s", site.attribute_name, site.tag_name, e)
        return UNTYPED
    except Exception:
        logger.warning("Type oracle failed for %s on <%s>", site.attribute_name, site.tag_name, exc_info=True)
        return UNTYPED
    if descriptor is None:
        return UNTYPED

    declared = resolved = descriptor.type
    if callback:
        callable_part = filtered_union(declared, oracle.is_callable)
        if callable_part is None:
            return _fallback(site, oracle, planner, callback, declared)
        resolved = callable_part

    plan = planner.plan_type(resolved)
    if not plan.importable or (not plan.has_new_imports and not plan.satisfied):
        logger.debug(
            "Type %s of %s cannot be imported (%s), using the indexed access form",
            resolved.render(),
            site.attribute_name,
            ", ".join(plan.unreachable) or "nothing to import",
        )
        return _fallback(site, oracle, planner, callback, declared)
    return ResolvedType(annotation=resolved.render(), plan=plan)


def _fallback(
    site: AttributeSite, oracle: TypeOracle, planner: ImportPlanner, callback: bool, declared: TsType
) -> ResolvedType:
    indexed = indexed_access_type(site, planner)
    if indexed is None:
        return UNTYPED
    annotation, plan = indexed
    if callback and not oracle.is_assignable_to_callable(declared):
        annotation = f"({annotation}) & Function"
    return ResolvedType(annotation=annotation, plan=plan, fallback=True)
