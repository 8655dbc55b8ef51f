from __future__ import annotations

from literal_lift.core.dependencies import DependencySet
from literal_lift.models import ExpressionCategory, Strategy


def decide(category: ExpressionCategory, dependencies: DependencySet) -> list[Strategy]:
    """Lifting strategies for one site, primary first.

    Sites reading component-local bindings are memoized in place. All others become a
    module constant, preceded by a memoized-callback alternative for function literals.
    """
    if dependencies.has_component_local:
        return [Strategy.HOOK]
    if category is ExpressionCategory.FUNCTION:
        return [Strategy.HOOK, Strategy.MODULE_CONSTANT]
    return [Strategy.MODULE_CONSTANT]
