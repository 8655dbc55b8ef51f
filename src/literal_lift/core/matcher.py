"""Find JSX attribute values that allocate a fresh value on every render."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

from tree_sitter import Node

from literal_lift.config import IgnoreList, LiftOptions
from literal_lift.core.ast import SourceFile, find_ancestor, is_function, node_text, unwrap_parentheses
from literal_lift.models import ExpressionCategory

logger = logging.getLogger(__name__)

_ELEMENT_TYPES = ("jsx_opening_element", "jsx_self_closing_element")
_IDENTIFIER_PART = re.compile(r"[A-Za-z0-9_$]+")

_BASE_CATEGORIES = {
    "object": ExpressionCategory.OBJECT,
    "array": ExpressionCategory.ARRAY,
    "arrow_function": ExpressionCategory.FUNCTION,
    "function_expression": ExpressionCategory.FUNCTION,
    "function": ExpressionCategory.FUNCTION,
    "generator_function": ExpressionCategory.FUNCTION,
    "new_expression": ExpressionCategory.NEW,
    "call_expression": ExpressionCategory.CALL,
    "regex": ExpressionCategory.REGEX,
}


@dataclass(frozen=True)
class AttributeSite:
    attribute: Node
    attribute_name: str
    element: Node
    tag: Node
    tag_name: str
    host_element_name: str
    value_expression: Node
    category: ExpressionCategory
    base_category: ExpressionCategory | None
    enclosing_component: Node

    @property
    def hook_name(self) -> str:
        return "useCallback" if self.category is ExpressionCategory.FUNCTION else "useMemo"


def category_enabled(category: ExpressionCategory, options: LiftOptions) -> bool:
    if category is ExpressionCategory.ARRAY:
        return options.check_array
    if category is ExpressionCategory.FUNCTION:
        return options.check_function
    if category is ExpressionCategory.NEW:
        return options.check_new_expression
    if category is ExpressionCategory.CALL:
        return options.check_return_value_of_calling
    if category is ExpressionCategory.REGEX:
        return options.check_reg_exp
    return True


def classify_expression(
    expression: Node, options: LiftOptions
) -> tuple[ExpressionCategory, ExpressionCategory | None] | None:
    """Return (category, base category of a member access) or None when not liftable."""
    node = unwrap_parentheses(expression)
    category = _BASE_CATEGORIES.get(node.type)
    if category is not None:
        return (category, None) if category_enabled(category, options) else None
    if node.type == "member_expression":
        obj = node.child_by_field_name("object")
        base = _BASE_CATEGORIES.get(unwrap_parentheses(obj).type) if obj is not None else None
        if base is not None and category_enabled(base, options):
            return ExpressionCategory.MEMBER, base
    return None


def pascal_case(text: str) -> str:
    parts = _IDENTIFIER_PART.findall(text)
    return "".join(part[:1].upper() + part[1:] for part in parts)


def element_tag(element: Node) -> Node | None:
    return element.child_by_field_name("name")


def tag_component_name(tag: Node) -> str:
    """The component name a tag stands for; ``Ns.Comp`` yields ``Comp``."""
    if tag.type == "member_expression":
        prop = tag.child_by_field_name("property")
        return node_text(prop) if prop is not None else node_text(tag)
    if tag.type == "jsx_namespace_name":
        return node_text(tag).split(":")[-1]
    return node_text(tag)


def class_name_token(element: Node) -> str | None:
    """First whitespace-delimited token of a literal ``className`` attribute."""
    for attribute in element.named_children:
        if attribute.type != "jsx_attribute":
            continue
        name = attribute.named_children[0] if attribute.named_children else None
        if name is None or node_text(name) != "className" or attribute.named_child_count < 2:
            continue
        value = attribute.named_children[-1]
        if value.type == "jsx_expression" and value.named_children:
            value = value.named_children[0]
        if value.type not in ("string", "template_string"):
            return None
        if value.type == "template_string" and any(c.type == "template_substitution" for c in value.named_children):
            return None
        tokens = node_text(value)[1:-1].split()
        return tokens[0] if tokens else None
    return None


def host_element_name(element: Node, tag: Node, threshold: int) -> str:
    name = tag_component_name(tag)
    if len(name) < threshold:
        token = class_name_token(element)
        if token:
            derived = pascal_case(token)
            if derived:
                return derived
    return name


def _inside_expression_container(function: Node) -> bool:
    return find_ancestor(function.parent, lambda n: n.type == "jsx_expression") is not None


def _is_nested_callback(function: Node) -> bool:
    """A function passed as a call argument inside another function, like a ``list.map`` callback."""
    parent = function.parent
    while parent is not None and parent.type == "parenthesized_expression":
        parent = parent.parent
    if parent is None or parent.type != "arguments":
        return False
    return find_ancestor(parent, is_function) is not None


def _is_nested_function(function: Node) -> bool:
    return _inside_expression_container(function) or _is_nested_callback(function)


def enclosing_component(expression: Node) -> Node | None:
    """Nearest function around ``expression`` that is not a render prop or a nested callback."""
    return find_ancestor(expression.parent, is_function, skip=_is_nested_function)


def match_attribute(
    source_file: SourceFile,
    attribute: Node,
    value: Node,
    options: LiftOptions,
    ignore: IgnoreList,
) -> AttributeSite | None:
    expression = next(iter(value.named_children), None)
    if expression is None or expression.type in ("comment", "spread_element"):
        return None
    classified = classify_expression(expression, options)
    if classified is None:
        return None
    element = find_ancestor(attribute.parent, lambda n: n.type in _ELEMENT_TYPES)
    tag = element_tag(element) if element is not None else None
    if element is None or tag is None:
        return None

    tag_name = node_text(tag)
    derived = host_element_name(element, tag, options.short_component_name_threshold)
    if ignore and (ignore.matches(tag_name) or ignore.matches(tag_component_name(tag)) or ignore.matches(derived)):
        logger.debug("Skipping <%s>: component is ignored", tag_name)
        return None

    component = enclosing_component(expression)
    if component is None:
        logger.debug("Skipping <%s>: no enclosing component function", tag_name)
        return None

    attribute_name = node_text(attribute.named_children[0])
    category, base = classified
    return AttributeSite(
        attribute=attribute,
        attribute_name=attribute_name,
        element=element,
        tag=tag,
        tag_name=tag_name,
        host_element_name=derived,
        value_expression=expression,
        category=category,
        base_category=base,
        enclosing_component=component,
    )


def iter_attribute_sites(source_file: SourceFile, options: LiftOptions, ignore: IgnoreList) -> Iterator[AttributeSite]:
    for captures in source_file.captures("attributes"):
        attributes = captures.get("attribute", [])
        values = captures.get("attribute.value", [])
        if not attributes or not values:
            continue
        site = match_attribute(source_file, attributes[0], values[0], options, ignore)
        if site is not None:
            yield site
