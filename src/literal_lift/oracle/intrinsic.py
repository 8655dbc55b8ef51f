"""Attribute types of intrinsic (lower-case) JSX elements, as declared by the react typings."""

from __future__ import annotations

import re

from literal_lift.core.imports import REACT_MODULE

# Names exported by the react typings that intrinsic attribute types refer to.
REACT_TYPE_EXPORTS = frozenset(
    {
        "AnimationEventHandler",
        "ChangeEventHandler",
        "ClipboardEventHandler",
        "ComponentProps",
        "CompositionEventHandler",
        "CSSProperties",
        "DragEventHandler",
        "FocusEventHandler",
        "FormEventHandler",
        "KeyboardEventHandler",
        "MouseEventHandler",
        "PointerEventHandler",
        "ReactEventHandler",
        "ReactNode",
        "Ref",
        "TouchEventHandler",
        "TransitionEventHandler",
        "UIEventHandler",
        "WheelEventHandler",
    }
)

_ELEMENT_INTERFACES = {
    "a": "HTMLAnchorElement",
    "area": "HTMLAreaElement",
    "audio": "HTMLAudioElement",
    "base": "HTMLBaseElement",
    "blockquote": "HTMLQuoteElement",
    "body": "HTMLBodyElement",
    "br": "HTMLBRElement",
    "button": "HTMLButtonElement",
    "canvas": "HTMLCanvasElement",
    "caption": "HTMLTableCaptionElement",
    "col": "HTMLTableColElement",
    "colgroup": "HTMLTableColElement",
    "data": "HTMLDataElement",
    "datalist": "HTMLDataListElement",
    "details": "HTMLDetailsElement",
    "dialog": "HTMLDialogElement",
    "div": "HTMLDivElement",
    "dl": "HTMLDListElement",
    "embed": "HTMLEmbedElement",
    "fieldset": "HTMLFieldSetElement",
    "form": "HTMLFormElement",
    "h1": "HTMLHeadingElement",
    "h2": "HTMLHeadingElement",
    "h3": "HTMLHeadingElement",
    "h4": "HTMLHeadingElement",
    "h5": "HTMLHeadingElement",
    "h6": "HTMLHeadingElement",
    "head": "HTMLHeadElement",
    "hr": "HTMLHRElement",
    "html": "HTMLHtmlElement",
    "iframe": "HTMLIFrameElement",
    "img": "HTMLImageElement",
    "input": "HTMLInputElement",
    "label": "HTMLLabelElement",
    "legend": "HTMLLegendElement",
    "li": "HTMLLIElement",
    "link": "HTMLLinkElement",
    "map": "HTMLMapElement",
    "meta": "HTMLMetaElement",
    "meter": "HTMLMeterElement",
    "object": "HTMLObjectElement",
    "ol": "HTMLOListElement",
    "optgroup": "HTMLOptGroupElement",
    "option": "HTMLOptionElement",
    "output": "HTMLOutputElement",
    "p": "HTMLParagraphElement",
    "pre": "HTMLPreElement",
    "progress": "HTMLProgressElement",
    "q": "HTMLQuoteElement",
    "script": "HTMLScriptElement",
    "select": "HTMLSelectElement",
    "source": "HTMLSourceElement",
    "span": "HTMLSpanElement",
    "style": "HTMLStyleElement",
    "table": "HTMLTableElement",
    "tbody": "HTMLTableSectionElement",
    "td": "HTMLTableDataCellElement",
    "template": "HTMLTemplateElement",
    "textarea": "HTMLTextAreaElement",
    "tfoot": "HTMLTableSectionElement",
    "th": "HTMLTableHeaderCellElement",
    "thead": "HTMLTableSectionElement",
    "time": "HTMLTimeElement",
    "title": "HTMLTitleElement",
    "tr": "HTMLTableRowElement",
    "track": "HTMLTrackElement",
    "ul": "HTMLUListElement",
    "video": "HTMLVideoElement",
    "svg": "SVGSVGElement",
    "circle": "SVGCircleElement",
    "g": "SVGGElement",
    "line": "SVGLineElement",
    "path": "SVGPathElement",
    "polygon": "SVGPolygonElement",
    "rect": "SVGRectElement",
    "text": "SVGTextElement",
}

_EVENT_HANDLERS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), handler)
    for pattern, handler in (
        (r"^on(Click|DoubleClick|ContextMenu|AuxClick|Mouse(Down|Up|Enter|Leave|Move|Over|Out))$", "MouseEventHandler"),
        (r"^on(Drag|DragEnd|DragEnter|DragExit|DragLeave|DragOver|DragStart|Drop)$", "DragEventHandler"),
        (r"^onKey(Down|Up|Press)$", "KeyboardEventHandler"),
        (r"^on(Focus|Blur)$", "FocusEventHandler"),
        (r"^on(Input|Submit|Reset|Invalid|BeforeInput)$", "FormEventHandler"),
        (r"^onScroll$", "UIEventHandler"),
        (r"^onWheel$", "WheelEventHandler"),
        (r"^onTouch(Start|End|Move|Cancel)$", "TouchEventHandler"),
        (r"^on(Pointer\w+|GotPointerCapture|LostPointerCapture)$", "PointerEventHandler"),
        (r"^onAnimation(Start|End|Iteration)$", "AnimationEventHandler"),
        (r"^onTransition(End|Start|Run|Cancel)$", "TransitionEventHandler"),
        (r"^on(Copy|Cut|Paste)$", "ClipboardEventHandler"),
        (r"^onComposition(Start|Update|End)$", "CompositionEventHandler"),
    )
)

_CHANGE_EVENT_ELEMENTS = frozenset({"input", "select", "textarea"})

_STRING_ATTRIBUTES = frozenset(
    {
        "alt",
        "className",
        "href",
        "htmlFor",
        "id",
        "lang",
        "name",
        "placeholder",
        "rel",
        "role",
        "src",
        "target",
        "title",
    }
)


def is_intrinsic(tag_name: str) -> bool:
    return bool(tag_name) and tag_name[0].islower() and "." not in tag_name


def element_interface(tag_name: str) -> str:
    if tag_name in _ELEMENT_INTERFACES:
        return _ELEMENT_INTERFACES[tag_name]
    return "HTMLElement"


def intrinsic_attribute_type(tag_name: str, attribute: str) -> str | None:
    """Return the declared type text of ``attribute`` on ``<tag_name>``, or None when unknown.

    Every intrinsic attribute is optional, so callers add ``undefined`` themselves.
    """
    element = element_interface(tag_name)
    if attribute == "style":
        return "CSSProperties"
    if attribute == "ref":
        return f"Ref<{element}>"
    if attribute == "children":
        return "ReactNode"
    if attribute in _STRING_ATTRIBUTES:
        return "string"
    if attribute == "dangerouslySetInnerHTML":
        return "{ __html: string | TrustedHTML }"
    event = attribute[:-7] if attribute.endswith("Capture") else attribute
    if event == "onChange":
        handler = "ChangeEventHandler" if tag_name in _CHANGE_EVENT_ELEMENTS else "FormEventHandler"
        return f"{handler}<{element}>"
    for pattern, handler in _EVENT_HANDLERS:
        if pattern.match(event):
            return f"{handler}<{element}>"
    if re.match(r"^on[A-Z]", event):
        return f"ReactEventHandler<{element}>"
    return None
