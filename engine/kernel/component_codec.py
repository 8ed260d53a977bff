"""
Pagesmith Kernel — Component-Source Codec

Element list + style table → React function-component source.

This direction is forward-only. Generated source is meant to be edited as
code, and the reverse path cannot recover ids, styles or structure reliably
once a user starts writing JSX by hand. `from_component_source_approx`
exists for previewing component source as plain markup; it returns an
`ApproximateMarkup`, which is deliberately not a `MarkupDecodeResult`.
"""

from __future__ import annotations

import json
import re
from html import escape as _html_escape

from engine.kernel.style_codec import id_selector
from engine.kernel.types import (
    ApproximateMarkup,
    Element,
    StyleTable,
)

_INDENT = "  "

# JSX attribute names that differ from their HTML spelling.
_ATTRIBUTE_RENAMES: dict[str, str] = {
    "class": "className",
    "for": "htmlFor",
    "tabindex": "tabIndex",
    "readonly": "readOnly",
    "maxlength": "maxLength",
    "colspan": "colSpan",
    "rowspan": "rowSpan",
    "autofocus": "autoFocus",
    "autocomplete": "autoComplete",
    "contenteditable": "contentEditable",
    "crossorigin": "crossOrigin",
    "srcset": "srcSet",
}

_EVENT_NAMES: dict[str, str] = {
    "onclick": "onClick",
    "ondblclick": "onDoubleClick",
    "onchange": "onChange",
    "oninput": "onInput",
    "onsubmit": "onSubmit",
    "onfocus": "onFocus",
    "onblur": "onBlur",
    "onkeydown": "onKeyDown",
    "onkeyup": "onKeyUp",
    "onkeypress": "onKeyPress",
    "onmouseover": "onMouseOver",
    "onmouseout": "onMouseOut",
    "onmouseenter": "onMouseEnter",
    "onmouseleave": "onMouseLeave",
    "onmousedown": "onMouseDown",
    "onmouseup": "onMouseUp",
    "onload": "onLoad",
    "onerror": "onError",
}

_JSX_SPECIAL = re.compile(r"[{}<>]")

_JSX_SPAN_RE = re.compile(r"<[A-Za-z>].*>", re.DOTALL)
_FRAGMENT_RE = re.compile(r"</?>")
_CUSTOM_OPEN_RE = re.compile(r"<([A-Z][A-Za-z0-9_.]*)(\s[^>]*?)?(/?)>")
_CUSTOM_CLOSE_RE = re.compile(r"</([A-Z][A-Za-z0-9_.]*)\s*>")
_STYLE_OBJECT_RE = re.compile(r"style=\{\{(.*?)\}\}", re.DOTALL)
_STYLE_ENTRY_RE = re.compile(r"""["']?([A-Za-z_$-][\w$-]*)["']?\s*:\s*(?:"([^"]*)"|'([^']*)'|([\w.#%-]+))""")
_STRING_EXPR_RE = re.compile(r"""\{\s*("(?:[^"\\]|\\.)*")\s*\}""")
_HANDLER_RE = re.compile(r"\s(on[A-Z]\w*)=\{(?:[^{}]|\{[^{}]*\})*\}")

_EXPORT_FUNCTION_RE = re.compile(r"export\s+default\s+(?:async\s+)?(?:function|class)\s+([A-Z]\w*)")
_EXPORT_NAME_RE = re.compile(r"export\s+default\s+([A-Z]\w*)[ \t]*(?:;|$)", re.MULTILINE)
_FUNCTION_RE = re.compile(r"function\s+([A-Z]\w*)\s*\(")
_ARROW_RE = re.compile(r"const\s+([A-Z]\w*)\s*=\s*(?:\([^)]*\)|\w+)\s*=>")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def to_component_source(elements: list[Element], style_table: StyleTable, name: str = "App") -> str:
    """
    Generate a function component that returns the elements in a fragment.

    Styles are looked up in `style_table` by `#id` and folded into inline
    `style={{...}}` objects with camel-cased property names.
    """
    body = "\n".join(_render_node(e, style_table, 3) for e in elements)
    lines = [
        f"function {name}() {{",
        f"{_INDENT}return (",
        f"{_INDENT * 2}<>",
    ]
    if body:
        lines.append(body)
    lines += [
        f"{_INDENT * 2}</>",
        f"{_INDENT});",
        "}",
        "",
        f"export default {name};",
        "",
    ]
    return "\n".join(lines)


def from_component_source_approx(source: str) -> ApproximateMarkup:
    """
    Best-effort markup for previewing component source.

    Capitalized component usages become plain `div`s, `className` becomes
    `class` and simple literal style objects become `style="..."`. Handlers
    and other expressions are dropped. Never feed the result to anything
    that needs ids to survive.
    """
    m = _JSX_SPAN_RE.search(source or "")
    if not m:
        return ApproximateMarkup(markup="")

    jsx = _FRAGMENT_RE.sub("", m.group(0))
    jsx = _HANDLER_RE.sub("", jsx)
    jsx = _STYLE_OBJECT_RE.sub(lambda s: f'style="{_style_object_to_css(s.group(1))}"', jsx)
    jsx = _STRING_EXPR_RE.sub(lambda s: _html_escape(json.loads(s.group(1)), quote=False), jsx)
    rewritten: list[str] = []

    def _open(match: re.Match) -> str:
        rewritten.append(match.group(1))
        attrs = match.group(2) or ""
        if match.group(3):
            return f"<div{attrs.rstrip()}></div>"
        return f"<div{attrs}>"

    jsx = _CUSTOM_OPEN_RE.sub(_open, jsx)
    jsx = _CUSTOM_CLOSE_RE.sub("</div>", jsx)
    jsx = jsx.replace("className=", "class=").replace("htmlFor=", "for=")

    return ApproximateMarkup(markup=jsx.strip(), rewritten_tags=sorted(set(rewritten)))


def component_name(source: str) -> str:
    """Name of the component the source exports (or defines first). Defaults to App."""
    for pattern in (_EXPORT_FUNCTION_RE, _EXPORT_NAME_RE, _FUNCTION_RE, _ARROW_RE):
        m = pattern.search(source or "")
        if m:
            return m.group(1)
    return "App"


def camel_case(prop: str) -> str:
    """CSS property → React style key. `background-color` → `backgroundColor`."""
    if prop.startswith("--"):
        return prop
    if prop.startswith("-ms-"):
        prop = prop[1:]
    elif prop.startswith("-"):
        prop = prop[1:]
        prop = prop[0].upper() + prop[1:]
    return re.sub(r"-([a-z])", lambda m: m.group(1).upper(), prop)


def kebab_case(key: str) -> str:
    """React style key → CSS property. `WebkitTransform` → `-webkit-transform`."""
    if key.startswith("--"):
        return key
    if key.startswith("ms") and len(key) > 2 and key[2].isupper():
        key = "-" + key
    elif key[:1].isupper():
        key = "-" + key[0].lower() + key[1:]
    return re.sub(r"[A-Z]", lambda m: "-" + m.group(0).lower(), key)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render_node(element: Element, style_table: StyleTable, depth: int) -> str:
    pad = _INDENT * depth
    open_tag = f"<{element.tag}{_render_props(element, style_table)}"

    if element.is_void:
        return f"{pad}{open_tag} />"

    if element.children:
        inner_lines = []
        for child in element.children:
            if isinstance(child, Element):
                inner_lines.append(_render_node(child, style_table, depth + 1))
            else:
                inner_lines.append(_INDENT * (depth + 1) + _render_text(child))
        return f"{pad}{open_tag}>\n" + "\n".join(inner_lines) + f"\n{pad}</{element.tag}>"

    return f"{pad}{open_tag}>{_render_text(element.text or '')}</{element.tag}>"


def _render_props(element: Element, style_table: StyleTable) -> str:
    parts = [f' id="{element.id}"']
    if element.class_name is not None:
        parts.append(f" className={_jsx_string(element.class_name)}")

    for name, value in element.attributes.items():
        lower = name.lower()
        if lower in _EVENT_NAMES:
            parts.append(f" {_EVENT_NAMES[lower]}={{() => {{ {value} }}}}")
        else:
            parts.append(f" {_ATTRIBUTE_RENAMES.get(lower, name)}={_jsx_string(value)}")

    style = _lookup_style(element, style_table)
    if style:
        entries = ", ".join(f"{_style_key(prop)}: {_js_literal(value)}" for prop, value in style.items())
        parts.append(f" style={{{{ {entries} }}}}")

    return "".join(parts)


def _lookup_style(element: Element, style_table: StyleTable) -> dict[str, str]:
    selector = id_selector(element.id)
    if selector in style_table:
        return style_table[selector]
    return style_table.get(element.id, {})


def _style_key(prop: str) -> str:
    key = camel_case(prop)
    if re.fullmatch(r"[A-Za-z_$][\w$]*", key):
        return key
    return json.dumps(key)


def _render_text(text: str) -> str:
    if _JSX_SPECIAL.search(text):
        return "{" + _js_literal(text) + "}"
    return text


def _style_object_to_css(body: str) -> str:
    declarations = []
    for m in _STYLE_ENTRY_RE.finditer(body):
        key = m.group(1)
        value = next(v for v in m.groups()[1:] if v is not None)
        declarations.append(f"{kebab_case(key)}: {value}")
    return "; ".join(declarations)


def _js_literal(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _jsx_string(value: str) -> str:
    """JSX attribute strings have no escapes; fall back to an expression when needed."""
    if '"' in value or "\\" in value:
        return "{" + _js_literal(value) + "}"
    return f'"{value}"'
