"""
Pagesmith Kernel — Markup Codec

Markup fragment <-> ordered list of Elements.

Decode runs identity resolution against the elements already in the
document: a node whose id is known keeps that element's style (so a
markup-only edit never resets a dragged position); everything else gets a
fresh id. New top-level elements get the default absolute-position style;
new nested elements start unstyled and flow inside their parent.

Parsing uses BeautifulSoup with the stdlib `html.parser` builder, which is
lenient: missing close tags are closed for us. The one thing we reject is
an unterminated tag (`<div` with no `>`), since the user is clearly still
typing it.
"""

from __future__ import annotations

import logging
import re
from html import escape as _html_escape

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.builder import ParserRejectedMarkup
from bs4.element import PreformattedString

from engine.kernel.errors import IdentityConflictWarning, ParseError
from engine.kernel.model import IdFactory, default_style, new_element_id
from engine.kernel.style_codec import merge_style, parse_declarations
from engine.kernel.types import (
    RAW_TEXT_TAGS,
    VOID_TAGS,
    Element,
    MarkupDecodeResult,
    is_valid_element_id,
)

logger = logging.getLogger(__name__)

_RAW_BLOCK_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.DOTALL | re.IGNORECASE)
_UNTERMINATED_TAG_RE = re.compile(r"<(/?[A-Za-z](?:[^<>\"']|\"[^\"]*\"|'[^']*')*)(?=<|$)")

_INDENT = "  "


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_markup(
    text: str,
    known: dict[str, Element] | None = None,
    id_factory: IdFactory | None = None,
) -> MarkupDecodeResult:
    """
    Parse a markup fragment into top-level Elements.

    Args:
        text: Markup as typed in the editor.
        known: id → Element for the current document (identity resolution).
        id_factory: Source of fresh ids; defaults to `element-<hex>`.

    Raises:
        ParseError: the markup contains an unterminated tag or the parser
        rejected it outright.
    """
    _check_terminated(text or "")

    try:
        soup = BeautifulSoup(text or "", "html.parser", multi_valued_attributes=None)
    except ParserRejectedMarkup as e:
        raise ParseError(f"Markup rejected by parser: {e}") from e

    root = soup.body or soup
    decoder = _Decoder(known or {}, id_factory)
    decoder.reserve(tag.get("id") for tag in root.find_all(True))

    elements: list[Element] = []
    for node in root.children:
        if isinstance(node, Tag):
            elements.append(decoder.element(node))
        elif _is_text(node) and node.strip():
            logger.debug("markup_codec: dropping top-level text %r", str(node).strip()[:40])

    return MarkupDecodeResult(elements=elements, conflicts=decoder.conflicts)


def encode_markup(elements: list[Element]) -> str:
    """One top-level element per line."""
    return "\n".join(encode_element(element) for element in elements)


def encode_element(element: Element, depth: int = 0) -> str:
    """
    Render one element.

    `<h1 id="a">Hi</h1>`; void tags self-close (`<img id="b" src="x" />`);
    element-only children go on their own indented lines, mixed content
    stays inline.
    """
    open_tag = f"<{element.tag}{_render_attributes(element)}"
    if element.is_void:
        return f"{open_tag} />"

    if element.children:
        if all(isinstance(c, Element) for c in element.children):
            pad = _INDENT * (depth + 1)
            lines = [pad + encode_element(c, depth + 1) for c in element.children]
            inner = "\n" + "\n".join(lines) + "\n" + _INDENT * depth
        else:
            inner = "".join(
                encode_element(c, depth) if isinstance(c, Element) else _escape_text(c, element.tag)
                for c in element.children
            )
    else:
        inner = _escape_text(element.text or "", element.tag)

    return f"{open_tag}>{inner}</{element.tag}>"


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class _Decoder:
    """Per-call state: ids seen so far, ids reserved, conflicts found."""

    def __init__(self, known: dict[str, Element], id_factory: IdFactory | None) -> None:
        self.known = known
        self.id_factory = id_factory
        self.taken: set[str] = set(known)
        self.seen: set[str] = set()
        self.conflicts: list[IdentityConflictWarning] = []

    def reserve(self, ids) -> None:
        self.taken.update(i for i in ids if i)

    def element(self, tag: Tag, nested: bool = False) -> Element:
        attributes = {name: _attr_value(value) for name, value in tag.attrs.items()}
        raw_id = attributes.pop("id", None)
        class_name = attributes.pop("class", None)
        inline_style = attributes.pop("style", None)

        element_id = self.resolve_id(raw_id)
        existing = self.known.get(element_id)
        if existing is not None:
            style = dict(existing.style)
        else:
            style = {} if nested else default_style()
        if inline_style:
            style = merge_style(style, parse_declarations(inline_style))

        name = tag.name.lower()
        text: str | None = None
        children: list = []

        if name not in VOID_TAGS:
            if any(isinstance(c, Tag) for c in tag.children):
                for child in tag.children:
                    if isinstance(child, Tag):
                        children.append(self.element(child, nested=True))
                    elif _is_text(child) and child.strip():
                        children.append(str(child))
            else:
                content = "".join(str(c) for c in tag.children if _is_text(c)).strip()
                text = content or None

        return Element(
            id=element_id,
            tag=name,
            attributes=attributes,
            text=text,
            children=children,
            style=style,
            class_name=class_name,
        )

    def resolve_id(self, raw_id: str | None) -> str:
        if raw_id is None or not raw_id.strip():
            fresh = new_element_id(self.taken, self.id_factory)
            self.seen.add(fresh)
            return fresh

        if not is_valid_element_id(raw_id):
            reason = "is not a usable id"
        elif raw_id in self.seen:
            reason = "is duplicated"
        else:
            self.seen.add(raw_id)
            return raw_id

        fresh = new_element_id(self.taken, self.id_factory)
        self.seen.add(fresh)
        conflict = IdentityConflictWarning(raw_id, fresh, reason)
        logger.info("markup_codec: %s", conflict.message)
        self.conflicts.append(conflict)
        return fresh


def _check_terminated(text: str) -> None:
    scan = _RAW_BLOCK_RE.sub("", text)
    m = _UNTERMINATED_TAG_RE.search(scan)
    if m:
        fragment = m.group(0).strip()[:40]
        raise ParseError(f"Unterminated tag: {fragment!r}", {"fragment": fragment})


def _is_text(node) -> bool:
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def _attr_value(value) -> str:
    if isinstance(value, list):
        return " ".join(value)
    return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _render_attributes(element: Element) -> str:
    parts = [f' id="{_escape_attr(element.id)}"']
    if element.class_name is not None:
        parts.append(f' class="{_escape_attr(element.class_name)}"')
    for name, value in element.attributes.items():
        if name in ("id", "class", "style"):
            continue
        parts.append(f' {name}="{_escape_attr(value)}"')
    return "".join(parts)


def _escape_attr(value: str) -> str:
    return _html_escape(str(value), quote=True)


def _escape_text(text: str, tag: str) -> str:
    if tag in RAW_TEXT_TAGS:
        return text
    return _html_escape(text, quote=False)
