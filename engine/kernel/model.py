"""
Pagesmith Kernel — Element Model

Helpers over Document/Element: traversal, identity assignment, and the merge
rules used when text-originated edits are folded back into the model.

Functions here mutate the Document they are given. The controller only ever
hands them its own working copy.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable, Iterable, Iterator

from engine.kernel.errors import KernelError
from engine.kernel.style_codec import encode_rules, encode_styles, merge_style
from engine.kernel.types import (
    DEFAULT_ELEMENT_STYLE,
    ELEMENT_ID_PREFIX,
    Document,
    Element,
    StyleTable,
)

IdFactory = Callable[[], str]

_PX_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(px)?\s*$")


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def walk(elements: Iterable[Element]) -> Iterator[Element]:
    """Depth-first, document order."""
    for element in elements:
        yield element
        yield from walk(element.child_elements())


def index(elements: Iterable[Element]) -> dict[str, Element]:
    """
    id → element for every element at any depth.

    Raises:
        KernelError: two elements share an id. Decode paths never produce
        this; seeing it means a Document was built by hand.
    """
    table: dict[str, Element] = {}
    for element in walk(elements):
        if element.id in table:
            raise KernelError(f"Duplicate element id {element.id!r}", {"id": element.id})
        table[element.id] = element
    return table


def collect_ids(elements: Iterable[Element]) -> set[str]:
    return {element.id for element in walk(elements)}


def find_element(document: Document, element_id: str) -> Element | None:
    for element in walk(document.elements):
        if element.id == element_id:
            return element
    return None


def style_table(document: Document) -> StyleTable:
    """Non-id rules followed by one `#id` entry per element (possibly empty)."""
    table: StyleTable = {selector: dict(props) for selector, props in document.rules.items()}
    for element in walk(document.elements):
        table[f"#{element.id}"] = dict(element.style)
    return table


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def random_element_id() -> str:
    return f"{ELEMENT_ID_PREFIX}{uuid.uuid4().hex[:8]}"


def new_element_id(taken: set[str], id_factory: IdFactory | None = None) -> str:
    """Generate an id not present in `taken`. The id is added to `taken`."""
    factory = id_factory or random_element_id
    candidate = factory()
    while candidate in taken:
        candidate = factory()
    taken.add(candidate)
    return candidate


def default_style() -> dict[str, str]:
    return dict(DEFAULT_ELEMENT_STYLE)


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------


def append_element(document: Document, element: Element) -> None:
    document.elements.append(element)


def remove_element(document: Document, element_id: str) -> Element | None:
    """Detach an element (and its subtree). Its style entry goes with it."""
    return _remove_from(document.elements, element_id)


def _remove_from(nodes: list, element_id: str) -> Element | None:
    for i, node in enumerate(nodes):
        if not isinstance(node, Element):
            continue
        if node.id == element_id:
            return nodes.pop(i)
        removed = _remove_from(node.children, element_id)
        if removed is not None:
            return removed
    return None


def merge_decoded(document: Document, decoded: list[Element]) -> set[str]:
    """
    Swap in a freshly decoded element tree.

    Identity was already resolved by the decoder (known ids kept their
    styles), so this is a replacement. Returns the ids new to the document.
    """
    before = collect_ids(document.elements)
    document.elements = decoded
    return collect_ids(decoded) - before


def patch_style(element: Element, delta: dict[str, str | None]) -> None:
    element.style = merge_style(element.style, delta)


def apply_style_table(document: Document, by_id: StyleTable, other_rules: StyleTable) -> list[str]:
    """
    Fold a freshly decoded stylesheet into the document.

    The table is rebuilt in full: elements with an entry get that entry as
    their whole style, elements without one end up unstyled. Non-id rules
    replace `document.rules`; `#id` entries naming no element are kept there
    too, until an element with that id shows up (see adopt_orphan_rules).
    Returns the ids whose style changed.
    """
    changed = []
    live = set()
    for element in walk(document.elements):
        live.add(element.id)
        entry = by_id.get(element.id, {})
        if entry == element.style:
            continue
        element.style = dict(entry)
        changed.append(element.id)

    rules = {selector: dict(props) for selector, props in other_rules.items()}
    for element_id, props in by_id.items():
        if element_id not in live:
            rules[f"#{element_id}"] = dict(props)
    document.rules = rules
    return changed


def adopt_orphan_rules(document: Document, fresh_ids: set[str]) -> list[str]:
    """
    Give newly appeared elements the `#id` rule written for them before they existed.
    Returns the ids that adopted a rule.
    """
    adopted = []
    for element in walk(document.elements):
        selector = f"#{element.id}"
        if element.id in fresh_ids and selector in document.rules:
            element.style = document.rules.pop(selector)
            adopted.append(element.id)
    return adopted


def stylesheet_text(document: Document) -> str:
    """Non-id rules first (verbatim selectors), then one rule per styled element."""
    parts = [
        encode_rules(document.rules),
        encode_styles({element.id: element.style for element in walk(document.elements)}),
    ]
    return "\n".join(part for part in parts if part)


# ---------------------------------------------------------------------------
# Pixel arithmetic
# ---------------------------------------------------------------------------


def parse_px(value: str | None) -> float | None:
    """`"50px"` → 50.0, `"12"` → 12.0, anything else → None."""
    if value is None:
        return None
    m = _PX_RE.match(value)
    if not m:
        return None
    return float(m.group(1))


def format_px(value: float) -> str:
    if value == int(value):
        return f"{int(value)}px"
    return f"{round(value, 2)}px"


def px_offset(style: dict[str, str], prop: str, delta: float) -> str:
    """New value for `prop` after moving it by `delta` pixels (missing/unparseable = 0)."""
    current = parse_px(style.get(prop)) or 0.0
    return format_px(current + delta)
