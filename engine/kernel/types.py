"""
Pagesmith Kernel — Shared Types

Data classes used across the codecs, the synchronization controller, the
preview sandbox and the workspace backend. These are the contracts that bind
the kernel together.

Element model:
- `Element` is the canonical unit: id, tag, attributes, class, text, children, style
- `children` holds nested Elements and, for mixed content, bare text strings
- `style` is the element's `#id` entry in the style table
- `Document` owns the top-level elements plus the non-id style rules,
  script text and component-mode sources
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Union

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

# Ids must be usable as bare `#id` CSS selectors.
ELEMENT_ID_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

VOID_TAGS: frozenset[str] = frozenset({"img", "input", "br", "hr"})

# Tags whose text is emitted unescaped.
RAW_TEXT_TAGS: frozenset[str] = frozenset({"script", "style"})

# Attribute keys modeled outside `Element.attributes`.
RESERVED_ATTRIBUTES: tuple[str, ...] = ("id", "class", "style")

DEFAULT_ELEMENT_STYLE: dict[str, str] = {
    "position": "absolute",
    "left": "50px",
    "top": "50px",
}

ELEMENT_ID_PREFIX = "element-"

DEFAULT_DEBOUNCE_SECONDS = 3.0
DEFAULT_PERSIST_INTERVAL_SECONDS = 1.0

StyleTable = dict[str, dict[str, str]]


class EditOrigin(str, Enum):
    """Where an edit came from. Views are never written back along their own edge."""

    CANVAS = "canvas"
    PROPERTIES = "properties"
    MARKUP = "markup"
    STYLESHEET = "stylesheet"
    SCRIPT = "script"
    COMPONENT_SOURCE = "component_source"
    COMPONENT_CSS = "component_css"


TEXT_ORIGINS: frozenset[EditOrigin] = frozenset(
    {
        EditOrigin.MARKUP,
        EditOrigin.STYLESHEET,
        EditOrigin.SCRIPT,
        EditOrigin.COMPONENT_SOURCE,
        EditOrigin.COMPONENT_CSS,
    }
)


class SyncState(str, Enum):
    IDLE = "idle"
    APPLYING_EXTERNAL_EDIT = "applying_external_edit"
    APPLYING_DIRECT_MANIPULATION = "applying_direct_manipulation"


class EditorMode(str, Enum):
    MARKUP = "markup"
    COMPONENT = "component"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class Element:
    """
    One visual element.

    `attributes` never contains `id`, `class` or `style`; those live in
    `id`, `class_name` and `style` respectively.
    """

    id: str
    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    text: str | None = None
    children: list[Node] = field(default_factory=list)
    style: dict[str, str] = field(default_factory=dict)
    class_name: str | None = None

    @property
    def is_void(self) -> bool:
        return self.tag in VOID_TAGS

    def child_elements(self) -> list[Element]:
        return [c for c in self.children if isinstance(c, Element)]

    def copy(self) -> Element:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "tag": self.tag,
            "attributes": dict(self.attributes),
            "style": dict(self.style),
        }
        if self.class_name is not None:
            d["class_name"] = self.class_name
        if self.text is not None:
            d["text"] = self.text
        if self.children:
            d["children"] = [c.to_dict() if isinstance(c, Element) else c for c in self.children]
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Element:
        return cls(
            id=d["id"],
            tag=d["tag"],
            attributes=dict(d.get("attributes", {})),
            text=d.get("text"),
            children=[cls.from_dict(c) if isinstance(c, dict) else c for c in d.get("children", [])],
            style=dict(d.get("style", {})),
            class_name=d.get("class_name"),
        )


Node = Union[Element, str]


@dataclass
class Document:
    """
    Everything the controller owns for one page.

    `rules` holds stylesheet rules whose selector is not an element id
    (e.g. `h1 { color: red; }`); `#id` rules live on the elements.
    """

    elements: list[Element] = field(default_factory=list)
    rules: StyleTable = field(default_factory=dict)
    script: str = ""
    component_source: str = ""
    component_css: str = ""
    libraries: list[str] = field(default_factory=list)
    mode: EditorMode = EditorMode.MARKUP

    def copy(self) -> Document:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "elements": [e.to_dict() for e in self.elements],
            "rules": {k: dict(v) for k, v in self.rules.items()},
            "script": self.script,
            "component_source": self.component_source,
            "component_css": self.component_css,
            "libraries": list(self.libraries),
            "mode": self.mode.value,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Document:
        return cls(
            elements=[Element.from_dict(e) for e in d.get("elements", [])],
            rules={k: dict(v) for k, v in d.get("rules", {}).items()},
            script=d.get("script", ""),
            component_source=d.get("component_source", ""),
            component_css=d.get("component_css", ""),
            libraries=list(d.get("libraries", [])),
            mode=EditorMode(d.get("mode", EditorMode.MARKUP.value)),
        )


@dataclass
class Notice:
    """A non-fatal issue surfaced to the user."""

    kind: str  # parse_error | identity_conflict | external_resource | backend | internal
    message: str
    origin: EditOrigin | None = None
    details: dict[str, Any] | None = None
    timestamp: str = field(default_factory=lambda: now_iso())

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "origin": self.origin.value if self.origin else None,
            "details": self.details,
            "timestamp": self.timestamp,
        }


@dataclass
class ViewUpdate:
    """Texts regenerated for the editors after one applied edit."""

    origin: EditOrigin
    views: dict[str, str]


@dataclass
class MarkupDecodeResult:
    elements: list[Element]
    conflicts: list[Any] = field(default_factory=list)  # IdentityConflictWarning


@dataclass
class ApproximateMarkup:
    """
    Markup recovered from component source by pattern rewriting.
    Preview-only: it is not a decode and carries no identity guarantees.
    """

    markup: str
    approximate: bool = True
    rewritten_tags: list[str] = field(default_factory=list)


@dataclass
class CompileResult:
    """Outcome of a backend compile: an artifact path or a list of errors."""

    output_path: str | None = None
    errors: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.output_path is not None and not self.errors


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_valid_element_id(value: str) -> bool:
    """Check if a string can be used as an element id (and bare CSS selector)."""
    return bool(ELEMENT_ID_PATTERN.match(value))


def now_iso() -> str:
    """Current UTC time as ISO 8601 string."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
