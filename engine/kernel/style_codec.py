"""
Pagesmith Kernel — Style Table Codec

Flat stylesheet text <-> {selector: {property: value}}.

Not a CSS parser. Rules are split on `}` and then on the first `{`;
declarations on `;` and then on the first `:`. Anything that does not fit
that shape is skipped, never raised: the user is mid-edit most of the time.
"""

from __future__ import annotations

import logging
import re

from engine.kernel.types import StyleTable

logger = logging.getLogger(__name__)

_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_styles(css_text: str) -> StyleTable:
    """
    Parse stylesheet text into a style table.

    Selectors are kept as written (`#hero`, `h1`, `.card`). Property names
    keep their authored case. A selector that appears twice has its
    declarations merged, later ones winning.
    """
    table: StyleTable = {}
    text = _COMMENT_RE.sub("", css_text or "")

    segments = text.split("}")
    # The piece after the last `}` was never closed.
    if segments[-1].strip():
        logger.debug("style_codec: skipping unterminated rule %r", segments[-1].strip()[:40])

    for rule in segments[:-1]:
        if not rule.strip():
            continue
        selector, brace, body = rule.partition("{")
        selector = selector.strip()
        if not brace or not selector:
            logger.debug("style_codec: skipping rule without selector %r", rule.strip()[:40])
            continue

        declarations = parse_declarations(body)
        if not declarations:
            logger.debug("style_codec: skipping empty rule %r", selector)
            continue
        table.setdefault(selector, {}).update(declarations)

    return table


def parse_declarations(body: str) -> dict[str, str]:
    """Parse `prop: value; prop2: value2` into an ordered dict."""
    declarations: dict[str, str] = {}
    for declaration in body.split(";"):
        prop, colon, value = declaration.partition(":")
        prop = prop.strip()
        value = value.strip()
        if not colon or not prop or not value:
            if declaration.strip():
                logger.debug("style_codec: skipping declaration %r", declaration.strip())
            continue
        declarations[prop] = value
    return declarations


def encode_styles(table: StyleTable) -> str:
    """
    Emit one `#<id> { prop: value; ... }` rule per element id.

    Keys may be given with or without the leading `#`. Entries with no
    declarations produce no rule, so encode(decode(encode(t))) == encode(t).
    """
    lines = []
    for key, props in table.items():
        if not props:
            continue
        lines.append(f"{id_selector(key)} {{ {format_declarations(props)} }}")
    return "\n".join(lines)


def encode_rules(rules: StyleTable) -> str:
    """Like encode_styles, but selectors are emitted verbatim."""
    lines = []
    for selector, props in rules.items():
        if not props:
            continue
        lines.append(f"{selector} {{ {format_declarations(props)} }}")
    return "\n".join(lines)


def format_declarations(props: dict[str, str]) -> str:
    return " ".join(f"{prop}: {value};" for prop, value in props.items())


def id_selector(key: str) -> str:
    """`hero`, `#hero`, `##hero` → `#hero`."""
    return "#" + key.lstrip("#")


def is_id_selector(selector: str) -> bool:
    """True for a lone `#id` selector (no combinators, classes or pseudo parts)."""
    return bool(re.fullmatch(r"#[A-Za-z_][A-Za-z0-9_-]*", selector))


def split_id_rules(table: StyleTable) -> tuple[StyleTable, StyleTable]:
    """
    Partition a decoded table into (id entries keyed by bare id, other rules).
    """
    by_id: StyleTable = {}
    others: StyleTable = {}
    for selector, props in table.items():
        if is_id_selector(selector):
            by_id[selector[1:]] = dict(props)
        else:
            others[selector] = dict(props)
    return by_id, others


def merge_style(base: dict[str, str], delta: dict[str, str | None]) -> dict[str, str]:
    """
    Merge a partial style into an existing one.

    Unrelated properties are preserved. A delta value of None or "" removes
    the property.
    """
    merged = dict(base)
    for prop, value in delta.items():
        if value is None or str(value).strip() == "":
            merged.pop(prop, None)
        else:
            merged[prop] = str(value).strip()
    return merged
