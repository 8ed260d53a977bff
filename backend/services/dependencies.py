"""
Dependency resolver — import declarations → package manifest.

Parses user component source with tree-sitter (TSX grammar, which accepts
plain JavaScript + JSX as well) and collects the bare module specifiers it
imports. Relative and absolute paths are local files, not packages.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import tree_sitter_typescript as _ts_mod
from tree_sitter import Language, Node, Parser

logger = logging.getLogger(__name__)

_LANG = Language(_ts_mod.language_tsx())
_PARSER = Parser(_LANG)

# Always present in the manifest; the preview runtime needs them.
BASE_DEPENDENCIES: tuple[str, ...] = ("react", "react-dom")

SCRIPT_SUFFIXES: tuple[str, ...] = (".js", ".jsx", ".ts", ".tsx", ".mjs")


@dataclass
class SourceAnalysis:
    """What one parse of a source file tells us."""

    dependencies: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def analyze_source(code: str) -> SourceAnalysis:
    """
    Parse `code` once; collect package imports and syntax errors.

    Errors are `line:column: message` strings (1-based), in source order.
    """
    tree = _PARSER.parse(code.encode("utf-8"))
    root = tree.root_node

    dependencies: list[str] = []
    for node in root.children:
        specifier = _import_specifier(node)
        if specifier is None:
            continue
        name = package_name(specifier)
        if name and name not in dependencies:
            dependencies.append(name)

    errors = _collect_errors(root) if root.has_error else []
    return SourceAnalysis(dependencies=dependencies, errors=errors)


def extract_dependencies(code: str) -> list[str]:
    return analyze_source(code).dependencies


def package_name(specifier: str) -> str | None:
    """
    Package a module specifier belongs to.

    `lodash/merge` → `lodash`, `@scope/pkg/sub` → `@scope/pkg`;
    relative or absolute paths → None.
    """
    specifier = specifier.strip()
    if not specifier or specifier.startswith((".", "/")):
        return None
    parts = specifier.split("/")
    if specifier.startswith("@"):
        if len(parts) < 2 or not parts[1]:
            return None
        return "/".join(parts[:2])
    return parts[0]


def build_manifest(dependencies: list[str], name: str = "pagesmith-workspace") -> dict[str, Any]:
    """package.json contents for the workspace. Versions are left to the installer."""
    deps = {dep: "latest" for dep in BASE_DEPENDENCIES}
    for dep in dependencies:
        deps.setdefault(dep, "latest")
    return {
        "name": name,
        "version": "1.0.0",
        "private": True,
        "main": "index.js",
        "dependencies": deps,
    }


def manifest_json(dependencies: list[str]) -> str:
    return json.dumps(build_manifest(dependencies), indent=2) + "\n"


# ---------------------------------------------------------------------------
# Tree walking
# ---------------------------------------------------------------------------


def _import_specifier(node: Node) -> str | None:
    """Module specifier for `import ... from "x"` and `export ... from "x"`."""
    if node.type not in ("import_statement", "export_statement"):
        return None
    source = node.child_by_field_name("source")
    if source is None or source.type != "string":
        return None
    return _string_value(source)


def _string_value(node: Node) -> str:
    for child in node.children:
        if child.type == "string_fragment":
            return child.text.decode()
    # Empty string literal: just the quotes.
    return node.text.decode()[1:-1]


def _collect_errors(root: Node) -> list[str]:
    errors: list[str] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_missing:
            errors.append(_format_error(node, f"missing {node.type!r}"))
            continue
        if node.type == "ERROR":
            snippet = node.text.decode(errors="replace").strip().splitlines()
            near = snippet[0][:40] if snippet else ""
            errors.append(_format_error(node, f"unexpected syntax near {near!r}"))
            continue
        if node.has_error:
            stack.extend(reversed(node.children))
    return errors


def _format_error(node: Node, message: str) -> str:
    row, column = node.start_point
    return f"{row + 1}:{column + 1}: {message}"
