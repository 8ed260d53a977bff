"""
Pagesmith Kernel — Live Preview Sandbox

Builds the complete HTML document the preview iframe renders. Two shapes:

  markup mode     — user markup + stylesheet + script, as typed
  component mode  — React/ReactDOM from CDN, the component source compiled
                    in-frame by Babel standalone, mounted into #root

The frame is sandboxed with `allow-scripts` only: scripts run, but the
document gets an opaque origin, cannot touch the host page and cannot
navigate the top window.

User-declared script libraries are fetched ahead of assembly by
LibraryLoader and inlined, so a slow CDN never leaves a half-built preview.
"""

from __future__ import annotations

import logging
import re
from html import escape as _html_escape

import chevron
import httpx

from engine.kernel.component_codec import component_name
from engine.kernel.errors import ExternalResourceError

logger = logging.getLogger(__name__)

SANDBOX_PERMISSIONS = "allow-scripts"

REACT_CDN_URL = "https://unpkg.com/react@18/umd/react.development.js"
REACT_DOM_CDN_URL = "https://unpkg.com/react-dom@18/umd/react-dom.development.js"
BABEL_CDN_URL = "https://unpkg.com/@babel/standalone/babel.min.js"

REACT_HOOKS: tuple[str, ...] = (
    "useState",
    "useEffect",
    "useRef",
    "useCallback",
    "useContext",
    "useReducer",
    "useMemo",
    "useImperativeHandle",
    "useLayoutEffect",
    "useDebugValue",
)

_IMPORT_RE = re.compile(r"""^[ \t]*import\s(?:[^;'"]*?\sfrom\s*)?['"][^'"]+['"][ \t]*;?""", re.MULTILINE)
_EXPORT_DECL_RE = re.compile(r"export\s+default\s+(async\s+function|function|class)\b")
_EXPORT_NAME_RE = re.compile(r"export\s+default\s+[A-Z]\w*[ \t]*(?:;|$)", re.MULTILINE)

EXPORTED_COMPONENT = "__Exported"
_EXPORT_EXPR_RE = re.compile(r"export\s+default\s+")
_NAMED_EXPORT_RE = re.compile(r"\bexport\s+(?=(?:const|let|var|function|class)\b)")
_CLOSE_SCRIPT_RE = re.compile(r"</(script)", re.IGNORECASE)
_CLOSE_STYLE_RE = re.compile(r"</(style)", re.IGNORECASE)


MARKUP_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
{{#libraries}}
<script>
{{{source}}}
</script>
{{/libraries}}
<style>
{{{css}}}
</style>
</head>
<body>
{{{markup}}}
<script>
{{{script}}}
</script>
</body>
</html>"""


COMPONENT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<script crossorigin src="{{react_url}}"></script>
<script crossorigin src="{{react_dom_url}}"></script>
<script src="{{babel_url}}"></script>
{{#libraries}}
<script>
{{{source}}}
</script>
{{/libraries}}
<style>
{{{css}}}
</style>
</head>
<body>
<div id="root"></div>
<script type="text/babel" data-presets="react">
{{{script}}}
</script>
</body>
</html>"""


# ---------------------------------------------------------------------------
# Document assembly
# ---------------------------------------------------------------------------


def build_markup_document(
    markup: str,
    css: str,
    script: str,
    libraries: list[str] | tuple[str, ...] = (),
) -> str:
    """Assemble the markup-mode preview document. `libraries` are script sources, not URLs."""
    return chevron.render(
        MARKUP_TEMPLATE,
        {
            "markup": markup,
            "css": _escape_style(css),
            "script": _escape_script(script),
            "libraries": [{"source": _escape_script(src)} for src in libraries],
        },
    )


def build_component_document(
    source: str,
    css: str,
    libraries: list[str] | tuple[str, ...] = (),
    *,
    react_url: str = REACT_CDN_URL,
    react_dom_url: str = REACT_DOM_CDN_URL,
    babel_url: str = BABEL_CDN_URL,
) -> str:
    """Assemble the component-mode preview document around prepare_component_script()."""
    return chevron.render(
        COMPONENT_TEMPLATE,
        {
            "react_url": react_url,
            "react_dom_url": react_dom_url,
            "babel_url": babel_url,
            "css": _escape_style(css),
            "script": _escape_script(prepare_component_script(source)),
            "libraries": [{"source": _escape_script(src)} for src in libraries],
        },
    )


def prepare_component_script(source: str) -> str:
    """
    Turn module-style component source into a self-mounting script.

    Imports are removed (React comes from the window globals, hooks are bound
    by name), `export default` is unwrapped, and the exported component is
    rendered into #root.
    """
    code = _IMPORT_RE.sub("", source or "")

    if _EXPORT_DECL_RE.search(code) or _EXPORT_NAME_RE.search(code):
        name = component_name(code)
        code = _EXPORT_DECL_RE.sub(r"\1", code)
        code = _EXPORT_NAME_RE.sub("", code)
    elif _EXPORT_EXPR_RE.search(code):
        # export default memo(App), export default () => ...
        name = EXPORTED_COMPONENT
        code = _EXPORT_EXPR_RE.sub(f"const {name} = ", code, count=1)
    else:
        name = component_name(code)
    code = _NAMED_EXPORT_RE.sub("", code)

    hooks = "\n".join(f"  var {hook} = React.{hook};" for hook in REACT_HOOKS)
    return (
        "(function() {\n"
        "  var React = window.React;\n"
        "  var ReactDOM = window.ReactDOM;\n"
        f"{hooks}\n"
        f"{code.strip()}\n"
        f"  ReactDOM.createRoot(document.getElementById('root')).render(<{name} />);\n"
        "})();"
    )


def sandbox_frame(document: str, title: str = "Live Preview") -> str:
    """Wrap a preview document in a sandboxed iframe via srcdoc."""
    return (
        f'<iframe title="{_html_escape(title)}" sandbox="{SANDBOX_PERMISSIONS}" '
        f'srcdoc="{_html_escape(document, quote=True)}"></iframe>'
    )


def _escape_script(text: str) -> str:
    """Keep inlined script text from closing its own <script> element."""
    return _CLOSE_SCRIPT_RE.sub(r"<\\/\1", text or "")


def _escape_style(text: str) -> str:
    return _CLOSE_STYLE_RE.sub(r"<\\/\1", text or "")


# ---------------------------------------------------------------------------
# Library loading
# ---------------------------------------------------------------------------


class LibraryLoader:
    """
    Fetches user-declared script libraries and caches them by URL.

    Pass an `httpx.AsyncClient` to share a connection pool (or a mock
    transport in tests); otherwise a short-lived client is opened per load.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        self._client = client
        self._timeout = timeout
        self._cache: dict[str, str] = {}

    def cached(self, url: str) -> str | None:
        return self._cache.get(url)

    async def load(self, url: str) -> str:
        """
        Return the library source for `url`.

        Raises:
            ExternalResourceError: transport failure or non-2xx response.
        """
        if url in self._cache:
            return self._cache[url]

        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExternalResourceError(f"Failed to load library {url}: {e}", {"url": url}) from e

        logger.info("preview: loaded library %s (%d bytes)", url, len(response.text))
        self._cache[url] = response.text
        return response.text

    async def load_all(self, urls: list[str]) -> list[str]:
        """Load in declaration order. The first failure aborts the batch."""
        return [await self.load(url) for url in urls]
