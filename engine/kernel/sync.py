"""
Pagesmith Kernel — Synchronization Controller

Owns one Document and keeps five text views consistent with it:

  markup, stylesheet, script, component_source, component_css

Two kinds of input:

  Direct manipulation (canvas drag/resize, properties panel, add/remove)
    applied synchronously: the model is patched, then the derived views are
    regenerated from it. Nothing is decoded.

  Text edits (the code editors)
    the editor text is held in its view at once; decode + merge runs after
    a quiet window. A newer edit to the same view replaces the pending one.
    A direct change that regenerates a view with a pending edit is replayed
    on that edit's text instead.

Every change goes through `_apply`, which works on a copy of the Document
and commits only on success. A failed decode leaves the previous Document
and preview in place, keeps the invalid text in its view and records a
Notice. Nothing raises past this class.

The view an edit came from is never written back. While a change is being
applied the controller is not IDLE, and edits arriving in that window (an
editor echoing a programmatic update) are ignored.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import re
from collections.abc import Callable
from typing import Any

from engine.kernel.component_codec import from_component_source_approx, to_component_source
from engine.kernel.debounce import Debouncer, Throttle
from engine.kernel.errors import BackendError, ExternalResourceError, KernelError
from engine.kernel.markup_codec import decode_markup, encode_element, encode_markup
from engine.kernel.model import (
    IdFactory,
    adopt_orphan_rules,
    append_element,
    apply_style_table,
    collect_ids,
    default_style,
    find_element,
    index,
    merge_decoded,
    new_element_id,
    patch_style,
    px_offset,
    remove_element,
    style_table,
    stylesheet_text,
)
from engine.kernel.preview import (
    BABEL_CDN_URL,
    REACT_CDN_URL,
    REACT_DOM_CDN_URL,
    LibraryLoader,
    build_component_document,
    build_markup_document,
)
from engine.kernel.style_codec import decode_styles, split_id_rules
from engine.kernel.types import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_PERSIST_INTERVAL_SECONDS,
    RESERVED_ATTRIBUTES,
    TEXT_ORIGINS,
    VOID_TAGS,
    ApproximateMarkup,
    CompileResult,
    Document,
    EditOrigin,
    EditorMode,
    Element,
    Notice,
    SyncState,
    ViewUpdate,
)
from engine.kernel.workspace import WorkspaceBackend

logger = logging.getLogger(__name__)

# Views regenerated after each kind of change.
STYLE_VIEWS = (EditOrigin.STYLESHEET, EditOrigin.COMPONENT_SOURCE)
STRUCTURE_VIEWS = (EditOrigin.MARKUP, EditOrigin.STYLESHEET, EditOrigin.COMPONENT_SOURCE)

_DERIVED_VIEWS: dict[EditOrigin, tuple[EditOrigin, ...]] = {
    EditOrigin.MARKUP: STYLE_VIEWS,
    EditOrigin.STYLESHEET: (EditOrigin.COMPONENT_SOURCE,),
    EditOrigin.SCRIPT: (),
    EditOrigin.COMPONENT_SOURCE: (),
    EditOrigin.COMPONENT_CSS: (),
}

# Markup first so a stylesheet applied in the same flush sees the new elements.
_APPLY_ORDER = (
    EditOrigin.MARKUP,
    EditOrigin.STYLESHEET,
    EditOrigin.SCRIPT,
    EditOrigin.COMPONENT_SOURCE,
    EditOrigin.COMPONENT_CSS,
)

# Workspace file backing each view.
VIEW_FILES: dict[EditOrigin, str] = {
    EditOrigin.MARKUP: "index.html",
    EditOrigin.STYLESHEET: "styles.css",
    EditOrigin.SCRIPT: "script.js",
    EditOrigin.COMPONENT_SOURCE: "App.js",
    EditOrigin.COMPONENT_CSS: "App.css",
}

_MODE_FILES: dict[EditorMode, tuple[EditOrigin, ...]] = {
    EditorMode.MARKUP: (EditOrigin.MARKUP, EditOrigin.STYLESHEET, EditOrigin.SCRIPT),
    EditorMode.COMPONENT: (EditOrigin.COMPONENT_SOURCE, EditOrigin.COMPONENT_CSS),
}

ViewListener = Callable[[ViewUpdate], Any]
PreviewListener = Callable[[str], Any]
NoticeListener = Callable[[Notice], Any]
Change = Callable[[Document], Any]

_TAG_RE = re.compile(r"^[a-z][a-z0-9-]*$")


class SyncController:
    """
    Bidirectional sync between the element model and its text views.

    Usage:
        controller = SyncController(debounce_seconds=0.5)
        controller.subscribe(lambda update: editor.set_values(update.views))
        controller.on_preview(frame.set_document)

        controller.edit_markup('<h1 id="title">Hi</h1>')
        await controller.flush()
        controller.move("title", 10, 5)
    """

    def __init__(
        self,
        document: Document | None = None,
        *,
        backend: WorkspaceBackend | None = None,
        loader: LibraryLoader | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        persist_interval: float = DEFAULT_PERSIST_INTERVAL_SECONDS,
        id_factory: IdFactory | None = None,
        react_url: str = REACT_CDN_URL,
        react_dom_url: str = REACT_DOM_CDN_URL,
        babel_url: str = BABEL_CDN_URL,
    ) -> None:
        self.document = document.copy() if document is not None else Document()
        self.state = SyncState.IDLE
        self.selected: str | None = None
        self.notices: list[Notice] = []
        self.preview: str = ""
        self.preview_stale = True

        self.backend = backend
        self._loader = loader or LibraryLoader()
        self._id_factory = id_factory
        self._cdn = {"react_url": react_url, "react_dom_url": react_dom_url, "babel_url": babel_url}

        if self.document.mode is EditorMode.MARKUP:
            self.document.component_source = self._generate_component(self.document)
        self.views: dict[str, str] = {origin.value: self._render_view(origin) for origin in _APPLY_ORDER}
        # Last text per view that the model agrees with.
        self._applied: dict[str, str] = dict(self.views)

        self._debouncers: dict[EditOrigin, Debouncer[str]] = {
            origin: Debouncer(debounce_seconds, functools.partial(self._apply_text, origin), origin.value)
            for origin in _APPLY_ORDER
        }
        self._persist: Throttle[str] | None = None
        if backend is not None:
            self._persist = Throttle(persist_interval, self._persist_styles, "styles")

        self._view_listeners: list[ViewListener] = []
        self._preview_listeners: list[PreviewListener] = []
        self._notice_listeners: list[NoticeListener] = []
        self._preview_generation = 0
        self._loading = False
        self._tasks: set[asyncio.Task] = set()

    # -----------------------------------------------------------------------
    # Listeners
    # -----------------------------------------------------------------------

    def subscribe(self, callback: ViewListener) -> None:
        """Receive a ViewUpdate holding only the views that changed."""
        self._view_listeners.append(callback)

    def on_preview(self, callback: PreviewListener) -> None:
        self._preview_listeners.append(callback)

    def on_notice(self, callback: NoticeListener) -> None:
        self._notice_listeners.append(callback)

    # -----------------------------------------------------------------------
    # Direct manipulation
    # -----------------------------------------------------------------------

    def apply_style_delta(
        self,
        element_id: str,
        delta: dict[str, str | None],
        origin: EditOrigin = EditOrigin.CANVAS,
    ) -> bool:
        """Merge a partial style into one element (canvas onMove / onResize)."""

        def change(document: Document) -> None:
            patch_style(self._require(document, element_id), delta)

        return self._apply(origin, change, STYLE_VIEWS)

    def move(self, element_id: str, dx: float, dy: float) -> bool:
        def change(document: Document) -> None:
            element = self._require(document, element_id)
            patch_style(
                element,
                {"left": px_offset(element.style, "left", dx), "top": px_offset(element.style, "top", dy)},
            )

        return self._apply(EditOrigin.CANVAS, change, STYLE_VIEWS)

    def resize(self, element_id: str, dw: float, dh: float) -> bool:
        def change(document: Document) -> None:
            element = self._require(document, element_id)
            patch_style(
                element,
                {"width": px_offset(element.style, "width", dw), "height": px_offset(element.style, "height", dh)},
            )

        return self._apply(EditOrigin.CANVAS, change, STYLE_VIEWS)

    def select(self, element_id: str | None) -> Element | None:
        """Mark an element as selected. Returns a copy of it, or None."""
        if element_id is None:
            self.selected = None
            return None
        element = find_element(self.document, element_id)
        if element is None:
            self._record(KernelError(f"No element with id {element_id!r}", {"id": element_id}), EditOrigin.CANVAS)
            return None
        self.selected = element_id
        return element.copy()

    def set_style_property(self, element_id: str, name: str, value: str | None) -> bool:
        return self.apply_style_delta(element_id, {name: value}, origin=EditOrigin.PROPERTIES)

    def set_text(self, element_id: str, text: str) -> bool:
        def change(document: Document) -> None:
            element = self._require(document, element_id)
            if element.is_void:
                raise KernelError(f"<{element.tag}> cannot hold text", {"id": element_id})
            if element.child_elements():
                raise KernelError(f"Element {element_id!r} has child elements; edit its markup", {"id": element_id})
            element.text = text or None
            element.children = []

        return self._apply(EditOrigin.PROPERTIES, change, STRUCTURE_VIEWS)

    def set_image_src(self, element_id: str, src: str) -> bool:
        def change(document: Document) -> None:
            element = self._require(document, element_id)
            if element.tag != "img":
                raise KernelError(f"Element {element_id!r} is not an image", {"id": element_id})
            element.attributes["src"] = src

        return self._apply(EditOrigin.PROPERTIES, change, STRUCTURE_VIEWS)

    def add_element(
        self,
        tag: str,
        text: str | None = None,
        attributes: dict[str, str] | None = None,
    ) -> Element | None:
        """
        Create one element with a fresh id and the default style.

        Its markup is appended to the markup view as it currently reads, so
        formatting the user typed is kept.
        A tag name that is not a plain lower-case HTML name is a Notice.
        """
        tag = tag.strip().lower()
        if not _TAG_RE.match(tag):
            self._record(KernelError(f"Invalid tag name {tag!r}", {"tag": tag}), EditOrigin.CANVAS)
            return None
        attrs = dict(attributes or {})
        class_name = attrs.pop("class", None)
        for key in RESERVED_ATTRIBUTES:
            attrs.pop(key, None)

        element = Element(
            id=new_element_id(collect_ids(self.document.elements), self._id_factory),
            tag=tag,
            attributes=attrs,
            text=None if tag in VOID_TAGS else (text or None),
            style=default_style(),
            class_name=class_name,
        )

        def change(document: Document) -> None:
            append_element(document, element.copy())

        current = self.views[EditOrigin.MARKUP.value]
        snippet = encode_element(element)
        appended = f"{current.rstrip()}\n{snippet}" if current.strip() else snippet

        if not self._apply(
            EditOrigin.CANVAS,
            change,
            STRUCTURE_VIEWS,
            overrides={EditOrigin.MARKUP: appended},
        ):
            return None
        logger.info("sync: added <%s> %s", tag, element.id)
        return element

    def remove_element(self, element_id: str) -> bool:
        def change(document: Document) -> None:
            if remove_element(document, element_id) is None:
                raise KernelError(f"No element with id {element_id!r}", {"id": element_id})

        if not self._apply(EditOrigin.CANVAS, change, STRUCTURE_VIEWS):
            return False
        if self.selected is not None and find_element(self.document, self.selected) is None:
            self.selected = None
        return True

    # -----------------------------------------------------------------------
    # Text edits (debounced)
    # -----------------------------------------------------------------------

    def edit_markup(self, text: str) -> None:
        self._edit(EditOrigin.MARKUP, text)

    def edit_stylesheet(self, text: str) -> None:
        self._edit(EditOrigin.STYLESHEET, text)

    def edit_script(self, text: str) -> None:
        self._edit(EditOrigin.SCRIPT, text)

    def edit_component_source(self, text: str) -> None:
        self._edit(EditOrigin.COMPONENT_SOURCE, text)

    def edit_component_css(self, text: str) -> None:
        self._edit(EditOrigin.COMPONENT_CSS, text)

    def edit(self, origin: EditOrigin | str, text: str) -> None:
        """Route an editor change by view name. An unknown or non-text view is a Notice."""
        name = origin.value if isinstance(origin, EditOrigin) else str(origin)
        if name not in {view.value for view in TEXT_ORIGINS}:
            self._record(KernelError(f"{name} is not a text view", {"view": name}), None)
            return
        self._edit(EditOrigin(name), text)

    def pending(self) -> list[str]:
        """Views holding text that has not been decoded yet."""
        return [origin.value for origin in _APPLY_ORDER if self._debouncers[origin].pending]

    async def flush(self) -> None:
        """Apply every pending edit now, then wait for the resulting preview."""
        for origin in _APPLY_ORDER:
            await self._debouncers[origin].flush()
        await self.drain()

    async def drain(self) -> None:
        """Wait for applies and preview refreshes already in flight."""
        for debouncer in self._debouncers.values():
            await debouncer.drain()
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
        if self._persist is not None:
            await self._persist.drain()

    def close(self) -> None:
        """Drop pending edits and stop in-flight work."""
        for debouncer in self._debouncers.values():
            debouncer.cancel()
        if self._persist is not None:
            self._persist.cancel()
        for task in list(self._tasks):
            task.cancel()

    # -----------------------------------------------------------------------
    # Modes and conversion
    # -----------------------------------------------------------------------

    def set_mode(self, mode: EditorMode | str) -> None:
        """
        Switch between markup and component editing.

        Entering component mode with no component source generates one from
        the model. The component source is regenerated on every model change
        only while in markup mode. An unknown mode is a Notice.
        """
        try:
            mode = EditorMode(mode)
        except ValueError:
            self._record(KernelError(f"Unknown editor mode {mode!r}", {"mode": str(mode)}), None)
            return
        if mode is self.document.mode:
            return
        self.document.mode = mode
        logger.info("sync: mode → %s", mode.value)
        if mode is EditorMode.COMPONENT and not self.document.component_source.strip():
            self.export_component()
        self._request_preview()

    def export_component(self) -> str:
        """Regenerate the component source from the model ("Convert Code")."""

        def change(document: Document) -> None:
            document.component_source = self._generate_component(document)

        self._apply(EditOrigin.MARKUP, change, (EditOrigin.COMPONENT_SOURCE,), supersede=True)
        return self.views[EditOrigin.COMPONENT_SOURCE.value]

    def convert_component_approx(self) -> ApproximateMarkup:
        """Approximate markup for the component source. Never applied to the model."""
        return from_component_source_approx(self.views[EditOrigin.COMPONENT_SOURCE.value])

    def declare_library(self, url: str) -> None:
        url = url.strip()
        if not url or url in self.document.libraries:
            return
        self.document.libraries.append(url)
        logger.info("sync: declared library %s", url)
        self._request_preview()

    def style_table(self) -> dict[str, dict[str, str]]:
        return style_table(self.document)

    # -----------------------------------------------------------------------
    # Preview
    # -----------------------------------------------------------------------

    def preview_document(self, libraries: list[str] | None = None) -> str:
        """
        Assemble the preview from the last applied texts.

        Without `libraries`, only sources the loader already holds are inlined.
        """
        if libraries is None:
            libraries = [
                source
                for source in (self._loader.cached(url) for url in self.document.libraries)
                if source is not None
            ]
        document = self.document
        if document.mode is EditorMode.COMPONENT:
            return build_component_document(document.component_source, document.component_css, libraries, **self._cdn)
        return build_markup_document(
            self._applied[EditOrigin.MARKUP.value],
            self._applied[EditOrigin.STYLESHEET.value],
            document.script,
            libraries,
        )

    async def refresh_preview(self) -> str | None:
        """
        Load declared libraries and rebuild the preview.

        Returns None (and keeps the previous preview) when a library fails
        or a newer refresh started meanwhile.
        """
        self._preview_generation += 1
        generation = self._preview_generation
        self.preview_stale = False
        try:
            libraries = await self._loader.load_all(list(self.document.libraries))
        except ExternalResourceError as e:
            self._record(e, None)
            return None
        if generation != self._preview_generation:
            logger.debug("sync: preview %d superseded", generation)
            return None

        self.preview = self.preview_document(libraries)
        for callback in self._preview_listeners:
            callback(self.preview)
        return self.preview

    # -----------------------------------------------------------------------
    # Backend
    # -----------------------------------------------------------------------

    async def save(self, filename: str | None = None) -> bool:
        """Save one view by file name, or every view of the current mode."""
        backend = self._require_backend()
        if backend is None:
            return False
        if filename is None:
            origins = _MODE_FILES[self.document.mode]
        else:
            origin = _origin_for_file(filename)
            if origin is None:
                self._record(BackendError(f"No view is saved as {filename!r}", {"filename": filename}), None)
                return False
            origins = (origin,)

        try:
            for origin in origins:
                await backend.save(VIEW_FILES[origin], self.views[origin.value])
        except BackendError as e:
            self._record(e, None)
            return False
        return True

    async def compile(self, filename: str | None = None) -> CompileResult | None:
        """Compile the component source. Failures and syntax errors become notices."""
        backend = self._require_backend()
        if backend is None:
            return None
        filename = filename or VIEW_FILES[EditOrigin.COMPONENT_SOURCE]
        origin = _origin_for_file(filename) or EditOrigin.COMPONENT_SOURCE

        try:
            result = await backend.compile(filename, self.views[origin.value])
        except BackendError as e:
            self._record(e, None)
            return None
        if result.errors:
            self._record(BackendError("Compilation failed", {"errors": result.errors}), origin)
        else:
            logger.info("sync: compiled %s → %s", filename, result.output_path)
        return result

    async def load_files(self) -> list[str]:
        """Pull the workspace files and apply each one that backs a view."""
        backend = self._require_backend()
        if backend is None:
            return []
        try:
            files = await backend.list_files()
        except BackendError as e:
            self._record(e, None)
            return []

        loaded = []
        # Views regenerated between two loaded files are not written back.
        self._loading = True
        try:
            for origin in _APPLY_ORDER:
                filename = VIEW_FILES[origin]
                if filename not in files:
                    continue
                self._debouncers[origin].cancel()
                self.views[origin.value] = files[filename]
                if self._apply_edit(origin, files[filename]):
                    loaded.append(filename)
        finally:
            self._loading = False
        logger.info("sync: loaded %s", ", ".join(loaded) or "no files")
        return loaded

    async def _persist_styles(self, css: str) -> None:
        try:
            await self.backend.save(VIEW_FILES[EditOrigin.STYLESHEET], css)
        except BackendError as e:
            self._record(e, EditOrigin.STYLESHEET)

    def _require_backend(self) -> WorkspaceBackend | None:
        if self.backend is None:
            self._record(BackendError("No workspace backend configured"), None)
        return self.backend

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _edit(self, origin: EditOrigin, text: str) -> None:
        if self.state is not SyncState.IDLE:
            logger.debug("sync: ignoring %s edit while %s", origin.value, self.state.value)
            return

        view = origin.value
        debouncer = self._debouncers[origin]
        self.views[view] = text
        if text == self._applied[view]:
            if debouncer.cancel():
                logger.debug("sync: %s reverted to applied text", view)
            return

        if _running_loop() is None:
            self._apply_edit(origin, text)
            return
        debouncer.push(text)

    async def _apply_text(self, origin: EditOrigin, text: str) -> None:
        self._apply_edit(origin, text)

    def _apply_edit(self, origin: EditOrigin, text: str) -> bool:
        return self._apply(
            origin,
            functools.partial(self._decode_into, origin, text),
            _DERIVED_VIEWS[origin],
            text=text,
        )

    def _decode_into(self, origin: EditOrigin, text: str, document: Document) -> list[KernelError]:
        if origin is EditOrigin.MARKUP:
            result = decode_markup(text, known=index(document.elements), id_factory=self._id_factory)
            fresh = merge_decoded(document, result.elements)
            adopted = adopt_orphan_rules(document, fresh)
            if adopted:
                logger.debug("sync: %s adopted existing #id rules", ", ".join(adopted))
            return list(result.conflicts)

        if origin is EditOrigin.STYLESHEET:
            table = decode_styles(text)
            if not table and text.strip():
                # Nothing recognizable yet (e.g. an unclosed first rule); keep what we have.
                logger.debug("sync: stylesheet has no complete rule, keeping previous styles")
                return []
            by_id, others = split_id_rules(table)
            apply_style_table(document, by_id, others)
        elif origin is EditOrigin.SCRIPT:
            document.script = text
        elif origin is EditOrigin.COMPONENT_SOURCE:
            document.component_source = text
        elif origin is EditOrigin.COMPONENT_CSS:
            document.component_css = text
        return []

    def _apply(
        self,
        origin: EditOrigin,
        change: Change,
        targets: tuple[EditOrigin, ...],
        *,
        text: str | None = None,
        overrides: dict[EditOrigin, str] | None = None,
        supersede: bool | None = None,
    ) -> bool:
        """
        Run `change` against a copy of the Document and commit it.

        On success the `targets` views are regenerated from the new model
        and the preview is scheduled. On failure a Notice is recorded and
        nothing else moves. Returns whether the change was committed.
        """
        if self.state is not SyncState.IDLE:
            logger.debug("sync: ignoring %s change while %s", origin.value, self.state.value)
            return False

        direct = origin not in TEXT_ORIGINS
        self.state = SyncState.APPLYING_DIRECT_MANIPULATION if direct else SyncState.APPLYING_EXTERNAL_EDIT
        try:
            working = self.document.copy()
            try:
                warnings = change(working) or []
                if working.mode is EditorMode.MARKUP and origin is not EditOrigin.COMPONENT_SOURCE:
                    working.component_source = self._generate_component(working)
            except KernelError as e:
                self._record(e, origin)
                return False
            except Exception as e:
                logger.exception("sync: unexpected error applying %s change", origin.value)
                self._record(KernelError(f"Unexpected error: {e}", {"error": type(e).__name__}), origin)
                return False

            self.document = working
            if text is not None:
                self._applied[origin.value] = text
                logger.info("sync: applied %s edit (%d chars)", origin.value, len(text))
            for warning in warnings:
                self._record(warning, origin)
            self._propagate(
                origin,
                targets,
                change=change,
                supersede=direct if supersede is None else supersede,
                overrides=overrides or {},
            )
        finally:
            self.state = SyncState.IDLE

        self._request_preview()
        return True

    def _propagate(
        self,
        origin: EditOrigin,
        targets: tuple[EditOrigin, ...],
        *,
        change: Change,
        supersede: bool,
        overrides: dict[EditOrigin, str],
    ) -> None:
        changed: dict[str, str] = {}
        for target in targets:
            if target is origin:
                continue
            view = target.value
            debouncer = self._debouncers[target]

            if target in overrides:
                new_text = overrides[target]
                if debouncer.pending:
                    # The pending decode will pick up the appended text.
                    debouncer.push(new_text)
                elif self.views[view] == self._applied[view]:
                    self._applied[view] = new_text
            elif debouncer.pending:
                # Text edits leave other pending edits alone.
                if not supersede:
                    continue
                new_text = self._fold_pending(target, change)
                if new_text is None:
                    continue
            else:
                new_text = self._render_view(target)
                self._applied[view] = new_text

            if self.views[view] != new_text:
                self.views[view] = new_text
                changed[view] = new_text

        if not changed:
            return
        if EditOrigin.STYLESHEET.value in changed:
            self._persist_push(changed[EditOrigin.STYLESHEET.value])
        update = ViewUpdate(origin=origin, views=changed)
        for callback in self._view_listeners:
            callback(update)

    def _fold_pending(self, target: EditOrigin, change: Change) -> str | None:
        """
        Replay a direct change on top of a view's pending text.

        The pending text is decoded into a scratch copy of the model, the
        change is run again there and the result is pushed back as the new
        pending text, so neither the typing nor the change is lost. Returns
        the folded text, or None when the pending text is left as it was.
        """
        debouncer = self._debouncers[target]
        pending = debouncer.peek()
        scratch = self.document.copy()
        try:
            self._decode_into(target, pending, scratch)
            change(scratch)
        except Exception as e:
            # Pending text that cannot take the change is decoded as typed.
            logger.debug("sync: could not fold change into pending %s edit: %s", target.value, e)
            return None
        folded = self._render_view(target, scratch)
        if folded != pending:
            debouncer.push(folded)
            logger.info("sync: folded change into pending %s edit", target.value)
        return folded

    def _render_view(self, target: EditOrigin, document: Document | None = None) -> str:
        if document is None:
            document = self.document
        if target is EditOrigin.MARKUP:
            return encode_markup(document.elements)
        if target is EditOrigin.STYLESHEET:
            return stylesheet_text(document)
        if target is EditOrigin.SCRIPT:
            return document.script
        if target is EditOrigin.COMPONENT_SOURCE:
            return document.component_source
        return document.component_css

    def _generate_component(self, document: Document) -> str:
        return to_component_source(document.elements, style_table(document))

    def _request_preview(self) -> None:
        loop = _running_loop()
        if loop is None:
            self.preview_stale = True
            return
        task = loop.create_task(self.refresh_preview())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _persist_push(self, css: str) -> None:
        if self._persist is not None and not self._loading and _running_loop() is not None:
            self._persist.push(css)

    def _record(self, error: KernelError, origin: EditOrigin | None) -> Notice:
        notice = Notice(
            kind=error.kind,
            message=error.message,
            origin=origin,
            details=error.details or None,
        )
        logger.warning("sync: %s notice: %s", notice.kind, notice.message)
        self.notices.append(notice)
        for callback in self._notice_listeners:
            callback(notice)
        return notice

    @staticmethod
    def _require(document: Document, element_id: str) -> Element:
        element = find_element(document, element_id)
        if element is None:
            raise KernelError(f"No element with id {element_id!r}", {"id": element_id})
        return element


def _origin_for_file(filename: str) -> EditOrigin | None:
    for origin, name in VIEW_FILES.items():
        if name == filename:
            return origin
    return None


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
