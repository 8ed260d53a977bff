"""
Workspace service — user files on disk, dependency manifest, bundling.

Files live flat in UPLOADS_DIR. Every save of a script file rewrites
package.json from that file's imports. Compile checks syntax, then writes a
self-contained preview document into DIST_DIR (React and Babel from the
CDN, the component compiled in the page).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from backend.config import settings
from backend.services.dependencies import SCRIPT_SUFFIXES, analyze_source, manifest_json
from engine.kernel.errors import BackendError
from engine.kernel.preview import build_component_document, build_markup_document
from engine.kernel.types import CompileResult
from engine.kernel.workspace import PROTECTED_FILES, WorkspaceBackend

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"

_FILENAME_RE = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$")


class WorkspaceError(Exception):
    """Client-side problem with a save/compile request (bad or protected name)."""


class CompileError(Exception):
    """Source did not parse; `errors` are `line:column: message` strings."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(f"{len(errors)} syntax error(s)")
        self.errors = errors


@dataclass
class CompileOutput:
    output: str
    dependencies: list[str] = field(default_factory=list)


class WorkspaceService:
    """Reads directories from settings on every call so tests can repoint them."""

    @property
    def uploads_dir(self) -> Path:
        return Path(settings.UPLOADS_DIR)

    @property
    def dist_dir(self) -> Path:
        return Path(settings.DIST_DIR)

    def save(self, filename: str, content: str) -> list[str]:
        """
        Write one file. Script files also refresh package.json.

        Returns the dependencies found (empty for non-script files).

        Raises:
            WorkspaceError: invalid or protected filename.
        """
        path = self._path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info("workspace: saved %s (%d bytes)", filename, len(content))

        if not filename.endswith(SCRIPT_SUFFIXES):
            return []
        dependencies = analyze_source(content).dependencies
        self._write_manifest(dependencies)
        return dependencies

    def list_files(self) -> dict[str, str]:
        """filename → content for every user file (the manifest excluded)."""
        if not self.uploads_dir.is_dir():
            return {}
        files = {}
        for path in sorted(self.uploads_dir.iterdir()):
            if path.is_file() and path.name != MANIFEST_FILE:
                files[path.name] = path.read_text(encoding="utf-8")
        return files

    def compile(self, filename: str, content: str) -> CompileOutput:
        """
        Save, resolve dependencies and bundle into DIST_DIR.

        Raises:
            WorkspaceError: invalid or protected filename.
            CompileError: the script has syntax errors.
        """
        path = self._path(filename)
        stem = path.stem
        dependencies: list[str] = []

        if filename.endswith(SCRIPT_SUFFIXES):
            analysis = analyze_source(content)
            if analysis.errors:
                logger.info("workspace: %s has %d syntax error(s)", filename, len(analysis.errors))
                raise CompileError(analysis.errors)
            dependencies = self.save(filename, content)
            css = self._read(f"{stem}.css")
            document = build_component_document(
                content,
                css,
                react_url=settings.REACT_CDN_URL,
                react_dom_url=settings.REACT_DOM_CDN_URL,
                babel_url=settings.BABEL_CDN_URL,
            )
        elif filename.endswith((".html", ".htm")):
            self.save(filename, content)
            document = build_markup_document(content, self._read("styles.css"), self._read("script.js"))
        else:
            raise WorkspaceError(f"Cannot compile {filename}")

        self.dist_dir.mkdir(parents=True, exist_ok=True)
        (self.dist_dir / f"{stem}.html").write_text(document, encoding="utf-8")
        logger.info("workspace: compiled %s → dist/%s.html", filename, stem)
        return CompileOutput(output=f"/dist/{stem}.html", dependencies=dependencies)

    def dist_path(self, name: str) -> Path | None:
        """Path of a built artifact, or None if absent / not a plain name."""
        if not _FILENAME_RE.match(name):
            return None
        path = self.dist_dir / name
        return path if path.is_file() else None

    def _path(self, filename: str) -> Path:
        if not _FILENAME_RE.match(filename) or ".." in filename:
            raise WorkspaceError(f"Invalid filename {filename!r}")
        if filename in PROTECTED_FILES or filename == MANIFEST_FILE:
            raise WorkspaceError(f"Cannot modify {filename}")
        return self.uploads_dir / filename

    def _read(self, filename: str) -> str:
        path = self.uploads_dir / filename
        return path.read_text(encoding="utf-8") if path.is_file() else ""

    def _write_manifest(self, dependencies: list[str]) -> None:
        (self.uploads_dir / MANIFEST_FILE).write_text(manifest_json(dependencies), encoding="utf-8")
        logger.debug("workspace: manifest lists %s", ", ".join(dependencies) or "base dependencies only")


# Singleton instance
workspace_service = WorkspaceService()


class LocalWorkspaceBackend(WorkspaceBackend):
    """The kernel's backend interface, served in-process by WorkspaceService."""

    def __init__(self, service: WorkspaceService | None = None) -> None:
        self.service = service or workspace_service

    async def save(self, filename: str, content: str) -> None:
        try:
            self.service.save(filename, content)
        except (WorkspaceError, OSError) as e:
            raise BackendError(str(e), {"filename": filename}) from e

    async def compile(self, filename: str, content: str) -> CompileResult:
        try:
            result = self.service.compile(filename, content)
        except CompileError as e:
            return CompileResult(errors=e.errors)
        except (WorkspaceError, OSError) as e:
            raise BackendError(str(e), {"filename": filename}) from e
        return CompileResult(output_path=result.output, dependencies=result.dependencies)

    async def list_files(self) -> dict[str, str]:
        try:
            return self.service.list_files()
        except OSError as e:
            raise BackendError(str(e)) from e
