"""
Pagesmith Kernel — Workspace Backend

The persistence / dependency / bundling collaborator, seen from the kernel.
The kernel only calls save, compile and list_files; what the backend does
with the files (dependency manifest, bundling) is its own business.

Implement with HttpBackend against the workspace service, or MemoryBackend
for tests.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from engine.kernel.errors import BackendError
from engine.kernel.types import CompileResult

logger = logging.getLogger(__name__)

PROTECTED_FILES: frozenset[str] = frozenset({"index.js"})


class WorkspaceBackend:
    """
    Abstract backend interface.
    All methods raise BackendError on failure.
    """

    async def save(self, filename: str, content: str) -> None:
        raise NotImplementedError

    async def compile(self, filename: str, content: str) -> CompileResult:
        raise NotImplementedError

    async def list_files(self) -> dict[str, str]:
        raise NotImplementedError


class MemoryBackend(WorkspaceBackend):
    """In-memory backend for testing. Compile just records the request."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.saves: list[tuple[str, str]] = []
        self.compiles: list[tuple[str, str]] = []
        self.fail_with: str | None = None

    async def save(self, filename: str, content: str) -> None:
        self._check(filename)
        self.files[filename] = content
        self.saves.append((filename, content))

    async def compile(self, filename: str, content: str) -> CompileResult:
        self._check(filename)
        self.files[filename] = content
        self.compiles.append((filename, content))
        stem = filename.rsplit(".", 1)[0]
        return CompileResult(output_path=f"/dist/{stem}.html")

    async def list_files(self) -> dict[str, str]:
        if self.fail_with:
            raise BackendError(self.fail_with)
        return dict(self.files)

    def _check(self, filename: str) -> None:
        if self.fail_with:
            raise BackendError(self.fail_with, {"filename": filename})
        if filename in PROTECTED_FILES:
            raise BackendError(f"Cannot modify {filename}", {"filename": filename})


class HttpBackend(WorkspaceBackend):
    """
    Talks to the workspace service (`backend.main`) over HTTP.

    Transport errors and non-2xx responses become BackendError.
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._timeout = timeout

    async def save(self, filename: str, content: str) -> None:
        await self._request("POST", "/save", {"filename": filename, "content": content})
        logger.info("workspace: saved %s (%d bytes)", filename, len(content))

    async def compile(self, filename: str, content: str) -> CompileResult:
        try:
            data = await self._request("POST", "/compile", {"filename": filename, "content": content})
        except BackendError as e:
            # The service reports syntax errors as a 400 carrying an errors list.
            errors = e.details.get("errors")
            if errors:
                return CompileResult(errors=[str(err) for err in errors])
            raise
        return CompileResult(
            output_path=data.get("output"),
            dependencies=list(data.get("dependencies", [])),
        )

    async def list_files(self) -> dict[str, str]:
        data = await self._request("GET", "/files")
        return {str(k): str(v) for k, v in data.items()}

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, json=payload)
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise BackendError(
                f"{method} {path} returned {response.status_code}",
                {"status": response.status_code, **_error_body(response)},
            )
        return response.json()


def _error_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"detail": response.text}
    if isinstance(body, dict):
        detail = body.get("detail", body)
        if isinstance(detail, dict):
            return detail
        return {"detail": detail}
    return {"detail": body}
