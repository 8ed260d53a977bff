"""
Pagesmith Workspace Backend — in-memory and HTTP implementations.
"""

import json

import httpx
import pytest

from engine.kernel.errors import BackendError
from engine.kernel.workspace import HttpBackend, MemoryBackend


class TestMemoryBackend:
    async def test_save_and_list(self):
        backend = MemoryBackend({"App.js": "old"})
        await backend.save("App.js", "new")
        assert await backend.list_files() == {"App.js": "new"}
        assert backend.saves == [("App.js", "new")]

    async def test_compile_names_artifact_after_stem(self):
        result = await MemoryBackend().compile("Landing.js", "code")
        assert result.output_path == "/dist/Landing.html"
        assert result.ok

    async def test_protected_file(self):
        with pytest.raises(BackendError) as exc_info:
            await MemoryBackend().save("index.js", "x")
        assert exc_info.value.details == {"filename": "index.js"}


def _service(request: httpx.Request) -> httpx.Response:
    """A stand-in for the workspace service routes."""
    if request.url.path == "/files":
        return httpx.Response(200, json={"App.js": "code"})
    body = json.loads(request.content)
    if request.url.path == "/save":
        if body["filename"] == "index.js":
            return httpx.Response(400, json={"detail": "Cannot modify index.js"})
        return httpx.Response(200, json={"filename": body["filename"], "dependencies": []})
    if request.url.path == "/compile":
        if "broken" in body["content"]:
            return httpx.Response(400, json={"errors": ["1:6: Unexpected token"]})
        return httpx.Response(200, json={"output": "/dist/App.html", "dependencies": ["react", "react-dom"]})
    return httpx.Response(404, json={"detail": "Not Found"})


@pytest.fixture
async def http_backend():
    async with httpx.AsyncClient(transport=httpx.MockTransport(_service)) as client:
        yield HttpBackend("http://workspace.test/", client)


class TestHttpBackend:
    async def test_list_files(self, http_backend):
        assert await http_backend.list_files() == {"App.js": "code"}

    async def test_save(self, http_backend):
        await http_backend.save("App.js", "code")

    async def test_save_rejected(self, http_backend):
        with pytest.raises(BackendError) as exc_info:
            await http_backend.save("index.js", "x")
        assert exc_info.value.details == {"status": 400, "detail": "Cannot modify index.js"}

    async def test_compile_ok(self, http_backend):
        result = await http_backend.compile("App.js", "function App() {}")
        assert result.output_path == "/dist/App.html"
        assert result.dependencies == ["react", "react-dom"]
        assert result.errors == []

    async def test_compile_syntax_errors_are_a_result(self, http_backend):
        result = await http_backend.compile("App.js", "broken(")
        assert not result.ok
        assert result.errors == ["1:6: Unexpected token"]

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(BackendError):
                await HttpBackend("http://workspace.test", client).list_files()
