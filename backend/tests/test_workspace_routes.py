"""Integration tests for the workspace routes: save, files, compile, dist."""

from __future__ import annotations

import json
import re

APP_SOURCE = (
    "import React from 'react';\n"
    "import axios from 'axios';\n"
    "import './App.css';\n"
    "\n"
    "export default function App() {\n"
    "  return <p>Hi</p>;\n"
    "}\n"
)


# ── save ────────────────────────────────────────────────────────────────────


class TestSave:
    """Tests for POST /save."""

    async def test_save_script_writes_file_and_manifest(self, async_client, workspace_dirs):
        uploads, _ = workspace_dirs
        res = await async_client.post("/save", json={"filename": "App.js", "content": APP_SOURCE})

        assert res.status_code == 200
        assert res.json() == {"filename": "App.js", "dependencies": ["react", "axios"]}
        assert (uploads / "App.js").read_text() == APP_SOURCE

        manifest = json.loads((uploads / "package.json").read_text())
        assert manifest["dependencies"] == {"react": "latest", "react-dom": "latest", "axios": "latest"}

    async def test_save_stylesheet_has_no_dependencies(self, async_client, workspace_dirs):
        uploads, _ = workspace_dirs
        res = await async_client.post("/save", json={"filename": "styles.css", "content": "h1 { color: red; }"})

        assert res.json()["dependencies"] == []
        assert not (uploads / "package.json").exists()

    async def test_save_protected_file(self, async_client):
        """index.js is the bundle entry point and cannot be overwritten."""
        res = await async_client.post("/save", json={"filename": "index.js", "content": "x"})
        assert res.status_code == 400
        assert res.json()["detail"] == "Cannot modify index.js"

    async def test_save_manifest_directly_is_rejected(self, async_client):
        res = await async_client.post("/save", json={"filename": "package.json", "content": "{}"})
        assert res.status_code == 400

    async def test_save_path_traversal_is_rejected(self, async_client):
        res = await async_client.post("/save", json={"filename": "../evil.js", "content": "x"})
        assert res.status_code == 400

    async def test_save_unknown_field(self, async_client):
        res = await async_client.post("/save", json={"filename": "a.css", "content": "", "mode": "x"})
        assert res.status_code == 422


# ── files ───────────────────────────────────────────────────────────────────


class TestFiles:
    """Tests for GET /files."""

    async def test_empty_workspace(self, async_client):
        res = await async_client.get("/files")
        assert res.status_code == 200
        assert res.json() == {}

    async def test_lists_saved_files_without_manifest(self, async_client):
        await async_client.post("/save", json={"filename": "App.js", "content": APP_SOURCE})
        await async_client.post("/save", json={"filename": "index.html", "content": "<p>x</p>"})

        res = await async_client.get("/files")
        assert res.json() == {"App.js": APP_SOURCE, "index.html": "<p>x</p>"}


# ── compile ─────────────────────────────────────────────────────────────────


class TestCompile:
    """Tests for POST /compile and GET /dist/{name}."""

    async def test_compile_component(self, async_client, workspace_dirs):
        uploads, dist = workspace_dirs
        res = await async_client.post("/compile", json={"filename": "App.js", "content": APP_SOURCE})

        assert res.status_code == 200
        assert res.json() == {"output": "/dist/App.html", "dependencies": ["react", "axios"]}
        assert (uploads / "App.js").exists()
        artifact = (dist / "App.html").read_text()
        assert '<script type="text/babel" data-presets="react">' in artifact
        assert "render(<App />)" in artifact

    async def test_compile_picks_up_component_css(self, async_client, workspace_dirs):
        _, dist = workspace_dirs
        await async_client.post("/save", json={"filename": "App.css", "content": ".card { margin: 0; }"})
        await async_client.post("/compile", json={"filename": "App.js", "content": APP_SOURCE})
        assert ".card { margin: 0; }" in (dist / "App.html").read_text()

    async def test_compile_syntax_error(self, async_client, workspace_dirs):
        uploads, dist = workspace_dirs
        res = await async_client.post("/compile", json={"filename": "App.js", "content": "function App( {\n"})

        assert res.status_code == 400
        errors = res.json()["errors"]
        assert errors
        assert all(re.match(r"^\d+:\d+: ", err) for err in errors)
        assert not (uploads / "App.js").exists()
        assert not (dist / "App.html").exists()

    async def test_compile_markup_page(self, async_client, workspace_dirs):
        _, dist = workspace_dirs
        await async_client.post("/save", json={"filename": "styles.css", "content": "#t { color: red; }"})
        await async_client.post("/save", json={"filename": "script.js", "content": "console.log(1);"})

        res = await async_client.post("/compile", json={"filename": "index.html", "content": '<p id="t">x</p>'})

        assert res.status_code == 200
        assert res.json()["output"] == "/dist/index.html"
        artifact = (dist / "index.html").read_text()
        assert '<p id="t">x</p>' in artifact
        assert "#t { color: red; }" in artifact
        assert "console.log(1);" in artifact

    async def test_compile_unsupported_file(self, async_client):
        res = await async_client.post("/compile", json={"filename": "notes.txt", "content": "x"})
        assert res.status_code == 400

    async def test_serve_artifact(self, async_client):
        await async_client.post("/compile", json={"filename": "App.js", "content": APP_SOURCE})

        res = await async_client.get("/dist/App.html")
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/html")
        assert "ReactDOM.createRoot" in res.text

    async def test_missing_artifact(self, async_client):
        res = await async_client.get("/dist/Nope.html")
        assert res.status_code == 404
        assert res.json()["detail"] == "Artifact not found."


# ── health ──────────────────────────────────────────────────────────────────


async def test_health(async_client):
    res = await async_client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
