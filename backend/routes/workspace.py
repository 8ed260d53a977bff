"""Workspace routes — save, list and compile user files; serve built artifacts."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse, JSONResponse

from backend.models.workspace import CompileRequest, CompileResponse, SaveRequest, SaveResponse
from backend.services.workspace import CompileError, WorkspaceError, workspace_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["workspace"])


@router.post("/save", status_code=200)
async def save_file(req: SaveRequest) -> SaveResponse:
    """Write a file into the workspace and refresh the dependency manifest."""
    try:
        dependencies = workspace_service.save(req.filename, req.content)
    except WorkspaceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return SaveResponse(filename=req.filename, dependencies=dependencies)


@router.get("/files")
async def list_files() -> dict[str, str]:
    return workspace_service.list_files()


@router.post("/compile", status_code=200, response_model=CompileResponse)
async def compile_file(req: CompileRequest):
    """
    Save, resolve dependencies and bundle into a runnable preview page.

    Syntax errors come back as 400 `{"errors": [...]}`.
    """
    try:
        result = workspace_service.compile(req.filename, req.content)
    except WorkspaceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except CompileError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": e.errors})
    return CompileResponse(output=result.output, dependencies=result.dependencies)


@router.get("/dist/{name}")
async def get_artifact(name: str) -> FileResponse:
    path = workspace_service.dist_path(name)
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artifact not found.")
    return FileResponse(str(path), media_type="text/html")
