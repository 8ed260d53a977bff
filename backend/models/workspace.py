"""Workspace models — saving, listing and compiling user files."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SaveRequest(BaseModel):
    """What the client sends to POST /save."""

    model_config = {"extra": "forbid"}

    filename: str = Field(min_length=1, max_length=255)
    content: str = Field(max_length=2_000_000)


class SaveResponse(BaseModel):
    """What the save endpoint returns."""

    filename: str
    dependencies: list[str] = Field(default_factory=list)


class CompileRequest(BaseModel):
    """What the client sends to POST /compile."""

    model_config = {"extra": "forbid"}

    filename: str = Field(min_length=1, max_length=255)
    content: str = Field(max_length=2_000_000)


class CompileResponse(BaseModel):
    """What the compile endpoint returns on success."""

    output: str
    dependencies: list[str] = Field(default_factory=list)


class ClientMessage(BaseModel):
    """
    One message on the editing session socket.

    Which fields matter depends on `type`; the session handler checks them.
    """

    type: Literal[
        "edit",
        "move",
        "resize",
        "style",
        "text",
        "src",
        "add",
        "remove",
        "select",
        "flush",
        "export_component",
        "mode",
        "library",
        "save",
        "compile",
    ]
    view: str | None = None
    text: str | None = None
    id: str | None = None
    dx: float = 0.0
    dy: float = 0.0
    style: dict[str, str | None] | None = None
    name: str | None = None
    value: str | None = None
    tag: str | None = None
    attributes: dict[str, str] | None = None
    mode: str | None = None
    url: str | None = None
    filename: str | None = None
