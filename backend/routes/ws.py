"""
WebSocket endpoint for a live editing session.

Accepts connections at /ws/session/{session_id}. Each connection hosts one
SyncController over the workspace files; editor and canvas events come in
as JSON messages, regenerated views / previews / notices go out.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from backend.config import settings
from backend.models.workspace import ClientMessage
from backend.services.workspace import LocalWorkspaceBackend
from engine.kernel.sync import SyncController
from engine.kernel.types import TEXT_ORIGINS, EditOrigin

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


def _make_controller() -> SyncController:
    return SyncController(
        backend=LocalWorkspaceBackend(),
        debounce_seconds=settings.SYNC_DEBOUNCE_SECONDS,
        persist_interval=settings.STYLE_PERSIST_INTERVAL_SECONDS,
        react_url=settings.REACT_CDN_URL,
        react_dom_url=settings.REACT_DOM_CDN_URL,
        babel_url=settings.BABEL_CDN_URL,
    )


def _require_id(msg: ClientMessage) -> str:
    if not msg.id:
        raise ValueError(f"{msg.type} needs an element id")
    return msg.id


async def _handle_message(controller: SyncController, msg: ClientMessage) -> dict[str, Any] | None:
    """
    Apply one client message. Returns a direct reply, if the message has one.

    Views, previews and notices reach the client through the controller's
    listeners, not through this return value.
    """
    if msg.type == "edit":
        if msg.view is None or msg.text is None:
            raise ValueError("edit needs view and text")
        if msg.view not in {origin.value for origin in TEXT_ORIGINS}:
            raise ValueError(f"{msg.view} is not a text view")
        controller.edit(msg.view, msg.text)
        return None

    if msg.type == "move":
        controller.move(_require_id(msg), msg.dx, msg.dy)
        return None

    if msg.type == "resize":
        controller.resize(_require_id(msg), msg.dx, msg.dy)
        return None

    if msg.type == "style":
        element_id = _require_id(msg)
        if msg.style is not None:
            controller.apply_style_delta(element_id, msg.style, origin=EditOrigin.PROPERTIES)
        elif msg.name:
            controller.set_style_property(element_id, msg.name, msg.value)
        else:
            raise ValueError("style needs a style object or a name")
        return None

    if msg.type == "text":
        controller.set_text(_require_id(msg), msg.text or "")
        return None

    if msg.type == "src":
        controller.set_image_src(_require_id(msg), msg.value or "")
        return None

    if msg.type == "add":
        if not msg.tag:
            raise ValueError("add needs a tag")
        element = controller.add_element(msg.tag, text=msg.text, attributes=msg.attributes)
        return {"type": "added", "element": element.to_dict() if element else None}

    if msg.type == "remove":
        controller.remove_element(_require_id(msg))
        return None

    if msg.type == "select":
        element = controller.select(msg.id)
        return {"type": "selected", "element": element.to_dict() if element else None}

    if msg.type == "flush":
        await controller.flush()
        return {"type": "flushed"}

    if msg.type == "export_component":
        controller.export_component()
        return None

    if msg.type == "mode":
        if msg.mode is None:
            raise ValueError("mode needs a mode")
        controller.set_mode(msg.mode)
        return {"type": "mode", "mode": controller.document.mode.value}

    if msg.type == "library":
        if not msg.url:
            raise ValueError("library needs a url")
        controller.declare_library(msg.url)
        return None

    if msg.type == "save":
        ok = await controller.save(msg.filename)
        return {"type": "saved", "ok": ok}

    if msg.type == "compile":
        result = await controller.compile(msg.filename)
        if result is None:
            return {"type": "compiled", "output": None, "errors": []}
        return {"type": "compiled", "output": result.output_path, "errors": result.errors}

    return None


async def _pump(websocket: WebSocket, outbox: asyncio.Queue) -> None:
    """Send queued payloads in order."""
    while True:
        payload = await outbox.get()
        await websocket.send_text(json.dumps(payload))


@router.websocket("/ws/session/{session_id}")
async def session_websocket(websocket: WebSocket, session_id: str) -> None:
    """
    Host an editing session over WebSocket.

    Protocol:
      Client → Server:  {"type": "edit", "view": "markup", "text": "..."}
                        {"type": "move" | "resize", "id": "...", "dx": 10, "dy": 5}
                        {"type": "style", "id": "...", "style": {...}} | {"name": ..., "value": ...}
                        {"type": "text" | "src" | "remove" | "select", "id": "...", ...}
                        {"type": "add", "tag": "h1", "text": "..."}
                        {"type": "flush"} | {"type": "export_component"}
      Server → Client:  {"type": "views", "origin": ..., "views": {...}}
                        {"type": "preview", "document": "..."}
                        {"type": "notice", "notice": {...}}
                        {"type": "error", "error": "..."}
    """
    await websocket.accept()
    logger.info("WebSocket accepted: session_id=%s", session_id)

    outbox: asyncio.Queue = asyncio.Queue()
    controller = _make_controller()
    controller.subscribe(
        lambda update: outbox.put_nowait({"type": "views", "origin": update.origin.value, "views": update.views})
    )
    controller.on_preview(lambda document: outbox.put_nowait({"type": "preview", "document": document}))
    controller.on_notice(lambda notice: outbox.put_nowait({"type": "notice", "notice": notice.to_dict()}))

    pump = asyncio.create_task(_pump(websocket, outbox))
    try:
        loaded = await controller.load_files()
        if loaded:
            logger.info("ws: loaded %s for session_id=%s", ", ".join(loaded), session_id)
        # Hydrate the editors with every view.
        outbox.put_nowait(
            {
                "type": "views",
                "origin": None,
                "views": dict(controller.views),
                "mode": controller.document.mode.value,
            }
        )
        await controller.refresh_preview()

        while True:
            raw = await websocket.receive_text()
            try:
                msg = ClientMessage.model_validate(json.loads(raw))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning("ws: malformed message from client: %r", raw[:200])
                outbox.put_nowait({"type": "error", "error": f"Malformed message: {e}"})
                continue

            try:
                reply = await _handle_message(controller, msg)
            except ValueError as e:
                outbox.put_nowait({"type": "error", "error": str(e)})
                continue
            if reply is not None:
                outbox.put_nowait(reply)

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected: session_id=%s", session_id)
    finally:
        controller.close()
        pump.cancel()
