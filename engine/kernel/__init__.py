"""
Pagesmith Kernel — the code/visual sync engine.

Components, leaves first:
  style_codec      — stylesheet text <-> style table
  markup_codec     — markup fragment <-> element list (stable ids)
  component_codec  — element list + styles → component source (forward-only)
  model            — identity assignment and merge helpers over Document
  sync             — SyncController: direct manipulation + debounced text edits
  preview          — sandboxed preview documents and library loading
  workspace        — save / compile / list-files backend clients
"""

from engine.kernel.component_codec import from_component_source_approx, to_component_source
from engine.kernel.errors import (
    BackendError,
    ExternalResourceError,
    IdentityConflictWarning,
    KernelError,
    ParseError,
)
from engine.kernel.markup_codec import decode_markup, encode_element, encode_markup
from engine.kernel.preview import LibraryLoader, build_component_document, build_markup_document, sandbox_frame
from engine.kernel.style_codec import decode_styles, encode_styles, merge_style
from engine.kernel.sync import SyncController
from engine.kernel.types import Document, EditOrigin, EditorMode, Element, Notice, SyncState, ViewUpdate
from engine.kernel.workspace import HttpBackend, MemoryBackend, WorkspaceBackend

__all__ = [
    "decode_styles",
    "encode_styles",
    "merge_style",
    "decode_markup",
    "encode_markup",
    "encode_element",
    "to_component_source",
    "from_component_source_approx",
    "build_markup_document",
    "build_component_document",
    "sandbox_frame",
    "LibraryLoader",
    "SyncController",
    "WorkspaceBackend",
    "MemoryBackend",
    "HttpBackend",
    "Document",
    "Element",
    "EditOrigin",
    "EditorMode",
    "Notice",
    "SyncState",
    "ViewUpdate",
    "KernelError",
    "ParseError",
    "IdentityConflictWarning",
    "ExternalResourceError",
    "BackendError",
]
