"""
Pagesmith Kernel — Error Taxonomy

Every failure inside the codecs or the synchronization controller is one of
these. The controller catches them at its boundary and turns them into
Notices; nothing propagates to the editor/canvas callers.
"""

from __future__ import annotations

from typing import Any


class KernelError(Exception):
    """Base class for all kernel failures."""

    kind = "internal"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ParseError(KernelError):
    """Malformed markup, stylesheet or component text."""

    kind = "parse_error"


class IdentityConflictWarning(KernelError):
    """
    Duplicate or unusable element id met during decode.
    Recorded, not raised: the decoder synthesizes a fresh id and carries on.
    """

    kind = "identity_conflict"

    def __init__(self, original_id: str, replacement_id: str, reason: str) -> None:
        super().__init__(
            f"Element id {original_id!r} {reason}; using {replacement_id!r}",
            {"original_id": original_id, "replacement_id": replacement_id, "reason": reason},
        )
        self.original_id = original_id
        self.replacement_id = replacement_id
        self.reason = reason


class ExternalResourceError(KernelError):
    """A user-declared script library could not be loaded."""

    kind = "external_resource"


class BackendError(KernelError):
    """Save/compile/list failure reported by the workspace backend."""

    kind = "backend"
