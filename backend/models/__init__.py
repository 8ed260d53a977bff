"""
Pydantic models for Pagesmith.

All data shapes defined here. No imports from services or routes.
"""

from backend.models.workspace import (
    ClientMessage,
    CompileRequest,
    CompileResponse,
    SaveRequest,
    SaveResponse,
)

__all__ = [
    "SaveRequest",
    "SaveResponse",
    "CompileRequest",
    "CompileResponse",
    "ClientMessage",
]
