"""Service container definitions for core app services."""

from __future__ import annotations

from dataclasses import dataclass

from .ai import ImageEditClient
from .editor import EditorPhase, EditorSession
from .sessions import SessionRegistry
from .uploads import InputError, encode_upload


@dataclass(frozen=True)
class AppServices:
    client: ImageEditClient
    sessions: SessionRegistry


__all__ = [
    "AppServices",
    "EditorPhase",
    "EditorSession",
    "InputError",
    "SessionRegistry",
    "encode_upload",
]
