"""Shared helpers for session handling and route utilities."""

from __future__ import annotations

from typing import Optional
from uuid import uuid4

from fastapi import UploadFile
from starlette.requests import Request

try:
    from services import AppServices, EditorSession, InputError, encode_upload
    from services.ai import EncodedImage
except ImportError:  # pragma: no cover
    from ..services import AppServices, EditorSession, InputError, encode_upload
    from ..services.ai import EncodedImage

SESSION_ID_KEY = "session_id"
RESULT_FILENAME = "edited-image.png"
MALFORMED_JSON_MESSAGE = "Request body must be a JSON object."


def get_session_id(request: Request) -> str:
    # Create a stable session id that keys the in-memory editor state.
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        session_id = uuid4().hex
        request.session[SESSION_ID_KEY] = session_id
    return session_id


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_editor(request: Request) -> EditorSession:
    return get_services(request).sessions.get(get_session_id(request))


def has_upload(upload: Optional[UploadFile]) -> bool:
    return bool(upload and upload.filename)


async def read_upload(upload: UploadFile) -> EncodedImage:
    """Reads an uploaded file and encodes it; raises InputError for non-images."""
    payload = await upload.read()
    return encode_upload(payload, upload.content_type, filename=upload.filename)


async def read_json_field(request: Request, name: str) -> Optional[str]:
    """Reads one field of a JSON object body; None when the body is not JSON."""
    content_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    if content_type != "application/json":
        return None
    try:
        payload = await request.json()
    except ValueError as exc:
        raise InputError(MALFORMED_JSON_MESSAGE) from exc
    if not isinstance(payload, dict):
        raise InputError(MALFORMED_JSON_MESSAGE)
    value = payload.get(name)
    return None if value is None else str(value)


__all__ = [
    "InputError",
    "RESULT_FILENAME",
    "get_editor",
    "get_services",
    "get_session_id",
    "has_upload",
    "read_json_field",
    "read_upload",
]
