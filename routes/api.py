"""JSON API endpoints for the editor state, uploads, and edits."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response

try:
    from routes.utils import (
        RESULT_FILENAME,
        InputError,
        get_editor,
        has_upload,
        read_json_field,
        read_upload,
    )
except ImportError:  # pragma: no cover
    from .utils import (
        RESULT_FILENAME,
        InputError,
        get_editor,
        has_upload,
        read_json_field,
        read_upload,
    )

api_router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)

BUSY_MESSAGE = "An edit is already in progress."


def _busy_response(state: dict) -> JSONResponse:
    return JSONResponse({"error": BUSY_MESSAGE, "state": state}, status_code=409)


@api_router.get("/health")
def health_check() -> dict:
    return {"status": "ok"}


@api_router.get("/state", name="api_state")
def editor_state(request: Request) -> dict:
    return get_editor(request).snapshot()


@api_router.post("/image", name="api_select_image")
async def select_image(request: Request, image: UploadFile = File(...)):
    editor = get_editor(request)
    if editor.is_loading:
        return _busy_response(editor.snapshot())
    try:
        encoded = await read_upload(image)
    except InputError as exc:
        editor.reject_upload(str(exc))
        return JSONResponse({"error": str(exc), "state": editor.snapshot()}, status_code=400)
    editor.select_image(encoded)
    return editor.snapshot()


@api_router.post("/edits", name="api_create_edit")
async def create_edit(
    request: Request,
    prompt: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
):
    editor = get_editor(request)
    if editor.is_loading:
        return _busy_response(editor.snapshot())

    if has_upload(image):
        try:
            editor.select_image(await read_upload(image))
        except InputError as exc:
            editor.reject_upload(str(exc))
            return JSONResponse({"error": str(exc), "state": editor.snapshot()}, status_code=400)
    if prompt is None:
        try:
            prompt = await read_json_field(request, "prompt")
        except InputError as exc:
            return JSONResponse({"error": str(exc), "state": editor.snapshot()}, status_code=400)
    if prompt is not None:
        editor.set_prompt(prompt)

    issued = await editor.submit()
    state = editor.snapshot()
    if not issued:
        # Submit was declined locally, or another request claimed the session meanwhile.
        if editor.is_loading:
            return _busy_response(state)
        return JSONResponse({"error": state["error_message"], "state": state}, status_code=400)
    if state["error_message"]:
        return JSONResponse({"error": state["error_message"], "state": state}, status_code=502)
    return state


@api_router.get("/result", name="api_result")
def download_result(request: Request):
    payload = get_editor(request).edited_image_bytes()
    if payload is None:
        return JSONResponse({"error": "No edited image yet."}, status_code=404)
    headers = {"Content-Disposition": f'attachment; filename="{RESULT_FILENAME}"'}
    return Response(content=payload, media_type="image/png", headers=headers)
