"""Server-rendered UI routes for the image edit page."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

try:
    from routes.utils import (
        InputError,
        get_editor,
        get_services,
        get_session_id,
        has_upload,
        read_upload,
    )
    from services import EditorSession
except ImportError:  # pragma: no cover
    from .utils import (
        InputError,
        get_editor,
        get_services,
        get_session_id,
        has_upload,
        read_upload,
    )
    from ..services import EditorSession

web_router = APIRouter()
logger = logging.getLogger(__name__)


def _get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


def _render(request: Request, editor: EditorSession):
    context = {
        "state": editor.snapshot(),
        "model_name": getattr(request.app.state.config, "GEMINI_MODEL", ""),
    }
    return _get_templates(request).TemplateResponse(request, "index.html", context)


@web_router.get("/", name="web_index")
def index(request: Request):
    return _render(request, get_editor(request))


@web_router.post("/")
async def submit_edit(
    request: Request,
    image: Optional[UploadFile] = File(default=None),
    prompt: str = Form(default=""),
):
    editor = get_editor(request)
    if editor.is_loading:
        return _render(request, editor)

    if has_upload(image):
        try:
            editor.select_image(await read_upload(image))
        except InputError as exc:
            editor.reject_upload(str(exc))
            return _render(request, editor)
    editor.set_prompt(prompt)
    await editor.submit()
    return _render(request, editor)


@web_router.post("/reset", name="web_reset")
def reset(request: Request):
    if not get_services(request).sessions.discard(get_session_id(request)):
        logger.info("Nothing to reset for this session")
    return RedirectResponse(url=str(request.url_for("web_index")), status_code=303)
