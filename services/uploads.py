"""Turns uploaded files into base64 payloads the edit client can send."""

from __future__ import annotations

import base64
import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .ai.base import EncodedImage

logger = logging.getLogger(__name__)

GENERIC_CONTENT_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

INVALID_IMAGE_MESSAGE = "Please select a valid image file."
EMPTY_UPLOAD_MESSAGE = "Uploaded file is empty."


class InputError(ValueError):
    pass


def encode_upload(
    payload: bytes,
    content_type: Optional[str],
    filename: Optional[str] = None,
) -> EncodedImage:
    if not payload:
        raise InputError(EMPTY_UPLOAD_MESSAGE)

    mime_type = (content_type or "").split(";", 1)[0].strip().lower()
    if mime_type in GENERIC_CONTENT_TYPES:
        # Browsers occasionally omit the type; fall back to the file signature.
        mime_type = _sniff_mime_type(payload) or ""
        logger.info("Sniffed upload %s as %s", filename or "<unnamed>", mime_type or "unknown")

    if not mime_type.startswith("image/"):
        raise InputError(INVALID_IMAGE_MESSAGE)

    return EncodedImage(data=base64.b64encode(payload).decode("ascii"), mime_type=mime_type)


def _sniff_mime_type(payload: bytes) -> Optional[str]:
    try:
        with Image.open(io.BytesIO(payload)) as img:
            return Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        return None
