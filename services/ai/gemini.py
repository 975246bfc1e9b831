"""Gemini-based image edit client built on the google-genai async API."""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional

from google import genai
from google.genai import types as genai_types

from ..timing import log_timing
from .base import (
    ConfigurationError,
    ContentPart,
    EditResult,
    EncodedImage,
    InlineDataPart,
    ServiceError,
    TextPart,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-image-preview"
ERROR_PREFIX = "Gemini API error"
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred while communicating with the Gemini API."
INVALID_RESPONSE_MESSAGE = "Invalid response from Gemini API."


class GeminiEditClient:
    """Sends one image plus an edit prompt to Gemini and normalizes the reply.

    Each call is a single attempt with no timeout or retry. Any failure is
    raised as ``ServiceError`` with the underlying exception chained.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str = DEFAULT_MODEL,
        client: Any = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise ConfigurationError("GEMINI_API_KEY is not defined in environment variables.")
            client = genai.Client(api_key=api_key)
        self._client = client
        self._model_name = model_name or DEFAULT_MODEL
        logger.info("[Gemini] configured model %s", self._model_name)

    @property
    def model_name(self) -> str:
        return self._model_name

    async def edit(self, image: EncodedImage, prompt: str) -> EditResult:
        try:
            contents = [
                genai_types.Part.from_bytes(
                    data=base64.b64decode(image.data), mime_type=image.mime_type
                ),
                genai_types.Part.from_text(text=prompt),
            ]
            config = genai_types.GenerateContentConfig(
                response_modalities=[genai_types.Modality.IMAGE, genai_types.Modality.TEXT],
            )
            with log_timing(f"gemini generate_content {self._model_name}", logger):
                response = await self._client.aio.models.generate_content(
                    model=self._model_name, contents=contents, config=config
                )

            candidates = getattr(response, "candidates", None) if response else None
            if not candidates:
                raise ServiceError(INVALID_RESPONSE_MESSAGE)

            result = EditResult.from_parts(parse_parts(candidates[0]))
            if result.image:
                logger.info("[Gemini] image generated")
            elif result.text:
                logger.info("[Gemini] text response: %s", result.text[:200])
            return result
        except Exception as exc:
            logger.warning("[Gemini] edit error: %s", exc)
            message = str(exc)
            if not message:
                raise ServiceError(UNKNOWN_ERROR_MESSAGE) from exc
            raise ServiceError(f"{ERROR_PREFIX}: {message}") from exc


def parse_parts(candidate: object) -> list[ContentPart]:
    """Maps a candidate's raw SDK parts onto the typed content parts."""
    content = _field(candidate, "content")
    raw_parts = _field(content, "parts") or []
    parts: list[ContentPart] = []
    for raw in raw_parts:
        inline = _field(raw, "inline_data", "inlineData")
        data = _inline_data_to_base64(_field(inline, "data"))
        if data:
            mime_type = _field(inline, "mime_type", "mimeType") or "image/png"
            parts.append(InlineDataPart(data=data, mime_type=str(mime_type)))
            continue
        text = _field(raw, "text")
        if text:
            parts.append(TextPart(text=str(text)))
    return parts


def _field(source: object, *names: str) -> Any:
    if source is None:
        return None
    for name in names:
        if isinstance(source, dict):
            value = source.get(name)
        else:
            value = getattr(source, name, None)
        if value is not None:
            return value
    return None


def _inline_data_to_base64(data: object) -> Optional[str]:
    # The SDK hands back raw bytes; dict-shaped payloads already carry base64 text.
    if not data:
        return None
    if isinstance(data, (bytes, bytearray)):
        return base64.b64encode(bytes(data)).decode("ascii")
    return str(data)
