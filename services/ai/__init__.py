"""Factory for building the configured AI image edit client."""

from __future__ import annotations

from .base import (
    ConfigurationError,
    EditRequest,
    EditResult,
    EncodedImage,
    ImageEditClient,
    InlineDataPart,
    ServiceError,
    TextPart,
)
from .gemini import DEFAULT_MODEL, GeminiEditClient


def build_edit_client(config: dict) -> ImageEditClient:
    api_key = str(config.get("GEMINI_API_KEY") or "").strip()
    if not api_key:
        raise ConfigurationError("GEMINI_API_KEY is not defined in environment variables.")
    return GeminiEditClient(
        api_key=api_key,
        model_name=str(config.get("GEMINI_MODEL") or DEFAULT_MODEL),
    )


__all__ = [
    "ConfigurationError",
    "EditRequest",
    "EditResult",
    "EncodedImage",
    "GeminiEditClient",
    "ImageEditClient",
    "InlineDataPart",
    "ServiceError",
    "TextPart",
    "build_edit_client",
]
