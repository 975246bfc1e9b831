"""Typed request/response values and the protocol for AI image edit clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Union


class ServiceError(RuntimeError):
    pass


class ConfigurationError(RuntimeError):
    pass


@dataclass(frozen=True)
class EncodedImage:
    data: str
    mime_type: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


@dataclass(frozen=True)
class EditRequest:
    image: EncodedImage
    prompt: str


@dataclass(frozen=True)
class InlineDataPart:
    data: str
    mime_type: str


@dataclass(frozen=True)
class TextPart:
    text: str


ContentPart = Union[InlineDataPart, TextPart]


@dataclass(frozen=True)
class EditResult:
    image: Optional[str] = None
    text: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.image is not None

    @property
    def is_empty(self) -> bool:
        return self.image is None and self.text is None

    @classmethod
    def from_parts(cls, parts: list[ContentPart]) -> "EditResult":
        """Folds parts in order; the last image part and the last text part win."""
        image: Optional[str] = None
        text: Optional[str] = None
        for part in parts:
            if isinstance(part, InlineDataPart):
                image = part.data
            elif isinstance(part, TextPart):
                text = part.text
            else:  # pragma: no cover
                raise TypeError(f"Unsupported content part: {type(part).__name__}")
        return cls(image=image, text=text)


class ImageEditClient(Protocol):
    async def edit(self, image: EncodedImage, prompt: str) -> EditResult:
        ...
