"""Per-session editor state machine that drives the edit client."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .ai.base import EditRequest, EncodedImage, ImageEditClient, ServiceError
from .timing import log_timing

logger = logging.getLogger(__name__)

MISSING_IMAGE_MESSAGE = "Please upload an image."
MISSING_PROMPT_MESSAGE = "Please enter an edit request."
NO_IMAGE_RETURNED_MESSAGE = "Could not generate an image. Please try again with a different request."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."

RESULT_MIME_TYPE = "image/png"


class EditorPhase(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"


@dataclass(frozen=True)
class EditSucceeded:
    image: str

    @property
    def data_url(self) -> str:
        return f"data:{RESULT_MIME_TYPE};base64,{self.image}"


@dataclass(frozen=True)
class EditorState:
    """Phase plus what the page shows; an idle editor may show a result and an advisory together."""

    phase: EditorPhase = EditorPhase.IDLE
    result: Optional[EditSucceeded] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.phase is EditorPhase.SUBMITTING and (self.result or self.error):
            raise ValueError("A submitting editor cannot carry a result or an error.")


class EditorSession:
    """Owns everything the page shows for one browser session.

    The only suspension point is the edit client call inside ``submit``;
    the phase flips to ``SUBMITTING`` before it, so a second ``submit`` on
    the same session while a request is in flight is a no-op.
    """

    def __init__(self, client: ImageEditClient) -> None:
        self._client = client
        self._state = EditorState()
        self._image: Optional[EncodedImage] = None
        self._prompt = ""

    @property
    def phase(self) -> EditorPhase:
        return self._state.phase

    @property
    def is_loading(self) -> bool:
        return self._state.phase is EditorPhase.SUBMITTING

    @property
    def original_image(self) -> Optional[EncodedImage]:
        return self._image

    @property
    def preview(self) -> Optional[str]:
        return self._image.data_url if self._image else None

    @property
    def prompt(self) -> str:
        return self._prompt

    @property
    def edited_image(self) -> Optional[str]:
        result = self._state.result
        return result.data_url if result else None

    @property
    def error_message(self) -> Optional[str]:
        return self._state.error

    def select_image(self, image: EncodedImage) -> bool:
        if self.is_loading:
            return False
        self._image = image
        self._state = EditorState()
        return True

    def reject_upload(self, message: str) -> bool:
        """Shows an advisory for an unusable file; the current image and result stay."""
        if self.is_loading:
            return False
        self._advise(message)
        return True

    def set_prompt(self, prompt: str) -> None:
        self._prompt = prompt or ""

    async def submit(self) -> bool:
        """Runs one edit round trip; returns True when the client was called."""
        if self.is_loading:
            logger.info("Edit already in flight; ignoring submit")
            return False
        if self._image is None:
            self._advise(MISSING_IMAGE_MESSAGE)
            return False
        if not self._prompt.strip():
            self._advise(MISSING_PROMPT_MESSAGE)
            return False

        request = EditRequest(image=self._image, prompt=self._prompt)
        self._state = EditorState(phase=EditorPhase.SUBMITTING)
        finished = EditorState()
        try:
            finished = await self._finished_state(request)
        finally:
            # Cancellation leaves an empty idle state but must still release the session.
            self._state = finished
        return True

    def _advise(self, message: str) -> None:
        self._state = replace(self._state, error=message)

    async def _finished_state(self, request: EditRequest) -> EditorState:
        try:
            with log_timing("editor submit", logger):
                result = await self._client.edit(request.image, request.prompt)
        except ServiceError as exc:
            logger.warning("Edit failed: %s", exc)
            return EditorState(error=str(exc) or UNEXPECTED_ERROR_MESSAGE)
        except Exception as exc:
            logger.exception("Unexpected error while editing image")
            return EditorState(error=str(exc) or UNEXPECTED_ERROR_MESSAGE)
        if result.image:
            # Accompanying text is dropped when an image came back.
            return EditorState(result=EditSucceeded(result.image))
        return EditorState(error=result.text or NO_IMAGE_RETURNED_MESSAGE)

    def edited_image_bytes(self) -> Optional[bytes]:
        result = self._state.result
        if result is None:
            return None
        return base64.b64decode(result.image)

    def snapshot(self) -> dict:
        return {
            "phase": self._state.phase.value,
            "is_loading": self.is_loading,
            "has_image": self._image is not None,
            "mime_type": self._image.mime_type if self._image else None,
            "preview": self.preview,
            "prompt": self._prompt,
            "edited_image": self.edited_image,
            "error_message": self.error_message,
        }
