"""In-memory registry of editor sessions keyed by browser session id."""

from __future__ import annotations

import logging

from .ai.base import ImageEditClient
from .editor import EditorSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self, client: ImageEditClient) -> None:
        self._client = client
        self._sessions: dict[str, EditorSession] = {}

    def get(self, session_id: str) -> EditorSession:
        session = self._sessions.get(session_id)
        if session is None:
            session = EditorSession(self._client)
            self._sessions[session_id] = session
            logger.debug("Created editor session %s", session_id)
        return session

    def discard(self, session_id: str) -> bool:
        """Drops a session unless an edit is still in flight for it."""
        session = self._sessions.get(session_id)
        if session is None:
            return False
        if session.is_loading:
            return False
        del self._sessions[session_id]
        return True

    def __len__(self) -> int:
        return len(self._sessions)
