"""Application factory that wires configuration, services, middleware, and routes."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.datastructures import Headers
from starlette.middleware.sessions import SessionMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

if os.getenv("LOAD_DOTENV", "1").lower() == "1":
    load_dotenv(os.getenv("DOTENV_FILE") or None)

try:
    from config import BaseConfig, config_values, get_config_class
    from logging_config import configure_logging
    from paths import STATIC_DIR, TEMPLATE_DIR
    from routes import register_routes
    from services import AppServices, SessionRegistry
    from services.ai import ImageEditClient, build_edit_client
except ImportError:  # pragma: no cover
    from .config import BaseConfig, config_values, get_config_class
    from .logging_config import configure_logging
    from .paths import STATIC_DIR, TEMPLATE_DIR
    from .routes import register_routes
    from .services import AppServices, SessionRegistry
    from .services.ai import ImageEditClient, build_edit_client

logger = logging.getLogger(__name__)

TOO_LARGE_MESSAGE = "Uploaded image is too large."


class UploadLimitExceeded(Exception):
    pass


class _CountingReceive:
    """Wraps ``receive`` and raises once the streamed body passes ``limit`` bytes."""

    def __init__(self, receive: Receive, limit: int) -> None:
        self._receive = receive
        self._limit = limit
        self.received = 0

    async def __call__(self) -> Message:
        message = await self._receive()
        if message["type"] == "http.request":
            self.received += len(message.get("body", b""))
            if self.received > self._limit:
                raise UploadLimitExceeded()
        return message


class UploadSizeLimitMiddleware:
    """Answers 413 for request bodies larger than ``limit`` bytes."""

    def __init__(self, app: ASGIApp, limit: int) -> None:
        self.app = app
        self.limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or self.limit <= 0:
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length", "")
        if declared.isdigit() and int(declared) > self.limit:
            await self._reject(scope, receive, send, int(declared))
            return

        counting_receive = _CountingReceive(receive, self.limit)
        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, counting_receive, tracking_send)
        except UploadLimitExceeded:
            if response_started:
                logger.warning("Body limit hit after the response started for %s", scope.get("path"))
                return
            await self._reject(scope, receive, send, counting_receive.received)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        logger.warning(
            "Rejected %s %s: body of %s bytes exceeds %s",
            scope.get("method"),
            scope.get("path"),
            size,
            self.limit,
        )
        response = JSONResponse({"error": TOO_LARGE_MESSAGE}, status_code=413)
        await response(scope, receive, send)


def create_app(
    config_class: type[BaseConfig] | None = None,
    edit_client: ImageEditClient | None = None,
) -> FastAPI:
    """Builds the app; a missing Gemini credential aborts unless a client is injected."""
    app_config = config_class or get_config_class()
    configure_logging(getattr(app_config, "LOG_LEVEL", "INFO"))

    if edit_client is None:
        edit_client = build_edit_client(config_values(app_config))

    app = FastAPI(title="AI Image Edit Studio")
    max_body_size = int(getattr(app_config, "MAX_CONTENT_LENGTH", 0) or 0)
    if max_body_size > 0:
        app.add_middleware(UploadSizeLimitMiddleware, limit=max_body_size)

    app.state.services = AppServices(
        client=edit_client,
        sessions=SessionRegistry(edit_client),
    )
    app.state.config = app_config
    app.state.templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    app.add_middleware(
        SessionMiddleware,
        secret_key=getattr(app_config, "SECRET_KEY", "dev-secret-2025"),
        same_site=str(getattr(app_config, "SESSION_COOKIE_SAMESITE", "Lax")).lower(),
        https_only=getattr(app_config, "SESSION_COOKIE_SECURE", False),
    )

    register_routes(app)

    if (
        getattr(app_config, "ENV", "development") == "production"
        and getattr(app_config, "SECRET_KEY", "dev-secret-2025") == "dev-secret-2025"
    ):
        logger.warning("Using default SECRET_KEY in production.")

    return app
