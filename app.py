"""Local entry point for running the FastAPI application with Uvicorn."""

from __future__ import annotations

import os

import uvicorn

from app_factory import create_app

# Fails fast with ConfigurationError when no Gemini credential is configured.
app = create_app()


def main() -> None:
    host = os.getenv("APP_HOST", "127.0.0.1")
    port = int(os.getenv("APP_PORT", "5001"))
    reload = os.getenv("APP_ENV", "development").lower() == "development"
    # log_config=None keeps the dictConfig set up by create_app.
    uvicorn.run("app:app", host=host, port=port, reload=reload, log_config=None)


if __name__ == "__main__":
    main()
