"""API server for ``portalchat serve``.

Serves the versioned ``/api/v1/`` chat and session routers that a portal
front end renders from. Shutdown stops any in-flight reply, so a
half-typed message is persisted as it stands.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_BUILTIN_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:8080",
]


@asynccontextmanager
async def _lifespan(app):
    yield
    from portalchat.chat.manager import reset_chat_manager

    reset_chat_manager()


def create_api_app():
    """Build the FastAPI application with the v1 routers."""
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware

    from portalchat import __version__
    from portalchat.api.v1 import mount_v1_routers
    from portalchat.config import get_settings

    app = FastAPI(
        title="Portal Chat API",
        description="Local-first student chat sessions for the university portal.",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )

    origins = sorted(set(_BUILTIN_ORIGINS + get_settings().api_cors_allowed_origins))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    mount_v1_routers(app)
    return app


def run_api_server(
    host: str = "127.0.0.1",
    port: int = 8888,
    dev: bool = False,
) -> None:
    """Start the API server."""
    import uvicorn

    logger.info("API docs: http://%s:%s/api/v1/docs", "localhost" if host == "0.0.0.0" else host, port)

    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent.parent)
        uvicorn.run(
            "portalchat.api.serve:create_api_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            reload_dirs=[src_dir],
            reload_includes=["*.py"],
            log_level="debug",
        )
    else:
        app = create_api_app()
        uvicorn.run(app, host=host, port=port)
