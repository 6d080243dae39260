"""FastAPI application for the authorization server.

``create_api_app()`` wires settings, storage, the identity provider and the
OAuth engine, mounts every router, and installs the error handlers that keep
the response contract: OAuth errors as ``{error, error_description}``, other
errors as ``{error}``, and permissive CORS headers on every response,
failures included.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from remote_mcp import __version__
from remote_mcp.config import Settings, get_settings
from remote_mcp.oauth2.errors import OAuthError
from remote_mcp.oauth2.identity import IdentityProvider
from remote_mcp.oauth2.server import OAuthEngine
from remote_mcp.oauth2.storage import KeyValueStoreProtocol

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,DELETE,OPTIONS",
}


def _json_error(status_code: int, content: dict, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers={**CORS_HEADERS, **(headers or {})},
    )


async def oauth_error_handler(request: Request, exc: OAuthError) -> JSONResponse:
    logger.info(
        "%s %s -> %s (%s)", request.method, request.url.path, exc.error, exc.description
    )
    headers = dict(exc.headers)
    headers.setdefault("Cache-Control", "no-store")
    return _json_error(exc.status_code, exc.to_dict(), headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _json_error(exc.status_code, {"error": exc.detail}, getattr(exc, "headers", None))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _json_error(400, {"error": "Invalid request"})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _json_error(500, {"error": "Internal Server Error"})


async def cors_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    for key, value in CORS_HEADERS.items():
        response.headers.setdefault(key, value)
    return response


def create_api_app(
    settings: Settings | None = None,
    store: KeyValueStoreProtocol | None = None,
    identity: IdentityProvider | None = None,
    engine: OAuthEngine | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Raises ConfigError when the settings are unusable (e.g. no signing
    secret in production), so a misconfigured server never starts.
    """
    from remote_mcp.api import mount_routers

    settings = settings or get_settings()
    if engine is None:
        engine = OAuthEngine.from_settings(settings, store=store, identity=identity)

    app = FastAPI(
        title="Remote MCP Server",
        description="OAuth 2.1 authorization server with dynamic client registration.",
        version=__version__,
    )
    app.state.settings = settings
    app.state.engine = engine

    # --- CORS -----------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.middleware("http")(cors_headers_middleware)

    # --- Error handlers -------------------------------------------------
    app.add_exception_handler(OAuthError, oauth_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    mount_routers(app)
    logger.info("Authorization server ready (storage: %s)", settings.storage_backend)
    return app


def run_api_server(
    host: str = "127.0.0.1",
    port: int = 8888,
    dev: bool = False,
    log_level: str = "info",
) -> None:
    """Start the server with uvicorn."""
    import uvicorn

    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent.parent)
        uvicorn.run(
            "remote_mcp.api.serve:create_api_app",
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
        uvicorn.run(app, host=host, port=port, log_level=log_level)
