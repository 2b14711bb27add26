"""
Bridge HTTP Server

FastAPI app exposing the stdio child over /health, /sse and /rpc, and the
uvicorn runner that owns the bridge lifecycle.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stdio_bridge import __version__
from stdio_bridge.bridge import Bridge
from stdio_bridge.configs import BridgeConfig, get_logger, get_timeout
from stdio_bridge.exceptions import ChildStartError
from stdio_bridge.http.routes import error_response, router

logger = get_logger("http")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors as JSON; unknown paths and methods are both 404."""
    if exc.status_code in (404, 405):
        return error_response(404, "Not Found")
    return error_response(exc.status_code, str(exc.detail))


def create_app(bridge: Bridge) -> FastAPI:
    """
    Create the FastAPI app for a bridge.

    The app starts the bridge on startup (no-op if already running) and
    stops it on shutdown, after the server has stopped accepting requests.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await bridge.start()
        try:
            yield
        finally:
            logger.info("HTTP listener closed, stopping bridge")
            await bridge.stop()

    app = FastAPI(
        title="Stdio Bridge",
        description="HTTP and SSE front for a stdio JSON-RPC process",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.bridge = bridge
    app.include_router(router)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    return app


async def serve(config: BridgeConfig) -> int:
    """
    Start the child, then serve HTTP until a termination signal.

    Returns:
        Process exit code (1 when the child cannot be started)
    """
    bridge = Bridge(config)
    try:
        await bridge.start()
    except ChildStartError as e:
        logger.error(f"{e}")
        return 1

    app = create_app(bridge)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.host,
            port=config.port,
            log_level="warning",
            timeout_graceful_shutdown=get_timeout("http_graceful_shutdown"),
        )
    )

    logger.info(f"Stdio bridge listening on http://localhost:{config.port}")
    logger.info("- POST /rpc for JSON-RPC calls")
    logger.info("- GET  /sse for server-sent events")
    try:
        await server.serve()
    finally:
        await bridge.stop()
    return 0


def run_server(config: BridgeConfig) -> int:
    """Run the bridge server to completion."""
    return asyncio.run(serve(config))
