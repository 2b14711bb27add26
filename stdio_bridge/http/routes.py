"""
Bridge HTTP Endpoints

- GET  /health  liveness probe, independent of the child
- GET  /sse     event stream of every message the child emits
- POST /rpc     forward a JSON-RPC message; wait for the reply when it has an id
"""

import asyncio
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from stdio_bridge.bridge import Bridge, SseBroadcaster, SseClient, format_event, has_request_id
from stdio_bridge.bridge.broadcaster import READY_EVENT
from stdio_bridge.configs import get_logger, get_timeout
from stdio_bridge.exceptions import (
    ChildNotRunningError,
    DuplicateRequestError,
    InvalidRequestError,
    RequestTimeoutError,
)
from stdio_bridge.protocol import load_json

logger = get_logger("http.rpc")

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}


# --- Response Models ---


class HealthResponse(BaseModel):
    """Response for the health probe."""

    status: str = "ok"


class AcceptedResponse(BaseModel):
    """Response for a forwarded message that expects no reply."""

    status: str = "accepted"


class ErrorResponse(BaseModel):
    """Structured error body."""

    error: str


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build a JSON error response."""
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)


def get_bridge(request: Request) -> Bridge:
    """Resolve the bridge attached to the running app."""
    return request.app.state.bridge


# --- SSE Stream ---


async def event_stream(
    request: Request,
    broadcaster: SseBroadcaster,
    client: SseClient,
    poll_interval: float = get_timeout("sse_poll"),
) -> AsyncIterator[str]:
    """
    Yield the ready event, then every broadcast frame until the client leaves.

    The client is registered when iteration starts, ahead of the ready event,
    and unregistered when the stream ends for any reason. A response that is
    torn down before its body is ever iterated leaves nothing registered.
    """
    try:
        broadcaster.register(client)
        yield format_event(READY_EVENT, "{}")
        while True:
            if await request.is_disconnected():
                break
            try:
                frame = await client.next_frame(timeout=poll_interval)
            except asyncio.TimeoutError:
                continue
            if frame is None:
                break
            yield frame
    finally:
        broadcaster.unregister(client)


# --- Endpoints ---


@router.get("/health")
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse()


@router.get("/sse")
async def sse(request: Request, bridge: Bridge = Depends(get_bridge)) -> StreamingResponse:
    """Open a server-sent event stream of child messages."""
    return StreamingResponse(
        event_stream(request, bridge.broadcaster, SseClient()),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/rpc")
async def rpc(request: Request, bridge: Bridge = Depends(get_bridge)) -> JSONResponse:
    """
    Forward a JSON message to the child.

    Messages without an id are fire-and-forget (202). Messages with an id
    hold the response open until the child replies (200) or the request
    timeout passes (504).
    """
    body = await request.body()
    try:
        payload = load_json(body)
    except ValueError as e:
        logger.warning(f"Rejected invalid JSON payload: {e}")
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON payload")

    if not has_request_id(payload):
        try:
            await bridge.send(payload)
        except ChildNotRunningError as e:
            logger.error(f"Could not forward notification: {e}")
            return error_response(status.HTTP_502_BAD_GATEWAY, "MCP stdio server is not running")
        logger.debug("Forwarded message without id")
        return JSONResponse(AcceptedResponse().model_dump(), status_code=status.HTTP_202_ACCEPTED)

    request_id = payload["id"]
    logger.debug(f"Forwarding request {request_id!r}")

    try:
        reply = await bridge.call(payload)
    except InvalidRequestError as e:
        logger.warning(f"Rejected request: {e}")
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request id")
    except DuplicateRequestError as e:
        logger.warning(str(e))
        return error_response(status.HTTP_409_CONFLICT, "Request id already pending")
    except ChildNotRunningError as e:
        logger.error(f"Could not forward request {request_id!r}: {e}")
        return error_response(status.HTTP_502_BAD_GATEWAY, "MCP stdio server is not running")
    except RequestTimeoutError:
        return error_response(status.HTTP_504_GATEWAY_TIMEOUT, "MCP response timeout")

    return JSONResponse(reply)
