"""
SSE Broadcaster

Fans every decoded child message out to all connected event-stream clients.

Each client owns a bounded queue of pre-formatted SSE frames; the HTTP
streaming response drains it. Clients are removed when their transport
reports the connection closed, never because a put failed.
"""

import asyncio
import threading
from typing import Any, Optional

from stdio_bridge.configs.constants import SSE_QUEUE_SIZE
from stdio_bridge.configs.logging import get_logger
from stdio_bridge.protocol.framing import dump_json

logger = get_logger("sse")

READY_EVENT = "ready"
MESSAGE_EVENT = "message"


def format_event(event: str, data: str) -> str:
    """Format a single server-sent event frame."""
    return f"event: {event}\ndata: {data}\n\n"


class SseClient:
    """One open event-stream connection."""

    def __init__(self, maxsize: int = SSE_QUEUE_SIZE) -> None:
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def send(self, frame: str) -> None:
        """
        Queue a frame for delivery.

        Raises:
            ConnectionError: The client has been closed
            asyncio.QueueFull: The consumer is not keeping up
        """
        if self.closed:
            raise ConnectionError("SSE client is closed")
        self._queue.put_nowait(frame)

    async def next_frame(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Wait for the next frame.

        Returns None once the client is closed.

        Raises:
            asyncio.TimeoutError: Nothing arrived within ``timeout``
        """
        return await asyncio.wait_for(self._queue.get(), timeout)

    def close(self) -> None:
        """End the stream after already queued frames."""
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # Drop the backlog so the end-of-stream marker fits
            while not self._queue.empty():
                self._queue.get_nowait()
            self._queue.put_nowait(None)


class SseBroadcaster:
    """Registry of SSE clients with snapshot-based fan-out."""

    def __init__(self) -> None:
        self._clients: set[SseClient] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def register(self, client: SseClient) -> None:
        with self._lock:
            self._clients.add(client)
        logger.info(f"SSE client connected ({len(self)} active)")

    def unregister(self, client: SseClient) -> None:
        with self._lock:
            if client not in self._clients:
                return
            self._clients.discard(client)
        logger.info(f"SSE client disconnected ({len(self)} active)")

    def broadcast(self, message: Any) -> int:
        """
        Send ``message`` as an ``event: message`` frame to every client.

        Returns:
            Number of clients the frame was queued for
        """
        frame = format_event(MESSAGE_EVENT, dump_json(message))

        with self._lock:
            clients = list(self._clients)

        delivered = 0
        for client in clients:
            try:
                client.send(frame)
                delivered += 1
            except (asyncio.QueueFull, ConnectionError) as e:
                logger.warning(f"Skipping SSE client: {type(e).__name__}")
        return delivered

    def close_all(self) -> None:
        """Close every client so their streams finish."""
        with self._lock:
            clients = list(self._clients)
            self._clients.clear()
        for client in clients:
            client.close()
