"""
Bridge

Wires the framer, correlation table, SSE broadcaster and child supervisor
together. Child stdout flows framer -> dispatch(); HTTP requests flow
send()/call() -> framer -> child stdin.
"""

from typing import Any, Optional

from stdio_bridge.bridge.broadcaster import SseBroadcaster
from stdio_bridge.bridge.correlation import CorrelationTable
from stdio_bridge.bridge.supervisor import ChildSupervisor
from stdio_bridge.configs.logging import get_logger
from stdio_bridge.configs.runtime import BridgeConfig
from stdio_bridge.protocol.framing import Framer, get_framer

logger = get_logger("bridge")


def has_request_id(message: Any) -> bool:
    """True if the message is a JSON object carrying a top-level id."""
    return isinstance(message, dict) and "id" in message


class Bridge:
    """One child process exposed to any number of HTTP callers."""

    def __init__(
        self,
        config: BridgeConfig,
        framer: Optional[Framer] = None,
        supervisor: Optional[ChildSupervisor] = None,
    ):
        self.config = config
        self.framer = framer or get_framer(config.framing)
        self.pending = CorrelationTable()
        self.broadcaster = SseBroadcaster()
        self.supervisor = supervisor or ChildSupervisor(
            config.command,
            config.args,
            on_stdout=self.feed,
            shutdown_grace=config.shutdown_grace,
        )
        self._started = False

    @property
    def timeout(self) -> float:
        return self.config.timeout

    async def start(self) -> None:
        """Spawn the child. Safe to call more than once."""
        if self._started:
            return
        await self.supervisor.start()
        self._started = True

    async def stop(self) -> None:
        """Release waiting callers, end SSE streams and terminate the child."""
        self.pending.cancel_all()
        self.broadcaster.close_all()
        await self.supervisor.terminate()
        self._started = False

    def feed(self, chunk: bytes) -> None:
        """Decode a chunk of child stdout and dispatch each message in order."""
        for message in self.framer.feed(chunk):
            self.dispatch(message)

    def dispatch(self, message: Any) -> None:
        """Route a decoded child message to its waiting caller and to SSE."""
        if has_request_id(message):
            self.pending.resolve(message["id"], message)
        self.broadcaster.broadcast(message)

    async def send(self, message: Any) -> None:
        """
        Write a message to the child without waiting for a reply.

        Raises:
            ChildNotRunningError: The child is gone
        """
        await self.supervisor.write(self.framer.encode(message))

    async def call(self, message: dict) -> Any:
        """
        Write a request and wait for the reply with the same id.

        Raises:
            InvalidRequestError: The id cannot be used as a key
            DuplicateRequestError: The id is already pending
            ChildNotRunningError: The write failed
            RequestTimeoutError: No reply within the configured timeout
        """
        request_id = message["id"]
        future = self.pending.register(request_id, self.timeout)

        try:
            await self.send(message)
            return await future
        finally:
            # No-op after a reply or expiry; otherwise the write failed or the
            # caller went away, and a late reply is only broadcast
            self.pending.discard(request_id, future)
