"""
Request Correlation

Tracks RPC requests awaiting a reply from the child, keyed by the request's
declared id, each with its own expiry timer.

Every way out of the table (reply, expiry, discard, shutdown) goes through
_take(), an atomic pop under a lock. Whoever takes the entry completes it, so
an id is resolved at most once even if a reply and its timer race.
"""

import asyncio
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from stdio_bridge.configs.logging import get_logger
from stdio_bridge.exceptions import (
    DuplicateRequestError,
    InvalidRequestError,
    RequestTimeoutError,
)

logger = get_logger("correlation")


@dataclass
class PendingRequest:
    """A request whose reply has not arrived yet."""

    request_id: Any
    future: asyncio.Future
    timer: Optional[asyncio.TimerHandle] = None
    created_at: float = field(default_factory=time.monotonic)

    @property
    def age(self) -> float:
        """Seconds since registration."""
        return time.monotonic() - self.created_at


def _check_hashable(request_id: Any) -> bool:
    try:
        hash(request_id)
    except TypeError:
        return False
    return True


def _key(request_id: Any) -> tuple[bool, Any]:
    # True == 1 in Python but JSON ids true and 1 are different requests
    return type(request_id) is bool, request_id


class CorrelationTable:
    """
    Outstanding requests keyed by id.

    Must be used from the event loop that owns the futures; the lock makes
    the take-and-clear step atomic even if called from another thread.
    """

    def __init__(self) -> None:
        self._pending: dict[tuple[bool, Any], PendingRequest] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, request_id: Any) -> bool:
        if not _check_hashable(request_id):
            return False
        with self._lock:
            return _key(request_id) in self._pending

    def register(self, request_id: Any, timeout: float) -> asyncio.Future:
        """
        Start waiting for the reply to ``request_id``.

        Args:
            request_id: The id the caller put on the request
            timeout: Seconds before the wait fails with RequestTimeoutError

        Returns:
            Future resolved with the matching reply message

        Raises:
            InvalidRequestError: The id is a JSON object or array
            DuplicateRequestError: The id is already awaiting a reply
        """
        if not _check_hashable(request_id):
            raise InvalidRequestError(
                "Request id must be a string, number or null",
                {"type": type(request_id).__name__},
            )

        loop = asyncio.get_running_loop()
        pending = PendingRequest(request_id=request_id, future=loop.create_future())

        with self._lock:
            if _key(request_id) in self._pending:
                raise DuplicateRequestError(request_id)
            self._pending[_key(request_id)] = pending

        pending.timer = loop.call_later(timeout, self._expire, request_id, pending, timeout)
        logger.debug(f"Registered request {request_id!r} (timeout={timeout}s)")
        return pending.future

    def resolve(self, request_id: Any, message: Any) -> bool:
        """
        Complete the pending request for ``request_id`` with ``message``.

        Returns:
            True if a pending entry existed and was resolved, False otherwise
        """
        if not _check_hashable(request_id):
            return False

        pending = self._take(request_id)
        if pending is None:
            logger.debug(f"No pending request for reply id {request_id!r}")
            return False

        if pending.timer is not None:
            pending.timer.cancel()
        if not pending.future.done():
            pending.future.set_result(message)
        logger.debug(f"Resolved request {request_id!r} after {pending.age:.3f}s")
        return True

    def discard(self, request_id: Any, future: Optional[asyncio.Future] = None) -> bool:
        """
        Stop waiting for ``request_id`` without completing the caller.

        When ``future`` is given, only the entry owning that future is removed.
        """
        if not _check_hashable(request_id):
            return False

        pending = self._take(request_id, future=future)
        if pending is None:
            return False

        if pending.timer is not None:
            pending.timer.cancel()
        pending.future.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending request. Returns how many were cancelled."""
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()

        for pending in entries:
            if pending.timer is not None:
                pending.timer.cancel()
            pending.future.cancel()

        if entries:
            logger.info(f"Cancelled {len(entries)} pending request(s)")
        return len(entries)

    def _take(
        self,
        request_id: Any,
        expected: Optional[PendingRequest] = None,
        future: Optional[asyncio.Future] = None,
    ) -> Optional[PendingRequest]:
        with self._lock:
            pending = self._pending.get(_key(request_id))
            if pending is None:
                return None
            # Timers and callers only evict the entry they belong to
            if expected is not None and pending is not expected:
                return None
            if future is not None and pending.future is not future:
                return None
            return self._pending.pop(_key(request_id))

    def _expire(self, request_id: Any, pending: PendingRequest, timeout: float) -> None:
        if self._take(request_id, expected=pending) is None:
            return

        logger.warning(f"Request {request_id!r} timed out after {timeout}s")
        if not pending.future.done():
            pending.future.set_exception(RequestTimeoutError(request_id, timeout))
