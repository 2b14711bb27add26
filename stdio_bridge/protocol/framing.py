"""
Child Wire Framing

Encoders and stateful decoders for the two wire formats a stdio child may
speak. Both directions use the same framer:

- newline: one compact JSON document per line
- content-length: ``Content-Length: <N>\\r\\n\\r\\n`` followed by N bytes of JSON

Decoders accept arbitrary chunk boundaries and return complete messages in
arrival order. Malformed frames are logged and dropped so one bad frame never
stalls the stream.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from stdio_bridge.configs.constants import FRAMING_CONTENT_LENGTH, FRAMING_NEWLINE
from stdio_bridge.configs.logging import get_logger
from stdio_bridge.exceptions import ConfigurationError

logger = get_logger("framing")

HEADER_SEPARATOR = b"\r\n\r\n"
CONTENT_LENGTH_RE = re.compile(rb"Content-Length:\s*(\d+)", re.IGNORECASE)


def dump_json(message: Any) -> str:
    """Serialize a message as compact single-line JSON."""
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def load_json(data: bytes | str) -> Any:
    """Parse strict JSON; ``NaN`` and ``Infinity`` are rejected."""
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    return json.loads(data, parse_constant=_reject_constant)


def _preview(data: bytes, limit: int = 200) -> str:
    text = data.decode("utf-8", errors="replace")
    return text if len(text) <= limit else text[:limit] + "..."


class Framer(ABC):
    """Symmetric encoder/decoder for one wire format."""

    name: str = ""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self.dropped = 0

    @property
    def buffered(self) -> int:
        """Bytes received but not yet part of a complete frame."""
        return len(self._buffer)

    def reset(self) -> None:
        """Forget any partially received frame."""
        self._buffer.clear()

    @abstractmethod
    def encode(self, message: Any) -> bytes:
        """Frame a message for the child's stdin."""

    @abstractmethod
    def feed(self, chunk: bytes) -> list[Any]:
        """Append a chunk and return every message it completed."""

    def _decode_payload(self, payload: bytes) -> tuple[bool, Any]:
        try:
            return True, load_json(payload)
        except ValueError as e:
            self.dropped += 1
            logger.warning(f"Dropping unparseable child message: {e}: {_preview(payload)!r}")
            return False, None


class NewlineFramer(Framer):
    """Newline-delimited JSON."""

    name = FRAMING_NEWLINE

    def encode(self, message: Any) -> bytes:
        return (dump_json(message) + "\n").encode("utf-8")

    def feed(self, chunk: bytes) -> list[Any]:
        self._buffer.extend(chunk)
        messages = []

        while True:
            newline = self._buffer.find(b"\n")
            if newline == -1:
                break

            line = bytes(self._buffer[:newline]).strip()
            del self._buffer[: newline + 1]

            # Blank lines are keep-alives, not errors
            if not line:
                continue

            ok, message = self._decode_payload(line)
            if ok:
                messages.append(message)

        return messages


class ContentLengthFramer(Framer):
    """
    Header-prefixed JSON (LSP style).

    A header block without a Content-Length field is skipped through its
    separator and scanning resumes. This is best-effort resynchronization:
    the bytes of a frame whose header we cannot read are lost.
    """

    name = FRAMING_CONTENT_LENGTH

    def encode(self, message: Any) -> bytes:
        payload = dump_json(message).encode("utf-8")
        header = f"Content-Length: {len(payload)}\r\n\r\n".encode("ascii")
        return header + payload

    def feed(self, chunk: bytes) -> list[Any]:
        self._buffer.extend(chunk)
        messages = []

        while True:
            header_end = self._buffer.find(HEADER_SEPARATOR)
            if header_end == -1:
                break

            header = bytes(self._buffer[:header_end])
            body_start = header_end + len(HEADER_SEPARATOR)

            match = CONTENT_LENGTH_RE.search(header)
            if not match:
                self.dropped += 1
                logger.warning(f"Skipping frame with malformed header: {_preview(header)!r}")
                del self._buffer[:body_start]
                continue

            length = int(match.group(1))
            body_end = body_start + length
            if len(self._buffer) < body_end:
                # Payload still arriving; leave the buffer untouched
                break

            payload = bytes(self._buffer[body_start:body_end])
            del self._buffer[:body_end]

            ok, message = self._decode_payload(payload)
            if ok:
                messages.append(message)

        return messages


FRAMERS: dict[str, type[Framer]] = {
    FRAMING_CONTENT_LENGTH: ContentLengthFramer,
    FRAMING_NEWLINE: NewlineFramer,
}


def get_framer(name: str) -> Framer:
    """
    Create a fresh framer for the named wire format.

    Raises:
        ConfigurationError: Unknown framing name
    """
    framer_cls = FRAMERS.get(name.lower())
    if framer_cls is None:
        raise ConfigurationError(
            f"Unknown framing: {name}", {"available": ", ".join(sorted(FRAMERS))}
        )
    return framer_cls()
