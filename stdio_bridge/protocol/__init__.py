"""
Child Wire Protocol

Framing for the JSON messages exchanged with the stdio child.
"""

from stdio_bridge.protocol.framing import (
    ContentLengthFramer,
    Framer,
    NewlineFramer,
    dump_json,
    get_framer,
    load_json,
)

__all__ = [
    "ContentLengthFramer",
    "Framer",
    "NewlineFramer",
    "dump_json",
    "get_framer",
    "load_json",
]
