"""
Stdio Bridge Core

Correlation, SSE fan-out and child supervision for one bridged process.
"""

from stdio_bridge.bridge.broadcaster import SseBroadcaster, SseClient, format_event
from stdio_bridge.bridge.core import Bridge, has_request_id
from stdio_bridge.bridge.correlation import CorrelationTable, PendingRequest
from stdio_bridge.bridge.supervisor import ChildSupervisor

__all__ = [
    "Bridge",
    "ChildSupervisor",
    "CorrelationTable",
    "PendingRequest",
    "SseBroadcaster",
    "SseClient",
    "format_event",
    "has_request_id",
]
