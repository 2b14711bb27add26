"""
Stdio Bridge

Exposes a process that speaks framed JSON-RPC over stdin/stdout to HTTP
clients: a health probe, an SSE stream and a request/response endpoint.
"""

__version__ = "1.0.0"
