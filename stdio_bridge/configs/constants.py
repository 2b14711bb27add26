"""
Bridge Constants

Static configuration values that rarely change: defaults, environment
variable names, wire-format identifiers and timeout configuration.
"""

# --- Defaults ---

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3541
DEFAULT_TIMEOUT_MS = 30000

# --- Environment Variables ---

ENV_PORT = "PORT"
ENV_HOST = "MCP_HTTP_HOST"
ENV_COMMAND = "MCP_STDIO_COMMAND"
ENV_ARGS = "MCP_STDIO_ARGS"
ENV_TIMEOUT_MS = "MCP_HTTP_TIMEOUT_MS"
ENV_FRAMING = "MCP_STDIO_FRAMING"
ENV_DEBUG = "MCP_BRIDGE_DEBUG"
ENV_LOG_FILE = "MCP_BRIDGE_LOG_FILE"

# --- Wire Formats ---

FRAMING_CONTENT_LENGTH = "content-length"
FRAMING_NEWLINE = "newline"
FRAMINGS = (FRAMING_CONTENT_LENGTH, FRAMING_NEWLINE)
DEFAULT_FRAMING = FRAMING_CONTENT_LENGTH

# --- Streams ---

STDOUT_CHUNK_SIZE = 64 * 1024  # bytes per read from child stdout
SSE_QUEUE_SIZE = 1024  # frames buffered per SSE client

# --- Timeout Configuration ---
# Centralized timeout values (in seconds)

TIMEOUTS = {
    "child_shutdown": 5,  # SIGTERM grace period before SIGKILL
    "http_graceful_shutdown": 5,  # Open connections (SSE) at shutdown
    "sse_poll": 1.0,  # Disconnect check interval for idle SSE streams
}


def get_timeout(key: str, default: int | float | None = None) -> int | float:
    """
    Get a timeout value by key.

    Args:
        key: Timeout key from TIMEOUTS dict
        default: Default value if key not found

    Returns:
        Timeout value in seconds
    """
    if default is None:
        default = TIMEOUTS.get("child_shutdown", 5)
    return TIMEOUTS.get(key, default)
