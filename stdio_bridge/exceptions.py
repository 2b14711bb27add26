"""
Bridge Exception Hierarchy

Centralized exception classes for structured error handling across the bridge.
All bridge-specific exceptions inherit from BridgeError.

Usage:
    from stdio_bridge.exceptions import BridgeError, RequestTimeoutError

    try:
        response = await bridge.call(message)
    except RequestTimeoutError as e:
        logger.warning(f"No reply in time: {e}")
"""

from typing import Any


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(BridgeError):
    """Error in bridge configuration."""

    pass


class MissingConfigError(ConfigurationError):
    """Required configuration value is missing."""

    pass


# =============================================================================
# Child Process Errors
# =============================================================================


class ChildStartError(BridgeError):
    """The stdio child process could not be spawned."""

    def __init__(self, message: str, command: list[str] | None = None):
        details = {"command": " ".join(command)} if command else {}
        super().__init__(message, details)
        self.command = command


class ChildNotRunningError(BridgeError):
    """The stdio child process is gone or its stdin is closed."""

    pass


# =============================================================================
# Correlation Errors
# =============================================================================


class RequestTimeoutError(BridgeError):
    """No reply with a matching id arrived within the request timeout."""

    def __init__(self, request_id: Any, timeout: float):
        super().__init__(
            f"No response for request {request_id!r}",
            {"timeout": timeout},
        )
        self.request_id = request_id
        self.timeout = timeout


class DuplicateRequestError(BridgeError):
    """A request with the same id is already awaiting its reply."""

    def __init__(self, request_id: Any):
        super().__init__(f"Request {request_id!r} is already pending")
        self.request_id = request_id


class InvalidRequestError(BridgeError):
    """Request id cannot be used as a correlation key."""

    pass
