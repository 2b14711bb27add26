"""
Bridge Configuration Module

Re-exports commonly used functions for cleaner imports across the codebase.
"""

# Logging (most commonly used)
from stdio_bridge.configs.logging import get_logger, setup_logging

# Constants
from stdio_bridge.configs.constants import (
    DEFAULT_FRAMING,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_MS,
    FRAMING_CONTENT_LENGTH,
    FRAMING_NEWLINE,
    FRAMINGS,
    TIMEOUTS,
    get_timeout,
)

# Runtime
from stdio_bridge.configs.runtime import BridgeConfig, load_config

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Constants
    "DEFAULT_FRAMING",
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT_MS",
    "FRAMING_CONTENT_LENGTH",
    "FRAMING_NEWLINE",
    "FRAMINGS",
    "TIMEOUTS",
    "get_timeout",
    # Runtime
    "BridgeConfig",
    "load_config",
]
