"""
Bridge Logging Configuration

Bridge log lines share stderr with the child's own stderr, which is passed
through untouched. Every line therefore carries a ``[stdio_bridge.<component>]``
tag. When MCP_BRIDGE_LOG_FILE is set the full log goes to that file and only
warnings and errors stay on stderr, next to the child's output.

Environment:
- MCP_BRIDGE_DEBUG: debug level when truthy
- MCP_BRIDGE_LOG_FILE: optional log file path
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from stdio_bridge.configs.constants import ENV_DEBUG, ENV_LOG_FILE

LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    debug: Optional[bool] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the ``stdio_bridge`` logger tree. Safe to call more than once.

    Args:
        debug: Log at DEBUG instead of INFO. Falls back to MCP_BRIDGE_DEBUG.
        log_file: Also write to this file. Falls back to MCP_BRIDGE_LOG_FILE.

    Returns:
        The ``stdio_bridge`` logger
    """
    if debug is None:
        debug = os.environ.get(ENV_DEBUG, "").lower() in ("true", "1", "yes")
    if log_file is None:
        log_file = os.environ.get(ENV_LOG_FILE) or None

    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger("stdio_bridge")
    logger.setLevel(level)
    logger.handlers.clear()

    # A log file takes the detail; stderr keeps only what an operator must see
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.WARNING if log_file else level)
    logger.addHandler(stderr_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)
        logger.info(f"Bridge log file: {log_path}")

    return logger


def get_logger(component: str) -> logging.Logger:
    """Logger for one bridge component, e.g. ``get_logger("supervisor")``."""
    return logging.getLogger(f"stdio_bridge.{component}")
