#!/usr/bin/env python3
"""
Stdio Bridge Entrypoint

Resolves options, configures logging and runs the HTTP/SSE bridge.

Usage:
  entrypoint.py [--port N] [--framing content-length|newline] [--command CMD] [-- CHILD_ARGS...]

Environment:
  PORT, MCP_STDIO_COMMAND, MCP_STDIO_ARGS, MCP_HTTP_TIMEOUT_MS, MCP_STDIO_FRAMING
"""

import sys


def main(argv=None) -> int:
    from stdio_bridge.configs import get_logger, load_config, setup_logging
    from stdio_bridge.exceptions import ConfigurationError
    from stdio_bridge.http import run_server

    if argv is None:
        argv = sys.argv[1:]

    try:
        config = load_config(argv)
    except ConfigurationError as e:
        setup_logging()
        get_logger("entrypoint").error(f"{e}")
        return 2

    # Initialize logging (must be called before get_logger)
    setup_logging(debug=config.debug, log_file=config.log_file)
    logger = get_logger("entrypoint")
    logger.debug(f"Resolved config: {config.model_dump()}")

    try:
        return run_server(config)
    except KeyboardInterrupt:
        logger.info("Bridge interrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
