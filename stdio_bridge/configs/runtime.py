"""
Bridge Runtime Configuration

Resolves the bridge options from command line flags, environment variables
and defaults.

Priority (highest wins):
1. Command line flags (child args: everything after ``--``)
2. Environment variables
3. Defaults from constants
"""

import argparse
import os
from typing import Literal, Mapping, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from stdio_bridge.configs.constants import (
    DEFAULT_FRAMING,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_MS,
    ENV_ARGS,
    ENV_COMMAND,
    ENV_DEBUG,
    ENV_FRAMING,
    ENV_HOST,
    ENV_LOG_FILE,
    ENV_PORT,
    ENV_TIMEOUT_MS,
    FRAMINGS,
    get_timeout,
)
from stdio_bridge.exceptions import ConfigurationError, MissingConfigError


class BridgeConfig(BaseModel):
    """Resolved options for one bridge run."""

    command: str = Field(..., min_length=1, description="Executable of the stdio child")
    args: list[str] = Field(default_factory=list, description="Arguments for the child")
    host: str = Field(DEFAULT_HOST, description="Interface the HTTP listener binds to")
    port: int = Field(DEFAULT_PORT, ge=1, le=65535, description="HTTP listening port")
    timeout_ms: int = Field(DEFAULT_TIMEOUT_MS, gt=0, description="Per-request reply timeout")
    framing: Literal["content-length", "newline"] = Field(
        DEFAULT_FRAMING, description="Wire format spoken with the child"
    )
    shutdown_grace: float = Field(
        get_timeout("child_shutdown"), ge=0, description="Seconds between SIGTERM and SIGKILL"
    )
    debug: bool = False
    log_file: Optional[str] = None

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        return self.timeout_ms / 1000


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stdio-bridge",
        description="Expose a stdio JSON-RPC process over HTTP and SSE",
        epilog="Arguments after -- are passed to the child process.",
    )
    parser.add_argument("--port", type=int, help=f"Port to listen on (env {ENV_PORT})")
    parser.add_argument("--host", help=f"Interface to bind (env {ENV_HOST})")
    parser.add_argument("--command", help=f"Child executable (env {ENV_COMMAND})")
    parser.add_argument(
        "--timeout-ms", type=int, help=f"Reply timeout in milliseconds (env {ENV_TIMEOUT_MS})"
    )
    parser.add_argument("--framing", choices=FRAMINGS, help=f"Child wire format (env {ENV_FRAMING})")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")
    parser.add_argument("--log-file", help=f"Log file path (env {ENV_LOG_FILE})")
    return parser


def split_child_args(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split argv at the first ``--`` into (bridge flags, child args)."""
    argv = list(argv)
    if "--" in argv:
        index = argv.index("--")
        return argv[:index], argv[index + 1:]
    return argv, []


def _env_int(environ: Mapping[str, str], name: str) -> Optional[int]:
    raw = environ.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer", {name: raw}) from e


def load_config(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BridgeConfig:
    """
    Resolve the bridge configuration.

    Args:
        argv: Command line arguments without the program name.
              Defaults to no flags.
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        Validated BridgeConfig

    Raises:
        MissingConfigError: No child command was supplied
        ConfigurationError: A value is malformed or out of range
    """
    if environ is None:
        environ = os.environ
    flags, child_args = split_child_args(argv or [])
    options = _build_parser().parse_args(flags)

    command = options.command or environ.get(ENV_COMMAND)
    if not command:
        raise MissingConfigError(
            f"No child command configured; pass --command or set {ENV_COMMAND}"
        )

    env_args = environ.get(ENV_ARGS, "").split()

    values: dict = {
        "command": command,
        "args": child_args if child_args else env_args,
    }

    port = options.port if options.port is not None else _env_int(environ, ENV_PORT)
    if port is not None:
        values["port"] = port

    timeout_ms = (
        options.timeout_ms if options.timeout_ms is not None else _env_int(environ, ENV_TIMEOUT_MS)
    )
    if timeout_ms is not None:
        values["timeout_ms"] = timeout_ms

    host = options.host or environ.get(ENV_HOST)
    if host:
        values["host"] = host

    framing = options.framing or environ.get(ENV_FRAMING)
    if framing:
        values["framing"] = framing.lower()

    if options.debug is not None:
        values["debug"] = options.debug
    else:
        values["debug"] = environ.get(ENV_DEBUG, "").lower() in ("true", "1", "yes")

    log_file = options.log_file or environ.get(ENV_LOG_FILE)
    if log_file:
        values["log_file"] = log_file

    try:
        return BridgeConfig(**values)
    except ValidationError as e:
        raise ConfigurationError("Invalid bridge configuration", {"errors": e.errors()}) from e
