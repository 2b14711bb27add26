"""
Pytest fixtures for stdio bridge tests.
"""

import sys
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient

# Add project root to path for package imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from stdio_bridge.bridge import Bridge  # noqa: E402
from stdio_bridge.configs import BridgeConfig  # noqa: E402
from stdio_bridge.http import create_app  # noqa: E402

ECHO_CHILD = Path(__file__).parent / "fixtures" / "echo_child.py"


@pytest.fixture
def make_config() -> Callable[..., BridgeConfig]:
    """Build a BridgeConfig that runs the fixture child."""

    def _make(framing: str = "content-length", mode: str = "echo", **overrides) -> BridgeConfig:
        values = {
            "command": sys.executable,
            "args": [str(ECHO_CHILD), framing, mode],
            "framing": framing,
            "timeout_ms": 5000,
            "shutdown_grace": 2,
        }
        values.update(overrides)
        return BridgeConfig(**values)

    return _make


@pytest.fixture
def make_client(make_config) -> Generator[Callable[..., TestClient], None, None]:
    """
    Start a bridge app against the fixture child.

    The child is spawned by the app's lifespan and terminated when the
    test finishes.
    """
    clients: list[TestClient] = []

    def _make(framing: str = "content-length", mode: str = "echo", **overrides) -> TestClient:
        bridge = Bridge(make_config(framing, mode, **overrides))
        client = TestClient(create_app(bridge))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
