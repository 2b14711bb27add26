"""
Tests for the HTTP endpoints against a real stdio child.

The fixture child (tests/fixtures/echo_child.py) echoes every message,
ignores everything, or answers with id-less notifications, depending on mode.
"""

import threading
import time

import pytest


@pytest.fixture(params=["content-length", "newline"])
def echo_client(request, make_client):
    """Client for a bridge whose child echoes every message back."""
    return make_client(request.param, "echo")


@pytest.fixture
def silent_client(make_client):
    """Client for a bridge whose child never replies; 300ms timeout."""
    return make_client("content-length", "silent", timeout_ms=300)


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health(self, echo_client):
        response = echo_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_health_does_not_depend_on_child(self, make_client):
        client = make_client("newline", "silent")
        client.portal.call(client.app.state.bridge.supervisor.terminate)
        assert client.get("/health").json() == {"status": "ok"}


class TestRpcEndpoint:
    """Tests for POST /rpc."""

    def test_request_with_id_returns_reply(self, echo_client):
        response = echo_client.post("/rpc", json={"id": 1, "method": "ping"})

        assert response.status_code == 200
        assert response.json() == {"id": 1, "method": "ping"}
        assert len(echo_client.app.state.bridge.pending) == 0

    def test_multibyte_payload_round_trips(self, echo_client):
        payload = {"jsonrpc": "2.0", "id": "ü-1", "params": {"ort": "München", "text": "职位"}}
        response = echo_client.post("/rpc", json=payload)

        assert response.status_code == 200
        assert response.json() == payload

    def test_sequential_requests(self, echo_client):
        for i in range(5):
            response = echo_client.post("/rpc", json={"id": i, "method": "tools/list"})
            assert response.json()["id"] == i

    def test_notification_is_accepted_immediately(self, silent_client):
        started = time.monotonic()
        response = silent_client.post("/rpc", json={"method": "notify"})

        assert response.status_code == 202
        assert response.json() == {"status": "accepted"}
        assert time.monotonic() - started < 0.3

    def test_non_object_payload_is_fire_and_forget(self, silent_client):
        response = silent_client.post("/rpc", json=[{"id": 1, "method": "batch"}])
        assert response.status_code == 202

    def test_timeout_returns_504(self, silent_client):
        started = time.monotonic()
        response = silent_client.post("/rpc", json={"id": 2, "method": "tools/call"})
        elapsed = time.monotonic() - started

        assert response.status_code == 504
        assert response.json() == {"error": "MCP response timeout"}
        assert 0.25 <= elapsed < 3
        assert 2 not in silent_client.app.state.bridge.pending

    def test_invalid_json_returns_400(self, silent_client):
        bridge = silent_client.app.state.bridge
        sent = []
        original_send = bridge.send

        async def recording_send(message):
            sent.append(message)
            await original_send(message)

        bridge.send = recording_send
        response = silent_client.post(
            "/rpc", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON payload"}
        assert sent == []

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    def test_non_json_constant_returns_400(self, silent_client, constant):
        bridge = silent_client.app.state.bridge
        writes = []
        original_write = bridge.supervisor.write

        async def recording_write(data):
            writes.append(data)
            await original_write(data)

        bridge.supervisor.write = recording_write
        response = silent_client.post(
            "/rpc",
            content=('{"id":9,"x":%s}' % constant).encode(),
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON payload"}
        assert writes == []
        assert len(bridge.pending) == 0

    def test_empty_body_returns_400(self, silent_client):
        assert silent_client.post("/rpc", content=b"").status_code == 400

    def test_unhashable_id_returns_400(self, silent_client):
        response = silent_client.post("/rpc", json={"id": {"nested": 1}, "method": "x"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request id"}

    def test_unmatched_replies_do_not_resolve(self, make_client):
        client = make_client("newline", "notify", timeout_ms=300)
        response = client.post("/rpc", json={"id": 3, "method": "ping"})
        assert response.status_code == 504


class TestChildFailure:
    """Tests for a child that has exited."""

    def test_request_after_child_exit_returns_502(self, make_client):
        client = make_client("newline", "echo")
        bridge = client.app.state.bridge

        client.portal.call(bridge.supervisor.terminate)

        response = client.post("/rpc", json={"id": 1, "method": "ping"})
        assert response.status_code == 502
        assert response.json() == {"error": "MCP stdio server is not running"}
        assert len(bridge.pending) == 0

        notify = client.post("/rpc", json={"method": "notify"})
        assert notify.status_code == 502

        # The HTTP front keeps serving
        assert client.get("/health").status_code == 200


class TestNotFound:
    """Tests for unknown routes."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/"),
            ("GET", "/rpc"),
            ("POST", "/health"),
            ("DELETE", "/sse"),
            ("GET", "/docs"),
            ("GET", "/mcp/tools/list"),
        ],
    )
    def test_unknown_routes_return_404(self, make_client, method, path):
        client = make_client("newline", "silent")
        response = client.request(method, path)
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}


class TestSseEndpoint:
    """Tests for GET /sse route wiring."""

    def test_sse_route_registered(self, make_client):
        client = make_client("newline", "silent")
        paths = {route.path for route in client.app.routes}
        assert {"/health", "/sse", "/rpc"} <= paths

    def test_replies_are_broadcast_to_sse_clients(self, make_client):
        from stdio_bridge.bridge import SseClient

        client = make_client("content-length", "echo")
        bridge = client.app.state.bridge
        subscriber = SseClient()
        bridge.broadcaster.register(subscriber)

        response = client.post("/rpc", json={"id": 7, "method": "ping"})
        assert response.status_code == 200

        frame = client.portal.call(subscriber.next_frame, 1)
        assert frame == 'event: message\ndata: {"id":7,"method":"ping"}\n\n'

    def test_stream_opens_with_ready_event(self, make_client):
        client = make_client("newline", "silent")
        bridge = client.app.state.bridge

        def close_once_connected():
            deadline = time.monotonic() + 5
            while len(bridge.broadcaster) == 0 and time.monotonic() < deadline:
                time.sleep(0.01)
            client.portal.call(bridge.broadcaster.close_all)

        # The test transport returns only once the stream has ended
        closer = threading.Thread(target=close_once_connected)
        closer.start()
        with client.stream("GET", "/sse") as response:
            body = response.read()
        closer.join()

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["connection"] == "keep-alive"
        assert response.headers["access-control-allow-origin"] == "*"
        assert body == b"event: ready\ndata: {}\n\n"
        assert len(bridge.broadcaster) == 0
